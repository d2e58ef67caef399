# tests/test_broadcast.py

import asyncio
import logging

import pytest

from ekiden_client.exceptions import ConnectionClosed, Lagged
from ekiden_client.ws.broadcast import Broadcast


def test_send_without_receivers_is_dropped():
    endpoint = Broadcast(capacity=4)
    assert endpoint.send("lost") == 0

    receiver = endpoint.subscribe()
    assert receiver.try_recv() is None


def test_fan_out_delivers_to_every_receiver_in_order():
    endpoint = Broadcast(capacity=8)
    fast = endpoint.subscribe()
    slow = endpoint.subscribe()

    for item in ("a", "b", "c"):
        assert endpoint.send(item) == 2

    assert [fast.try_recv() for _ in range(3)] == ["a", "b", "c"]
    assert fast.try_recv() is None

    # The slow consumer is unaffected by how far the fast one has read.
    assert slow.try_recv() == "a"
    endpoint.send("d")
    assert [slow.try_recv() for _ in range(3)] == ["b", "c", "d"]
    assert fast.try_recv() == "d"


def test_receiver_only_sees_items_sent_after_subscribing():
    endpoint = Broadcast(capacity=4)
    early = endpoint.subscribe()
    endpoint.send(1)
    late = endpoint.subscribe()
    endpoint.send(2)

    assert early.try_recv() == 1
    assert late.try_recv() == 2
    assert late.try_recv() is None


def test_lagging_receiver_reports_skipped_count_then_recovers():
    endpoint = Broadcast(capacity=2, channel="trades/0x01")
    receiver = endpoint.subscribe()

    for item in range(5):
        endpoint.send(item)

    with pytest.raises(Lagged) as excinfo:
        receiver.try_recv()
    assert excinfo.value.skipped == 3
    assert excinfo.value.channel == "trades/0x01"

    assert receiver.try_recv() == 3
    assert receiver.try_recv() == 4
    assert receiver.try_recv() is None


def test_close_drains_buffer_before_reporting_closed():
    endpoint = Broadcast(capacity=4)
    receiver = endpoint.subscribe()
    endpoint.send("pending")
    endpoint.close()

    assert receiver.try_recv() == "pending"
    with pytest.raises(ConnectionClosed):
        receiver.try_recv()
    with pytest.raises(ConnectionClosed):
        endpoint.send("after close")


def test_receiver_close_detaches_only_that_consumer():
    endpoint = Broadcast(capacity=4)
    first = endpoint.subscribe()
    second = endpoint.subscribe()

    first.close()
    assert endpoint.receiver_count == 1
    assert endpoint.send("x") == 1
    assert second.try_recv() == "x"
    with pytest.raises(ConnectionClosed):
        first.try_recv()


def test_resubscribe_starts_at_the_tail():
    endpoint = Broadcast(capacity=4)
    original = endpoint.subscribe()
    endpoint.send("old")

    clone = original.resubscribe()
    endpoint.send("new")

    assert clone.try_recv() == "new"
    assert original.try_recv() == "old"


def test_recv_waits_for_next_item():
    async def scenario():
        endpoint = Broadcast(capacity=4)
        receiver = endpoint.subscribe()

        pending = asyncio.create_task(receiver.recv())
        await asyncio.sleep(0)
        assert not pending.done()

        endpoint.send("hello")
        return await asyncio.wait_for(pending, timeout=1)

    assert asyncio.run(scenario()) == "hello"


def test_recv_wakes_with_connection_closed_on_close():
    async def scenario():
        endpoint = Broadcast(capacity=4)
        receiver = endpoint.subscribe()
        pending = asyncio.create_task(receiver.recv())
        await asyncio.sleep(0)

        endpoint.close()
        with pytest.raises(ConnectionClosed):
            await asyncio.wait_for(pending, timeout=1)

    asyncio.run(scenario())


def test_async_iteration_logs_lag_and_stops_at_close(caplog):
    async def scenario():
        endpoint = Broadcast(capacity=2, channel="orderbook/0x01")
        receiver = endpoint.subscribe()
        for item in range(4):
            endpoint.send(item)
        endpoint.close()
        return [item async for item in receiver]

    with caplog.at_level(logging.WARNING, logger="ekiden_client.ws.broadcast"):
        items = asyncio.run(scenario())

    assert items == [2, 3]
    lag_records = [r for r in caplog.records if getattr(r, "event", None) == "ws_receiver_lagged"]
    assert len(lag_records) == 1
    assert lag_records[0].channel == "orderbook/0x01"


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        Broadcast(capacity=0)

"""Shared fixtures: a scripted Ekiden websocket server and canned payloads."""
from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Set

import pytest
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosed

MARKET_ADDR = "0x" + "ab" * 32
USER_ADDR = "0x" + "cd" * 20


class FakeEkidenServer:
    """Local websocket endpoint that acknowledges control frames like the real API."""

    def __init__(self) -> None:
        self.received: List[Dict[str, Any]] = []
        self.connections: Set[ServerConnection] = set()
        self.connection_count = 0
        self.url = ""
        self._server = None

    async def _handler(self, websocket: ServerConnection) -> None:
        self.connections.add(websocket)
        self.connection_count += 1
        try:
            async for message in websocket:
                frame = json.loads(message)
                self.received.append(frame)
                if frame["type"] == "ping":
                    await websocket.send(json.dumps({"type": "pong"}))
                elif frame["type"] in ("subscribe", "unsubscribe"):
                    await websocket.send(json.dumps({"type": f"{frame['type']}d", "channel": frame["channel"]}))
        except ConnectionClosed:
            pass
        finally:
            self.connections.discard(websocket)

    async def start(self) -> "FakeEkidenServer":
        self._server = await serve(self._handler, "127.0.0.1", 0)
        port = self._server.sockets[0].getsockname()[1]
        self.url = f"ws://127.0.0.1:{port}"
        return self

    async def stop(self) -> None:
        self._server.close()
        await self._server.wait_closed()

    async def send_raw(self, payload: str) -> None:
        for websocket in list(self.connections):
            await websocket.send(payload)

    async def send_event(self, channel: str, data: Dict[str, Any]) -> None:
        await self.send_raw(json.dumps({"type": "event", "channel": channel, "data": data}))

    async def drop_connections(self, code: int = 1011, reason: str = "server error") -> None:
        for websocket in list(self.connections):
            await websocket.close(code, reason)

    def frames(self, frame_type: str) -> List[Dict[str, Any]]:
        return [frame for frame in self.received if frame["type"] == frame_type]

    async def wait_for(self, predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Timed out waiting for server condition")
            await asyncio.sleep(0.01)


@pytest.fixture
def make_server() -> Callable[[], FakeEkidenServer]:
    """Returns a factory; the server must be started inside the test's event loop."""
    return FakeEkidenServer


def orderbook_snapshot(market_addr: str = MARKET_ADDR) -> Dict[str, Any]:
    return {
        "type": "orderbook_snapshot",
        "market_addr": market_addr,
        "bids": [{"price": 100, "size": 5}],
        "asks": [{"price": 101, "size": 7}],
        "timestamp": 1700000000,
    }


@pytest.fixture
def snapshot_payload() -> Dict[str, Any]:
    return orderbook_snapshot()


@pytest.fixture
def order_payload() -> Dict[str, Any]:
    return {
        "sid": "order-1",
        "side": "buy",
        "size": 10,
        "price": 100,
        "leverage": 5,
        "type": "limit",
        "status": "open",
        "user_addr": USER_ADDR,
        "market_addr": MARKET_ADDR,
        "seq": 7,
        "timestamp": 1700000002,
    }

# src/ekiden_client/ws/broadcast.py

from __future__ import annotations

import asyncio
import logging
import threading
import weakref
from collections import deque
from typing import Any, Deque, Generic, Optional, Set, TypeVar

from ekiden_client.exceptions import ConnectionClosed, Lagged

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _release(waiter: asyncio.Future) -> None:
    if not waiter.done():
        waiter.set_result(None)


def _wake(waiter: asyncio.Future) -> None:
    loop = waiter.get_loop()
    if loop.is_closed():
        return
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        _release(waiter)
    else:
        loop.call_soon_threadsafe(_release, waiter)


class Broadcast(Generic[T]):
    """
    Single-producer, multi-consumer bounded fan-out buffer.

    Items live in a ring of ``capacity`` slots shared by every receiver; each
    receiver keeps its own read cursor. ``send`` never blocks: when the ring is
    full the oldest item is evicted and any receiver still pointing at it gets
    :class:`Lagged` on its next read. Items sent while no receiver is attached
    are dropped.
    """

    def __init__(self, capacity: int = 1000, channel: Optional[str] = None):
        if capacity <= 0:
            raise ValueError("Capacity must be positive")
        self.capacity = capacity
        self.channel = channel
        self._buffer: Deque[T] = deque(maxlen=capacity)
        self._next_seq = 0
        self._closed = False
        self._receivers: "weakref.WeakSet[EventReceiver[T]]" = weakref.WeakSet()
        self._waiters: Set[asyncio.Future] = set()
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def receiver_count(self) -> int:
        with self._lock:
            return len(self._receivers)

    def subscribe(self) -> "EventReceiver[T]":
        """Attaches a new receiver that sees items sent from now on."""
        with self._lock:
            receiver: EventReceiver[T] = EventReceiver(self, self._next_seq)
            if not self._closed:
                self._receivers.add(receiver)
            return receiver

    def send(self, item: T) -> int:
        """Pushes ``item`` to every attached receiver and returns how many there are."""
        with self._lock:
            if self._closed:
                raise ConnectionClosed(self.channel)
            count = len(self._receivers)
            if count == 0:
                return 0
            self._buffer.append(item)
            self._next_seq += 1
            waiters = list(self._waiters)
            self._waiters.clear()

        for waiter in waiters:
            _wake(waiter)
        return count

    def close(self) -> None:
        """Receivers drain what is already buffered, then report ConnectionClosed."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            waiters = list(self._waiters)
            self._waiters.clear()

        for waiter in waiters:
            _wake(waiter)

    def _detach(self, receiver: "EventReceiver[T]") -> None:
        with self._lock:
            self._receivers.discard(receiver)

    def _poll_locked(self, receiver: "EventReceiver[T]") -> tuple[bool, Any]:
        # Caller holds self._lock.
        oldest = self._next_seq - len(self._buffer)
        if receiver._cursor < oldest:
            skipped = oldest - receiver._cursor
            receiver._cursor = oldest
            raise Lagged(skipped, self.channel)
        if receiver._cursor < self._next_seq:
            item = self._buffer[receiver._cursor - oldest]
            receiver._cursor += 1
            return True, item
        if self._closed:
            raise ConnectionClosed(self.channel)
        return False, None


class EventReceiver(Generic[T]):
    """
    Consumer side of a :class:`Broadcast`.

    ``recv`` returns the next item, raises :class:`Lagged` (transient, some
    items were missed) or :class:`ConnectionClosed` (permanent). Async iteration
    yields items until the channel closes and logs lag instead of raising it.
    """

    def __init__(self, broadcast: Broadcast[T], cursor: int):
        self._broadcast = broadcast
        self._cursor = cursor
        self._closed = False

    @property
    def channel(self) -> Optional[str]:
        return self._broadcast.channel

    @property
    def closed(self) -> bool:
        return self._closed

    def try_recv(self) -> Optional[T]:
        """Returns the next buffered item, or None when nothing is pending."""
        if self._closed:
            raise ConnectionClosed(self.channel)
        with self._broadcast._lock:
            _, item = self._broadcast._poll_locked(self)
            return item

    async def recv(self) -> T:
        broadcast = self._broadcast
        while True:
            if self._closed:
                raise ConnectionClosed(self.channel)
            with broadcast._lock:
                found, item = broadcast._poll_locked(self)
                if found:
                    return item
                waiter = asyncio.get_running_loop().create_future()
                broadcast._waiters.add(waiter)
            try:
                await waiter
            finally:
                with broadcast._lock:
                    broadcast._waiters.discard(waiter)

    def resubscribe(self) -> "EventReceiver[T]":
        """A new receiver on the same channel, starting at the newest item."""
        return self._broadcast.subscribe()

    def close(self) -> None:
        """Detaches this consumer; the producer and other receivers are unaffected."""
        self._closed = True
        self._broadcast._detach(self)

    def __aiter__(self) -> "EventReceiver[T]":
        return self

    async def __anext__(self) -> T:
        while True:
            try:
                return await self.recv()
            except Lagged as exc:
                logger.warning(
                    "Event stream for %s lagged; %d events missed",
                    self.channel,
                    exc.skipped,
                    extra={"event": "ws_receiver_lagged", "channel": self.channel},
                )
            except ConnectionClosed:
                raise StopAsyncIteration from None

    def __repr__(self) -> str:
        return f"EventReceiver(channel={self.channel!r}, closed={self._closed!r})"

# src/ekiden_client/ws/client.py

import asyncio
import logging
import threading
from typing import Any, Awaitable, Callable, List, Optional

from websockets import exceptions as ws_exceptions
from websockets.asyncio.client import connect

from ekiden_client.exceptions import (
    AlreadyConnectedError,
    ConfigError,
    NotConnectedError,
    TransportError,
)
from ekiden_client.logging_config import structured_log_extra
from ekiden_client.types import (
    PingRequest,
    SubscribeRequest,
    UnsubscribeRequest,
    WsEvent,
    WsRequest,
)
from ekiden_client.ws import channels
from ekiden_client.ws.broadcast import EventReceiver
from ekiden_client.ws.dispatcher import Dispatcher
from ekiden_client.ws.models import (
    CONNECTED,
    CONNECTING,
    DISCONNECTED,
    RECONNECTING,
    ConnectionState,
    ConnectionStatus,
)
from ekiden_client.ws.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]

DEFAULT_CAPACITY = 1000

_TRANSPORT_ERRORS = (OSError, asyncio.TimeoutError, ws_exceptions.WebSocketException)


class WebSocketClient:
    """
    Owns one websocket connection and multiplexes channel subscriptions over it.

    Each subscribed channel gets a bounded fan-out endpoint; ``subscribe``
    hands back an :class:`EventReceiver` on that endpoint. A background task
    reads frames and passes them to the :class:`Dispatcher`. The client never
    reconnects on its own; see :class:`ReconnectingWebSocketClient`.
    """

    def __init__(self, url: str, *, capacity: int = DEFAULT_CAPACITY, connector: Optional[Connector] = None):
        self.url = url
        self.capacity = capacity
        self._connector: Connector = connector or connect
        self._registry = SubscriptionRegistry(capacity)
        self._dispatcher = Dispatcher(self._registry)

        self._status = DISCONNECTED
        self._status_lock = threading.Lock()
        self._send_lock: Optional[asyncio.Lock] = None

        self._websocket: Any = None
        self._receive_task: Optional[asyncio.Task] = None

    # ---- status ----

    def connection_status(self) -> ConnectionStatus:
        with self._status_lock:
            return self._status

    def is_connected(self) -> bool:
        return self.connection_status() == CONNECTED

    def _set_status(self, status: ConnectionStatus) -> None:
        with self._status_lock:
            previous, self._status = self._status, status
        if previous != status:
            logger.debug(f"WebSocket status {previous} -> {status}")

    def mark_reconnecting(self) -> None:
        self._set_status(RECONNECTING)

    def mark_failed(self, reason: str) -> None:
        self._set_status(ConnectionStatus.failed(reason))

    # ---- lifecycle ----

    async def connect(self) -> None:
        with self._status_lock:
            if self._status in (CONNECTING, CONNECTED):
                raise AlreadyConnectedError(f"WebSocket is already {self._status}")
            self._status = CONNECTING

        logger.info(
            f"Connecting to WebSocket {self.url}",
            extra=structured_log_extra(event="ws_connecting"),
        )
        try:
            websocket = await self._connector(self.url)
        except _TRANSPORT_ERRORS as exc:
            self._set_status(DISCONNECTED)
            logger.error(
                f"WebSocket connection to {self.url} failed: {exc}",
                extra=structured_log_extra(event="ws_connect_failed"),
            )
            raise TransportError(f"Failed to connect to {self.url}: {exc}") from exc
        except asyncio.CancelledError:
            self._set_status(DISCONNECTED)
            raise

        with self._status_lock:
            aborted = self._status != CONNECTING
            if not aborted:
                self._websocket = websocket
                self._send_lock = asyncio.Lock()
                self._status = CONNECTED
        if aborted:
            # disconnect() ran while the handshake was in flight.
            logger.info(
                "WebSocket handshake finished after disconnect; closing it.",
                extra=structured_log_extra(event="ws_connect_aborted"),
            )
            try:
                await websocket.close()
            except _TRANSPORT_ERRORS as exc:
                logger.debug(f"Error while closing WebSocket: {exc}")
            raise TransportError(f"Connection to {self.url} was aborted by disconnect")

        logger.debug(f"WebSocket status {CONNECTING} -> {CONNECTED}")
        self._receive_task = asyncio.get_running_loop().create_task(self._receive_loop(websocket))
        logger.info("WebSocket connection established.", extra=structured_log_extra(event="ws_connected"))

    async def disconnect(self) -> None:
        """Stops the receive loop, closes the socket and drops every subscription."""
        websocket, self._websocket = self._websocket, None
        task, self._receive_task = self._receive_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if websocket is not None:
            try:
                await websocket.close()
            except _TRANSPORT_ERRORS as exc:
                logger.debug(f"Error while closing WebSocket: {exc}")

        self._set_status(DISCONNECTED)
        self._registry.clear()
        logger.info("WebSocket disconnected.", extra=structured_log_extra(event="ws_disconnected"))

    async def wait_closed(self) -> None:
        """Returns once the current receive loop has ended."""
        task = self._receive_task
        if task is not None:
            await asyncio.wait({task})

    async def _receive_loop(self, websocket: Any) -> None:
        try:
            while True:
                message = await websocket.recv()
                if isinstance(message, str):
                    self._dispatcher.dispatch(message)
                # Binary frames are not part of the protocol.
        except ws_exceptions.ConnectionClosedOK:
            logger.info("WebSocket closed by server.", extra=structured_log_extra(event="ws_closed"))
            self._set_status(DISCONNECTED)
        except ws_exceptions.ConnectionClosed as exc:
            logger.warning(
                f"WebSocket connection closed unexpectedly: {exc}",
                extra=structured_log_extra(event="ws_connection_lost"),
            )
            self._set_status(ConnectionStatus.failed(str(exc)))
        except (OSError, ws_exceptions.WebSocketException) as exc:
            logger.error(f"WebSocket client error: {exc}", extra=structured_log_extra(event="ws_receive_error"))
            self._set_status(ConnectionStatus.failed(str(exc)))
        finally:
            if self._websocket is websocket:
                self._websocket = None

    # ---- outbound ----

    async def _send_request(self, request: WsRequest) -> None:
        websocket = self._websocket
        if websocket is None or self._send_lock is None:
            raise NotConnectedError("WebSocket is not connected")
        async with self._send_lock:
            try:
                await websocket.send(request.to_json())
            except _TRANSPORT_ERRORS as exc:
                raise TransportError(f"Failed to send {request.type} frame: {exc}") from exc

    async def ping(self) -> None:
        await self._send_request(PingRequest())

    async def subscribe(self, channel: str) -> EventReceiver[WsEvent]:
        if self._websocket is None:
            raise NotConnectedError("WebSocket is not connected")

        endpoint, created = self._registry.open(channel)
        receiver = endpoint.subscribe()
        try:
            await self._send_request(SubscribeRequest(channel=channel))
        except (NotConnectedError, TransportError):
            receiver.close()
            if created:
                self._registry.discard(channel, endpoint)
            raise

        logger.info(
            f"Subscribed to channel: {channel}",
            extra=structured_log_extra(event="ws_subscribed", channel=channel),
        )
        return receiver

    async def unsubscribe(self, channel: str) -> None:
        if not self._registry.remove(channel):
            return

        try:
            await self._send_request(UnsubscribeRequest(channel=channel))
        except (NotConnectedError, TransportError) as exc:
            logger.warning(
                f"Could not send unsubscribe for {channel}: {exc}",
                extra=structured_log_extra(event="ws_unsubscribe_send_failed", channel=channel),
            )
            return
        logger.info(
            f"Unsubscribed from channel: {channel}",
            extra=structured_log_extra(event="ws_unsubscribed", channel=channel),
        )

    async def resubscribe_all(self) -> int:
        """Re-sends a subscribe frame for every registered channel; returns how many were sent."""
        sent = 0
        for channel in self._registry.channels():
            await self._send_request(SubscribeRequest(channel=channel))
            sent += 1
        if sent:
            logger.info(
                f"Resubscribed to {sent} channels.",
                extra=structured_log_extra(event="ws_resubscribed", count=sent),
            )
        return sent

    # ---- convenience ----

    async def subscribe_orderbook(self, market_addr: str) -> EventReceiver[WsEvent]:
        return await self.subscribe(channels.orderbook(market_addr))

    async def subscribe_trades(self, market_addr: str) -> EventReceiver[WsEvent]:
        return await self.subscribe(channels.trades(market_addr))

    async def subscribe_user(self, user_addr: str) -> EventReceiver[WsEvent]:
        return await self.subscribe(channels.user(user_addr))

    async def subscribe_candles(self, market_addr: str, interval: str) -> EventReceiver[WsEvent]:
        return await self.subscribe(channels.candles(market_addr, interval))

    def active_subscriptions(self) -> List[str]:
        return self._registry.channels()

    def is_subscribed(self, channel: str) -> bool:
        return channel in self._registry

    async def __aenter__(self) -> "WebSocketClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    def __repr__(self) -> str:
        state: ConnectionState = self.connection_status().state
        return f"WebSocketClient(url={self.url!r}, status={state.value!r})"


class WebSocketClientBuilder:
    def __init__(self) -> None:
        self._url: Optional[str] = None
        self._capacity = DEFAULT_CAPACITY
        self._connector: Optional[Connector] = None

    def url(self, url: str) -> "WebSocketClientBuilder":
        self._url = url
        return self

    def capacity(self, capacity: int) -> "WebSocketClientBuilder":
        self._capacity = capacity
        return self

    def connector(self, connector: Connector) -> "WebSocketClientBuilder":
        self._connector = connector
        return self

    def build(self) -> WebSocketClient:
        if not self._url:
            raise ConfigError("WebSocket URL is required")
        return WebSocketClient(self._url, capacity=self._capacity, connector=self._connector)

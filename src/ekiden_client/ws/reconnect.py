# src/ekiden_client/ws/reconnect.py

import asyncio
import logging
from typing import Optional

from ekiden_client.exceptions import AlreadyConnectedError, NotConnectedError, TransportError
from ekiden_client.logging_config import structured_log_extra
from ekiden_client.ws.client import WebSocketClient

logger = logging.getLogger(__name__)


class ReconnectingWebSocketClient:
    """
    Supervises a :class:`WebSocketClient` and restores the connection when the
    receive loop ends without ``stop()`` having been called.

    Subscriptions survive a reconnect: the registry keeps its endpoints, so
    receivers handed out before the drop keep receiving once subscribe frames
    have been re-sent.
    """

    def __init__(
        self,
        client: WebSocketClient,
        *,
        initial_delay: float = 1.0,
        max_delay: float = 60.0,
        max_attempts: Optional[int] = None,
    ):
        if initial_delay <= 0 or max_delay < initial_delay:
            raise ValueError("Backoff delays must satisfy 0 < initial_delay <= max_delay")
        self.client = client
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.max_attempts = max_attempts
        self._running = False
        self._watch_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logger.warning("Reconnecting WebSocket client is already running.")
            return
        await self.client.connect()
        self._running = True
        self._watch_task = asyncio.get_running_loop().create_task(self._watch())

    async def stop(self) -> None:
        self._running = False
        task, self._watch_task = self._watch_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Reconnect watchdog cancelled during shutdown.")
        await self.client.disconnect()

    async def _watch(self) -> None:
        while self._running:
            await self.client.wait_closed()
            if not self._running:
                break
            logger.warning(
                f"WebSocket dropped ({self.client.connection_status()}); reconnecting.",
                extra=structured_log_extra(event="ws_reconnecting"),
            )
            if not await self._reconnect():
                break
        logger.info("Reconnect watchdog terminated.")

    async def _reconnect(self) -> bool:
        self.client.mark_reconnecting()
        backoff_delay = self.initial_delay
        attempt = 0
        last_error = "unknown error"

        while self._running:
            attempt += 1
            try:
                await self.client.connect()
            except AlreadyConnectedError:
                logger.debug("WebSocket was reconnected elsewhere; skipping reconnect.")
                return True
            except TransportError as exc:
                last_error = str(exc)
                logger.error(
                    f"Reconnect attempt {attempt} failed: {exc}",
                    extra=structured_log_extra(event="ws_reconnect_failed", attempt=attempt),
                )
            else:
                logger.info(
                    f"WebSocket reconnected after {attempt} attempt(s).",
                    extra=structured_log_extra(event="ws_reconnected", attempt=attempt),
                )
                await self._resubscribe()
                return True

            if self.max_attempts is not None and attempt >= self.max_attempts:
                self.client.mark_failed(f"Reconnect gave up after {attempt} attempts: {last_error}")
                return False

            self.client.mark_reconnecting()
            logger.info(f"Reconnecting in {backoff_delay}s...")
            await asyncio.sleep(backoff_delay)
            backoff_delay = min(backoff_delay * 2, self.max_delay)
        return False

    async def _resubscribe(self) -> None:
        # A failure here means the fresh connection already dropped; the
        # watchdog sees the loop end and starts another round.
        try:
            await self.client.resubscribe_all()
        except (TransportError, NotConnectedError) as exc:
            logger.warning(
                f"Resubscribe after reconnect failed: {exc}",
                extra=structured_log_extra(event="ws_resubscribe_failed"),
            )

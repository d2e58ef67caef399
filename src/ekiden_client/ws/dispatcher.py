# src/ekiden_client/ws/dispatcher.py

import logging
from typing import Union

from ekiden_client.exceptions import ConnectionClosed, SerializationError
from ekiden_client.logging_config import structured_log_extra
from ekiden_client.types import (
    ErrorResponse,
    EventResponse,
    PongResponse,
    SubscribedResponse,
    UnsubscribedResponse,
    WsEvent,
    parse_ws_response,
)
from ekiden_client.ws.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Decodes inbound text frames and routes event payloads to the registry.

    Runs inside the receive loop, so nothing here may raise for bad input:
    malformed frames are logged and dropped, events for unknown channels or
    channels without receivers are dropped silently.
    """

    def __init__(self, registry: SubscriptionRegistry):
        self._registry = registry

    def dispatch(self, text: Union[str, bytes]) -> int:
        """Handles one frame and returns how many receivers an event reached."""
        try:
            return self._handle(text)
        except SerializationError as exc:
            logger.warning(
                f"Dropping malformed WebSocket frame: {exc}",
                extra=structured_log_extra(event="ws_frame_dropped"),
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                f"Dropping WebSocket frame after unexpected error: {exc}",
                extra=structured_log_extra(event="ws_frame_dropped"),
            )
        return 0

    def _handle(self, text: Union[str, bytes]) -> int:
        response = parse_ws_response(text)

        if isinstance(response, EventResponse):
            return self._route(response.channel, response.data)

        if isinstance(response, PongResponse):
            logger.debug("Received pong")
        elif isinstance(response, SubscribedResponse):
            logger.info(
                f"Successfully subscribed to channel: {response.channel}",
                extra=structured_log_extra(event="ws_subscription_ack", channel=response.channel),
            )
        elif isinstance(response, UnsubscribedResponse):
            logger.info(
                f"Successfully unsubscribed from channel: {response.channel}",
                extra=structured_log_extra(event="ws_unsubscription_ack", channel=response.channel),
            )
        elif isinstance(response, ErrorResponse):
            # Server errors are global; they are not routed to any receiver.
            logger.warning(
                f"WebSocket server error: {response.message}",
                extra=structured_log_extra(event="ws_server_error", channel=response.channel),
            )
        return 0

    def _route(self, channel: str, event: WsEvent) -> int:
        endpoint = self._registry.get(channel)
        if endpoint is None:
            logger.debug(f"Dropping event for unknown channel {channel}")
            return 0

        try:
            delivered = endpoint.send(event)
        except ConnectionClosed:
            # Unsubscribed between lookup and send.
            logger.debug(f"Dropping event for closed channel {channel}")
            return 0

        if delivered == 0:
            logger.debug(f"No active receivers for channel {channel}")
        return delivered

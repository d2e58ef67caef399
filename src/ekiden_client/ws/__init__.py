"""WebSocket multiplexer: one connection, many channel subscriptions."""

from ekiden_client.ws import channels
from ekiden_client.ws.broadcast import Broadcast, EventReceiver
from ekiden_client.ws.client import WebSocketClient, WebSocketClientBuilder
from ekiden_client.ws.dispatcher import Dispatcher
from ekiden_client.ws.models import ConnectionState, ConnectionStatus
from ekiden_client.ws.reconnect import ReconnectingWebSocketClient
from ekiden_client.ws.registry import SubscriptionRegistry

__all__ = [
    "Broadcast",
    "ConnectionState",
    "ConnectionStatus",
    "Dispatcher",
    "EventReceiver",
    "ReconnectingWebSocketClient",
    "SubscriptionRegistry",
    "WebSocketClient",
    "WebSocketClientBuilder",
    "channels",
]

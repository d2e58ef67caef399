"""Python client for the Ekiden exchange REST and WebSocket APIs.

This module exposes :data:`APP_VERSION`, which is resolved from installed
package metadata when available (project name: ``ekiden-client``). When the
metadata cannot be found, such as when running directly from a source
checkout, a development placeholder (``"0.0.0-dev"``) is used instead.
"""

from importlib import metadata


def _determine_version() -> str:
    """Return the client version string without raising during import."""

    try:
        return metadata.version("ekiden-client")
    except metadata.PackageNotFoundError:
        return "0.0.0-dev"


APP_VERSION: str = _determine_version()
__version__: str = APP_VERSION

from ekiden_client.auth import Auth, AuthBuilder  # noqa: E402
from ekiden_client.client import EkidenClient, EkidenClientBuilder  # noqa: E402
from ekiden_client.config import EkidenConfig, Environment  # noqa: E402
from ekiden_client.config_loader import load_config  # noqa: E402
from ekiden_client.crypto import Crypto, KeyPair  # noqa: E402
from ekiden_client.exceptions import (  # noqa: E402
    APIError,
    AuthError,
    ConnectionClosed,
    EkidenError,
    Lagged,
    NotConnectedError,
    TransportError,
)
from ekiden_client.ws import (  # noqa: E402
    ConnectionStatus,
    EventReceiver,
    ReconnectingWebSocketClient,
    WebSocketClient,
    WebSocketClientBuilder,
)

__all__ = [
    "APP_VERSION",
    "__version__",
    "APIError",
    "Auth",
    "AuthBuilder",
    "AuthError",
    "ConnectionClosed",
    "ConnectionStatus",
    "Crypto",
    "EkidenClient",
    "EkidenClientBuilder",
    "EkidenConfig",
    "EkidenError",
    "Environment",
    "EventReceiver",
    "KeyPair",
    "Lagged",
    "NotConnectedError",
    "ReconnectingWebSocketClient",
    "TransportError",
    "WebSocketClient",
    "WebSocketClientBuilder",
    "load_config",
]

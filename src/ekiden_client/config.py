from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlsplit, urlunsplit

from ekiden_client.exceptions import ConfigError

PRODUCTION_BASE_URL = "https://api.ekiden.fi/api/v1"
STAGING_BASE_URL = "https://api.staging.ekiden.fi/api/v1"
LOCAL_BASE_URL = "http://localhost:3010/api/v1"
LOCAL_WS_URL = "ws://localhost:3010/ws"

_WS_SCHEMES = {"http": "ws", "https": "wss"}


def _default_user_agent() -> str:
    from ekiden_client import APP_VERSION

    return f"ekiden-python-client/{APP_VERSION}"


def _check_url(url: str, allowed: tuple[str, ...]) -> str:
    parts = urlsplit(url)
    if parts.scheme not in allowed or not parts.netloc:
        raise ConfigError(f"Invalid URL {url!r}: expected a {'/'.join(allowed)} URL")
    return url


def derive_ws_url(base_url: str) -> str:
    """Maps http(s)://host/api/v1 to ws(s)://host/ws."""
    parts = urlsplit(base_url)
    scheme = _WS_SCHEMES.get(parts.scheme)
    if scheme is None:
        raise ConfigError("Invalid URL scheme, expected http or https")
    return urlunsplit((scheme, parts.netloc, "/ws", "", ""))


@dataclass
class EkidenConfig:
    base_url: str = LOCAL_BASE_URL
    ws_url: str = LOCAL_WS_URL
    timeout: float = 30.0
    user_agent: str = field(default_factory=_default_user_agent)
    max_retries: int = 3
    retry_delay: float = 1.0
    enable_logging: bool = False
    api_version: str = "v1"
    ws_capacity: int = 1000

    @classmethod
    def new(cls, base_url: str) -> "EkidenConfig":
        _check_url(base_url, ("http", "https"))
        return cls(base_url=base_url, ws_url=derive_ws_url(base_url))

    @classmethod
    def production(cls) -> "EkidenConfig":
        return cls.new(PRODUCTION_BASE_URL)

    @classmethod
    def staging(cls) -> "EkidenConfig":
        return cls.new(STAGING_BASE_URL)

    @classmethod
    def testnet(cls) -> "EkidenConfig":
        return cls.new(STAGING_BASE_URL)

    @classmethod
    def local(cls) -> "EkidenConfig":
        return cls.new(LOCAL_BASE_URL)

    def with_ws_url(self, ws_url: str) -> "EkidenConfig":
        return dataclasses.replace(self, ws_url=_check_url(ws_url, ("ws", "wss")))

    def with_timeout(self, timeout: float) -> "EkidenConfig":
        return dataclasses.replace(self, timeout=timeout)

    def with_user_agent(self, user_agent: str) -> "EkidenConfig":
        return dataclasses.replace(self, user_agent=user_agent)

    def with_max_retries(self, max_retries: int) -> "EkidenConfig":
        return dataclasses.replace(self, max_retries=max_retries)

    def with_retry_delay(self, retry_delay: float) -> "EkidenConfig":
        return dataclasses.replace(self, retry_delay=retry_delay)

    def with_logging(self, enable_logging: bool) -> "EkidenConfig":
        return dataclasses.replace(self, enable_logging=enable_logging)

    def with_api_version(self, api_version: str) -> "EkidenConfig":
        return dataclasses.replace(self, api_version=api_version)

    def with_ws_capacity(self, ws_capacity: int) -> "EkidenConfig":
        if ws_capacity < 1:
            raise ConfigError("ws_capacity must be positive")
        return dataclasses.replace(self, ws_capacity=ws_capacity)

    def api_url(self, path: str) -> str:
        """Full REST URL for ``path``, relative to the base URL path."""
        parts = urlsplit(self.base_url)
        new_path = f"{parts.path.rstrip('/')}/{path.lstrip('/')}"
        return urlunsplit((parts.scheme, parts.netloc, new_path, "", ""))

    def websocket_url(self) -> str:
        return self.ws_url


class Environment(Enum):
    PRODUCTION = "production"
    STAGING = "staging"
    DEVELOPMENT = "development"
    LOCAL = "local"

    @property
    def base_url(self) -> str:
        return _ENVIRONMENT_URLS[self][0]

    @property
    def ws_url(self) -> str:
        return _ENVIRONMENT_URLS[self][1]

    def config(self) -> EkidenConfig:
        return EkidenConfig(base_url=self.base_url, ws_url=self.ws_url)


_ENVIRONMENT_URLS = {
    Environment.PRODUCTION: ("https://api.ekiden.fi/api/v1", "wss://api.ekiden.fi/ws"),
    Environment.STAGING: ("https://staging-api.ekiden.fi/api/v1", "wss://staging-api.ekiden.fi/ws"),
    Environment.DEVELOPMENT: ("https://dev-api.ekiden.fi/api/v1", "wss://dev-api.ekiden.fi/ws"),
    Environment.LOCAL: (LOCAL_BASE_URL, LOCAL_WS_URL),
}

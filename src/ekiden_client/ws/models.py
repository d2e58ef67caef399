from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionStatus:
    """Snapshot of the websocket connection state; ``reason`` is only set when failed."""

    state: ConnectionState
    reason: Optional[str] = None

    @classmethod
    def failed(cls, reason: str) -> "ConnectionStatus":
        return cls(ConnectionState.FAILED, reason)

    @property
    def is_failed(self) -> bool:
        return self.state is ConnectionState.FAILED

    def __str__(self) -> str:
        if self.reason:
            return f"{self.state.value} ({self.reason})"
        return self.state.value


DISCONNECTED = ConnectionStatus(ConnectionState.DISCONNECTED)
CONNECTING = ConnectionStatus(ConnectionState.CONNECTING)
CONNECTED = ConnectionStatus(ConnectionState.CONNECTED)
RECONNECTING = ConnectionStatus(ConnectionState.RECONNECTING)

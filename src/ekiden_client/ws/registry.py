from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

from ekiden_client.types import WsEvent
from ekiden_client.ws.broadcast import Broadcast


class SubscriptionRegistry:
    """
    Maps channel names to their fan-out endpoint. At most one open endpoint
    exists per channel; every read and write goes through a lock because the
    public API and the receive loop both touch it.
    """

    def __init__(self, capacity: int = 1000):
        if capacity <= 0:
            raise ValueError("Capacity must be positive")
        self.capacity = capacity
        self._entries: Dict[str, Broadcast[WsEvent]] = {}
        self._lock = threading.Lock()

    def open(self, channel: str) -> Tuple[Broadcast[WsEvent], bool]:
        """Returns the endpoint for ``channel``, creating it if needed, and whether it was created."""
        with self._lock:
            endpoint = self._entries.get(channel)
            if endpoint is not None and not endpoint.closed:
                return endpoint, False
            endpoint = Broadcast(self.capacity, channel=channel)
            self._entries[channel] = endpoint
            return endpoint, True

    def get(self, channel: str) -> Optional[Broadcast[WsEvent]]:
        with self._lock:
            return self._entries.get(channel)

    def remove(self, channel: str) -> bool:
        """Drops and closes the endpoint for ``channel``; returns False if there was none."""
        with self._lock:
            endpoint = self._entries.pop(channel, None)
        if endpoint is None:
            return False
        endpoint.close()
        return True

    def discard(self, channel: str, endpoint: Broadcast[WsEvent]) -> None:
        """Removes ``channel`` only if it still maps to ``endpoint``."""
        with self._lock:
            if self._entries.get(channel) is not endpoint:
                return
            del self._entries[channel]
        endpoint.close()

    def clear(self) -> None:
        with self._lock:
            endpoints = list(self._entries.values())
            self._entries.clear()
        for endpoint in endpoints:
            endpoint.close()

    def channels(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, channel: object) -> bool:
        with self._lock:
            return channel in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

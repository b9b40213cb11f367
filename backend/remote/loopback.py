"""
In-process remote layer.

Holds the network flag locally and logs every toggle. Used when the host
process is not attached to a real sync layer, so the coordinator and its
HTTP surface can run end to end.
"""

from __future__ import annotations

import asyncio
import time

from observability.logger import log_event
from remote.base import RemoteLayer


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class LoopbackRemoteLayer(RemoteLayer):
    """Remote layer whose only state is whether networking is enabled."""

    name = "loopback"

    def __init__(self, *, network_enabled: bool = True) -> None:
        self._lock = asyncio.Lock()
        self.network_enabled = network_enabled
        self.enable_calls = 0
        self.disable_calls = 0

    async def enable_network(self) -> None:
        async with self._lock:
            self.enable_calls += 1
            changed = not self.network_enabled
            self.network_enabled = True
        self._log("REMOTE_NETWORK_ENABLED", changed)

    async def disable_network(self) -> None:
        async with self._lock:
            self.disable_calls += 1
            changed = self.network_enabled
            self.network_enabled = False
        self._log("REMOTE_NETWORK_DISABLED", changed)

    def _log(self, event_type: str, changed: bool) -> None:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": event_type,
            "level": "DEBUG",
            "remote": self.name,
            "changed": changed,
        })

"""
Network toggle proxy.

Responsibilities:
- Forward enable/disable to the remote layer
- Convert rejected calls into logged, non-fatal ToggleFailure values
- Remember the last confirmed state for diagnostics

Non-responsibilities:
- NO retry loop. The next matching signal calls the same idempotent
  operation again, which is the retry.
- NO decisions about when to toggle.
"""

from __future__ import annotations

import time

from coordinator.errors import ToggleFailure
from observability.logger import log_event
from observability.metrics import increment
from remote.base import RemoteLayer


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class NetworkToggleProxy:
    """
    Idempotent wrapper around the remote layer's network primitives.

    Calls always reach the remote layer, even when the proxy believes it is
    already in the target state: a previous failure may have left the
    belief wrong, and the remote primitives are safe to repeat.
    """

    def __init__(self, remote: RemoteLayer) -> None:
        self._remote = remote
        self.last_known_enabled: bool | None = None
        self.failures: int = 0

    @property
    def remote(self) -> RemoteLayer:
        return self._remote

    async def enable(self) -> ToggleFailure | None:
        """Enable remote networking; never raises."""
        return await self._toggle(enabled=True)

    async def disable(self) -> ToggleFailure | None:
        """Disable remote networking; never raises."""
        return await self._toggle(enabled=False)

    async def _toggle(self, *, enabled: bool) -> ToggleFailure | None:
        operation = "enable_network" if enabled else "disable_network"
        try:
            if enabled:
                await self._remote.enable_network()
            else:
                await self._remote.disable_network()
        except Exception as e:  # pylint: disable=broad-exception-caught
            self.failures += 1
            failure = ToggleFailure(operation, e)
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "TOGGLE_FAILURE",
                "level": "WARNING",
                "remote": self._remote.name,
                "operation": operation,
                "error": repr(e),
            })
            increment("toggle_failures", details={"operation": operation})
            return failure

        self.last_known_enabled = enabled
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "TOGGLE_APPLIED",
            "remote": self._remote.name,
            "operation": operation,
        })
        return None

"""
In-process event target for raw lifecycle events.

The browser delivers visibilitychange/pagehide/... to a DOM event target;
here the same role is played by EventTargetEnvironment. Raw events reach it
through dispatch() (from the /ws/lifecycle route or from tests).

Payloads are plain dicts, e.g.:
    dispatch("visibilitychange", {"visibility_state": "hidden"})
    dispatch("pagehide", {"persisted": True})
"""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping

from observability.logger import log_event


RawListener = Callable[[str, Mapping[str, Any]], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class EventTargetEnvironment:
    """
    Synchronous event target.

    - Listeners are called in registration order
    - Adding the same listener twice for one event is a no-op
    - A failing listener is logged; the remaining listeners still run
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[RawListener]] = {}

    def add_listener(self, name: str, listener: RawListener) -> None:
        listeners = self._listeners.setdefault(name, [])
        if listener not in listeners:
            listeners.append(listener)

    def remove_listener(self, name: str, listener: RawListener) -> None:
        listeners = self._listeners.get(name)
        if not listeners or listener not in listeners:
            return
        listeners.remove(listener)
        if not listeners:
            del self._listeners[name]

    def listener_count(self, name: str) -> int:
        return len(self._listeners.get(name, ()))

    def dispatch(self, name: str, payload: Mapping[str, Any] | None = None) -> int:
        """
        Deliver a raw event to its listeners.

        Returns the number of listeners invoked.
        """
        data: Mapping[str, Any] = payload or {}
        listeners = tuple(self._listeners.get(name, ()))

        for listener in listeners:
            try:
                listener(name, data)
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "ENVIRONMENT_LISTENER_FAILED",
                    "level": "WARNING",
                    "event_name": name,
                    "error": repr(e),
                })

        return len(listeners)

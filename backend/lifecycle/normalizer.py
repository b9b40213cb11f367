"""
Lifecycle signal normalizer.

Responsibilities:
- Be the single owner of every raw lifecycle listener on the environment
- Translate raw events into Signal values
- Drop back-to-back duplicates of one logical transition
- Fan signals out, in order, to an explicit subscriber list

Non-responsibilities:
- No decisions (the coordinator reducer decides)
- No side effects besides emission and logging
"""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping

from constants import (
    RAW_FREEZE,
    RAW_LIFECYCLE_EVENTS,
    RAW_OFFLINE,
    RAW_ONLINE,
    RAW_PAGE_HIDE,
    RAW_PAGE_SHOW,
    RAW_RESUME,
    RAW_VISIBILITY_CHANGE,
    SIGNAL_DEDUP_WINDOW_MS,
)
from coordinator.signals import (
    Freeze,
    Offline,
    Online,
    PageHide,
    PageShow,
    Resume,
    Signal,
    SignalType,
    VisibilityHidden,
    VisibilityVisible,
)
from lifecycle.environment import EventTargetEnvironment
from observability.logger import log_event


Subscriber = Callable[[Signal], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# ---------------------------------------------------------------------
# Raw event -> signal
# ---------------------------------------------------------------------

def to_signal(name: str, payload: Mapping[str, Any], ts_ms: int) -> Signal | None:
    """
    Map one raw event to a signal.

    Returns None for events that carry no lifecycle meaning
    (e.g. a visibilitychange to "prerender").
    """
    if name == RAW_VISIBILITY_CHANGE:
        visibility = payload.get("visibility_state")
        if visibility == "hidden":
            return VisibilityHidden(signal_type=SignalType.VISIBILITY_HIDDEN, ts_ms=ts_ms)
        if visibility == "visible":
            return VisibilityVisible(signal_type=SignalType.VISIBILITY_VISIBLE, ts_ms=ts_ms)
        return None

    if name == RAW_PAGE_HIDE:
        return PageHide(
            signal_type=SignalType.PAGE_HIDE,
            ts_ms=ts_ms,
            persisted=bool(payload.get("persisted", False)),
        )

    if name == RAW_PAGE_SHOW:
        return PageShow(
            signal_type=SignalType.PAGE_SHOW,
            ts_ms=ts_ms,
            persisted=bool(payload.get("persisted", False)),
        )

    if name == RAW_ONLINE:
        return Online(signal_type=SignalType.ONLINE, ts_ms=ts_ms)

    if name == RAW_OFFLINE:
        return Offline(signal_type=SignalType.OFFLINE, ts_ms=ts_ms)

    if name == RAW_FREEZE:
        return Freeze(signal_type=SignalType.FREEZE, ts_ms=ts_ms)

    if name == RAW_RESUME:
        return Resume(signal_type=SignalType.RESUME, ts_ms=ts_ms)

    return None


def dedup_key(signal: Signal) -> str:
    """
    Key under which two signals count as the same logical transition.

    A hidden tab and a persisted page-hide are one suspension; a visible tab
    and a persisted page-show are one resumption. Freeze keeps its own key.
    """
    if isinstance(signal, VisibilityHidden):
        return "suspend"
    if isinstance(signal, PageHide) and signal.persisted:
        return "suspend"
    if isinstance(signal, VisibilityVisible):
        return "resume"
    if isinstance(signal, PageShow) and signal.persisted:
        return "resume"
    if isinstance(signal, (PageHide, PageShow)):
        return f"{signal.signal_type.value}:not_persisted"
    return signal.signal_type.value


# ---------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------

class SignalNormalizer:
    """
    Owns the raw listeners and delivers normalized signals.

    Dedup rule: a signal is dropped when its key equals the key of the last
    EMITTED signal and it arrives within dedup_window_ms of it.
    """

    def __init__(
        self,
        environment: EventTargetEnvironment,
        *,
        dedup_window_ms: int = SIGNAL_DEDUP_WINDOW_MS,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._environment = environment
        self._dedup_window_ms = dedup_window_ms
        self._clock = clock
        self._subscribers: list[Subscriber] = []
        self._started = False

        self._last_key: str | None = None
        self._last_ts_ms: int = 0

        self.emitted: int = 0
        self.deduplicated: int = 0

    @property
    def started(self) -> bool:
        return self._started

    # ------------------------------------------------------------------
    # Listener ownership
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to every raw lifecycle event. Idempotent."""
        if self._started:
            return
        for name in RAW_LIFECYCLE_EVENTS:
            self._environment.add_listener(name, self._on_raw)
        self._started = True

    def stop(self) -> None:
        if not self._started:
            return
        for name in RAW_LIFECYCLE_EVENTS:
            self._environment.remove_listener(name, self._on_raw)
        self._started = False

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns an unsubscribe function (safe to call more than once).
        """
        if callback not in self._subscribers:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def _on_raw(self, name: str, payload: Mapping[str, Any]) -> None:
        signal = to_signal(name, payload, self._clock())
        if signal is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "RAW_EVENT_IGNORED",
                "level": "DEBUG",
                "event_name": name,
            })
            return
        self.emit(signal)

    def emit(self, signal: Signal) -> bool:
        """
        Deliver a signal to every subscriber unless it is a duplicate.

        Returns True if the signal was delivered.
        """
        key = dedup_key(signal)

        if (
            key == self._last_key
            and signal.ts_ms - self._last_ts_ms < self._dedup_window_ms
        ):
            self.deduplicated += 1
            log_event({
                "ts_ms": signal.ts_ms,
                "event_type": "SIGNAL_DEDUPLICATED",
                "level": "DEBUG",
                "signal_type": signal.signal_type.value,
                "dedup_key": key,
                "since_last_ms": signal.ts_ms - self._last_ts_ms,
            })
            return False

        self._last_key = key
        self._last_ts_ms = signal.ts_ms
        self.emitted += 1

        for subscriber in tuple(self._subscribers):
            try:
                subscriber(signal)
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_event({
                    "ts_ms": signal.ts_ms,
                    "event_type": "SUBSCRIBER_FAILED",
                    "level": "WARNING",
                    "signal_type": signal.signal_type.value,
                    "error": repr(e),
                })

        return True

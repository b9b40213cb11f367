"""
Coordinator metrics.

Two kinds of metric, both emitted as JSONL events through
observability.logger (no in-process aggregation):

- METRIC_TIMER: one event per measured duration (close_all_duration,
  reestablish_duration, transition_duration)
- METRIC_COUNTER: one event per increment (signals_dropped,
  toggle_failures)

Durations are measured on the monotonic clock; ts_ms is wall-clock so the
events line up with the rest of the log.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# timer_id -> (metric_name, start_monotonic_ns)
_active_timers: dict[str, tuple[str, int]] = {}


# -----------------------------------------------------------------------------
# Timers
# -----------------------------------------------------------------------------

def start_timer(name: str) -> str:
    """
    Begin measuring `name`. Returns an opaque timer id.

    Every start_timer() needs a matching stop_timer(); timed() pairs them
    automatically.
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    phase: str | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Finish a timer and emit its METRIC_TIMER event.

    Returns the duration in ms, or None for an unknown (or already
    stopped) timer id.
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, started_ns = entry
    duration_ms = (time.monotonic_ns() - started_ns) // 1_000_000

    log_event({
        "ts_ms": _now_ms(),
        "event_type": "METRIC_TIMER",
        "level": "DEBUG",
        "metric": name,
        "value_ms": duration_ms,
        "phase": phase,
        "details": details or {},
    })

    return duration_ms


def active_timer_count() -> int:
    """Timers started and not yet stopped; non-zero at rest means a leak."""
    return len(_active_timers)


@contextmanager
def timed(
    name: str,
    *,
    phase: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Measure the enclosed block.

    The metric is emitted once, also when the block raises or is cancelled.

        with timed("close_all_duration", details={"count": 3}):
            await asyncio.gather(...)
    """
    timer_id = start_timer(name)
    try:
        yield
    finally:
        stop_timer(timer_id, phase=phase, details=details)


# -----------------------------------------------------------------------------
# Counters
# -----------------------------------------------------------------------------

def increment(
    name: str,
    value: int = 1,
    *,
    details: dict[str, Any] | None = None,
) -> None:
    """Emit one METRIC_COUNTER event."""
    log_event({
        "ts_ms": _now_ms(),
        "event_type": "METRIC_COUNTER",
        "level": "DEBUG",
        "metric": name,
        "value": value,
        "details": details or {},
    })

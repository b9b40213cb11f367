"""
JSONL event logger.

Contract:
- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
- Events may carry "level"; events without one are INFO
"""

from __future__ import annotations

import json
import sys
from typing import Any, Mapping, Callable

from constants import LOG_LEVELS


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

_min_level_index: int = LOG_LEVELS.index("INFO")
_json_lines: bool = True


def configure(*, min_level: str = "INFO", json_lines: bool = True) -> None:
    """
    Set process-wide logging options.

    Called once by the app factory from AppConfig. Unknown levels fall
    back to INFO rather than raising.
    """
    global _min_level_index, _json_lines  # pylint: disable=global-statement
    level = min_level.upper()
    _min_level_index = LOG_LEVELS.index(level) if level in LOG_LEVELS else LOG_LEVELS.index("INFO")
    _json_lines = json_lines


def _enabled(event: Mapping[str, Any]) -> bool:
    level = str(event.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        return True
    return LOG_LEVELS.index(level) >= _min_level_index


def _plain(event: Mapping[str, Any]) -> str:
    head = str(event.get("event_type", "EVENT"))
    rest = " ".join(
        f"{k}={v!r}" for k, v in event.items() if k != "event_type"
    )
    return f"{head} {rest}".rstrip()


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller is responsible for:
    - Supplying a fully-formed event dict
    - Including ts_ms, event_type, phase, etc.

    This function:
    - Drops events below the configured level
    - Serializes to JSON (or key=value text when JSON is disabled)
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    if not _enabled(event):
        return

    if not _json_lines:
        _print(_plain(event))
        return

    try:
        line = json.dumps(event, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback; logging must never crash the coordinator
        fallback: dict[str, Any] = {
            "ts_ms": event.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)

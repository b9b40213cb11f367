import json
import sys
from pathlib import Path
from typing import Any


def normalize_timestamps(log_text: str) -> str:
    """
    Normalize all 'ts_ms' values in a JSONL log:
    - subtract the first ts_ms found
    - divide by 1e3 (milliseconds -> seconds)

    Lines that are not JSON objects are passed through unchanged.
    """
    t0: int | None = None
    out: list[str] = []

    for line in log_text.splitlines():
        event = _parse(line)
        if event is None or not isinstance(event.get("ts_ms"), int):
            out.append(line)
            continue

        if t0 is None:
            t0 = event["ts_ms"]

        event["ts_ms"] = round((event["ts_ms"] - t0) / 1e3, 3)
        out.append(json.dumps(event, ensure_ascii=False, separators=(",", ":")))

    return "\n".join(out)


def phase_timeline(log_text: str) -> list[tuple[Any, str, str, str]]:
    """
    Extract (ts_ms, from_phase, to_phase, source) for every phase change.
    """
    timeline: list[tuple[Any, str, str, str]] = []

    for line in log_text.splitlines():
        event = _parse(line)
        if event is None or event.get("decision") != "phase_changed":
            continue
        details = event.get("details") or {}
        timeline.append((
            event.get("ts_ms"),
            details.get("from_phase", "?"),
            details.get("to_phase", "?"),
            details.get("source", "?"),
        ))

    return timeline


def _parse(line: str) -> dict[str, Any] | None:
    try:
        event = json.loads(line)
    except json.JSONDecodeError:
        return None
    return event if isinstance(event, dict) else None


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("usage: normalize_log.py <log.jsonl> [out.jsonl]")
        sys.exit(1)

    raw_log = Path(sys.argv[1]).read_text(encoding="utf-8")
    normalized = normalize_timestamps(raw_log)

    for ts, from_phase, to_phase, source in phase_timeline(normalized):
        print(f"{ts:>10}  {from_phase} -> {to_phase}  ({source})")

    if len(sys.argv) > 2:
        Path(sys.argv[2]).write_text(normalized, encoding="utf-8")

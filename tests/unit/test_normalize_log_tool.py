# pylint: disable=missing-module-docstring,missing-function-docstring

import json

from normalize_log import normalize_timestamps, phase_timeline


LOG = "\n".join([
    json.dumps({"ts_ms": 10_000, "event_type": "CONNECTION_TRACKED"}),
    "uvicorn banner line",
    json.dumps({
        "ts_ms": 11_500,
        "event_type": "COORDINATOR_DECISION",
        "decision": "phase_changed",
        "details": {"from_phase": "ACTIVE", "to_phase": "SUSPENDED", "source": "freeze_teardown"},
    }),
    json.dumps({"ts_ms": 12_000, "event_type": "COORDINATOR_DECISION", "decision": "resume_reestablish"}),
])


def test_normalize_rebases_to_seconds():
    lines = normalize_timestamps(LOG).splitlines()

    assert json.loads(lines[0])["ts_ms"] == 0.0
    assert lines[1] == "uvicorn banner line"
    assert json.loads(lines[2])["ts_ms"] == 1.5
    assert json.loads(lines[3])["ts_ms"] == 2.0


def test_phase_timeline():
    assert phase_timeline(normalize_timestamps(LOG)) == [
        (1.5, "ACTIVE", "SUSPENDED", "freeze_teardown"),
    ]


def test_text_without_json_is_unchanged():
    assert normalize_timestamps("a\nb") == "a\nb"

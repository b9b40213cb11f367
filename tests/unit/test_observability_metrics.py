# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from observability.metrics import active_timer_count, increment, start_timer, stop_timer, timed

from fakes import events_of


def test_timed_emits_one_metric(captured_log: list[str]) -> None:
    with timed("close_all_duration", phase="ACTIVE", details={"count": 2}):
        pass

    metrics = events_of(captured_log, "METRIC_TIMER")
    assert len(metrics) == 1
    assert metrics[0]["metric"] == "close_all_duration"
    assert metrics[0]["phase"] == "ACTIVE"
    assert metrics[0]["details"] == {"count": 2}
    assert metrics[0]["value_ms"] >= 0


def test_timed_stops_timer_on_exception(captured_log: list[str]) -> None:
    before = active_timer_count()

    with pytest.raises(RuntimeError):
        with timed("reestablish_duration"):
            raise RuntimeError("boom")

    assert active_timer_count() == before
    assert len(events_of(captured_log, "METRIC_TIMER")) == 1


def test_stop_unknown_timer_is_noop(captured_log: list[str]) -> None:
    timer_id = start_timer("transition_duration")

    assert stop_timer(timer_id) is not None
    assert stop_timer(timer_id) is None
    assert len(events_of(captured_log, "METRIC_TIMER")) == 1


def test_increment_emits_counter(captured_log: list[str]) -> None:
    increment("signals_dropped", details={"reason": "collapsed"})

    counters = events_of(captured_log, "METRIC_COUNTER")
    assert counters == [{
        "ts_ms": counters[0]["ts_ms"],
        "event_type": "METRIC_COUNTER",
        "level": "DEBUG",
        "metric": "signals_dropped",
        "value": 1,
        "details": {"reason": "collapsed"},
    }]

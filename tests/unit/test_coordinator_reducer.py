# pylint: disable=missing-module-docstring,missing-function-docstring

from dataclasses import replace

import pytest

from coordinator.commands import (
    CloseAllConnections,
    Command,
    DisableNetwork,
    EnableNetwork,
    LogEvent,
    Reestablish,
)
from coordinator.enums.phase import Phase
from coordinator.reducer import reduce
from coordinator.signals import (
    CloseAllRequested,
    Freeze,
    Initialized,
    Offline,
    Online,
    PageHide,
    PageShow,
    ReestablishFailed,
    ReestablishRequested,
    ReestablishSucceeded,
    Resume,
    Signal,
    SignalType,
    VisibilityHidden,
    VisibilityVisible,
)
from coordinator.state_dataclass import CoordinatorState


# ---------------------------------------------------------------------
# Signal helpers (mirror normalizer construction)
# ---------------------------------------------------------------------

def hidden(ts_ms: int = 0) -> VisibilityHidden:
    return VisibilityHidden(signal_type=SignalType.VISIBILITY_HIDDEN, ts_ms=ts_ms)


def visible(ts_ms: int = 0) -> VisibilityVisible:
    return VisibilityVisible(signal_type=SignalType.VISIBILITY_VISIBLE, ts_ms=ts_ms)


def page_hide(persisted: bool = True) -> PageHide:
    return PageHide(signal_type=SignalType.PAGE_HIDE, ts_ms=0, persisted=persisted)


def page_show(persisted: bool = True) -> PageShow:
    return PageShow(signal_type=SignalType.PAGE_SHOW, ts_ms=0, persisted=persisted)


def online() -> Online:
    return Online(signal_type=SignalType.ONLINE, ts_ms=0)


def offline() -> Offline:
    return Offline(signal_type=SignalType.OFFLINE, ts_ms=0)


def freeze() -> Freeze:
    return Freeze(signal_type=SignalType.FREEZE, ts_ms=0)


def resume() -> Resume:
    return Resume(signal_type=SignalType.RESUME, ts_ms=0)


def initialized() -> Initialized:
    return Initialized(signal_type=SignalType.INITIALIZED, ts_ms=0, remote_name="fake")


def active(intent: bool = True) -> CoordinatorState:
    return CoordinatorState(
        network_intent_enabled=intent,
        initialized=True,
        phase=Phase.ACTIVE,
    )


def suspended(intent: bool = True) -> CoordinatorState:
    return replace(active(intent), phase=Phase.SUSPENDED)


def effects(commands: tuple[Command, ...]) -> list[Command]:
    return [c for c in commands if not isinstance(c, LogEvent)]


def decisions(commands: tuple[Command, ...]) -> list[str]:
    return [c.event["decision"] for c in commands if isinstance(c, LogEvent)]


# ---------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------

def test_initialized_moves_to_active_without_side_effects():
    state, commands = reduce(CoordinatorState(), initialized())

    assert state.initialized is True
    assert state.phase is Phase.ACTIVE
    assert state.network_intent_enabled is True
    assert effects(commands) == []
    assert "initialized" in decisions(commands)


def test_second_initialized_is_ignored():
    state = active()

    new_state, commands = reduce(state, initialized())

    assert new_state == state
    assert effects(commands) == []
    assert commands[0].event["details"]["reason"] == "already_initialized"


@pytest.mark.parametrize(
    "signal",
    [hidden(), visible(), page_hide(), page_show(), online(), offline(), freeze(), resume()],
)
def test_lifecycle_signals_before_initialize_are_ignored(signal: Signal):
    state = CoordinatorState()

    new_state, commands = reduce(state, signal)

    assert new_state == state
    assert effects(commands) == []
    assert commands[0].event["details"]["reason"] == "not_initialized"


def test_close_all_request_allowed_before_initialize():
    _, commands = reduce(
        CoordinatorState(),
        CloseAllRequested(signal_type=SignalType.CLOSE_ALL_REQUESTED, ts_ms=0),
    )

    assert effects(commands) == [CloseAllConnections(reason="requested")]


# ---------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------

@pytest.mark.parametrize(
    "start, signal, expected_effects, expected_phase",
    [
        (active(), hidden(), [DisableNetwork(reason="visibility_hidden_suspend")], Phase.SUSPENDED),
        (suspended(), visible(), [EnableNetwork(reason="visibility_visible_resume")], Phase.ACTIVE),
        (active(), page_hide(), [DisableNetwork(reason="page_hide_persisted_suspend")], Phase.SUSPENDED),
        (suspended(), page_show(), [EnableNetwork(reason="page_show_persisted_resume")], Phase.ACTIVE),
        (suspended(), online(), [EnableNetwork(reason="online")], Phase.ACTIVE),
        (active(), offline(), [DisableNetwork(reason="offline")], Phase.SUSPENDED),
        (
            active(),
            freeze(),
            [CloseAllConnections(reason="freeze"), DisableNetwork(reason="freeze")],
            Phase.SUSPENDED,
        ),
        (
            suspended(),
            resume(),
            [EnableNetwork(reason="resume"), Reestablish(reason="resume")],
            Phase.ACTIVE,
        ),
    ],
)
def test_transition_table(
    start: CoordinatorState,
    signal: Signal,
    expected_effects: list[Command],
    expected_phase: Phase,
):
    state, commands = reduce(start, signal)

    assert effects(commands) == expected_effects
    assert state.phase is expected_phase


@pytest.mark.parametrize("signal", [page_hide(persisted=False), page_show(persisted=False)])
def test_non_persisted_page_transitions_are_ignored(signal: Signal):
    state = active()

    new_state, commands = reduce(state, signal)

    assert new_state == state
    assert effects(commands) == []


def test_suspend_signals_are_idempotent():
    state, _ = reduce(active(), hidden())
    again, commands = reduce(state, page_hide())

    assert again.phase is Phase.SUSPENDED
    assert effects(commands) == [DisableNetwork(reason="page_hide_persisted_suspend")]
    # No phase change the second time
    assert "phase_changed" not in decisions(commands)
    assert again.transitions == state.transitions


# ---------------------------------------------------------------------
# Explicit intent
# ---------------------------------------------------------------------

@pytest.mark.parametrize("signal", [visible(), page_show()])
def test_visibility_never_overrides_explicit_offline(signal: Signal):
    state = suspended(intent=False)

    new_state, commands = reduce(state, signal)

    assert new_state == state
    assert effects(commands) == []
    assert commands[0].event["details"]["reason"] == "network_intent_disabled"


def test_resume_with_intent_disabled_reestablishes_without_enable():
    state = suspended(intent=False)

    new_state, commands = reduce(state, resume())

    assert effects(commands) == [Reestablish(reason="resume")]
    assert new_state.phase is Phase.SUSPENDED
    assert new_state.network_intent_enabled is False


@pytest.mark.parametrize(
    "signal",
    [
        hidden(),
        visible(),
        page_hide(),
        page_show(),
        page_hide(persisted=False),
        freeze(),
        resume(),
        ReestablishRequested(signal_type=SignalType.REESTABLISH_REQUESTED, ts_ms=0),
        ReestablishFailed(signal_type=SignalType.REESTABLISH_FAILED, ts_ms=0, reason="x"),
        ReestablishSucceeded(signal_type=SignalType.REESTABLISH_SUCCEEDED, ts_ms=0),
        CloseAllRequested(signal_type=SignalType.CLOSE_ALL_REQUESTED, ts_ms=0),
    ],
)
@pytest.mark.parametrize("intent", [True, False])
@pytest.mark.parametrize("phase", [Phase.ACTIVE, Phase.SUSPENDED])
def test_intent_changes_only_on_online_offline(signal: Signal, intent: bool, phase: Phase):
    state = replace(active(intent), phase=phase)

    new_state, _ = reduce(state, signal)

    assert new_state.network_intent_enabled is intent


def test_online_offline_set_intent():
    state, _ = reduce(active(), offline())
    assert state.network_intent_enabled is False

    state, _ = reduce(state, online())
    assert state.network_intent_enabled is True


# ---------------------------------------------------------------------
# Reestablish outcomes
# ---------------------------------------------------------------------

def test_reestablish_failure_rolls_back():
    state = active()

    new_state, commands = reduce(
        state,
        ReestablishFailed(
            signal_type=SignalType.REESTABLISH_FAILED,
            ts_ms=0,
            reason="refused",
            record_id="c2",
        ),
    )

    assert effects(commands) == [
        CloseAllConnections(reason="reestablish_rollback", remember=False),
        DisableNetwork(reason="reestablish_rollback"),
    ]
    assert new_state.phase is Phase.SUSPENDED
    assert new_state.last_failure == "refused"
    assert "reestablish_failed" in decisions(commands)


def test_reestablish_success_clears_failure():
    state = replace(active(), last_failure="refused")

    new_state, commands = reduce(
        state,
        ReestablishSucceeded(
            signal_type=SignalType.REESTABLISH_SUCCEEDED,
            ts_ms=0,
            reopened=("c1",),
        ),
    )

    assert new_state.last_failure is None
    assert effects(commands) == []


# ---------------------------------------------------------------------
# Log contract
# ---------------------------------------------------------------------

def test_logs_follow_effects_and_phase_change_is_last():
    _, commands = reduce(active(), freeze())

    kinds = ["log" if isinstance(c, LogEvent) else "effect" for c in commands]
    assert kinds == ["effect", "effect", "log", "log"]
    assert decisions(commands)[-1] == "phase_changed"


def test_reducer_logevent_has_required_fields():
    _, commands = reduce(active(), hidden(ts_ms=123))

    payload = [c for c in commands if isinstance(c, LogEvent)][0].event

    assert payload["ts_ms"] == 123
    assert payload["event_type"] == "COORDINATOR_DECISION"
    assert payload["phase"] == "SUSPENDED"
    assert payload["network_intent_enabled"] is True
    assert payload["signal_type"] == "VISIBILITY_HIDDEN"
    assert payload["decision"] == "visibility_hidden_suspend"
    assert isinstance(payload["details"], dict)


def test_phase_change_counts_transitions():
    state, _ = reduce(active(), hidden())
    state, _ = reduce(state, visible())

    assert state.transitions == 2

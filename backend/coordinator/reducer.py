"""
Pure coordinator reducer.

(state, signal) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (phase, signal) pair is handled or explicitly ignored (logged).
"""

# Suspend actions (DisableNetwork, CloseAllConnections) are idempotent and
# commutative; Hidden, PageHide and Freeze may arrive in any order.

from __future__ import annotations

from dataclasses import replace
from typing import Any

from coordinator.commands import (
    CloseAllConnections,
    Command,
    DisableNetwork,
    EnableNetwork,
    LogEvent,
    Reestablish,
)
from coordinator.enums.phase import Phase
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
    VisibilityHidden,
    VisibilityVisible,
)
from coordinator.state_dataclass import CoordinatorState


# =============================================================================
# Small helpers
# =============================================================================

def _log(
    state: CoordinatorState,
    signal: Signal,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": signal.ts_ms,
            "event_type": "COORDINATOR_DECISION",
            "phase": state.phase.value,
            "network_intent_enabled": state.network_intent_enabled,
            "signal_type": signal.signal_type.value,
            "decision": decision,
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    phase_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "phase_changed":
                phase_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + phase_change_logs)


def _ignore(
    state: CoordinatorState, signal: Signal, reason: str
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    return state, (_log(state, signal, "ignore", {"reason": reason}),)


def _transition(
    state: CoordinatorState,
    signal: Signal,
    new_state: CoordinatorState,
    decision: str,
    commands: tuple[Command, ...],
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Wrap a decision with its log and, when the phase moved, a phase_changed log.
    """
    logs: tuple[Command, ...] = (_log(new_state, signal, decision),)

    if new_state.phase is not state.phase:
        new_state = replace(new_state, transitions=state.transitions + 1)
        logs += (
            _log(
                new_state,
                signal,
                "phase_changed",
                {
                    "from_phase": state.phase.value,
                    "to_phase": new_state.phase.value,
                    "source": decision,
                },
            ),
        )

    return new_state, _logs_last(commands + logs)


def _suspend(
    state: CoordinatorState,
    signal: Signal,
    decision: str,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    new_state = replace(state, phase=Phase.SUSPENDED)
    return _transition(
        state,
        signal,
        new_state,
        decision,
        (DisableNetwork(reason=decision),),
    )


def _resume_if_intended(
    state: CoordinatorState,
    signal: Signal,
    decision: str,
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Re-enable networking only when the last explicit intent was online.

    An explicit Offline is never overridden by visibility or page-cache
    signals.
    """
    if not state.network_intent_enabled:
        return _ignore(state, signal, "network_intent_disabled")

    new_state = replace(state, phase=Phase.ACTIVE)
    return _transition(
        state,
        signal,
        new_state,
        decision,
        (EnableNetwork(reason=decision),),
    )


# =============================================================================
# Reducer
# =============================================================================

def reduce(
    state: CoordinatorState, signal: Signal
) -> tuple[CoordinatorState, tuple[Command, ...]]:
    """
    Pure reducer for the connection lifecycle state machine.

    Given the current coordinator state and a single signal, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (phase, signal) pair is handled or explicitly ignored
    - network_intent_enabled changes only on Online / Offline
    """
    # ------------------------------------------------------------------
    # One-time initialization
    # ------------------------------------------------------------------
    if isinstance(signal, Initialized):
        if state.initialized:
            return _ignore(state, signal, "already_initialized")

        new_state = replace(state, initialized=True, phase=Phase.ACTIVE)
        new_state, cmds = _transition(state, signal, new_state, "initialized", ())
        return new_state, cmds + (
            _log(new_state, signal, "remote_attached", {"remote": signal.remote_name}),
        )

    # Explicit close is safe before initialization (no remote involved)
    if isinstance(signal, CloseAllRequested):
        return state, _logs_last((
            CloseAllConnections(reason="requested"),
            _log(state, signal, "close_all_requested"),
        ))

    if not state.initialized:
        return _ignore(state, signal, "not_initialized")

    # ------------------------------------------------------------------
    # Tab visibility
    # ------------------------------------------------------------------
    if isinstance(signal, VisibilityHidden):
        return _suspend(state, signal, "visibility_hidden_suspend")

    if isinstance(signal, VisibilityVisible):
        return _resume_if_intended(state, signal, "visibility_visible_resume")

    # ------------------------------------------------------------------
    # Back/forward cache
    # ------------------------------------------------------------------
    if isinstance(signal, PageHide):
        if not signal.persisted:
            return _ignore(state, signal, "page_hide_not_persisted")
        return _suspend(state, signal, "page_hide_persisted_suspend")

    if isinstance(signal, PageShow):
        if not signal.persisted:
            return _ignore(state, signal, "page_show_not_persisted")
        return _resume_if_intended(state, signal, "page_show_persisted_resume")

    # ------------------------------------------------------------------
    # Explicit network intent
    # ------------------------------------------------------------------
    if isinstance(signal, Online):
        new_state = replace(state, network_intent_enabled=True, phase=Phase.ACTIVE)
        return _transition(
            state,
            signal,
            new_state,
            "online_enable",
            (EnableNetwork(reason="online"),),
        )

    if isinstance(signal, Offline):
        new_state = replace(state, network_intent_enabled=False, phase=Phase.SUSPENDED)
        return _transition(
            state,
            signal,
            new_state,
            "offline_disable",
            (DisableNetwork(reason="offline"),),
        )

    # ------------------------------------------------------------------
    # Freeze / resume
    # ------------------------------------------------------------------
    if isinstance(signal, Freeze):
        new_state = replace(state, phase=Phase.SUSPENDED)
        return _transition(
            state,
            signal,
            new_state,
            "freeze_teardown",
            (
                CloseAllConnections(reason="freeze"),
                DisableNetwork(reason="freeze"),
            ),
        )

    if isinstance(signal, Resume):
        if state.network_intent_enabled:
            new_state = replace(state, phase=Phase.ACTIVE)
            cmds: tuple[Command, ...] = (
                EnableNetwork(reason="resume"),
                Reestablish(reason="resume"),
            )
        else:
            # Connections come back; remote networking stays off
            new_state = state
            cmds = (Reestablish(reason="resume"),)

        return _transition(state, signal, new_state, "resume_reestablish", cmds)

    # ------------------------------------------------------------------
    # Reestablish requests and outcomes
    # ------------------------------------------------------------------
    if isinstance(signal, ReestablishRequested):
        return state, _logs_last((
            Reestablish(reason="requested"),
            _log(state, signal, "reestablish_requested"),
        ))

    if isinstance(signal, ReestablishSucceeded):
        new_state = replace(state, last_failure=None)
        return new_state, (
            _log(new_state, signal, "reestablish_succeeded", {"reopened": list(signal.reopened)}),
        )

    if isinstance(signal, ReestablishFailed):
        # Fail closed: a partial reconnection is worse than none.
        new_state = replace(state, phase=Phase.SUSPENDED, last_failure=signal.reason)
        new_state, cmds = _transition(
            state,
            signal,
            new_state,
            "reestablish_rollback",
            (
                CloseAllConnections(reason="reestablish_rollback", remember=False),
                DisableNetwork(reason="reestablish_rollback"),
            ),
        )
        return new_state, cmds + (
            _log(
                new_state,
                signal,
                "reestablish_failed",
                {"reason": signal.reason, "record_id": signal.record_id},
            ),
        )

    return _ignore(state, signal, "unhandled_signal")

"""
Runtime execution shell for the lifecycle coordinator.

Responsibilities:
- Own coordinator state
- Call the pure reducer
- Execute commands with side effects (toggle, close, reestablish)
- Serialize transitions and queue signals that arrive mid-transition
- Expose the public coordinator API

Non-responsibilities:
- Transition decisions (coordinator.reducer)
- Mapping raw environment events (lifecycle.normalizer)
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any, Callable

from connections.factory import ConnectionFactory, ConnectionHandle, Connector, websocket_connector
from connections.record import ConnectionRecord, RecordId
from connections.reestablish import reestablish_connections
from connections.registry import CloseReport, ConnectionRegistry
from constants import REOPEN_TIMEOUT_MS, SIGNAL_BACKLOG_MAX
from coordinator.backlog import DropReason, SignalBacklog
from coordinator.commands import (
    CloseAllConnections,
    Command,
    DisableNetwork,
    EnableNetwork,
    LogEvent,
    Reestablish,
)
from coordinator.enums.phase import Phase
from coordinator.errors import ReestablishFailure, ToggleFailure
from coordinator.reducer import reduce
from coordinator.signals import (
    CloseAllRequested,
    Initialized,
    ReestablishFailed,
    ReestablishRequested,
    ReestablishSucceeded,
    Signal,
    SignalType,
)
from coordinator.state_dataclass import CoordinatorState
from lifecycle.normalizer import SignalNormalizer
from network.toggle import NetworkToggleProxy
from observability.logger import log_event
from observability.metrics import increment, timed
from remote.base import RemoteLayer


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class LifecycleCoordinator:
    """
    Runtime boundary of the connection lifecycle state machine.

    Construct one per process and pass it to whoever needs it.

    Guarantees:
    - Reducer is called exactly once per signal
    - Transitions are serialized by one asyncio.Lock; a new signal never
      cancels an in-flight transition
    - State is updated before the commands of a transition execute
    - Commands execute in reducer-emitted order
    - Outcome signals (reestablish succeeded/failed) are reduced inside the
      transition that produced them
    """

    def __init__(
        self,
        *,
        normalizer: SignalNormalizer,
        registry: ConnectionRegistry | None = None,
        factory: ConnectionFactory | None = None,
        connector: Connector = websocket_connector,
        reopen_timeout_ms: int = REOPEN_TIMEOUT_MS,
        backlog_max: int = SIGNAL_BACKLOG_MAX,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        if factory is not None:
            registry = factory.registry
        elif registry is None:
            registry = ConnectionRegistry()

        self._normalizer = normalizer
        self._registry = registry
        self._factory = factory or ConnectionFactory(
            registry=registry,
            connector=connector,
            open_timeout_ms=reopen_timeout_ms,
        )
        self._clock = clock

        self._state = CoordinatorState()
        self._toggle: NetworkToggleProxy | None = None
        self._unsubscribe: Callable[[], None] | None = None

        self._lock = asyncio.Lock()
        self._backlog = SignalBacklog(max_len=backlog_max)
        self._drain_task: asyncio.Task[None] | None = None

        # Results of the current transition's commands
        self._last_close_report: CloseReport = CloseReport()
        self._last_reestablish_failure: ReestablishFailure | None = None
        self._last_toggle_failure: ToggleFailure | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def toggle(self) -> NetworkToggleProxy | None:
        return self._toggle

    @property
    def backlog(self) -> SignalBacklog:
        return self._backlog

    @property
    def network_intent_enabled(self) -> bool:
        return self._state.network_intent_enabled

    def current_phase(self) -> Phase:
        return self._state.phase

    def snapshot(self) -> tuple[ConnectionRecord, ...]:
        return self._registry.snapshot()

    def status(self) -> dict[str, Any]:
        """Diagnostics view used by the HTTP surface."""
        return {
            "phase": self._state.phase.value,
            "initialized": self._state.initialized,
            "network_intent_enabled": self._state.network_intent_enabled,
            "remote_network_enabled": (
                self._toggle.last_known_enabled if self._toggle is not None else None
            ),
            "transitions": self._state.transitions,
            "last_failure": self._state.last_failure,
            "connections": [
                {
                    "id": r.id,
                    "endpoint": r.endpoint,
                    "subprotocol": r.subprotocol,
                    "state": r.state.value,
                }
                for r in self._registry.snapshot()
            ],
            "remembered": [spec.id for spec in self._registry.remembered()],
            "backlog": {
                "queued": len(self._backlog),
                "collapsed": self._backlog.drops.collapsed,
                "overflow": self._backlog.drops.overflow,
            },
        }

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self, remote: RemoteLayer) -> bool:
        """
        One-time wiring to the remote layer and the signal normalizer.

        Idempotent: later calls are logged and ignored, so several
        collaborators may call it without duplicating subscriptions.

        Returns True if this call performed the initialization.
        """
        async with self._lock:
            signal = Initialized(
                signal_type=SignalType.INITIALIZED,
                ts_ms=self._clock(),
                remote_name=remote.name,
            )
            if self._state.initialized:
                await self._apply(signal)
                return False

            self._toggle = NetworkToggleProxy(remote)
            self._unsubscribe = self._normalizer.subscribe(self.submit)
            self._normalizer.start()
            await self._apply(signal)
            return True

    # ------------------------------------------------------------------
    # Connection API
    # ------------------------------------------------------------------

    def track(
        self,
        endpoint: str,
        subprotocol: str | None,
        handle: ConnectionHandle,
        *,
        record_id: RecordId | None = None,
    ) -> RecordId:
        """
        Track an already-open persistent connection.

        Raises:
            DuplicateId if record_id is already tracked.
        """
        record = self._factory.track_transport(
            endpoint=endpoint,
            subprotocol=subprotocol,
            transport=handle,
            record_id=record_id,
        )
        return record.id

    async def create_tracked_connection(
        self,
        endpoint: str,
        subprotocol: str | None = None,
        *,
        record_id: RecordId | None = None,
    ) -> ConnectionRecord:
        """Open a persistent connection and track it in one call."""
        return await self._factory.create_tracked_connection(
            endpoint,
            subprotocol,
            record_id=record_id,
        )

    async def close_all(self) -> CloseReport:
        """
        Close and untrack every tracked connection.

        The closed connections are remembered for a later reestablish().
        """
        async with self._lock:
            self._last_close_report = CloseReport()
            await self._apply(
                CloseAllRequested(
                    signal_type=SignalType.CLOSE_ALL_REQUESTED,
                    ts_ms=self._clock(),
                )
            )
            return self._last_close_report

    async def reestablish(self) -> ReestablishFailure | None:
        """
        Reopen every remembered connection, all-or-nothing.

        On failure everything that did open is closed again and networking
        is disabled; the failure is returned rather than raised.
        """
        async with self._lock:
            self._last_reestablish_failure = None
            await self._apply(
                ReestablishRequested(
                    signal_type=SignalType.REESTABLISH_REQUESTED,
                    ts_ms=self._clock(),
                )
            )
            return self._last_reestablish_failure

    # ------------------------------------------------------------------
    # Signal intake
    # ------------------------------------------------------------------

    async def handle_signal(self, signal: Signal) -> None:
        """
        Process one signal through the reducer and wait for its commands.

        Waits for any in-flight transition first.
        """
        async with self._lock:
            await self._apply(signal)

    def submit(self, signal: Signal) -> None:
        """
        Queue a signal for processing without waiting.

        This is the normalizer subscriber. Must be called from the event
        loop thread.
        """
        dropped = self._backlog.push(signal)
        if dropped is not None:
            log_event({
                "ts_ms": signal.ts_ms,
                "event_type": "SIGNAL_DROPPED",
                "level": "DEBUG" if dropped is DropReason.COLLAPSED else "WARNING",
                "reason": dropped.value,
                "signal_type": signal.signal_type.value,
                "queued": len(self._backlog),
            })
            increment("signals_dropped", details={"reason": dropped.value})

        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def settle(self) -> None:
        """Wait until every submitted signal has been processed."""
        while self._drain_task is not None and not self._drain_task.done():
            await asyncio.gather(self._drain_task, return_exceptions=True)
        async with self._lock:
            pass

    async def _drain(self) -> None:
        while True:
            signal = self._backlog.pop()
            if signal is None:
                return
            async with self._lock:
                await self._apply(signal)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self) -> None:
        """
        Detach from the environment and release every connection.

        Queued signals are discarded; an in-flight transition completes.
        """
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._normalizer.stop()

        # The drain task finds the backlog empty after its current transition
        self._backlog.clear()
        if self._drain_task is not None and not self._drain_task.done():
            await asyncio.gather(self._drain_task, return_exceptions=True)
        self._drain_task = None

        async with self._lock:
            report = await self._registry.close_all(remember=False)

        log_event({
            "ts_ms": self._clock(),
            "event_type": "COORDINATOR_SHUTDOWN",
            "phase": self._state.phase.value,
            "closed": list(report.closed),
        })

    # ------------------------------------------------------------------
    # Transition (caller holds the lock)
    # ------------------------------------------------------------------

    async def _apply(self, signal: Signal) -> None:
        with timed(
            "transition_duration",
            phase=self._state.phase.value,
            details={"signal_type": signal.signal_type.value},
        ):
            pending: deque[Signal] = deque([signal])
            while pending:
                current = pending.popleft()
                new_state, commands = reduce(self._state, current)
                self._state = new_state

                for cmd in commands:
                    outcome = await self._execute_command(cmd)
                    if outcome is not None:
                        pending.append(outcome)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> Signal | None:
        """
        Execute a single command.

        Returns an outcome signal for commands whose result feeds back into
        the reducer, else None. Never raises (cancellation aside).
        """
        try:
            if isinstance(cmd, LogEvent):
                log_event(cmd.event)

            elif isinstance(cmd, EnableNetwork):
                await self._set_network(enabled=True, reason=cmd.reason)

            elif isinstance(cmd, DisableNetwork):
                await self._set_network(enabled=False, reason=cmd.reason)

            elif isinstance(cmd, CloseAllConnections):
                self._last_close_report = await self._registry.close_all(
                    remember=cmd.remember,
                )

            elif isinstance(cmd, Reestablish):
                return await self._reestablish()

            else:
                log_event({
                    "ts_ms": self._clock(),
                    "event_type": "COMMAND_UNKNOWN",
                    "level": "WARNING",
                    "command": type(cmd).__name__,
                })

        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": self._clock(),
                "event_type": "COMMAND_FAILED",
                "level": "ERROR",
                "command": type(cmd).__name__,
                "phase": self._state.phase.value,
                "error": repr(e),
            })

        return None

    async def _set_network(self, *, enabled: bool, reason: str) -> None:
        if self._toggle is None:
            log_event({
                "ts_ms": self._clock(),
                "event_type": "TOGGLE_SKIPPED",
                "level": "WARNING",
                "reason": reason,
                "enabled": enabled,
            })
            return

        if enabled:
            failure = await self._toggle.enable()
        else:
            failure = await self._toggle.disable()

        if failure is not None:
            self._last_toggle_failure = failure

    async def _reestablish(self) -> Signal:
        specs = self._registry.remembered()
        try:
            records = await reestablish_connections(factory=self._factory, specs=specs)
        except ReestablishFailure as failure:
            self._last_reestablish_failure = failure
            return ReestablishFailed(
                signal_type=SignalType.REESTABLISH_FAILED,
                ts_ms=self._clock(),
                reason=failure.reason,
                record_id=failure.record_id,
            )

        self._registry.forget()
        return ReestablishSucceeded(
            signal_type=SignalType.REESTABLISH_SUCCEEDED,
            ts_ms=self._clock(),
            reopened=tuple(r.id for r in records),
        )

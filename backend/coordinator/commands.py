"""
Side-effect command definitions for the coordinator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Remote layer
    ENABLE_NETWORK = "ENABLE_NETWORK"
    DISABLE_NETWORK = "DISABLE_NETWORK"

    # Persistent connections
    CLOSE_ALL_CONNECTIONS = "CLOSE_ALL_CONNECTIONS"
    REESTABLISH = "REESTABLISH"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Remote Layer Commands
# =============================================================================

@dataclass(frozen=True)
class EnableNetwork(Command):
    """Ask the toggle proxy to enable remote networking."""
    reason: str
    command_type: CommandType = CommandType.ENABLE_NETWORK


@dataclass(frozen=True)
class DisableNetwork(Command):
    """Ask the toggle proxy to disable remote networking."""
    reason: str
    command_type: CommandType = CommandType.DISABLE_NETWORK


# =============================================================================
# Connection Commands
# =============================================================================

@dataclass(frozen=True)
class CloseAllConnections(Command):
    """
    Close and untrack every tracked connection.

    remember=False keeps the previously remembered set intact
    (used by rollback, so a later Resume retries the full set).
    """
    reason: str
    remember: bool = True
    command_type: CommandType = CommandType.CLOSE_ALL_CONNECTIONS


@dataclass(frozen=True)
class Reestablish(Command):
    """Reopen every remembered connection; all-or-nothing."""
    reason: str
    command_type: CommandType = CommandType.REESTABLISH


# =============================================================================
# Observability
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Emit one structured log event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT

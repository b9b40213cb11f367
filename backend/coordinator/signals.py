"""
Unified signal definitions for the coordinator reducer.

Rules:
- Signals describe facts that have occurred.
- Signals carry data only (no behavior).
- All reducer decisions are based on these signals.
- No clocks, no timers, no async, no side effects.

Two groups:
- Lifecycle signals: normalized environment observations.
- Internal signals: requests from the public API and outcomes of commands,
  routed through the reducer so every phase change happens in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# =============================================================================
# Signal Type Enumeration
# =============================================================================

class SignalType(str, Enum):
    """
    Canonical signal types understood by the reducer.

    Every (phase, signal_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Tab visibility
    # ------------------------------------------------------------------
    VISIBILITY_HIDDEN = "VISIBILITY_HIDDEN"
    VISIBILITY_VISIBLE = "VISIBILITY_VISIBLE"

    # ------------------------------------------------------------------
    # Page transitions (back/forward cache)
    # ------------------------------------------------------------------
    PAGE_HIDE = "PAGE_HIDE"
    PAGE_SHOW = "PAGE_SHOW"

    # ------------------------------------------------------------------
    # Device connectivity
    # ------------------------------------------------------------------
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"

    # ------------------------------------------------------------------
    # Freeze / resume
    # ------------------------------------------------------------------
    FREEZE = "FREEZE"
    RESUME = "RESUME"

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------
    INITIALIZED = "INITIALIZED"
    CLOSE_ALL_REQUESTED = "CLOSE_ALL_REQUESTED"
    REESTABLISH_REQUESTED = "REESTABLISH_REQUESTED"
    REESTABLISH_SUCCEEDED = "REESTABLISH_SUCCEEDED"
    REESTABLISH_FAILED = "REESTABLISH_FAILED"


# =============================================================================
# Base Signal
# =============================================================================

@dataclass(frozen=True)
class Signal:
    """
    Base signal type.

    All signals must specify:
    - signal_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    signal_type: SignalType
    ts_ms: int


# =============================================================================
# Lifecycle Signals
# =============================================================================

@dataclass(frozen=True)
class VisibilityHidden(Signal):
    """Tab became hidden."""


@dataclass(frozen=True)
class VisibilityVisible(Signal):
    """Tab became visible."""


@dataclass(frozen=True)
class PageHide(Signal):
    """
    Page is being hidden.

    persisted=True means the page may be kept in the back/forward cache
    rather than destroyed.
    """
    persisted: bool


@dataclass(frozen=True)
class PageShow(Signal):
    """
    Page is being shown.

    persisted=True means the page was restored from the back/forward cache.
    """
    persisted: bool


@dataclass(frozen=True)
class Online(Signal):
    """Device declared itself online (explicit network intent)."""


@dataclass(frozen=True)
class Offline(Signal):
    """Device declared itself offline (explicit network intent)."""


@dataclass(frozen=True)
class Freeze(Signal):
    """Page is about to be frozen; persistent connections must be closed."""


@dataclass(frozen=True)
class Resume(Signal):
    """Page resumed after a freeze."""


# =============================================================================
# Internal Signals
# =============================================================================

@dataclass(frozen=True)
class Initialized(Signal):
    """initialize() completed wiring for the given remote layer."""
    remote_name: str


@dataclass(frozen=True)
class CloseAllRequested(Signal):
    """Caller explicitly requested closing every tracked connection."""


@dataclass(frozen=True)
class ReestablishRequested(Signal):
    """Caller explicitly requested reopening remembered connections."""


@dataclass(frozen=True)
class ReestablishSucceeded(Signal):
    """Every remembered connection reopened and is tracked again."""
    reopened: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReestablishFailed(Signal):
    """
    At least one reopen attempt failed.

    The reducer answers with a full rollback (fail closed).
    """
    reason: str
    record_id: str | None = None


LIFECYCLE_SIGNAL_TYPES: frozenset[SignalType] = frozenset({
    SignalType.VISIBILITY_HIDDEN,
    SignalType.VISIBILITY_VISIBLE,
    SignalType.PAGE_HIDE,
    SignalType.PAGE_SHOW,
    SignalType.ONLINE,
    SignalType.OFFLINE,
    SignalType.FREEZE,
    SignalType.RESUME,
})

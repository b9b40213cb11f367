"""
Authoritative coordinator state container.

Rules:
- This dataclass is a pure data model.
- It contains ALL state the reducer may ever need.
- No behavior, no helpers, no derived logic.
"""
from __future__ import annotations

from dataclasses import dataclass

from coordinator.enums.phase import Phase


@dataclass(frozen=True)
class CoordinatorState:
    """Immutable snapshot of all coordinator-owned state."""

    # Last explicit online/offline declaration.
    # Survives hidden/visible and freeze/resume cycles; only Online/Offline
    # may change it.
    network_intent_enabled: bool = True

    # Set once by the Initialized signal, never cleared.
    initialized: bool = False

    phase: Phase = Phase.UNINITIALIZED

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------
    last_failure: str | None = None
    transitions: int = 0

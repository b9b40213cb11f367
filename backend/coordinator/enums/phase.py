"""
Authoritative coordinator phase enumeration.

Rules:
- This enum defines ONLY the control-plane phases.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class Phase(str, Enum):
    """
    High-level connectivity phases of the coordinator.

    UNINITIALIZED:
        initialize() has not been called; signals are ignored.

    ACTIVE:
        Remote networking is (believed to be) enabled.

    SUSPENDED:
        Remote networking is disabled, either transiently (hidden, frozen,
        cached page) or because the last explicit intent was offline.
        Always a safe state.
    """

    UNINITIALIZED = "UNINITIALIZED"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"

"""
Bounded signal backlog with most-recent-wins collapsing.

Requirements:
- FIFO across families, so cross-family ordering is preserved
- A new signal replaces the queued tail only when both ask for the same
  action (same direction); opposite directions are both applied in order
- Ignorable and internal signals are never collapsed
- Explicit drop behavior when full (oldest dropped)
- Drop reasons distinguishable (collapsed vs overflow)
- Deterministic, synchronous behavior
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Optional

from coordinator.enums.signal_family import SignalFamily
from coordinator.signals import PageHide, PageShow, Signal, SignalType


_FAMILIES: dict[SignalType, SignalFamily] = {
    SignalType.VISIBILITY_HIDDEN: SignalFamily.SUSPEND,
    SignalType.VISIBILITY_VISIBLE: SignalFamily.RESUME,
    SignalType.ONLINE: SignalFamily.ONLINE,
    SignalType.OFFLINE: SignalFamily.OFFLINE,
    SignalType.FREEZE: SignalFamily.FREEZE,
    SignalType.RESUME: SignalFamily.THAW,
}


def family_of(signal: Signal) -> SignalFamily:
    """Family of a signal; anything not listed is UNMERGED."""
    if isinstance(signal, PageHide):
        return SignalFamily.SUSPEND if signal.persisted else SignalFamily.UNMERGED
    if isinstance(signal, PageShow):
        return SignalFamily.RESUME if signal.persisted else SignalFamily.UNMERGED
    return _FAMILIES.get(signal.signal_type, SignalFamily.UNMERGED)


class DropReason(str, Enum):
    """
    Reason a queued signal was dropped.
    """
    COLLAPSED = "collapsed"
    OVERFLOW = "overflow"


@dataclass
class DropCounters:
    """
    Drop counters for observability.
    """
    collapsed: int = 0
    overflow: int = 0


class SignalBacklog:
    """
    Bounded FIFO of signals waiting behind an in-flight transition.

    Push rules:
    - same family as the tail (and not UNMERGED): replace the tail
    - else, if full: drop the OLDEST signal, then append
    - else: append
    """

    def __init__(self, *, max_len: int) -> None:
        if max_len <= 0:
            raise ValueError("max_len must be > 0")

        self._max_len: int = max_len
        self._signals: Deque[Signal] = deque()
        self.drops: DropCounters = DropCounters()

    # -------------------------
    # Core queue operations
    # -------------------------

    def push(self, signal: Signal) -> Optional[DropReason]:
        """
        Queue a signal.

        Returns the drop reason if an older signal was discarded, else None.
        """
        family = family_of(signal)

        if (
            self._signals
            and family is not SignalFamily.UNMERGED
            and family_of(self._signals[-1]) is family
        ):
            self._signals[-1] = signal
            self.drops.collapsed += 1
            return DropReason.COLLAPSED

        if len(self._signals) >= self._max_len:
            self._signals.popleft()
            self._signals.append(signal)
            self.drops.overflow += 1
            return DropReason.OVERFLOW

        self._signals.append(signal)
        return None

    def pop(self) -> Optional[Signal]:
        """Remove and return the oldest signal, or None if empty."""
        if not self._signals:
            return None
        return self._signals.popleft()

    def peek(self) -> Optional[Signal]:
        return self._signals[0] if self._signals else None

    def clear(self) -> None:
        self._signals.clear()

    # -------------------------
    # Introspection
    # -------------------------

    def __len__(self) -> int:
        return len(self._signals)

    def total_drops(self) -> int:
        return self.drops.collapsed + self.drops.overflow

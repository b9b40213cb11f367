"""
Signal family enumeration.

A family groups signals that ask for the same action. The backlog collapses
adjacent signals of one family (most recent wins). Opposite directions live in
different families, so a queued suspend is never replaced by a resume.
"""

from __future__ import annotations

from enum import Enum


class SignalFamily(str, Enum):
    """
    SUSPEND:  tab hidden, or page hidden into the back/forward cache
    RESUME:   tab visible, or page restored from the back/forward cache
    ONLINE:   device declared online
    OFFLINE:  device declared offline
    FREEZE:   page frozen
    THAW:     frozen page resumed
    UNMERGED: never collapsed (coordinator-internal signals, non-persisted
              page events)
    """

    SUSPEND = "SUSPEND"
    RESUME = "RESUME"
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    FREEZE = "FREEZE"
    THAW = "THAW"
    UNMERGED = "UNMERGED"

"""
BEHAVIOR-AS-CONSTANTS
---------------------
Single source of truth for every value that changes coordinator behavior.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Deployment overrides flow through config.AppConfig, which defaults to these.
"""

from __future__ import annotations

from typing import Final, Tuple

# =============================================================================
# Connection Registry
# =============================================================================

# Bound on waiting for a single connection to acknowledge close.
CLOSE_ACK_TIMEOUT_MS: Final[int] = 2_000

# =============================================================================
# Reconnection
# =============================================================================

# Bound on racing "opened" vs "errored" for one reopen attempt.
REOPEN_TIMEOUT_MS: Final[int] = 5_000

# =============================================================================
# Signal intake
# =============================================================================

# Redundant signals with the same dedup key inside this window are dropped.
SIGNAL_DEDUP_WINDOW_MS: Final[int] = 250

# Maximum number of signals waiting behind an in-flight transition.
SIGNAL_BACKLOG_MAX: Final[int] = 16

# =============================================================================
# Raw environment event names
# =============================================================================

RAW_VISIBILITY_CHANGE: Final[str] = "visibilitychange"
RAW_PAGE_HIDE: Final[str] = "pagehide"
RAW_PAGE_SHOW: Final[str] = "pageshow"
RAW_ONLINE: Final[str] = "online"
RAW_OFFLINE: Final[str] = "offline"
RAW_FREEZE: Final[str] = "freeze"
RAW_RESUME: Final[str] = "resume"

RAW_LIFECYCLE_EVENTS: Final[Tuple[str, ...]] = (
    RAW_VISIBILITY_CHANGE,
    RAW_PAGE_HIDE,
    RAW_PAGE_SHOW,
    RAW_ONLINE,
    RAW_OFFLINE,
    RAW_FREEZE,
    RAW_RESUME,
)

# =============================================================================
# Persistent connections
# =============================================================================

# websockets client: payload cap and close handshake bound
WS_MAX_MESSAGE_BYTES: Final[int] = 2**22
WS_CLOSE_TIMEOUT_S: Final[float] = 1.0

# =============================================================================
# Logging
# =============================================================================

LOG_LEVELS: Final[Tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

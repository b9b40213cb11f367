"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No coordination logic
- No behavioral defaults (those live in constants.py)
- No runtime mutation
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from constants import (
    CLOSE_ACK_TIMEOUT_MS,
    REOPEN_TIMEOUT_MS,
    SIGNAL_BACKLOG_MAX,
    SIGNAL_DEDUP_WINDOW_MS,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the app factory, which wires the coordinator.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "0.0.0.0"
    port: int = 8000

    # ------------------------------------------------------------------
    # Coordinator timing / bounds
    # ------------------------------------------------------------------

    close_ack_timeout_ms: int = CLOSE_ACK_TIMEOUT_MS
    reopen_timeout_ms: int = REOPEN_TIMEOUT_MS
    signal_backlog_max: int = SIGNAL_BACKLOG_MAX
    signal_dedup_window_ms: int = SIGNAL_DEDUP_WINDOW_MS

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable is not an integer.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",

            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", "8000")),

            close_ack_timeout_ms=int(
                os.environ.get("CLOSE_ACK_TIMEOUT_MS", str(CLOSE_ACK_TIMEOUT_MS))
            ),
            reopen_timeout_ms=int(
                os.environ.get("REOPEN_TIMEOUT_MS", str(REOPEN_TIMEOUT_MS))
            ),
            signal_backlog_max=int(
                os.environ.get("SIGNAL_BACKLOG_MAX", str(SIGNAL_BACKLOG_MAX))
            ),
            signal_dedup_window_ms=int(
                os.environ.get("SIGNAL_DEDUP_WINDOW_MS", str(SIGNAL_DEDUP_WINDOW_MS))
            ),
        )

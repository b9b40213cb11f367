"""
Coordinator error taxonomy.

Only DuplicateId is raised to callers. The other failures are returned as
values and logged: no error in this subsystem is fatal, every failure
degrades to "networking suspended".
"""

from __future__ import annotations


class CoordinatorError(Exception):
    """Base class for coordinator errors."""


class DuplicateId(CoordinatorError):
    """A connection with this id is already tracked."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"connection already tracked: {record_id}")
        self.record_id = record_id


class ToggleFailure(CoordinatorError):
    """The remote layer rejected an enable/disable call."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        super().__init__(f"{operation} failed: {cause!r}")
        self.operation = operation
        self.cause = cause


class CloseFailure(CoordinatorError):
    """A tracked connection did not acknowledge close within its bound."""

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"close failed for {record_id}: {reason}")
        self.record_id = record_id
        self.reason = reason


class ReestablishFailure(CoordinatorError):
    """One reopen attempt failed; the whole reestablish is rolled back."""

    def __init__(self, record_id: str | None, reason: str) -> None:
        super().__init__(f"reestablish failed ({record_id}): {reason}")
        self.record_id = record_id
        self.reason = reason

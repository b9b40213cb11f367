"""
Connection record data model.

A record describes one managed persistent connection. Records are immutable;
the registry swaps in a new record when the state changes.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias
from uuid import uuid4


RecordId: TypeAlias = str


class ConnectionState(Enum):
    """
    Lifecycle of a tracked connection.

    OPEN -> CLOSING -> CLOSED. A CLOSED record is removed from the registry.
    """
    OPEN = "OPEN"
    CLOSING = "CLOSING"
    CLOSED = "CLOSED"


@dataclass(frozen=True)
class ConnectionSpec:
    """What is needed to recreate a connection under the same logical id."""
    id: RecordId
    endpoint: str
    subprotocol: str | None = None


@dataclass(frozen=True)
class ConnectionRecord:
    """Single tracked persistent connection."""
    id: RecordId
    endpoint: str
    subprotocol: str | None
    handle: Any  # ConnectionHandle in practice
    state: ConnectionState = ConnectionState.OPEN

    def spec(self) -> ConnectionSpec:
        return ConnectionSpec(
            id=self.id,
            endpoint=self.endpoint,
            subprotocol=self.subprotocol,
        )


def new_record_id() -> RecordId:
    return f"conn_{uuid4().hex[:12]}"

"""
Connection registry.

Responsibilities:
- Own the authoritative set of tracked persistent connections
- Enforce unique logical ids
- Close every tracked connection on request, bounded per connection
- Remember what was closed so it can be recreated under the same ids

Non-responsibilities:
- Opening connections (connections.factory)
- Deciding when to close or reopen (coordinator)

Removal is idempotent: close_all() and a connection's own close callback
may both untrack the same record.
"""

from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, replace

from connections.record import (
    ConnectionRecord,
    ConnectionSpec,
    ConnectionState,
    RecordId,
)
from constants import CLOSE_ACK_TIMEOUT_MS
from coordinator.errors import CloseFailure, DuplicateId
from observability.logger import log_event
from observability.metrics import timed


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# ------------------------------------------------------------------
# Close result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class CloseReport:
    """
    Outcome of close_all().

    closed:
        ids that were removed from the registry (every record, even failed)

    failures:
        records that did not acknowledge close cleanly
    """
    closed: tuple[RecordId, ...] = ()
    failures: tuple[CloseFailure, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

class ConnectionRegistry:
    """
    Ownership-tracked set of managed persistent connections.

    All mutations go through an internal lock, so snapshot() is always a
    consistent copy and callbacks from other threads cannot corrupt it.
    """

    def __init__(self, *, close_ack_timeout_ms: int = CLOSE_ACK_TIMEOUT_MS) -> None:
        self._close_ack_timeout_s = close_ack_timeout_ms / 1000.0
        self._lock = threading.Lock()
        self._records: dict[RecordId, ConnectionRecord] = {}
        self._remembered: dict[RecordId, ConnectionSpec] = {}

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def track(self, record: ConnectionRecord) -> RecordId:
        """
        Register a connection.

        Raises:
            DuplicateId if a record with the same id is already tracked.
        """
        with self._lock:
            if record.id in self._records:
                raise DuplicateId(record.id)
            self._records[record.id] = record

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "CONNECTION_TRACKED",
            "level": "DEBUG",
            "record_id": record.id,
            "endpoint": record.endpoint,
            "subprotocol": record.subprotocol,
        })
        return record.id

    def untrack(self, record_id: RecordId) -> ConnectionRecord | None:
        """
        Remove a record.

        Idempotent: returns None if the id is not tracked.
        """
        with self._lock:
            record = self._records.pop(record_id, None)

        if record is not None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CONNECTION_UNTRACKED",
                "level": "DEBUG",
                "record_id": record_id,
            })
        return record

    def untrack_handle(self, record_id: RecordId, handle: object) -> ConnectionRecord | None:
        """
        Remove a record only if it still belongs to this handle.

        Used by a connection's own close callback: a late callback from an
        old handle must not untrack a newer record reopened under the same id.
        """
        with self._lock:
            record = self._records.get(record_id)
            if record is None or record.handle is not handle:
                return None
            del self._records[record_id]

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "CONNECTION_SELF_UNTRACKED",
            "level": "DEBUG",
            "record_id": record_id,
        })
        return record

    def get(self, record_id: RecordId) -> ConnectionRecord | None:
        with self._lock:
            return self._records.get(record_id)

    def snapshot(self) -> tuple[ConnectionRecord, ...]:
        """Copy-on-read view; safe to iterate while the registry mutates."""
        with self._lock:
            return tuple(self._records.values())

    def __contains__(self, record_id: object) -> bool:
        with self._lock:
            return record_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def _set_state(self, record_id: RecordId, state: ConnectionState) -> None:
        with self._lock:
            record = self._records.get(record_id)
            if record is not None:
                self._records[record_id] = replace(record, state=state)

    # ------------------------------------------------------------------
    # Remembered specs (for reestablish)
    # ------------------------------------------------------------------

    def remembered(self) -> tuple[ConnectionSpec, ...]:
        with self._lock:
            return tuple(self._remembered.values())

    def forget(self, record_ids: tuple[RecordId, ...] | None = None) -> None:
        """Drop remembered specs (all of them when record_ids is None)."""
        with self._lock:
            if record_ids is None:
                self._remembered.clear()
                return
            for record_id in record_ids:
                self._remembered.pop(record_id, None)

    # ------------------------------------------------------------------
    # Bulk close
    # ------------------------------------------------------------------

    async def close_all(self, *, remember: bool = True) -> CloseReport:
        """
        Close every tracked connection and untrack it.

        - Closes run concurrently, each bounded by the close-ack timeout
        - Failures are aggregated, never short-circuit
        - A failing close still untracks its record
        - remember=True merges the closed records into the remembered set
          (an empty registry leaves the remembered set untouched)
        """
        records = self.snapshot()

        if remember and records:
            with self._lock:
                for record in records:
                    self._remembered[record.id] = record.spec()

        if not records:
            return CloseReport()

        with timed("close_all_duration", details={"count": len(records)}):
            results = await asyncio.gather(
                *(self._close_one(record) for record in records)
            )

        failures = tuple(f for f in results if f is not None)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "CONNECTIONS_CLOSED",
            "closed": [r.id for r in records],
            "failures": [f.record_id for f in failures],
            "remember": remember,
        })

        return CloseReport(
            closed=tuple(r.id for r in records),
            failures=failures,
        )

    async def _close_one(self, record: ConnectionRecord) -> CloseFailure | None:
        self._set_state(record.id, ConnectionState.CLOSING)
        failure: CloseFailure | None = None

        try:
            await asyncio.wait_for(
                _close_and_wait(record.handle),
                timeout=self._close_ack_timeout_s,
            )
        except asyncio.TimeoutError:
            failure = CloseFailure(record.id, "close_ack_timeout")
        except Exception as e:  # pylint: disable=broad-exception-caught
            failure = CloseFailure(record.id, repr(e))
        finally:
            self._set_state(record.id, ConnectionState.CLOSED)
            self.untrack(record.id)

        if failure is not None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLOSE_FAILURE",
                "level": "WARNING",
                "record_id": record.id,
                "reason": failure.reason,
            })

        return failure


async def _close_and_wait(handle: object) -> None:
    await handle.close()  # type: ignore[attr-defined]
    await handle.wait_closed()  # type: ignore[attr-defined]

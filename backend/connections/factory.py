"""
Tracked connection factory.

Creates persistent connections and registers them in one call, instead of
patching a global connection constructor.

Ownership model:
- The registry owns the list of records.
- Each ManagedConnection holds only a weak reference back to its registry
  and untracks itself when its transport closes.
"""

from __future__ import annotations

import asyncio
import time
import weakref
from typing import Awaitable, Callable, Optional, Protocol, Sequence, TYPE_CHECKING, cast, runtime_checkable

from websockets.asyncio.client import connect as ws_connect
from websockets.typing import Subprotocol

from connections.record import ConnectionRecord, RecordId, new_record_id
from constants import REOPEN_TIMEOUT_MS, WS_CLOSE_TIMEOUT_S, WS_MAX_MESSAGE_BYTES
from coordinator.errors import DuplicateId
from observability.logger import log_event

if TYPE_CHECKING:
    from connections.registry import ConnectionRegistry


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


# ---------------------------------------------------------------------
# Transport protocol
# ---------------------------------------------------------------------

@runtime_checkable
class ConnectionHandle(Protocol):
    """
    Minimal capability of a persistent transport.

    websockets' ClientConnection satisfies this structurally.
    """

    async def close(self) -> None: ...

    async def wait_closed(self) -> None: ...


Connector = Callable[[str, Optional[str]], Awaitable[ConnectionHandle]]


async def websocket_connector(endpoint: str, subprotocol: str | None) -> ConnectionHandle:
    """
    Open a WebSocket client connection.

    Returns once the opening handshake completed; raises on error.
    """
    subprotocols: Sequence[Subprotocol] | None = (
        [cast(Subprotocol, subprotocol)] if subprotocol else None
    )
    return await ws_connect(
        endpoint,
        subprotocols=subprotocols,
        max_size=WS_MAX_MESSAGE_BYTES,
        close_timeout=WS_CLOSE_TIMEOUT_S,
    )


# ---------------------------------------------------------------------
# Managed connection
# ---------------------------------------------------------------------

class ManagedConnection:
    """
    Handle stored in a ConnectionRecord.

    Wraps the raw transport, forwards close()/wait_closed(), and watches
    for closure to untrack itself through a weak registry reference.
    """

    def __init__(
        self,
        *,
        record_id: RecordId,
        transport: ConnectionHandle,
        registry: ConnectionRegistry,
    ) -> None:
        self.record_id = record_id
        self.transport = transport
        self._registry_ref: weakref.ReferenceType[ConnectionRegistry] = weakref.ref(registry)
        self._watch_task: asyncio.Task[None] = asyncio.create_task(self._watch_closed())

    async def close(self) -> None:
        await self.transport.close()

    async def wait_closed(self) -> None:
        await self.transport.wait_closed()

    def stop_watching(self) -> None:
        if not self._watch_task.done():
            self._watch_task.cancel()

    async def _watch_closed(self) -> None:
        try:
            await self.transport.wait_closed()
        except asyncio.CancelledError:
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            # A transport that errors while closing is closed all the same
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CONNECTION_CLOSE_ERROR",
                "level": "WARNING",
                "record_id": self.record_id,
                "error": repr(e),
            })

        registry = self._registry_ref()
        if registry is not None:
            registry.untrack_handle(self.record_id, self)


# ---------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------

class ConnectionFactory:
    """
    Opens persistent connections and tracks them in the registry.

    The connector is injected so tests and non-WebSocket transports can
    supply their own; it defaults to websocket_connector.
    """

    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        connector: Connector = websocket_connector,
        open_timeout_ms: int = REOPEN_TIMEOUT_MS,
    ) -> None:
        self._registry = registry
        self._connector = connector
        self._open_timeout_s = open_timeout_ms / 1000.0

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def open(self, endpoint: str, subprotocol: str | None) -> ConnectionHandle:
        """
        Race "opened" vs "errored" for one transport.

        Raises whatever the connector raises, or TimeoutError.
        """
        return await asyncio.wait_for(
            self._connector(endpoint, subprotocol),
            timeout=self._open_timeout_s,
        )

    def track_transport(
        self,
        *,
        endpoint: str,
        subprotocol: str | None,
        transport: ConnectionHandle,
        record_id: RecordId | None = None,
    ) -> ConnectionRecord:
        """
        Track an already-open transport.

        Raises:
            DuplicateId if record_id is already tracked.
        """
        rid = record_id or new_record_id()
        handle = ManagedConnection(
            record_id=rid,
            transport=transport,
            registry=self._registry,
        )
        record = ConnectionRecord(
            id=rid,
            endpoint=endpoint,
            subprotocol=subprotocol,
            handle=handle,
        )
        try:
            self._registry.track(record)
        except DuplicateId:
            handle.stop_watching()
            raise
        return record

    async def create_tracked_connection(
        self,
        endpoint: str,
        subprotocol: str | None = None,
        *,
        record_id: RecordId | None = None,
    ) -> ConnectionRecord:
        """
        Open a connection and register it in one step.

        On DuplicateId the freshly opened transport is closed before the
        error propagates, so nothing leaks.
        """
        if record_id is not None and record_id in self._registry:
            raise DuplicateId(record_id)

        transport = await self.open(endpoint, subprotocol)

        try:
            return self.track_transport(
                endpoint=endpoint,
                subprotocol=subprotocol,
                transport=transport,
                record_id=record_id,
            )
        except DuplicateId:
            await transport.close()
            raise

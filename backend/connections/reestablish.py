"""
All-or-nothing reconnection of remembered connections.

Responsibilities:
- Reopen every remembered spec that is not currently tracked, concurrently
- Track each new connection under its original logical id as it opens
- Abort on the first failure (remaining attempts are cancelled)

Non-responsibilities:
- Rollback. The caller (coordinator) closes whatever did open and disables
  networking; this module only reports the failure.
"""

from __future__ import annotations

import asyncio
import time

from connections.factory import ConnectionFactory
from connections.record import ConnectionRecord, ConnectionSpec
from coordinator.errors import ReestablishFailure
from observability.logger import log_event
from observability.metrics import timed


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


async def reestablish_connections(
    *,
    factory: ConnectionFactory,
    specs: tuple[ConnectionSpec, ...],
) -> tuple[ConnectionRecord, ...]:
    """
    Reopen specs concurrently (fan-out, join-all).

    Returns:
        The new records, in completion order.

    Raises:
        ReestablishFailure on the first failed attempt. Connections that
        opened before the failure stay tracked so the caller can close them.
    """
    registry = factory.registry
    todo = [spec for spec in specs if spec.id not in registry]
    if not todo:
        return ()

    tasks: dict[asyncio.Task[ConnectionRecord], ConnectionSpec] = {
        asyncio.create_task(
            factory.create_tracked_connection(
                spec.endpoint,
                spec.subprotocol,
                record_id=spec.id,
            )
        ): spec
        for spec in todo
    }

    with timed("reestablish_duration", details={"count": len(todo)}):
        try:
            done, pending = await asyncio.wait(
                tasks.keys(),
                return_when=asyncio.FIRST_EXCEPTION,
            )
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

    failed: tuple[ConnectionSpec, BaseException] | None = None
    for task in done:
        exc = task.exception()
        if exc is not None and failed is None:
            failed = (tasks[task], exc)

    if failed is not None:
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        spec, exc = failed
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "REESTABLISH_ATTEMPT_FAILED",
            "level": "WARNING",
            "record_id": spec.id,
            "endpoint": spec.endpoint,
            "error": repr(exc),
            "cancelled": len(pending),
        })
        raise ReestablishFailure(spec.id, repr(exc))

    return tuple(task.result() for task in done)

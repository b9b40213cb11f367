"""
Route registration for the coordinator API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Feed raw lifecycle events from browser agents into the environment
- Pull dependencies from app.state
"""

from __future__ import annotations

import json
import time
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from constants import RAW_LIFECYCLE_EVENTS
from coordinator.errors import DuplicateId
from coordinator.runtime import LifecycleCoordinator
from lifecycle.environment import EventTargetEnvironment
from observability.logger import log_event


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class ConnectionRequest(BaseModel):
    """Request model for opening a tracked connection."""
    endpoint: str = Field(..., description="ws:// or wss:// URL to connect to")
    subprotocol: Optional[str] = None
    id: Optional[str] = Field(None, description="Logical id; generated when omitted")


class ConnectionResponse(BaseModel):
    """Response model for a tracked connection."""
    id: str
    endpoint: str
    subprotocol: Optional[str]
    state: str


class CloseResponse(BaseModel):
    """Response model for close_all()."""
    closed: list[str]
    failures: dict[str, str]


class ReestablishResponse(BaseModel):
    """Response model for reestablish()."""
    ok: bool
    record_id: Optional[str] = None
    reason: Optional[str] = None
    phase: str


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    def _coordinator() -> LifecycleCoordinator:
        return app.state.coordinator

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.get("/status")
    async def status() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        return _coordinator().status()

    @app.post("/connections", status_code=201, response_model=ConnectionResponse)
    async def create_connection(req: ConnectionRequest) -> ConnectionResponse: # pyright: ignore[reportUnusedFunction]
        try:
            record = await _coordinator().create_tracked_connection(
                req.endpoint,
                req.subprotocol,
                record_id=req.id,
            )
        except DuplicateId as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CONNECTION_OPEN_FAILED",
                "level": "WARNING",
                "endpoint": req.endpoint,
                "error": repr(e),
            })
            raise HTTPException(status_code=502, detail=f"connect failed: {e!r}") from e

        return ConnectionResponse(
            id=record.id,
            endpoint=record.endpoint,
            subprotocol=record.subprotocol,
            state=record.state.value,
        )

    @app.post("/connections/close", response_model=CloseResponse)
    async def close_connections() -> CloseResponse: # pyright: ignore[reportUnusedFunction]
        report = await _coordinator().close_all()
        return CloseResponse(
            closed=list(report.closed),
            failures={f.record_id: f.reason for f in report.failures},
        )

    @app.post("/connections/reestablish", response_model=ReestablishResponse)
    async def reestablish_connections() -> ReestablishResponse: # pyright: ignore[reportUnusedFunction]
        coordinator = _coordinator()
        failure = await coordinator.reestablish()
        return ReestablishResponse(
            ok=failure is None,
            record_id=failure.record_id if failure else None,
            reason=failure.reason if failure else None,
            phase=coordinator.current_phase().value,
        )

    @app.websocket("/ws/lifecycle")
    async def lifecycle_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        """
        Browser agent channel.

        Each text message is one raw lifecycle event:
            {"type": "pagehide", "persisted": true}
        The reply is the coordinator status once the event has settled.
        """
        await ws.accept()

        environment: EventTargetEnvironment = app.state.environment
        coordinator = _coordinator()

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_CONNECTED",
            "path": "/ws/lifecycle",
        })

        try:
            while True:
                text = await ws.receive_text()
                reply = await _handle_raw_message(text, environment, coordinator)
                await ws.send_text(json.dumps(reply))

        except WebSocketDisconnect:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECTED",
                "path": "/ws/lifecycle",
            })

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_FATAL_ERROR",
                "level": "ERROR",
                "exception": type(exc).__name__,
                "message": str(exc),
            })


async def _handle_raw_message(
    text: str,
    environment: EventTargetEnvironment,
    coordinator: LifecycleCoordinator,
) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return {"type": "ERROR", "error": "invalid_json"}

    if not isinstance(data, dict):
        return {"type": "ERROR", "error": "expected_object"}

    name = data.get("type")
    if name not in RAW_LIFECYCLE_EVENTS:
        return {"type": "ERROR", "error": "unknown_event", "event": name}

    payload = {k: v for k, v in data.items() if k != "type"}
    environment.dispatch(name, payload)
    await coordinator.settle()

    return {"type": "STATUS", **coordinator.status()}

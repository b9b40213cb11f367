"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Build the coordinator ONCE per process and keep it on app.state
- Initialize / shut down the coordinator with the app lifespan
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import AppConfig
from connections.factory import ConnectionFactory, Connector, websocket_connector
from connections.registry import ConnectionRegistry
from coordinator.runtime import LifecycleCoordinator
from lifecycle.environment import EventTargetEnvironment
from lifecycle.normalizer import SignalNormalizer
from observability import logger
from remote.base import RemoteLayer
from remote.loopback import LoopbackRemoteLayer

from server.routes import register_routes


def build_coordinator(
    config: AppConfig,
    *,
    environment: EventTargetEnvironment,
    connector: Connector = websocket_connector,
) -> LifecycleCoordinator:
    """Wire normalizer, registry and factory into one coordinator."""
    normalizer = SignalNormalizer(
        environment,
        dedup_window_ms=config.signal_dedup_window_ms,
    )
    registry = ConnectionRegistry(close_ack_timeout_ms=config.close_ack_timeout_ms)
    factory = ConnectionFactory(
        registry=registry,
        connector=connector,
        open_timeout_ms=config.reopen_timeout_ms,
    )
    return LifecycleCoordinator(
        normalizer=normalizer,
        factory=factory,
        backlog_max=config.signal_backlog_max,
    )


def create_app(
    config: AppConfig | None = None,
    *,
    remote: RemoteLayer | None = None,
    connector: Connector = websocket_connector,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations (and fake remotes/connectors)
    - Environment-specific setup
    - ASGI server compatibility
    """
    config = config or AppConfig.load_from_env()

    logger.configure(
        min_level=config.log_level,
        json_lines=config.enable_json_logs,
    )

    environment = EventTargetEnvironment()
    coordinator = build_coordinator(
        config,
        environment=environment,
        connector=connector,
    )
    remote_layer = remote or LoopbackRemoteLayer()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await coordinator.initialize(remote_layer)
        try:
            yield
        finally:
            await coordinator.shutdown()

    app = FastAPI(title="Lifeline Coordinator API", lifespan=lifespan)

    app.state.config = config
    app.state.environment = environment
    app.state.coordinator = coordinator
    app.state.remote = remote_layer

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app

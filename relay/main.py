"""FastAPI application for the rendezvous signaling relay."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from .core.config import Settings, settings
from .core.logging import configure_logging
from .routers import signaling as signaling_router
from .schemas.signaling import HealthResponse
from .services.liveness import PeriodicSweeper
from .services.signaling import SignalingManager

logger = logging.getLogger(__name__)


def create_app(config: Settings = settings) -> FastAPI:
    """Build the ASGI app; relay state lives for the span of the lifespan."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(config.log_level)
        manager = SignalingManager.from_settings(config)
        sweeper = PeriodicSweeper(manager.sweep, config.sweep_interval_seconds)
        app.state.signaling = manager
        app.state.sweeper = sweeper
        sweeper.start()
        logger.info("Signaling relay ready (env=%s)", config.app_env)
        try:
            yield
        finally:
            await sweeper.stop()
            logger.info("Signaling relay stopped with %d live connections", len(manager.registry))

    app = FastAPI(title="Rendezvous Relay", version="0.1.0", lifespan=lifespan)
    app.state.settings = config

    if config.cors_allow_origins:
        allow_any = config.cors_allow_origins == ["*"]
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_allow_origins,
            allow_credentials=not allow_any,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.include_router(signaling_router.router)

    @app.get("/health", response_model=HealthResponse, tags=["meta"])
    @app.get("/api/health", response_model=HealthResponse, tags=["meta"])
    async def health() -> HealthResponse:
        """Liveness probe with the current server time."""

        return HealthResponse(status="ok", timestamp=datetime.now(timezone.utc).isoformat())

    @app.head("/health", tags=["meta"])
    @app.head("/api/health", tags=["meta"])
    async def health_head() -> Response:
        """Allow HEAD for uptime monitors that only need the status code."""

        return Response(status_code=200)

    @app.get("/api/connections", tags=["debug"])
    async def list_connections(request: Request) -> dict[str, list[dict]]:
        """Live connection table, including recent offer/answer targets."""

        if not config.expose_connection_debug:
            raise HTTPException(status_code=404, detail="Not Found")
        manager: SignalingManager = request.app.state.signaling
        return {"connections": manager.describe()}

    if config.static_dir:
        app.mount("/", StaticFiles(directory=config.static_dir, html=True), name="client")

    return app


app = create_app()

"""FastAPI application for the WebRTC signaling server."""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .core.config import Settings, settings as default_settings
from .core.logging_config import configure_logging
from .routers import signaling as signaling_router
from .schemas.signaling import HealthResponse, StatusResponse
from .services.hub import SignalingHub, get_hub

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings | None = None, hub: SignalingHub | None = None) -> FastAPI:
    """Build the application around a fresh (or supplied) signaling hub."""

    resolved = app_settings or default_settings
    configure_logging(resolved.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Signaling server starting (env=%s, version=%s, port=%d)",
            resolved.app_env,
            resolved.app_version,
            resolved.port,
        )
        await app.state.hub.start()
        try:
            yield
        finally:
            await app.state.hub.stop()
            logger.info("Server closed")

    app = FastAPI(title="Rendezvous Signaling Server", version=resolved.app_version, lifespan=lifespan)
    app.state.settings = resolved
    app.state.hub = hub or SignalingHub.from_settings(resolved)

    if resolved.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=resolved.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["*"],
        )

    app.include_router(signaling_router.router)

    @app.get("/", response_model=StatusResponse, tags=["meta"])
    async def status(hub: SignalingHub = Depends(get_hub)) -> StatusResponse:
        """Report room and connection counts."""

        return StatusResponse(
            status="Signaling Server Running",
            version=resolved.app_version,
            timestamp=datetime.now(timezone.utc).isoformat(),
            active_rooms=hub.active_rooms,
            active_peers=hub.active_peers,
        )

    @app.get("/health", response_model=HealthResponse, tags=["meta"])
    async def health(hub: SignalingHub = Depends(get_hub)) -> HealthResponse:
        """Simple liveness probe."""

        return HealthResponse(status="healthy", uptime=hub.uptime())

    @app.head("/health", tags=["meta"])
    async def health_head() -> Response:
        """Allow HEAD for uptime monitors that only need the status code."""

        return Response(status_code=200)

    return app


app = create_app()

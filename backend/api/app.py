"""
FastAPI application factory for the Zonera board API.

Creates the app with:
- Board routes (board, dates, refresh)
- Middleware stack
- Health, readiness and status endpoints
- Lifespan management: source registry and refresh scheduler
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Union

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.models.enums import MatchStatus, SourceName
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from api.dependencies import get_scheduler, init_dependencies
from api.middleware import setup_middleware
from api.routes.board import router as board_router
from ingest.providers.registry import SourceRegistry
from scheduler.service import RefreshScheduler

logger = get_logger(__name__)


@asynccontextmanager
async def _noop_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """No-op lifespan for testing without live sources."""
    yield


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Starts the source connectors and the refresh loop; on shutdown cancels
    the loop with any in-flight cycle and closes the HTTP clients.
    """
    settings = get_settings()
    setup_logging("api")
    start_metrics_server()

    registry = SourceRegistry.from_settings(settings)
    await registry.start()

    scheduler = RefreshScheduler(registry, settings)
    init_dependencies(scheduler)
    scheduler.start()

    logger.info(
        "api_service_started",
        host=settings.api_host,
        port=settings.api_port,
        refresh_interval_s=settings.refresh_interval_s,
    )

    yield

    await scheduler.stop()
    await registry.close()
    init_dependencies(None)
    logger.info("api_service_stopped")


def create_app(*, use_lifespan: bool = True) -> FastAPI:
    """Create and configure the FastAPI application. Set use_lifespan=False for testing without sources."""
    app = FastAPI(
        title="Zonera API",
        description="Live football scores board",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else _noop_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    setup_middleware(app)
    app.include_router(board_router)

    @app.get("/health", tags=["system"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": "api"}

    @app.get("/ready", tags=["system"], response_model=None)
    async def readiness() -> Union[Dict[str, Union[str, bool]], JSONResponse]:
        """Readiness probe: ready once the first snapshot has been published."""
        try:
            ready = get_scheduler().ready
        except RuntimeError:
            ready = False
        body: Dict[str, Union[str, bool]] = {"status": "ok" if ready else "starting", "snapshot": ready}
        if not ready:
            return JSONResponse(status_code=503, content=body)
        return body

    @app.get("/v1/status", tags=["system"], response_model=None)
    async def system_status() -> Union[dict[str, Any], JSONResponse]:
        """Last cycle, per-source counts and failures."""
        try:
            scheduler = get_scheduler()
        except RuntimeError:
            return JSONResponse(status_code=503, content={"status": "starting", "ready": False})
        snapshot = scheduler.snapshot
        settings = get_settings()
        configured = {
            SourceName.CUSTOM_STORE: settings.custom_store_enabled and settings.custom_store_configured,
            SourceName.API_FOOTBALL: settings.api_football_enabled and settings.api_football_configured,
            SourceName.FOOTBALL_DATA: settings.football_data_enabled and settings.football_data_configured,
        }

        sources: dict[str, Any] = {}
        for name in SourceName:
            slot = snapshot.slot(name)
            sources[name.value] = {
                "configured": configured[name],
                "matches": len(slot),
                "by_status": {s.value: sum(1 for m in slot if m.status == s) for s in MatchStatus},
                "error": snapshot.failures.get(name),
            }

        return {
            "status": "ok" if not snapshot.failures else "degraded",
            "ready": scheduler.ready,
            "running": scheduler.running,
            "in_flight": scheduler.in_flight,
            "seq": snapshot.seq,
            "fetched_at": snapshot.fetched_at.isoformat() if snapshot.fetched_at else None,
            "refresh_interval_s": settings.refresh_interval_s,
            "total": snapshot.total,
            "sources": sources,
        }

    return app


# For running with uvicorn directly
app = create_app()

"""
FastAPI application for the FRC event sync engine.

The HTTP surface is operational only: sync status and manual triggers,
scheduler control, stored events and live rankings/teams. The sync engine
itself runs in the background on the application's event loop.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from frcsync.api.routes import events, sync
from frcsync.core.config import Settings, get_settings
from frcsync.core.exceptions import SyncCancelledError
from frcsync.core.logging import configure_logging, get_logger
from frcsync.core.middleware import CorrelationIdMiddleware
from frcsync.services.sync.orchestrator import SyncOrchestrator

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    orchestrator: Optional[SyncOrchestrator] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Settings to use (defaults to get_settings())
        orchestrator: Pre-built orchestrator; when omitted one is wired from
            settings against the configured database on startup

    Returns:
        FastAPI app
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """Application lifespan events."""
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

        sync_orchestrator = orchestrator
        if sync_orchestrator is None:
            from frcsync.core.database import init_db
            from frcsync.services.sync.orchestrator import build_orchestrator

            init_db()
            sync_orchestrator = build_orchestrator(settings)

        app.state.orchestrator = sync_orchestrator
        app.state.event_repository = sync_orchestrator.reconciler.repository

        from frcsync.core.scheduler import start_scheduler, stop_scheduler
        await start_scheduler(sync_orchestrator, settings)
        logger.info("FRC sync scheduler started")

        yield

        await stop_scheduler()
        await sync_orchestrator.close()
        logger.info("Shutting down application")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Synchronizes FIRST FRC competition data into a local event store",
        lifespan=lifespan
    )
    app.state.settings = settings

    app.add_middleware(CorrelationIdMiddleware)

    # Prometheus metrics from the default registry
    app.mount("/metrics", make_asgi_app())

    app.include_router(sync.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")

    @app.exception_handler(SyncCancelledError)
    async def sync_cancelled_handler(request: Request, exc: SyncCancelledError):
        """Live lookups refused while the scheduler is stopping."""
        logger.warning(
            f"Request cancelled by rate limiter stop: {exc}",
            extra={"event": "sync_cancelled", "path": request.url.path}
        )
        return JSONResponse(
            status_code=503,
            content={"detail": "FRC API access is paused while sync stops; retry shortly"},
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION
        }

    return app


def _build_default_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
    return create_app(settings)


app = _build_default_app()

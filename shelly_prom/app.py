"""
FastAPI application exposing plug metrics for scraping.

Serves the Prometheus text exposition on /metrics and runs the polling
scheduler for the lifetime of the application.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse, Response

from .config import ExporterSettings, get_exporter_settings
from .loader import ExporterConfig
from .metrics.registry import MetricRegistry
from .polling.scheduler import PollingScheduler
from .polling.status_fetcher import StatusFetcher

logger = logging.getLogger(__name__)


def create_app(
    config: ExporterConfig,
    settings: Optional[ExporterSettings] = None,
    registry: Optional[MetricRegistry] = None,
    fetcher: Optional[StatusFetcher] = None,
) -> FastAPI:
    """
    Application factory.

    Builds the registry, fetcher and scheduler for the configured plugs
    and wires the scheduler into the application lifespan.
    """
    settings = settings or get_exporter_settings()
    registry = registry or MetricRegistry()
    fetcher = fetcher or StatusFetcher(timeout=settings.request_timeout)
    scheduler = PollingScheduler(
        devices=config.devices,
        fetcher=fetcher,
        registry=registry,
        interval=config.interval_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator:
        """Start polling on startup, stop it on shutdown."""
        logger.info(
            f"Starting {settings.app_name} on {config.listen_addr}:{config.port}"
        )
        await fetcher.connect()
        await scheduler.start()

        yield

        logger.info("Shutting down exporter...")
        await scheduler.stop()
        await fetcher.disconnect()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.registry = registry
    app.state.scheduler = scheduler

    register_exception_handlers(app)
    register_routes(app)

    return app


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                'error': 'INTERNAL_ERROR',
                'message': 'An internal error occurred',
            },
        )


def register_routes(app: FastAPI) -> None:
    """Register exporter routes."""

    @app.get("/metrics", tags=["Metrics"])
    async def metrics(request: Request) -> Response:
        """Prometheus scrape endpoint."""
        registry: MetricRegistry = request.app.state.registry
        return Response(content=registry.render(), media_type=registry.content_type)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Report polling state."""
        scheduler: PollingScheduler = request.app.state.scheduler
        stats = scheduler.get_polling_stats()
        return {
            'status': 'healthy' if stats['running'] else 'stopped',
            'devices': stats['devices'],
            'polling': stats,
        }

    @app.get("/", tags=["Root"])
    async def root(request: Request):
        """Root endpoint."""
        return {
            'name': request.app.title,
            'metrics': '/metrics',
        }

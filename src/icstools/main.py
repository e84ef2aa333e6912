"""
Main FastAPI application entry point.

This module sets up the FastAPI app with its routes, exception handlers and
lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .api import calendars_router, healthz_router, metrics_router
from .config import Settings, get_settings
from .core.exceptions import IcsToolsException
from .core.fetcher import UpstreamFetcher
from .core.metrics import MetricsCollector
from .models import ServiceInfo

DESCRIPTION = "Calendar feed anonymizer and filter"


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Opens the upstream HTTP session on startup and closes it on shutdown.
        """
        logger = structlog.get_logger(__name__)
        logger.info(
            "Starting icstools service",
            version=app.version,
            calendars=sorted(settings.calendars),
        )

        app.state.metrics = MetricsCollector()

        fetcher = UpstreamFetcher(settings.fetch)
        app.state.fetcher = fetcher
        await fetcher.start()

        try:
            logger.info("icstools service started successfully")
            yield
        finally:
            logger.info("Shutting down icstools service")
            await fetcher.stop()
            logger.info("icstools service shutdown complete")

    return lifespan


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function ensures all configuration is applied
    whether running via uvicorn or the icstools CLI.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="icstools",
        description=DESCRIPTION,
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=create_lifespan_handler(settings),
    )
    app.state.settings = settings

    @app.exception_handler(IcsToolsException)
    async def icstools_exception_handler(request: Request, exc: IcsToolsException) -> JSONResponse:
        """Handle custom icstools exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "icstools exception occurred",
            error=str(exc),
            error_code=exc.error_code,
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": str(exc),
                "details": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unexpected exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    @app.get("/", include_in_schema=False)
    async def root() -> ServiceInfo:
        """Root endpoint with service information."""
        return ServiceInfo(
            service="icstools",
            version=app.version,
            description=DESCRIPTION,
            calendars=len(settings.calendars),
        )

    app.include_router(healthz_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    # Catch-all calendar paths go last
    app.include_router(calendars_router, tags=["calendars"])

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.icstools.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )

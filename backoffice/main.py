"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backoffice import __version__
from backoffice.core.config import get_settings
from backoffice.core.database import dispose_engine
from backoffice.core.exceptions import register_exception_handlers
from backoffice.core.health import router as health_router
from backoffice.core.logging import configure_logging, get_logger
from backoffice.core.middleware import RequestIdMiddleware
from backoffice.features.analytics.broadcast import get_broadcaster
from backoffice.features.analytics.routes import router as analytics_router
from backoffice.features.analytics.websocket import router as analytics_ws_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown.

    Starts the real-time analytics broadcast loop when enabled and stops it
    on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None after startup, cleans up on shutdown.
    """
    settings = get_settings()

    configure_logging()
    logger.info(
        "app.startup_started",
        app_name=settings.app_name,
        app_env=settings.app_env,
        debug=settings.debug,
    )

    broadcaster = None
    if settings.analytics_broadcast_enabled:
        broadcaster = get_broadcaster()
        broadcaster.start()

    yield

    if broadcaster is not None:
        await broadcaster.stop()
    await dispose_engine()
    logger.info("app.shutdown_completed")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Back-office sales analytics: real-time KPIs, forecast, peak hours",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # First added = outermost
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(analytics_router)
    app.include_router(analytics_ws_router)

    return app


app = create_app()

"""Main FastAPI application.

This module creates the FastAPI application with:
- Middleware for error handling and logging
- Rate limiting
- Prometheus metrics
- Feed, resolve, subscription, settings and health routers
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from subbed.api.middleware import (
    setup_error_handler,
    setup_logging_middleware,
    setup_prometheus,
    setup_rate_limiter,
)
from subbed.api.routers import (
    feed_router,
    health_router,
    resolve_router,
    settings_router,
    subscriptions_router,
)
from subbed.api.services import AppServices, build_services
from subbed.core.config import Settings, get_settings
from subbed.core.constants import API_TAGS, API_V1_PREFIX, APP_DESCRIPTION, APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the service container on startup unless one was injected into
    ``create_app``; services built here are closed on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None
    """
    logger.info("Starting %s v%s", APP_NAME, APP_VERSION)

    owned: AppServices | None = None
    if getattr(app.state, "services", None) is None:
        owned = await build_services(app.state.settings)
        app.state.services = owned
        logger.info("Storage backend: %s", owned.stores.backend)

    try:
        yield
    finally:
        logger.info("Shutting down %s", APP_NAME)
        if owned is not None:
            await owned.close()
            app.state.services = None


def create_app(
    settings: Settings | None = None,
    services: AppServices | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (defaults to cached settings)
        services: Pre-built service container; when given, the lifespan
            neither builds nor closes services

    Returns:
        Configured FastAPI application
    """
    settings = settings or (services.settings if services else get_settings())

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        lifespan=lifespan,
        openapi_tags=API_TAGS,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_logging_middleware(app)
    setup_error_handler(app)
    setup_rate_limiter(app, settings)
    setup_prometheus(app, settings)

    app.include_router(feed_router, prefix=API_V1_PREFIX)
    app.include_router(resolve_router, prefix=API_V1_PREFIX)
    app.include_router(subscriptions_router, prefix=API_V1_PREFIX)
    app.include_router(settings_router, prefix=API_V1_PREFIX)
    app.include_router(health_router)  # Health endpoints at root level

    logger.debug("Application created")
    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "subbed.api.app:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )

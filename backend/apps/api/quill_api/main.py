"""
Quill API - FastAPI application entry point.

This module initializes the FastAPI application and configures
middleware, routers, and lifecycle events.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from arq import create_pool
from arq.connections import RedisSettings
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quill_core import get_logger, init_logging

from . import dependencies
from .config import settings
from .routers import articles, translations

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifecycle manager.

    Handles startup and shutdown events for the application.

    Args:
        app: The FastAPI application instance.

    Yields:
        None during application runtime.
    """
    # Startup: Initialize resources
    from quill_database.session import close_database, init_database

    init_logging(settings.log_level)
    logger.info("Starting Quill API", extra={"version": settings.version})
    init_database(settings.database_url)

    # Initialize Redis pool for task queue
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    dependencies.redis_pool = await create_pool(redis_settings)
    logger.info("Redis pool initialized")

    yield

    # Shutdown: Cleanup resources
    if dependencies.redis_pool:
        await dependencies.redis_pool.close()
        dependencies.redis_pool = None
        logger.info("Redis pool closed")
    await close_database()
    logger.info("Shutting down Quill API")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    Returns:
        A configured application instance.
    """
    app = FastAPI(
        title="Quill API",
        description="Quill - article platform with background translations",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routers
    app.include_router(articles.router, prefix="/api/articles", tags=["Articles"])
    app.include_router(translations.router, prefix="/api/translations", tags=["Translations"])

    @app.get("/api/health")
    async def health_check() -> dict[str, str]:
        """
        Health check endpoint.

        Returns:
            Dictionary containing service status and version.
        """
        return {"status": "healthy", "version": settings.version}

    return app


app = create_app()

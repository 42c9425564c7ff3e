"""Main FastAPI application entry point.

This module initializes the FastAPI application with all routers, middleware,
and lifecycle events for the News Synchronization Engine.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from news_sync.api.dependencies import get_sync_controller, shutdown_sync
from news_sync.api.routers import health, sync
from news_sync.adapters.database import close_database, get_database_manager
from news_sync.core.config import settings
from news_sync.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle events.

    Startup configures logging, connects the database, creates the schema
    and fails jobs a previous process left unfinished. Shutdown stops
    running jobs, closes provider clients and the database.

    Args:
        app: FastAPI application instance
    """
    setup_logging()

    # Startup
    logger.info("=" * 80)
    logger.info("Starting News Synchronization Engine")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url}")
    logger.info(f"Sources: {', '.join(settings.sync_default_sources)}")
    logger.info("=" * 80)

    try:
        await get_database_manager()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise

    controller = await get_sync_controller()
    await controller.recover_unfinished()

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down News Synchronization Engine")

    try:
        await shutdown_sync()
        logger.info("Sync jobs stopped and source clients closed")
    except Exception as e:
        logger.error(f"Error stopping sync jobs: {e}")

    try:
        await close_database()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error closing database: {e}")

    logger.info("Application shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.api_title,
    description=(
        "News Synchronization Engine - pulls articles from external news providers "
        "per language and category, deduplicates them by content fingerprint, and "
        "tracks each run as a sync job that can be listed, cancelled and retried."
    ),
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.api_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add GZip compression middleware
app.add_middleware(
    GZipMiddleware,
    minimum_size=1000,  # Only compress responses larger than 1KB
)

app.include_router(sync.router, prefix=settings.api_prefix, tags=["sync"])
app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint providing API information.

    Returns:
        Basic API information and links to documentation
    """
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "status": "operational",
        "docs": "/docs",
        "redoc": "/redoc",
        "openapi": "/openapi.json",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "news_sync.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )

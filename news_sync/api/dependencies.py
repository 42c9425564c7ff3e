"""Dependency injection for FastAPI routes.

This module provides dependency injection functions for repositories,
news source adapters and the sync job controller, enabling clean separation
of concerns and easy testing.
"""

from typing import Annotated, Optional

from fastapi import Depends

from news_sync.adapters.database import get_database_manager
from news_sync.adapters.news_sources import GoogleNewsRSSAdapter, NewsAPIAdapter, NewsSourceAdapter
from news_sync.core.config import settings
from news_sync.core.constants import NewsSource
from news_sync.repositories.article_repository import SQLiteArticleRepository
from news_sync.repositories.job_repository import SQLiteSyncJobRepository
from news_sync.services.cancellation import CancellationRegistry
from news_sync.services.job_controller import SyncJobController
from news_sync.services.sync_dispatcher import SyncDispatcher
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)

ADAPTER_FACTORIES = {
    NewsSource.NEWSAPI.value: NewsAPIAdapter,
    NewsSource.GOOGLE_NEWS.value: GoogleNewsRSSAdapter,
}

# Process-wide instances; jobs outlive the request that started them
_news_sources: Optional[dict[str, NewsSourceAdapter]] = None
_sync_controller: Optional[SyncJobController] = None


# ============================================================================
# Repository Dependencies
# ============================================================================


async def get_article_repository() -> SQLiteArticleRepository:
    """Get article repository instance.

    Returns:
        Article repository bound to the shared connection and lock
    """
    manager = await get_database_manager()
    return SQLiteArticleRepository(await manager.get_connection(), manager.lock)


async def get_job_repository() -> SQLiteSyncJobRepository:
    """Get sync job repository instance.

    Returns:
        Job repository bound to the shared connection and lock
    """
    manager = await get_database_manager()
    return SQLiteSyncJobRepository(await manager.get_connection(), manager.lock)


# ============================================================================
# Adapter Dependencies
# ============================================================================


def get_news_sources() -> dict[str, NewsSourceAdapter]:
    """Get the configured news source adapters keyed by source name.

    Unknown names in ``settings.sync_default_sources`` are skipped with a warning.
    """
    global _news_sources

    if _news_sources is None:
        sources: dict[str, NewsSourceAdapter] = {}
        for name in settings.sync_default_sources:
            factory = ADAPTER_FACTORIES.get(name)
            if factory is None:
                logger.warning(f"Ignoring unknown news source in configuration: {name}")
                continue
            sources[name] = factory()
        _news_sources = sources

    return _news_sources


# ============================================================================
# Service Dependencies
# ============================================================================


async def get_sync_controller() -> SyncJobController:
    """Get the process-wide sync job controller.

    Returns:
        Controller wired to the job store, article store and news sources
    """
    global _sync_controller

    if _sync_controller is None:
        job_repo = await get_job_repository()
        article_repo = await get_article_repository()
        cancellations = CancellationRegistry()
        dispatcher = SyncDispatcher(
            job_repo=job_repo,
            article_repo=article_repo,
            news_sources=get_news_sources(),
            cancellations=cancellations,
        )
        _sync_controller = SyncJobController(job_repo, dispatcher, cancellations)

    return _sync_controller


async def shutdown_sync() -> None:
    """Stop running jobs and close news source clients.

    This should be called during application shutdown, before the database
    is closed.
    """
    global _news_sources, _sync_controller

    if _sync_controller is not None:
        await _sync_controller.shutdown()
        _sync_controller = None

    if _news_sources is not None:
        for adapter in _news_sources.values():
            await adapter.close()
        _news_sources = None


# ============================================================================
# Type Aliases for Dependency Injection
# ============================================================================

SyncControllerDep = Annotated[SyncJobController, Depends(get_sync_controller)]

"""Repositories package.

This package contains the article store and job store implementations.
"""

from news_sync.repositories.article_repository import SQLiteArticleRepository
from news_sync.repositories.base import ArticleRepository, SyncJobRepository
from news_sync.repositories.job_repository import SQLiteSyncJobRepository

__all__ = [
    "ArticleRepository",
    "SyncJobRepository",
    "SQLiteArticleRepository",
    "SQLiteSyncJobRepository",
]

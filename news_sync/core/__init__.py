"""Core functionality for the news synchronization engine."""

from news_sync.core.config import settings
from news_sync.core.exceptions import (
    CircuitBreakerOpenError,
    DatabaseError,
    DuplicateArticleError,
    InvalidJobStateError,
    InvalidRequestError,
    JobNotFoundError,
    JobRepositoryError,
    NewsSyncError,
    ProviderError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
    StorageFailureError,
)

__all__ = [
    "settings",
    "NewsSyncError",
    "InvalidRequestError",
    "JobNotFoundError",
    "InvalidJobStateError",
    "ProviderError",
    "ProviderUnavailableError",
    "ProviderRateLimitedError",
    "DatabaseError",
    "StorageFailureError",
    "DuplicateArticleError",
    "JobRepositoryError",
    "CircuitBreakerOpenError",
]

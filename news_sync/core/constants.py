"""System constants and enumerations.

This module defines constants used throughout the application for consistency
and maintainability.
"""

from enum import Enum


class Language(str, Enum):
    """Languages a sync can be requested for."""

    ENGLISH = "ENGLISH"
    INDONESIAN = "INDONESIAN"


class SyncStatus(str, Enum):
    """Sync job lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {SyncStatus.SUCCESS, SyncStatus.PARTIAL, SyncStatus.FAILED, SyncStatus.CANCELLED}
)


class NewsSource(str, Enum):
    """Supported news providers."""

    NEWSAPI = "newsapi"
    GOOGLE_NEWS = "google_news"


# Categories offered by the admin sync form
NEWS_CATEGORIES = (
    "general",
    "business",
    "technology",
    "entertainment",
    "health",
    "science",
    "sports",
)

# Short forms accepted for the categories above
CATEGORY_ALIASES = {
    "tech": "technology",
    "sport": "sports",
    "top": "general",
    "headlines": "general",
    "finance": "business",
}

# Pagination
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500

# Recorded when a job is found unfinished at start-up
INTERRUPTED_JOB_ERROR = "Interrupted by service restart"

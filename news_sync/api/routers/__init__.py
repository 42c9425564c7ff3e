"""API routers package.

This package contains all FastAPI routers for the application.
"""

from news_sync.api.routers import health, sync

__all__ = [
    "sync",
    "health",
]

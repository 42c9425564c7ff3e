"""Service layer for business logic.

This module exports all service classes for easy importing.
"""

from news_sync.services.cancellation import CancellationRegistry
from news_sync.services.dedup_index import DedupIndex
from news_sync.services.job_controller import SyncJobController
from news_sync.services.sync_dispatcher import SyncDispatcher

__all__ = [
    "CancellationRegistry",
    "DedupIndex",
    "SyncDispatcher",
    "SyncJobController",
]

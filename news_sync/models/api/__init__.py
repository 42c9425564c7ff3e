"""API request and response models."""

from news_sync.models.api.sync import (
    SyncHistoryItem,
    SyncHistoryResponse,
    SyncJobDetail,
    SyncNewsRequest,
    SyncResultResponse,
)

__all__ = [
    "SyncNewsRequest",
    "SyncResultResponse",
    "SyncHistoryItem",
    "SyncHistoryResponse",
    "SyncJobDetail",
]

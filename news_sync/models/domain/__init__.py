"""Domain models for the news synchronization engine."""

from news_sync.models.domain.article import Article, ArticleCandidate, CandidatePage, SourceQuery
from news_sync.models.domain.sync import SyncJob, SyncJobFilter, SyncRequest

__all__ = [
    "Article",
    "ArticleCandidate",
    "CandidatePage",
    "SourceQuery",
    "SyncJob",
    "SyncJobFilter",
    "SyncRequest",
]

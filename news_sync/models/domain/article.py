"""Article domain models.

``ArticleCandidate`` is what a source adapter produces; it is never stored
as such. A candidate that passes deduplication becomes an ``Article`` in
the article store.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from news_sync.core.constants import Language


class SourceQuery(BaseModel):
    """One category/language slice of a sync request handed to an adapter.

    ``limit`` is the remaining global budget, or None when uncapped.
    """

    model_config = ConfigDict(frozen=True)

    category: str
    language: Language
    limit: int | None = None


class ArticleCandidate(BaseModel):
    """Provider-normalized article that has not been deduplicated yet."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    language: Language
    category: str
    title: str
    body: str
    published_at: datetime
    content_fingerprint: str
    provider: str
    publisher_name: str
    url: str | None = None
    summary: str | None = None
    image_url: str | None = None
    external_id: str | None = None


class CandidatePage(BaseModel):
    """One page of adapter output.

    ``errors`` holds one message per malformed item skipped on this page.
    ``next_cursor`` is None when the provider is exhausted.
    """

    candidates: list[ArticleCandidate] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    next_cursor: str | None = None


class Article(BaseModel):
    """Article persisted in the article store."""

    id: str
    title: str
    slug: str
    summary: str | None = None
    content: str
    publisher: str
    source_url: str | None = None
    image_url: str | None = None
    external_id: str | None = None
    provider: str
    language: Language
    category: str
    published_at: datetime
    created_at: datetime
    fingerprint: str
    sync_job_id: str | None = None
    is_external: bool = True

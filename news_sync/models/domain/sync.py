"""Sync request and sync job domain models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, computed_field

from news_sync.core.constants import DEFAULT_PAGE_SIZE, Language, SyncStatus


class SyncRequest(BaseModel):
    """Parameters of one sync run.

    Immutable once a job has been created from it. ``categories`` and
    ``sources`` keep their first-seen order with duplicates removed.
    """

    model_config = ConfigDict(frozen=True)

    categories: tuple[str, ...]
    language: Language
    sources: tuple[str, ...] | None = None
    limit: int | None = None


class SyncJob(BaseModel):
    """One ingestion run and its result counters.

    ``total_synced`` is derived from the other counters so that
    ``total_synced == new_articles + duplicates`` always holds.

    ``cancel_requested`` is an audit record of a cancel call. The running
    dispatcher does not read it; it stops on the in-process signal held by
    ``CancellationRegistry``.
    """

    id: str
    request: SyncRequest
    status: SyncStatus = SyncStatus.PENDING
    created_at: datetime
    started_at: datetime | None = None
    finished_at: datetime | None = None
    new_articles: int = 0
    duplicates: int = 0
    errors: list[str] = Field(default_factory=list)
    cancel_requested: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_synced(self) -> int:
        return self.new_articles + self.duplicates

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def synced_at(self) -> datetime:
        """Most meaningful timestamp for history listings."""
        return self.finished_at or self.started_at or self.created_at


class SyncJobFilter(BaseModel):
    """Filter for listing sync history."""

    status: SyncStatus | None = None
    language: Language | None = None
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0

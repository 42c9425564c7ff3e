"""Request and response models for the sync admin API.

Field names are camelCase on the wire; Python code uses snake_case.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from news_sync.models.domain import SyncJob


class CamelModel(BaseModel):
    """Base model serializing fields in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SyncNewsRequest(CamelModel):
    """Body of ``POST /admin/sync-news``.

    ``language`` is kept as a plain string so that an unsupported value is
    reported as a 400 by the controller rather than a 422 by FastAPI.
    """

    categories: list[str] = Field(..., description="Categories to sync, e.g. ['technology']")
    language: str = Field(..., description="ENGLISH or INDONESIAN")
    sources: Optional[list[str]] = Field(None, description="Source names; defaults to all configured")
    limit: Optional[int] = Field(None, description="Maximum candidates to process across all sources")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "categories": ["technology", "business"],
                "language": "ENGLISH",
                "limit": 20,
            }
        }
    )


class SyncResultResponse(CamelModel):
    """Counters of a finished sync job.

    ``errors`` is null when the job recorded none.
    """

    id: str
    status: str
    total_synced: int
    errors: Optional[list[str]] = None
    duplicates: int
    new_articles: int

    @classmethod
    def from_job(cls, job: SyncJob) -> "SyncResultResponse":
        return cls(
            id=job.id,
            status=job.status.value,
            total_synced=job.total_synced,
            errors=list(job.errors) or None,
            duplicates=job.duplicates,
            new_articles=job.new_articles,
        )


class SyncHistoryItem(CamelModel):
    """One row of the sync history listing."""

    id: str
    synced_at: datetime
    total_synced: int
    language: str
    categories: list[str]
    status: str

    @classmethod
    def from_job(cls, job: SyncJob) -> "SyncHistoryItem":
        return cls(
            id=job.id,
            synced_at=job.synced_at,
            total_synced=job.total_synced,
            language=job.request.language.value,
            categories=list(job.request.categories),
            status=job.status.value,
        )


class SyncHistoryResponse(BaseModel):
    data: list[SyncHistoryItem]


class SyncJobDetail(CamelModel):
    """Full state of one sync job."""

    id: str
    status: str
    language: str
    categories: list[str]
    sources: Optional[list[str]] = None
    limit: Optional[int] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    total_synced: int
    new_articles: int
    duplicates: int
    errors: list[str]
    cancel_requested: bool

    @classmethod
    def from_job(cls, job: SyncJob) -> "SyncJobDetail":
        request = job.request
        return cls(
            id=job.id,
            status=job.status.value,
            language=request.language.value,
            categories=list(request.categories),
            sources=list(request.sources) if request.sources else None,
            limit=request.limit,
            created_at=job.created_at,
            started_at=job.started_at,
            finished_at=job.finished_at,
            total_synced=job.total_synced,
            new_articles=job.new_articles,
            duplicates=job.duplicates,
            errors=list(job.errors),
            cancel_requested=job.cancel_requested,
        )

"""News synchronization admin API router.

This module provides REST endpoints for running news syncs and for
inspecting, cancelling and retrying sync jobs.
"""

from typing import NoReturn, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from news_sync.api.dependencies import SyncControllerDep
from news_sync.core.config import settings
from news_sync.core.constants import MAX_PAGE_SIZE, Language, SyncStatus
from news_sync.core.exceptions import (
    InvalidJobStateError,
    InvalidRequestError,
    JobNotFoundError,
)
from news_sync.models.api.sync import (
    SyncHistoryItem,
    SyncHistoryResponse,
    SyncJobDetail,
    SyncNewsRequest,
    SyncResultResponse,
)
from news_sync.models.domain import SyncJobFilter
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin")


def _raise_http(e: Exception, action: str) -> NoReturn:
    """Translate a controller exception into an HTTPException."""
    if isinstance(e, InvalidRequestError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    if isinstance(e, JobNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    if isinstance(e, InvalidJobStateError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    logger.error(f"Unexpected error during {action}: {e}", exc_info=True)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{action} failed: {e}",
    ) from e


@router.post(
    "/sync-news",
    response_model=SyncResultResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Sync news from external sources",
    description=(
        "Fetch articles for the requested categories and language from the "
        "configured sources, skip content that is already stored, and return "
        "the counters of the finished job. Per-article and per-source failures "
        "are reported in `errors` rather than failing the request."
    ),
)
async def sync_news(
    request: SyncNewsRequest,
    controller: SyncControllerDep,
) -> SyncResultResponse:
    """Run a sync job and wait for it to finish.

    Args:
        request: Categories, language, optional sources and limit
        controller: Sync job controller (injected)

    Returns:
        Counters of the finished job

    Raises:
        HTTPException: 400 if the request is invalid
    """
    logger.info(
        "Received sync request",
        extra={
            "categories": request.categories,
            "language": request.language,
            "sources": request.sources,
            "limit": request.limit,
        },
    )

    try:
        sync_request = controller.build_request(
            categories=request.categories,
            language=request.language,
            sources=request.sources,
            limit=request.limit,
        )
        job = await controller.sync(sync_request)
    except Exception as e:
        _raise_http(e, "News sync")

    return SyncResultResponse.from_job(job)


@router.get(
    "/sync-history",
    response_model=SyncHistoryResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="List sync jobs",
    description="List sync jobs newest first, optionally filtered by status and language.",
)
async def sync_history(
    controller: SyncControllerDep,
    status_filter: Optional[SyncStatus] = Query(None, alias="status", description="Filter by job status"),
    language: Optional[Language] = Query(None, description="Filter by language"),
    limit: int = Query(
        settings.sync_history_page_size,
        ge=1,
        le=MAX_PAGE_SIZE,
        description="Maximum number of jobs to return",
    ),
    offset: int = Query(0, ge=0, description="Number of jobs to skip"),
) -> SyncHistoryResponse:
    """List sync history.

    Args:
        controller: Sync job controller (injected)
        status_filter: Optional status filter
        language: Optional language filter
        limit: Page size
        offset: Pagination offset

    Returns:
        History rows wrapped in ``data``
    """
    job_filter = SyncJobFilter(status=status_filter, language=language, limit=limit, offset=offset)

    try:
        jobs = await controller.history(job_filter)
    except Exception as e:
        _raise_http(e, "Listing sync history")

    return SyncHistoryResponse(data=[SyncHistoryItem.from_job(job) for job in jobs])


@router.get(
    "/sync/{job_id}",
    response_model=SyncJobDetail,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Get a sync job",
)
async def get_sync_job(job_id: str, controller: SyncControllerDep) -> SyncJobDetail:
    try:
        job = await controller.get(job_id)
    except Exception as e:
        _raise_http(e, "Loading sync job")

    return SyncJobDetail.from_job(job)


@router.post(
    "/sync/{job_id}/cancel",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Cancel a sync job",
    description=(
        "Ask a running job to stop. The job stops before its next article and "
        "finishes as `cancelled`. Cancelling a finished job does nothing."
    ),
)
async def cancel_sync(job_id: str, controller: SyncControllerDep) -> Response:
    """Request cancellation of a sync job.

    Raises:
        HTTPException: 404 if the job does not exist
    """
    try:
        await controller.cancel(job_id)
    except Exception as e:
        _raise_http(e, "Cancelling sync job")

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/sync/{job_id}/retry",
    response_model=SyncResultResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Retry a sync job",
    description=(
        "Run a new job with the same parameters as a finished one and return its "
        "counters. The original job is left unchanged."
    ),
)
async def retry_sync(job_id: str, controller: SyncControllerDep) -> SyncResultResponse:
    """Retry a finished sync job as a new job.

    Raises:
        HTTPException: 404 if the job does not exist, 409 if it is still active
    """
    try:
        new_job_id = await controller.retry(job_id)
        job = await controller.wait(new_job_id)
    except Exception as e:
        _raise_http(e, "Retrying sync job")

    return SyncResultResponse.from_job(job)

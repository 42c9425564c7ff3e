"""Sync job lifecycle: start, wait, cancel, retry and history.

This module provides the SyncJobController which validates sync requests,
creates jobs in the job store and launches a dispatcher task per job.
"""

import asyncio
import functools
from typing import Any, Iterable, Optional

from news_sync.core.constants import INTERRUPTED_JOB_ERROR, Language, SyncStatus
from news_sync.core.exceptions import (
    InvalidJobStateError,
    InvalidRequestError,
)
from news_sync.models.domain import SyncJob, SyncJobFilter, SyncRequest
from news_sync.repositories.base import SyncJobRepository
from news_sync.services.cancellation import CancellationRegistry
from news_sync.services.sync_dispatcher import SyncDispatcher
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    """Stripped, non-empty values in first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        value = value.strip()
        if value:
            seen.setdefault(value, None)
    return tuple(seen)


class SyncJobController:
    """Owns the lifecycle of sync jobs in this process.

    Each accepted request becomes a job in the job store and an asyncio
    task running ``SyncDispatcher.run``. Tasks are tracked by job id so
    that callers can wait for them and cancellation can reach them.

    Attributes:
        job_repo: Job store
        dispatcher: Dispatcher executing the jobs
        cancellations: Cancellation signals shared with the dispatcher
    """

    def __init__(
        self,
        job_repo: SyncJobRepository,
        dispatcher: SyncDispatcher,
        cancellations: CancellationRegistry,
    ):
        self.job_repo = job_repo
        self.dispatcher = dispatcher
        self.cancellations = cancellations
        self._tasks: dict[str, asyncio.Task[SyncJob]] = {}

    def build_request(
        self,
        categories: Any,
        language: Any,
        sources: Any = None,
        limit: Any = None,
    ) -> SyncRequest:
        """Validate raw sync parameters.

        Args:
            categories: Non-empty list of category names
            language: Language name (case-insensitive)
            sources: Optional list of source names; empty means the defaults
            limit: Optional positive cap on candidates processed

        Returns:
            Normalized request

        Raises:
            InvalidRequestError: If any parameter is invalid
        """
        if isinstance(categories, str) or not isinstance(categories, (list, tuple)):
            raise InvalidRequestError("categories must be a list of category names")
        if not all(isinstance(c, str) for c in categories):
            raise InvalidRequestError("categories must be a list of category names")
        normalized_categories = _unique(categories)
        if not normalized_categories:
            raise InvalidRequestError("at least one category is required")

        if isinstance(language, Language):
            normalized_language = language
        else:
            try:
                normalized_language = Language(str(language).strip().upper())
            except ValueError as e:
                allowed = ", ".join(lang.value for lang in Language)
                raise InvalidRequestError(
                    f"unsupported language {language!r} (expected one of {allowed})"
                ) from e

        normalized_sources: Optional[tuple[str, ...]] = None
        if sources is not None:
            if isinstance(sources, str) or not isinstance(sources, (list, tuple)):
                raise InvalidRequestError("sources must be a list of source names")
            if not all(isinstance(s, str) for s in sources):
                raise InvalidRequestError("sources must be a list of source names")
            normalized_sources = _unique(s.lower() for s in sources) or None
            if normalized_sources:
                unknown = [s for s in normalized_sources if s not in self.dispatcher.available_sources]
                if unknown:
                    raise InvalidRequestError(
                        f"unknown sources: {', '.join(unknown)} "
                        f"(available: {', '.join(self.dispatcher.available_sources)})"
                    )

        if limit is not None:
            if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
                raise InvalidRequestError("limit must be a positive integer")

        return SyncRequest(
            categories=normalized_categories,
            language=normalized_language,
            sources=normalized_sources,
            limit=limit,
        )

    async def start_sync(self, request: SyncRequest) -> str:
        """Create a job for ``request`` and start it in the background.

        Returns:
            The new job's id
        """
        job = await self.job_repo.create(request)
        task = asyncio.create_task(self.dispatcher.run(job), name=f"sync-job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(functools.partial(self._forget, job.id))

        logger.info(
            f"Started sync job {job.id}",
            extra={"job_id": job.id, "categories": list(request.categories)},
        )
        return job.id

    def _forget(self, job_id: str, task: "asyncio.Task[SyncJob]") -> None:
        self._tasks.pop(job_id, None)
        if task.cancelled():
            logger.warning(f"Sync job {job_id} task was cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Sync job {job_id} crashed: {exc}", exc_info=exc)

    def is_running(self, job_id: str) -> bool:
        return job_id in self._tasks

    async def wait(self, job_id: str) -> SyncJob:
        """Wait for a job's task to finish and return the job snapshot.

        The task is shielded: a caller that goes away does not stop the job.

        Raises:
            JobNotFoundError: If no such job exists
        """
        task = self._tasks.get(job_id)
        if task is not None:
            try:
                await asyncio.shield(task)
            except Exception as e:
                logger.debug(f"Sync job {job_id} ended with an error: {e}")
        return await self.job_repo.get(job_id)

    async def sync(self, request: SyncRequest) -> SyncJob:
        """Run a sync to completion and return the finished job."""
        job_id = await self.start_sync(request)
        return await self.wait(job_id)

    async def cancel(self, job_id: str) -> SyncJob:
        """Request cancellation of a job.

        Cancelling a terminal job is a no-op. A job with no live task in
        this process is finalized as cancelled immediately.

        Raises:
            JobNotFoundError: If no such job exists
        """
        job = await self.job_repo.get(job_id)
        if job.is_terminal:
            logger.info(f"Ignoring cancellation of finished sync job {job_id} ({job.status.value})")
            return job

        self.cancellations.request(job_id)
        job = await self.job_repo.request_cancel(job_id)

        if job.is_terminal:
            self.cancellations.discard(job_id)
            return job

        if job_id not in self._tasks:
            self.cancellations.discard(job_id)
            try:
                job = await self.job_repo.set_status(job_id, SyncStatus.CANCELLED)
            except InvalidJobStateError:
                job = await self.job_repo.get(job_id)

        return job

    async def retry(self, job_id: str) -> str:
        """Start a new job with the same request as a finished one.

        Returns:
            The new job's id

        Raises:
            JobNotFoundError: If no such job exists
            InvalidJobStateError: If the job is still pending or running
        """
        original = await self.job_repo.get(job_id)
        if not original.is_terminal:
            raise InvalidJobStateError(
                f"Sync job {job_id} is {original.status.value}; only finished jobs can be retried"
            )

        new_job_id = await self.start_sync(original.request)
        logger.info(f"Retrying sync job {job_id} as {new_job_id}")
        return new_job_id

    async def get(self, job_id: str) -> SyncJob:
        return await self.job_repo.get(job_id)

    async def history(self, job_filter: Optional[SyncJobFilter] = None) -> list[SyncJob]:
        """Jobs newest first, optionally filtered."""
        return await self.job_repo.list(job_filter)

    async def recover_unfinished(self) -> int:
        """Fail jobs left pending or running by a previous process.

        Returns:
            Number of jobs finalized
        """
        recovered = await self.job_repo.fail_unfinished(INTERRUPTED_JOB_ERROR)
        if recovered:
            logger.warning(f"Marked {recovered} interrupted sync job(s) as failed")
        return recovered

    async def shutdown(self) -> None:
        """Signal every live job to stop and wait for them to finalize."""
        tasks = list(self._tasks.items())
        if not tasks:
            return

        logger.info(f"Stopping {len(tasks)} running sync job(s)")
        for job_id, _ in tasks:
            self.cancellations.request(job_id)
        await asyncio.gather(*(task for _, task in tasks), return_exceptions=True)

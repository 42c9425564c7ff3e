"""Sync dispatcher that runs one sync job end to end.

This module provides the SyncDispatcher which pages through every
category and source of a job's request, deduplicates candidates by content
fingerprint, stores new articles and streams counters and errors into the
job store as it goes.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Mapping

from news_sync.adapters.news_sources.base import NewsSourceAdapter
from news_sync.core.config import settings
from news_sync.core.constants import SyncStatus
from news_sync.core.exceptions import (
    DuplicateArticleError,
    InvalidJobStateError,
    JobRepositoryError,
    ProviderError,
    ProviderRateLimitedError,
    StorageFailureError,
)
from news_sync.models.domain import Article, ArticleCandidate, CandidatePage, SourceQuery, SyncJob
from news_sync.repositories.base import ArticleRepository, SyncJobRepository
from news_sync.services.cancellation import CancellationRegistry
from news_sync.services.dedup_index import DedupIndex
from news_sync.utils.logging import LogContext, get_logger
from news_sync.utils.retry import retry_async

logger = get_logger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")
MAX_SLUG_LENGTH = 80


def slugify(title: str, suffix: str) -> str:
    """URL slug from a title plus a short unique suffix."""
    base = _SLUG_RE.sub("-", title.lower()).strip("-")[:MAX_SLUG_LENGTH].rstrip("-")
    return f"{base}-{suffix}" if base else suffix


def resolve_status(new_articles: int, duplicates: int, error_count: int) -> SyncStatus:
    """Final status of a run that was not cancelled."""
    if error_count == 0:
        return SyncStatus.SUCCESS
    if new_articles + duplicates == 0:
        return SyncStatus.FAILED
    return SyncStatus.PARTIAL


class _Budget:
    """Remaining number of candidates a job may still process."""

    def __init__(self, limit: int | None):
        self.remaining = limit

    @property
    def exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0

    def consume(self) -> None:
        if self.remaining is not None:
            self.remaining -= 1


class SyncDispatcher:
    """Executes sync jobs against the configured news sources.

    For each (category, source) pair of a job's request the dispatcher:
    1. Fetches candidate pages until the source is exhausted or the limit is hit
    2. Checks the cancellation signal before every candidate
    3. Skips candidates whose fingerprint is already stored (duplicate)
    4. Stores the rest, recording each outcome in the job store immediately

    Provider failures are recorded as job errors and never abort the run.

    Attributes:
        job_repo: Job store
        article_repo: Article store
        news_sources: Adapters keyed by source name
        cancellations: Cancellation signals shared with the job controller
    """

    def __init__(
        self,
        job_repo: SyncJobRepository,
        article_repo: ArticleRepository,
        news_sources: Mapping[str, NewsSourceAdapter],
        cancellations: CancellationRegistry,
        rate_limit_max_attempts: int | None = None,
        rate_limit_min_wait: float | None = None,
        rate_limit_max_wait: float | None = None,
        rate_limit_max_retry_after: float | None = None,
    ):
        """Initialize the sync dispatcher.

        Args:
            job_repo: Job store
            article_repo: Article store
            news_sources: Adapters keyed by source name
            cancellations: Cancellation registry
            rate_limit_max_attempts: Attempts per rate-limited page (default from settings)
            rate_limit_min_wait: First backoff in seconds (default from settings)
            rate_limit_max_wait: Backoff ceiling in seconds (default from settings)
            rate_limit_max_retry_after: Ceiling for a provider-requested wait (default from settings)
        """
        self.job_repo = job_repo
        self.article_repo = article_repo
        self.news_sources = dict(news_sources)
        self.cancellations = cancellations
        self.rate_limit_max_attempts = (
            rate_limit_max_attempts
            if rate_limit_max_attempts is not None
            else settings.sync_rate_limit_max_attempts
        )
        self.rate_limit_min_wait = (
            rate_limit_min_wait if rate_limit_min_wait is not None else settings.sync_rate_limit_min_wait
        )
        self.rate_limit_max_wait = (
            rate_limit_max_wait if rate_limit_max_wait is not None else settings.sync_rate_limit_max_wait
        )
        self.rate_limit_max_retry_after = (
            rate_limit_max_retry_after
            if rate_limit_max_retry_after is not None
            else settings.sync_rate_limit_max_retry_after
        )

        logger.info(f"Initialized SyncDispatcher with sources: {', '.join(self.news_sources)}")

    @property
    def available_sources(self) -> list[str]:
        """Source names a request may use; also the default when it names none."""
        return list(self.news_sources)

    async def run(self, job: SyncJob) -> SyncJob:
        """Run ``job`` to a terminal status.

        Log records emitted while the job runs carry its ``job_id``.

        Args:
            job: A pending job

        Returns:
            Final snapshot of the job
        """
        with LogContext(job_id=job.id):
            try:
                return await self._run(job)
            finally:
                self.cancellations.discard(job.id)

    async def _run(self, job: SyncJob) -> SyncJob:
        if self.cancellations.is_cancelled(job.id):
            logger.info("Sync job cancelled before start")
            return await self._finalize(job.id, SyncStatus.CANCELLED)

        await self.job_repo.set_status(job.id, SyncStatus.RUNNING)
        logger.info(
            f"Sync job started: categories={list(job.request.categories)}, "
            f"language={job.request.language.value}, limit={job.request.limit}"
        )

        try:
            cancelled = await self._ingest(job)
        except Exception as e:
            logger.error(f"Sync job aborted: {e}", exc_info=True)
            try:
                await self.job_repo.update_progress(job.id, errors=[f"Sync aborted: {e}"])
            except JobRepositoryError as store_error:
                # The job must not stay running; finalize without the message
                logger.error(f"Could not record abort of sync job: {store_error}")
                return await self._finalize(job.id, SyncStatus.FAILED)
            cancelled = False

        if cancelled:
            logger.info("Sync job stopped on cancellation request")
            return await self._finalize(job.id, SyncStatus.CANCELLED)

        snapshot = await self.job_repo.get(job.id)
        status = resolve_status(snapshot.new_articles, snapshot.duplicates, len(snapshot.errors))
        return await self._finalize(job.id, status)

    async def _finalize(self, job_id: str, status: SyncStatus) -> SyncJob:
        try:
            final = await self.job_repo.set_status(job_id, status)
        except InvalidJobStateError:
            # Finalized elsewhere first; keep that outcome
            final = await self.job_repo.get(job_id)

        logger.info(
            f"Sync job finished: status={final.status.value}, new={final.new_articles}, "
            f"duplicates={final.duplicates}, errors={len(final.errors)}"
        )
        return final

    async def _ingest(self, job: SyncJob) -> bool:
        """Walk every category and source of the request.

        Returns:
            True if the run stopped because cancellation was requested
        """
        request = job.request
        sources = list(request.sources or self.news_sources)
        budget = _Budget(request.limit)
        dedup = DedupIndex(self.article_repo)

        for category in request.categories:
            for source_name in sources:
                if budget.exhausted:
                    logger.info(f"Sync limit of {request.limit} reached")
                    return False

                adapter = self.news_sources.get(source_name)
                if adapter is None:
                    await self._record_error(job.id, f"{source_name}: source is not configured")
                    continue

                if await self._ingest_source(job, adapter, category, budget, dedup):
                    return True

        return False

    async def _ingest_source(
        self,
        job: SyncJob,
        adapter: NewsSourceAdapter,
        category: str,
        budget: _Budget,
        dedup: DedupIndex,
    ) -> bool:
        """Page through one source for one category.

        Returns:
            True if cancellation was observed
        """
        cursor: str | None = None

        while True:
            if self.cancellations.is_cancelled(job.id):
                return True

            query = SourceQuery(category=category, language=job.request.language, limit=budget.remaining)
            try:
                page = await self._fetch_page(adapter, query, cursor)
            except ProviderRateLimitedError as e:
                await self._record_error(
                    job.id, f"{e} (gave up after {self.rate_limit_max_attempts} attempts)"
                )
                return False
            except ProviderError as e:
                await self._record_error(job.id, str(e))
                return False

            logger.debug(
                f"Fetched {len(page.candidates)} candidates from {adapter.source_name} "
                f"({category}), {len(page.errors)} skipped"
            )
            if page.errors:
                await self.job_repo.update_progress(job.id, errors=page.errors)

            for candidate in page.candidates:
                if budget.exhausted:
                    return False
                if self.cancellations.is_cancelled(job.id):
                    return True

                await self._process_candidate(job.id, candidate, dedup)
                budget.consume()

            if budget.exhausted or page.next_cursor is None:
                return False
            cursor = page.next_cursor

    async def _fetch_page(
        self, adapter: NewsSourceAdapter, query: SourceQuery, cursor: str | None
    ) -> CandidatePage:
        fetch = retry_async(
            max_attempts=self.rate_limit_max_attempts,
            min_wait=self.rate_limit_min_wait,
            max_wait=self.rate_limit_max_wait,
            exceptions=(ProviderRateLimitedError,),
            max_retry_after=self.rate_limit_max_retry_after,
        )(adapter.fetch_candidates)
        page: CandidatePage = await fetch(query, cursor)
        return page

    async def _process_candidate(
        self,
        job_id: str,
        candidate: ArticleCandidate,
        dedup: DedupIndex,
    ) -> None:
        """Classify one candidate as new, duplicate or error and record it."""
        fingerprint = candidate.content_fingerprint
        label = f"'{candidate.title[:80]}' from {candidate.publisher_name or candidate.provider}"

        try:
            if await dedup.exists(fingerprint):
                logger.debug(f"Duplicate content: {label}")
                await self.job_repo.update_progress(job_id, duplicates=1)
                return
        except StorageFailureError as e:
            await self._record_error(job_id, f"Failed to check {label}: {e}")
            return

        try:
            await self.article_repo.create(self.build_article(candidate, job_id))
        except DuplicateArticleError:
            # Stored by a concurrent job between the check and the insert
            dedup.record(fingerprint)
            await self.job_repo.update_progress(job_id, duplicates=1)
            return
        except StorageFailureError as e:
            await self._record_error(job_id, f"Failed to store {label}: {e}")
            return

        dedup.record(fingerprint)
        await self.job_repo.update_progress(job_id, new_articles=1)

    async def _record_error(self, job_id: str, message: str) -> None:
        logger.warning(message)
        await self.job_repo.update_progress(job_id, errors=[message])

    @staticmethod
    def build_article(candidate: ArticleCandidate, job_id: str) -> Article:
        """Article to store for a candidate ingested by ``job_id``."""
        article_id = str(uuid.uuid4())
        return Article(
            id=article_id,
            title=candidate.title,
            slug=slugify(candidate.title, article_id[:8]),
            summary=candidate.summary,
            content=candidate.body,
            publisher=candidate.publisher_name or candidate.provider,
            source_url=candidate.url,
            image_url=candidate.image_url,
            external_id=candidate.external_id,
            provider=candidate.provider,
            language=candidate.language,
            category=candidate.category,
            published_at=candidate.published_at,
            created_at=datetime.now(timezone.utc),
            fingerprint=candidate.content_fingerprint,
            sync_job_id=job_id,
        )

"""Unit tests for SyncDispatcher.

Sources are scripted in-process adapters; storage is an in-memory SQLite
database, so dedup and status finalization run against the real stores.
"""

from typing import Callable, Optional

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from news_sync.core.constants import Language, SyncStatus
from news_sync.core.exceptions import (
    JobRepositoryError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
    StorageFailureError,
)
from news_sync.models.domain import Article, CandidatePage, SyncRequest
from news_sync.repositories.article_repository import SQLiteArticleRepository
from news_sync.repositories.job_repository import SQLiteSyncJobRepository
from news_sync.services.sync_dispatcher import SyncDispatcher, resolve_status, slugify


class FlakyArticleRepository(SQLiteArticleRepository):
    """Article store that fails for chosen titles and reports each insert."""

    def __init__(
        self,
        base: SQLiteArticleRepository,
        fail_titles: tuple[str, ...] = (),
        crash_titles: tuple[str, ...] = (),
        on_create: Optional[Callable[[int], None]] = None,
        racing: bool = False,
    ):
        super().__init__(base.connection, base._lock)
        self.fail_titles = fail_titles
        self.crash_titles = crash_titles
        self.on_create = on_create
        self.racing = racing
        self.created = 0

    async def exists_fingerprint(self, fingerprint: str) -> bool:
        if self.racing:
            # Another job stores the same content between check and insert
            return False
        return await super().exists_fingerprint(fingerprint)

    async def create(self, article: Article) -> str:
        if article.title in self.fail_titles:
            raise StorageFailureError(f"disk full while storing '{article.title}'")
        if article.title in self.crash_titles:
            raise RuntimeError("boom")
        article_id = await super().create(article)
        self.created += 1
        if self.on_create:
            self.on_create(self.created)
        return article_id


class ErrorlessJobRepository(SQLiteSyncJobRepository):
    """Job store that cannot append error messages."""

    def __init__(self, base: SQLiteSyncJobRepository):
        super().__init__(base.connection, base._lock)

    async def update_progress(self, job_id, new_articles=0, duplicates=0, errors=()):
        if list(errors):
            raise JobRepositoryError("database is locked")
        await super().update_progress(job_id, new_articles=new_articles, duplicates=duplicates)


def make_dispatcher(job_repo, article_repo, cancellations, *sources):
    return SyncDispatcher(
        job_repo=job_repo,
        article_repo=article_repo,
        news_sources={source.source_name: source for source in sources},
        cancellations=cancellations,
        rate_limit_max_attempts=3,
        rate_limit_min_wait=0,
        rate_limit_max_wait=0,
    )


async def run_job(dispatcher, job_repo, request):
    job = await job_repo.create(request)
    return await dispatcher.run(job)


@pytest.mark.asyncio
async def test_unique_candidates_are_all_new(
    job_repo, article_repo, cancellations, scripted_source, items
):
    """Ten unique candidates and no failures: success with ten new articles."""
    source = scripted_source(pages=[items(10)])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)
    request = SyncRequest(
        categories=("tech",), language=Language.ENGLISH, sources=("scripted",), limit=10
    )

    job = await run_job(dispatcher, job_repo, request)

    assert job.status == SyncStatus.SUCCESS
    assert job.new_articles == 10
    assert job.duplicates == 0
    assert job.total_synced == 10
    assert job.errors == []
    assert job.started_at is not None
    assert job.finished_at is not None
    assert await article_repo.count(sync_job_id=job.id) == 10

    stored = await article_repo.list_articles(limit=1)
    assert stored[0].category == "technology"
    assert stored[0].sync_job_id == job.id


@pytest.mark.asyncio
async def test_rerun_reports_duplicates(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    """Running the same request twice stores nothing the second time."""
    source = scripted_source(pages=[items(10)])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)

    await run_job(dispatcher, job_repo, sync_request)
    second = await run_job(dispatcher, job_repo, sync_request)

    assert second.status == SyncStatus.SUCCESS
    assert second.new_articles == 0
    assert second.duplicates == 10
    assert second.total_synced == 10
    assert second.errors == []
    assert await article_repo.count() == 10


@pytest.mark.asyncio
async def test_storage_failures_make_partial(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    """Five candidates with two storage failures: partial, three new, two errors."""
    source = scripted_source(pages=[items(5)])
    flaky = FlakyArticleRepository(article_repo, fail_titles=("Story 2", "Story 4"))
    dispatcher = make_dispatcher(job_repo, flaky, cancellations, source)

    job = await run_job(dispatcher, job_repo, sync_request)

    assert job.status == SyncStatus.PARTIAL
    assert job.new_articles == 3
    assert job.duplicates == 0
    assert job.total_synced == 3
    assert len(job.errors) == 2
    assert "Story 2" in job.errors[0]
    assert "Story 4" in job.errors[1]


@pytest.mark.asyncio
async def test_cancellation_stops_between_candidates(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    """Cancelling after four of ten candidates finalizes as cancelled."""
    job = await job_repo.create(sync_request)

    def cancel_after_four(created: int) -> None:
        if created == 4:
            cancellations.request(job.id)

    source = scripted_source(pages=[items(10)])
    repo = FlakyArticleRepository(article_repo, on_create=cancel_after_four)
    dispatcher = make_dispatcher(job_repo, repo, cancellations, source)

    final = await dispatcher.run(job)

    assert final.status == SyncStatus.CANCELLED
    assert final.total_synced <= 4
    assert final.finished_at is not None
    assert await article_repo.count() == final.new_articles
    assert not cancellations.is_cancelled(job.id)


@pytest.mark.asyncio
async def test_cancelled_before_start(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    source = scripted_source(pages=[items(3)])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)
    job = await job_repo.create(sync_request)
    cancellations.request(job.id)

    final = await dispatcher.run(job)

    assert final.status == SyncStatus.CANCELLED
    assert final.started_at is None
    assert final.total_synced == 0
    assert source.calls == []


@pytest.mark.asyncio
async def test_rate_limited_page_is_retried(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    source = scripted_source(
        pages=[items(2)],
        failures=[
            ProviderRateLimitedError("scripted", "slow down"),
            ProviderRateLimitedError("scripted", "slow down"),
        ],
    )
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)

    job = await run_job(dispatcher, job_repo, sync_request)

    assert job.status == SyncStatus.SUCCESS
    assert job.new_articles == 2
    assert len(source.calls) == 3


@pytest.mark.asyncio
async def test_rate_limit_retries_are_bounded(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    source = scripted_source(
        pages=[items(2)],
        failures=[ProviderRateLimitedError("scripted", "slow down") for _ in range(3)],
    )
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)

    job = await run_job(dispatcher, job_repo, sync_request)

    assert job.status == SyncStatus.FAILED
    assert job.total_synced == 0
    assert len(job.errors) == 1
    assert "gave up after 3 attempts" in job.errors[0]


@pytest.mark.asyncio
async def test_unavailable_source_does_not_abort_job(
    job_repo, article_repo, cancellations, scripted_source, items
):
    broken = scripted_source(
        name="broken", failures=[ProviderUnavailableError("broken", "connection refused")]
    )
    healthy = scripted_source(name="healthy", pages=[items(2)])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, broken, healthy)
    request = SyncRequest(
        categories=("business",), language=Language.ENGLISH, sources=("broken", "healthy")
    )

    job = await run_job(dispatcher, job_repo, request)

    assert job.status == SyncStatus.PARTIAL
    assert job.new_articles == 2
    assert job.errors == ["broken: connection refused"]


@pytest.mark.asyncio
async def test_nothing_ingested_with_errors_is_failed(
    job_repo, article_repo, cancellations, scripted_source
):
    broken = scripted_source(failures=[ProviderUnavailableError("scripted", "HTTP 503")])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, broken)
    request = SyncRequest(categories=("business",), language=Language.ENGLISH, sources=("scripted",))

    job = await run_job(dispatcher, job_repo, request)

    assert job.status == SyncStatus.FAILED
    assert job.new_articles + job.duplicates == 0
    assert job.errors == ["scripted: HTTP 503"]


@pytest.mark.asyncio
async def test_malformed_items_are_recorded(job_repo, article_repo, cancellations):
    adapter = MagicMock()
    adapter.source_name = "mock"
    adapter.fetch_candidates = AsyncMock(
        return_value=CandidatePage(errors=["mock: skipped malformed article 1 (business): missing title"])
    )
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, adapter)
    request = SyncRequest(categories=("business",), language=Language.ENGLISH, sources=("mock",))

    job = await run_job(dispatcher, job_repo, request)

    assert job.status == SyncStatus.FAILED
    assert job.errors == ["mock: skipped malformed article 1 (business): missing title"]


@pytest.mark.asyncio
async def test_concurrent_duplicate_counts_as_duplicate(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    """A uniqueness violation on insert is a duplicate, not an error."""
    source = scripted_source(pages=[items(3)])
    await run_job(
        make_dispatcher(job_repo, article_repo, cancellations, source), job_repo, sync_request
    )

    racing = FlakyArticleRepository(article_repo, racing=True)
    job = await run_job(
        make_dispatcher(job_repo, racing, cancellations, source), job_repo, sync_request
    )

    assert job.status == SyncStatus.SUCCESS
    assert job.duplicates == 3
    assert job.new_articles == 0
    assert job.errors == []


@pytest.mark.asyncio
async def test_same_content_twice_in_one_run_is_stored_once(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    page = items(2)
    source = scripted_source(pages=[page + page])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)

    job = await run_job(dispatcher, job_repo, sync_request)

    assert job.new_articles == 2
    assert job.duplicates == 2
    assert await article_repo.count() == 2


@pytest.mark.asyncio
async def test_limit_is_global_across_pages_and_categories(
    job_repo, article_repo, cancellations, scripted_source, items
):
    source = scripted_source(pages=[items(3, prefix="Alpha"), items(3, prefix="Beta")])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)
    request = SyncRequest(
        categories=("technology", "business"),
        language=Language.ENGLISH,
        sources=("scripted",),
        limit=4,
    )

    job = await run_job(dispatcher, job_repo, request)

    assert job.status == SyncStatus.SUCCESS
    assert job.total_synced == 4
    assert len(source.calls) == 2
    assert all(query.category == "technology" for query, _ in source.calls)
    assert source.calls[0][0].limit == 4
    assert source.calls[1][0].limit == 1


@pytest.mark.asyncio
async def test_all_categories_and_pages_without_limit(
    job_repo, article_repo, cancellations, scripted_source, items
):
    source = scripted_source(pages=[items(2, prefix="Alpha"), items(2, prefix="Beta")])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)
    request = SyncRequest(
        categories=("technology", "business"), language=Language.ENGLISH, sources=("scripted",)
    )

    job = await run_job(dispatcher, job_repo, request)

    # The second category sees the same content again
    assert job.new_articles == 4
    assert job.duplicates == 4
    assert [query.category for query, _ in source.calls] == [
        "technology",
        "technology",
        "business",
        "business",
    ]


@pytest.mark.asyncio
async def test_unconfigured_source_is_an_error(
    job_repo, article_repo, cancellations, scripted_source, items
):
    source = scripted_source(pages=[items(1)])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)
    request = SyncRequest(
        categories=("technology",), language=Language.ENGLISH, sources=("scripted", "ghost")
    )

    job = await run_job(dispatcher, job_repo, request)

    assert job.status == SyncStatus.PARTIAL
    assert job.errors == ["ghost: source is not configured"]


@pytest.mark.asyncio
async def test_unexpected_error_finalizes_job(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    source = scripted_source(pages=[items(5)])
    repo = FlakyArticleRepository(article_repo, crash_titles=("Story 3",))
    dispatcher = make_dispatcher(job_repo, repo, cancellations, source)

    job = await run_job(dispatcher, job_repo, sync_request)

    assert job.status == SyncStatus.PARTIAL
    assert job.new_articles == 2
    assert job.errors == ["Sync aborted: boom"]


def test_resolve_status():
    assert resolve_status(3, 0, 0) == SyncStatus.SUCCESS
    assert resolve_status(0, 0, 0) == SyncStatus.SUCCESS
    assert resolve_status(0, 0, 2) == SyncStatus.FAILED
    assert resolve_status(0, 1, 1) == SyncStatus.PARTIAL
    assert resolve_status(2, 0, 1) == SyncStatus.PARTIAL


def test_slugify():
    assert slugify("Fed Raises Rates, Again!", "ab12cd34") == "fed-raises-rates-again-ab12cd34"
    assert slugify("!!!", "ab12cd34") == "ab12cd34"


@pytest.mark.asyncio
async def test_rate_limit_waits_for_retry_after(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    """A provider's Retry-After outweighs a shorter backoff."""
    source = scripted_source(
        pages=[items(2)],
        failures=[ProviderRateLimitedError("scripted", "slow down", retry_after=7.0)],
    )
    dispatcher = SyncDispatcher(
        job_repo=job_repo,
        article_repo=article_repo,
        news_sources={"scripted": source},
        cancellations=cancellations,
        rate_limit_max_attempts=3,
        rate_limit_min_wait=0.01,
        rate_limit_max_wait=0.01,
        rate_limit_max_retry_after=60,
    )

    with patch("news_sync.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        job = await run_job(dispatcher, job_repo, sync_request)

    assert job.status == SyncStatus.SUCCESS
    assert [call.args[0] for call in sleep.await_args_list] == [7.0]


@pytest.mark.asyncio
async def test_retry_after_is_capped(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    source = scripted_source(
        pages=[items(1)],
        failures=[ProviderRateLimitedError("scripted", "slow down", retry_after=3600)],
    )
    dispatcher = SyncDispatcher(
        job_repo=job_repo,
        article_repo=article_repo,
        news_sources={"scripted": source},
        cancellations=cancellations,
        rate_limit_min_wait=0,
        rate_limit_max_wait=0,
        rate_limit_max_retry_after=30,
    )

    with patch("news_sync.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        await run_job(dispatcher, job_repo, sync_request)

    assert [call.args[0] for call in sleep.await_args_list] == [30]


@pytest.mark.asyncio
async def test_request_without_sources_uses_configured_adapters(
    job_repo, article_repo, cancellations, scripted_source, items, monkeypatch
):
    """Sources default to the dispatcher's adapters, not the raw configuration."""
    monkeypatch.setattr(
        "news_sync.services.sync_dispatcher.settings.sync_default_sources", ["newsapi", "google_news"]
    )
    source = scripted_source(pages=[items(2)])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)
    request = SyncRequest(categories=("technology",), language=Language.ENGLISH)

    job = await run_job(dispatcher, job_repo, request)

    assert job.status == SyncStatus.SUCCESS
    assert job.new_articles == 2
    assert job.errors == []


@pytest.mark.asyncio
async def test_abort_is_finalized_when_error_cannot_be_recorded(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request
):
    """A job store that rejects the abort message still ends the job."""
    source = scripted_source(pages=[items(5)])
    repo = FlakyArticleRepository(article_repo, crash_titles=("Story 3",))
    dispatcher = make_dispatcher(job_repo, repo, cancellations, source)
    dispatcher.job_repo = ErrorlessJobRepository(job_repo)

    job = await run_job(dispatcher, job_repo, sync_request)

    assert job.status == SyncStatus.FAILED
    assert job.finished_at is not None
    assert job.new_articles == 2
    assert (await job_repo.get(job.id)).status == SyncStatus.FAILED


@pytest.mark.asyncio
async def test_job_logs_carry_job_id(
    job_repo, article_repo, cancellations, scripted_source, items, sync_request, caplog
):
    source = scripted_source(pages=[items(1)])
    dispatcher = make_dispatcher(job_repo, article_repo, cancellations, source)

    with caplog.at_level("INFO", logger="news_sync.services.sync_dispatcher"):
        job = await run_job(dispatcher, job_repo, sync_request)

    finished = [r for r in caplog.records if r.getMessage().startswith("Sync job finished")]
    assert finished
    assert finished[0].log_context == {"job_id": job.id}

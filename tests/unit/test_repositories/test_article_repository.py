"""Unit tests for ArticleRepository.

Tests the SQLite implementation of article storage and retrieval.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from news_sync.core.constants import Language
from news_sync.core.exceptions import DuplicateArticleError, StorageFailureError
from news_sync.models.domain import Article


def make_article(fingerprint=None, **overrides):
    article_id = str(uuid.uuid4())
    values = dict(
        id=article_id,
        title="Test Article",
        slug=f"test-article-{article_id[:8]}",
        summary="Test summary",
        content="This is test content for the article.",
        publisher="Example Times",
        source_url=f"https://example.com/article/{article_id}",
        image_url=None,
        external_id=article_id,
        provider="newsapi",
        language=Language.ENGLISH,
        category="technology",
        published_at=datetime.now(timezone.utc),
        created_at=datetime.now(timezone.utc),
        fingerprint=fingerprint or uuid.uuid4().hex,
        sync_job_id="job-1",
    )
    values.update(overrides)
    return Article(**values)


@pytest.mark.asyncio
async def test_create_article(article_repo):
    """Test creating an article."""
    article = make_article()

    article_id = await article_repo.create(article)

    assert article_id == article.id


@pytest.mark.asyncio
async def test_get_article_by_id(article_repo):
    """Test retrieving an article by ID."""
    article = make_article()

    await article_repo.create(article)
    retrieved = await article_repo.get_by_id(article.id)

    assert retrieved is not None
    assert retrieved.id == article.id
    assert retrieved.title == article.title
    assert retrieved.content == article.content
    assert retrieved.language == Language.ENGLISH
    assert retrieved.fingerprint == article.fingerprint
    assert retrieved.is_external is True


@pytest.mark.asyncio
async def test_get_missing_article_returns_none(article_repo):
    assert await article_repo.get_by_id("does-not-exist") is None


@pytest.mark.asyncio
async def test_exists_fingerprint(article_repo):
    article = make_article(fingerprint="abc123")

    assert await article_repo.exists_fingerprint("abc123") is False
    await article_repo.create(article)
    assert await article_repo.exists_fingerprint("abc123") is True


@pytest.mark.asyncio
async def test_duplicate_fingerprint_raises(article_repo):
    """The unique fingerprint constraint surfaces as DuplicateArticleError."""
    await article_repo.create(make_article(fingerprint="same"))

    with pytest.raises(DuplicateArticleError):
        await article_repo.create(make_article(fingerprint="same"))

    assert await article_repo.count() == 1


@pytest.mark.asyncio
async def test_other_integrity_errors_raise_storage_failure(article_repo):
    """A clashing primary key is a storage failure, not a duplicate."""
    first = make_article()
    await article_repo.create(first)

    with pytest.raises(StorageFailureError):
        await article_repo.create(make_article(id=first.id))

    # The connection is still usable after the rollback
    await article_repo.create(make_article())
    assert await article_repo.count() == 2


@pytest.mark.asyncio
async def test_list_articles_newest_first_with_filters(article_repo):
    now = datetime.now(timezone.utc)
    older = make_article(published_at=now - timedelta(hours=2))
    newer = make_article(published_at=now)
    other_language = make_article(language=Language.INDONESIAN, sync_job_id="job-2")

    for article in (older, newer, other_language):
        await article_repo.create(article)

    english = await article_repo.list_articles(language=Language.ENGLISH)
    assert [a.id for a in english] == [newer.id, older.id]

    by_job = await article_repo.list_articles(sync_job_id="job-2")
    assert [a.id for a in by_job] == [other_language.id]

    page = await article_repo.list_articles(skip=1, limit=1, language=Language.ENGLISH)
    assert [a.id for a in page] == [older.id]


@pytest.mark.asyncio
async def test_count_articles(article_repo):
    """Test counting articles."""
    await article_repo.create(make_article(sync_job_id="job-1"))
    await article_repo.create(make_article(sync_job_id="job-1"))
    await article_repo.create(make_article(sync_job_id="job-2"))

    assert await article_repo.count() == 3
    assert await article_repo.count(sync_job_id="job-1") == 2

"""Pytest configuration and shared fixtures.

This module provides common fixtures for all tests, including an in-memory
database, repositories sharing its lock, and a scripted news source.
"""

from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio

from news_sync.adapters.database import DatabaseManager
from news_sync.adapters.news_sources.base import NewsSourceAdapter
from news_sync.core.constants import Language
from news_sync.models.domain import CandidatePage, SourceQuery, SyncRequest
from news_sync.repositories.article_repository import SQLiteArticleRepository
from news_sync.repositories.job_repository import SQLiteSyncJobRepository
from news_sync.services.cancellation import CancellationRegistry

PUBLISHED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_items(count: int, prefix: str = "Story", publisher: str = "Example Times") -> list[dict[str, str]]:
    """Distinct raw items for a ScriptedSource page."""
    return [
        {
            "title": f"{prefix} {i}",
            "body": f"Body of {prefix.lower()} number {i} with enough words to be unique.",
            "publisher": publisher,
        }
        for i in range(1, count + 1)
    ]


class ScriptedSource(NewsSourceAdapter):
    """News source serving pre-scripted pages.

    ``pages`` holds one list of raw items per page. ``failures`` are raised,
    in order, by the first calls before any page is served.
    """

    def __init__(
        self,
        name: str = "scripted",
        pages: Optional[list[list[dict[str, str]]]] = None,
        failures: Optional[list[Exception]] = None,
    ) -> None:
        super().__init__(source_name=name, timeout=5)
        self.pages = pages or []
        self.failures = list(failures or [])
        self.calls: list[tuple[SourceQuery, Optional[str]]] = []

    async def _fetch_page(self, query: SourceQuery, cursor: Optional[str]) -> CandidatePage:
        self.calls.append((query, cursor))
        if self.failures:
            raise self.failures.pop(0)

        index = int(cursor) if cursor else 0
        items = self.pages[index] if index < len(self.pages) else []
        candidates = [
            self.build_candidate(
                query,
                title=item["title"],
                body=item["body"],
                publisher_name=item["publisher"],
                published_at=PUBLISHED_AT,
                url=f"https://example.com/{self.source_name}/{item['title'].replace(' ', '-').lower()}",
            )
            for item in items
        ]
        next_cursor = str(index + 1) if index + 1 < len(self.pages) else None
        return CandidatePage(candidates=candidates, next_cursor=next_cursor)


@pytest_asyncio.fixture
async def db_manager() -> AsyncGenerator[DatabaseManager, None]:
    """In-memory database with the full schema."""
    manager = DatabaseManager(":memory:")
    await manager.connect()
    await manager.initialize_schema()
    yield manager
    await manager.disconnect()


@pytest_asyncio.fixture
async def article_repo(db_manager: DatabaseManager) -> SQLiteArticleRepository:
    return SQLiteArticleRepository(await db_manager.get_connection(), db_manager.lock)


@pytest_asyncio.fixture
async def job_repo(db_manager: DatabaseManager) -> SQLiteSyncJobRepository:
    return SQLiteSyncJobRepository(await db_manager.get_connection(), db_manager.lock)


@pytest.fixture
def cancellations() -> CancellationRegistry:
    return CancellationRegistry()


@pytest.fixture
def sync_request() -> SyncRequest:
    return SyncRequest(
        categories=("technology",),
        language=Language.ENGLISH,
        sources=("scripted",),
        limit=10,
    )


@pytest.fixture
def items():
    """Factory for distinct raw items, see ``make_items``."""
    return make_items


@pytest.fixture
def scripted_source():
    """Factory for ScriptedSource adapters."""
    return ScriptedSource

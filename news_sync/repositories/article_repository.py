"""SQLite implementation of ArticleRepository.

This module provides the concrete implementation of article storage
using SQLite with aiosqlite for async operations.
"""

import asyncio
from datetime import datetime
from typing import List, Optional

import aiosqlite

from news_sync.core.constants import Language
from news_sync.core.exceptions import DuplicateArticleError, StorageFailureError
from news_sync.models.domain import Article
from news_sync.repositories.base import ArticleRepository
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)

_ARTICLE_COLUMNS = """
    id, title, slug, summary, content, publisher, source_url, image_url,
    external_id, provider, language, category, published_at, created_at,
    fingerprint, sync_job_id, is_external
"""


class SQLiteArticleRepository(ArticleRepository):
    """SQLite implementation of ArticleRepository.

    Provides async operations for storing and retrieving articles
    from SQLite database.
    """

    def __init__(self, connection: aiosqlite.Connection, lock: Optional[asyncio.Lock] = None):
        """Initialize repository with database connection.

        Args:
            connection: Active aiosqlite connection
            lock: Lock shared by every repository using this connection
        """
        self.connection = connection
        self._lock = lock or asyncio.Lock()

    async def create(self, article: Article) -> str:
        """Store a new article.

        Args:
            article: Article to store

        Returns:
            Article ID

        Raises:
            DuplicateArticleError: If the fingerprint is already stored
            StorageFailureError: If creation fails
        """
        async with self._lock:
            try:
                await self.connection.execute(
                    f"INSERT INTO articles ({_ARTICLE_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        article.id,
                        article.title,
                        article.slug,
                        article.summary,
                        article.content,
                        article.publisher,
                        article.source_url,
                        article.image_url,
                        article.external_id,
                        article.provider,
                        article.language.value,
                        article.category,
                        article.published_at.isoformat(),
                        article.created_at.isoformat(),
                        article.fingerprint,
                        article.sync_job_id,
                        article.is_external,
                    ),
                )
                await self.connection.commit()

            except aiosqlite.IntegrityError as e:
                await self.connection.rollback()
                if "fingerprint" in str(e):
                    logger.debug(f"Fingerprint already stored: {article.fingerprint}")
                    raise DuplicateArticleError(article.fingerprint) from e
                logger.error(f"Constraint violation storing article {article.id}: {e}")
                raise StorageFailureError(f"Failed to store article '{article.title}': {e}") from e
            except Exception as e:
                await self.connection.rollback()
                logger.error(f"Failed to create article {article.id}: {e}")
                raise StorageFailureError(f"Failed to store article '{article.title}': {e}") from e

        logger.debug(f"Created article: {article.id}")
        return article.id

    async def exists_fingerprint(self, fingerprint: str) -> bool:
        """Check whether an article with this fingerprint is stored.

        Args:
            fingerprint: Content fingerprint

        Returns:
            True if stored
        """
        async with self._lock:
            try:
                cursor = await self.connection.execute(
                    "SELECT 1 FROM articles WHERE fingerprint = ? LIMIT 1",
                    (fingerprint,),
                )
                row = await cursor.fetchone()
                await cursor.close()
                return row is not None

            except Exception as e:
                logger.error(f"Failed to look up fingerprint {fingerprint}: {e}")
                raise StorageFailureError(f"Failed to look up fingerprint: {e}") from e

    async def get_by_id(self, article_id: str) -> Optional[Article]:
        """Retrieve article by ID.

        Args:
            article_id: Article identifier

        Returns:
            Article if found, None otherwise
        """
        async with self._lock:
            try:
                cursor = await self.connection.execute(
                    f"SELECT {_ARTICLE_COLUMNS} FROM articles WHERE id = ?",
                    (article_id,),
                )
                row = await cursor.fetchone()
                await cursor.close()

            except Exception as e:
                logger.error(f"Failed to get article {article_id}: {e}")
                raise StorageFailureError(f"Failed to get article: {e}") from e

        if row:
            return self._row_to_article(row)
        return None

    async def list_articles(
        self,
        skip: int = 0,
        limit: int = 50,
        language: Optional[Language] = None,
        category: Optional[str] = None,
        sync_job_id: Optional[str] = None,
    ) -> List[Article]:
        """List articles newest first with pagination and filtering.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            language: Optional language filter
            category: Optional category filter
            sync_job_id: Optional filter on the job that ingested the article

        Returns:
            List of articles
        """
        query = f"SELECT {_ARTICLE_COLUMNS} FROM articles WHERE 1=1"
        params: List[str | int] = []

        if language:
            query += " AND language = ?"
            params.append(language.value)

        if category:
            query += " AND category = ?"
            params.append(category)

        if sync_job_id:
            query += " AND sync_job_id = ?"
            params.append(sync_job_id)

        query += " ORDER BY published_at DESC LIMIT ? OFFSET ?"
        params.extend([limit, skip])

        async with self._lock:
            try:
                cursor = await self.connection.execute(query, params)
                rows = await cursor.fetchall()
                await cursor.close()

            except Exception as e:
                logger.error(f"Failed to list articles: {e}")
                raise StorageFailureError(f"Failed to list articles: {e}") from e

        return [self._row_to_article(row) for row in rows]

    async def count(self, sync_job_id: Optional[str] = None) -> int:
        """Count stored articles.

        Args:
            sync_job_id: Optional filter on the job that ingested the article

        Returns:
            Total count
        """
        async with self._lock:
            try:
                if sync_job_id:
                    cursor = await self.connection.execute(
                        "SELECT COUNT(*) FROM articles WHERE sync_job_id = ?",
                        (sync_job_id,),
                    )
                else:
                    cursor = await self.connection.execute("SELECT COUNT(*) FROM articles")

                row = await cursor.fetchone()
                await cursor.close()

            except Exception as e:
                logger.error(f"Failed to count articles: {e}")
                raise StorageFailureError(f"Failed to count articles: {e}") from e

        return row[0] if row else 0

    def _row_to_article(self, row: tuple) -> Article:  # type: ignore[type-arg]
        """Convert database row to Article object.

        Args:
            row: Database row tuple

        Returns:
            Article object
        """
        return Article(
            id=row[0],
            title=row[1],
            slug=row[2],
            summary=row[3],
            content=row[4],
            publisher=row[5],
            source_url=row[6],
            image_url=row[7],
            external_id=row[8],
            provider=row[9],
            language=Language(row[10]),
            category=row[11],
            published_at=datetime.fromisoformat(row[12]),
            created_at=datetime.fromisoformat(row[13]),
            fingerprint=row[14],
            sync_job_id=row[15],
            is_external=bool(row[16]),
        )

"""Database connection management and initialization.

This module provides async database connection management using aiosqlite
and includes the SQL schema for all tables with proper indexes.

All repositories share one connection. Every repository operation runs
under the manager's asyncio lock so that one coroutine's statements and
commit or rollback never interleave with another's.
"""

import asyncio
from pathlib import Path
from typing import Optional

import aiosqlite

from news_sync.core.config import settings
from news_sync.core.exceptions import DatabaseError
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)


# SQL Schema Definitions
CREATE_ARTICLES_TABLE = """
CREATE TABLE IF NOT EXISTS articles (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    slug TEXT NOT NULL,
    summary TEXT,
    content TEXT NOT NULL,
    publisher TEXT NOT NULL,
    source_url TEXT,
    image_url TEXT,
    external_id TEXT,
    provider TEXT NOT NULL,
    language TEXT NOT NULL,
    category TEXT NOT NULL,
    published_at TIMESTAMP NOT NULL,
    created_at TIMESTAMP NOT NULL,
    fingerprint TEXT NOT NULL UNIQUE,
    sync_job_id TEXT,
    is_external BOOLEAN DEFAULT TRUE
);
"""

CREATE_ARTICLES_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_articles_published ON articles(published_at);",
    "CREATE INDEX IF NOT EXISTS idx_articles_language_category ON articles(language, category);",
    "CREATE INDEX IF NOT EXISTS idx_articles_sync_job ON articles(sync_job_id);",
]

CREATE_SYNC_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS sync_jobs (
    id TEXT PRIMARY KEY,
    categories TEXT NOT NULL,
    language TEXT NOT NULL,
    sources TEXT,
    request_limit INTEGER,
    status TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL,
    started_at TIMESTAMP,
    finished_at TIMESTAMP,
    new_articles INTEGER NOT NULL DEFAULT 0,
    duplicates INTEGER NOT NULL DEFAULT 0,
    cancel_requested BOOLEAN NOT NULL DEFAULT FALSE
);
"""

CREATE_SYNC_JOBS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_sync_jobs_created ON sync_jobs(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_sync_jobs_status ON sync_jobs(status);",
]

CREATE_SYNC_JOB_ERRORS_TABLE = """
CREATE TABLE IF NOT EXISTS sync_job_errors (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    job_id TEXT NOT NULL,
    message TEXT NOT NULL,
    FOREIGN KEY (job_id) REFERENCES sync_jobs(id) ON DELETE CASCADE
);
"""

CREATE_SYNC_JOB_ERRORS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_sync_job_errors_job ON sync_job_errors(job_id, seq);",
]


class DatabaseManager:
    """Manages database connections and initialization.

    This class provides async context manager support for database connections
    and handles schema initialization with proper error handling.
    """

    def __init__(self, database_url: Optional[str] = None):
        """Initialize database manager.

        Args:
            database_url: SQLite database URL. If None, uses settings.database_url
        """
        self.database_url = database_url or settings.database_url
        # Extract file path from sqlite:/// URL
        if self.database_url.startswith("sqlite:///"):
            self.db_path = self.database_url.replace("sqlite:///", "")
        else:
            self.db_path = self.database_url

        self._connection: Optional[aiosqlite.Connection] = None
        self.lock = asyncio.Lock()

    async def connect(self) -> aiosqlite.Connection:
        """Establish database connection.

        Returns:
            Active database connection

        Raises:
            DatabaseError: If connection fails
        """
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = await aiosqlite.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False,
            )

            await self._connection.execute("PRAGMA foreign_keys = ON;")
            await self._connection.execute("PRAGMA journal_mode = WAL;")
            await self._connection.execute("PRAGMA synchronous = NORMAL;")
            await self._connection.commit()

            logger.info(f"Connected to database: {self.db_path}")
            return self._connection

        except Exception as e:
            logger.error(f"Failed to connect to database: {e}")
            raise DatabaseError(f"Database connection failed: {e}") from e

    async def disconnect(self) -> None:
        """Close database connection."""
        if self._connection:
            try:
                await self._connection.close()
                logger.info("Database connection closed")
            except Exception as e:
                logger.error(f"Error closing database connection: {e}")
            finally:
                self._connection = None

    async def initialize_schema(self) -> None:
        """Initialize database schema with all tables and indexes.

        Creates all required tables and indexes if they don't exist.
        This is idempotent and safe to call multiple times.

        Raises:
            DatabaseError: If schema initialization fails
        """
        connection = await self.get_connection()

        try:
            logger.info("Initializing database schema...")

            await connection.execute(CREATE_ARTICLES_TABLE)
            await connection.execute(CREATE_SYNC_JOBS_TABLE)
            await connection.execute(CREATE_SYNC_JOB_ERRORS_TABLE)
            logger.debug("Created articles, sync_jobs and sync_job_errors tables")

            for index_sql in (
                CREATE_ARTICLES_INDEXES
                + CREATE_SYNC_JOBS_INDEXES
                + CREATE_SYNC_JOB_ERRORS_INDEXES
            ):
                await connection.execute(index_sql)
            logger.debug("Created indexes")

            await connection.commit()
            logger.info("Database schema initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database schema: {e}")
            raise DatabaseError(f"Schema initialization failed: {e}") from e

    async def get_connection(self) -> aiosqlite.Connection:
        """Get active database connection.

        Returns:
            Active database connection

        Raises:
            DatabaseError: If no active connection
        """
        if not self._connection:
            await self.connect()

        if not self._connection:
            raise DatabaseError("No active database connection")

        return self._connection

    async def __aenter__(self) -> aiosqlite.Connection:
        """Async context manager entry."""
        return await self.connect()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        """Async context manager exit."""
        await self.disconnect()


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


async def get_database_manager() -> DatabaseManager:
    """Get the process-wide database manager, connecting on first use.

    Returns:
        Connected database manager with an initialized schema
    """
    global _db_manager

    if _db_manager is None:
        manager = DatabaseManager()
        await manager.connect()
        await manager.initialize_schema()
        _db_manager = manager

    return _db_manager


async def get_database() -> aiosqlite.Connection:
    """Get database connection for dependency injection.

    Returns:
        Active database connection
    """
    manager = await get_database_manager()
    return await manager.get_connection()


async def close_database() -> None:
    """Close global database connection.

    This should be called during application shutdown.
    """
    global _db_manager

    if _db_manager:
        await _db_manager.disconnect()
        _db_manager = None

#!/usr/bin/env python3
"""Database initialization script.

This script initializes the SQLite database with the required schema,
creates all tables and indexes, and optionally seeds a sample article and
a finished sync job.

Usage:
    python scripts/init_db.py [--seed]
"""

import argparse
import asyncio
import sys
from datetime import datetime, timezone

from news_sync.adapters.database import DatabaseManager
from news_sync.core.config import settings
from news_sync.core.constants import Language, SyncStatus
from news_sync.models.domain import ArticleCandidate, SyncRequest
from news_sync.repositories.article_repository import SQLiteArticleRepository
from news_sync.repositories.job_repository import SQLiteSyncJobRepository
from news_sync.services.sync_dispatcher import SyncDispatcher
from news_sync.utils.fingerprint import content_fingerprint, publisher_key
from news_sync.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def init_database(seed: bool = False) -> None:
    """Initialize database with schema.

    Args:
        seed: Whether to seed sample data after initialization
    """
    logger.info("Starting database initialization...")
    logger.info(f"Database URL: {settings.database_url}")

    db_manager = DatabaseManager()

    try:
        await db_manager.connect()
        logger.info("Database connection established")

        await db_manager.initialize_schema()
        logger.info("Database schema initialized successfully")

        conn = await db_manager.get_connection()
        cursor = await conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
        )
        tables = await cursor.fetchall()
        await cursor.close()

        logger.info("Created tables:")
        for table in tables:
            logger.info(f"  - {table[0]}")

        if seed:
            logger.info("Seeding sample data...")
            await seed_sample_data(db_manager)
            logger.info("Sample data seeded successfully")

        logger.info("Database initialization complete!")

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    finally:
        await db_manager.disconnect()


async def seed_sample_data(db_manager: DatabaseManager) -> None:
    """Store one sample article under a finished sync job.

    Args:
        db_manager: Connected database manager
    """
    conn = await db_manager.get_connection()
    job_repo = SQLiteSyncJobRepository(conn, db_manager.lock)
    article_repo = SQLiteArticleRepository(conn, db_manager.lock)

    job = await job_repo.create(SyncRequest(categories=("technology",), language=Language.ENGLISH))
    await job_repo.set_status(job.id, SyncStatus.RUNNING)

    title = "Sample technology headline"
    body = "This is a sample article body used to check the article store."
    candidate = ArticleCandidate(
        source_id=publisher_key("Sample Publisher"),
        language=Language.ENGLISH,
        category="technology",
        title=title,
        body=body,
        published_at=datetime.now(timezone.utc),
        content_fingerprint=content_fingerprint(title, body, publisher_key("Sample Publisher")),
        provider="seed",
        publisher_name="Sample Publisher",
        url="https://example.com/sample-technology-headline",
    )

    if await article_repo.exists_fingerprint(candidate.content_fingerprint):
        await job_repo.update_progress(job.id, duplicates=1)
    else:
        article_id = await article_repo.create(SyncDispatcher.build_article(candidate, job.id))
        await job_repo.update_progress(job.id, new_articles=1)
        logger.info(f"Inserted sample article: {article_id}")

    job = await job_repo.set_status(job.id, SyncStatus.SUCCESS)
    logger.info(f"Inserted sample sync job: {job.id}")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Initialize the news sync database")
    parser.add_argument(
        "--seed",
        action="store_true",
        help="Seed database with sample data",
    )

    args = parser.parse_args()
    setup_logging()

    try:
        asyncio.run(init_database(seed=args.seed))
        sys.exit(0)
    except Exception as e:
        logger.error(f"Initialization failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

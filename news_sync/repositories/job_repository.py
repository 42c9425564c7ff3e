"""SQLite implementation of SyncJobRepository.

Jobs live in ``sync_jobs``; their error messages are appended to
``sync_job_errors`` so that the order in which the dispatcher recorded them
is preserved by the autoincrement sequence.
"""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import aiosqlite

from news_sync.core.constants import TERMINAL_STATUSES, Language, SyncStatus
from news_sync.core.exceptions import (
    InvalidJobStateError,
    JobNotFoundError,
    JobRepositoryError,
)
from news_sync.models.domain import SyncJob, SyncJobFilter, SyncRequest
from news_sync.repositories.base import SyncJobRepository
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)

_JOB_COLUMNS = """
    id, categories, language, sources, request_limit, status, created_at,
    started_at, finished_at, new_articles, duplicates, cancel_requested
"""

_UNFINISHED = (SyncStatus.PENDING.value, SyncStatus.RUNNING.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SQLiteSyncJobRepository(SyncJobRepository):
    """SQLite implementation of SyncJobRepository."""

    def __init__(self, connection: aiosqlite.Connection, lock: Optional[asyncio.Lock] = None):
        """Initialize repository with database connection.

        Args:
            connection: Active aiosqlite connection
            lock: Lock shared by every repository using this connection
        """
        self.connection = connection
        self._lock = lock or asyncio.Lock()

    async def create(self, request: SyncRequest) -> SyncJob:
        """Create a pending job for ``request``.

        Args:
            request: Parameters of the sync run

        Returns:
            The new job
        """
        job = SyncJob(id=str(uuid.uuid4()), request=request, created_at=_utcnow())

        async with self._lock:
            try:
                await self.connection.execute(
                    f"INSERT INTO sync_jobs ({_JOB_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, NULL, NULL, 0, 0, FALSE)",
                    (
                        job.id,
                        json.dumps(list(request.categories)),
                        request.language.value,
                        json.dumps(list(request.sources)) if request.sources is not None else None,
                        request.limit,
                        job.status.value,
                        job.created_at.isoformat(),
                    ),
                )
                await self.connection.commit()
            except Exception as e:
                await self.connection.rollback()
                logger.error(f"Failed to create sync job: {e}")
                raise JobRepositoryError(f"Failed to create sync job: {e}") from e

        logger.debug(f"Created sync job: {job.id}")
        return job

    async def get(self, job_id: str) -> SyncJob:
        """Retrieve a job by ID.

        Args:
            job_id: Job identifier

        Returns:
            Snapshot of the job

        Raises:
            JobNotFoundError: If no such job exists
        """
        async with self._lock:
            return await self._get(job_id)

    async def list(self, job_filter: Optional[SyncJobFilter] = None) -> List[SyncJob]:
        """List jobs newest first.

        Args:
            job_filter: Optional status/language filter and pagination

        Returns:
            List of jobs
        """
        job_filter = job_filter or SyncJobFilter()

        query = f"SELECT {_JOB_COLUMNS} FROM sync_jobs WHERE 1=1"
        params: List[str | int] = []

        if job_filter.status:
            query += " AND status = ?"
            params.append(job_filter.status.value)

        if job_filter.language:
            query += " AND language = ?"
            params.append(job_filter.language.value)

        query += " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        params.extend([job_filter.limit, job_filter.offset])

        async with self._lock:
            try:
                cursor = await self.connection.execute(query, params)
                rows = await cursor.fetchall()
                await cursor.close()

                errors = await self._load_errors([row[0] for row in rows])

            except Exception as e:
                logger.error(f"Failed to list sync jobs: {e}")
                raise JobRepositoryError(f"Failed to list sync jobs: {e}") from e

        return [self._row_to_job(row, errors.get(row[0], [])) for row in rows]

    async def update_progress(
        self,
        job_id: str,
        new_articles: int = 0,
        duplicates: int = 0,
        errors: Iterable[str] = (),
    ) -> None:
        """Add counter deltas and append error messages in one transaction.

        Args:
            job_id: Job identifier
            new_articles: Newly stored articles to add
            duplicates: Duplicates to add
            errors: Error messages to append, in order

        Raises:
            JobNotFoundError: If no such job exists
        """
        messages = list(errors)

        async with self._lock:
            try:
                cursor = await self.connection.execute(
                    """
                    UPDATE sync_jobs
                    SET new_articles = new_articles + ?, duplicates = duplicates + ?
                    WHERE id = ?
                    """,
                    (new_articles, duplicates, job_id),
                )
                if cursor.rowcount == 0:
                    await cursor.close()
                    raise JobNotFoundError(job_id)
                await cursor.close()

                if messages:
                    await self.connection.executemany(
                        "INSERT INTO sync_job_errors (job_id, message) VALUES (?, ?)",
                        [(job_id, message) for message in messages],
                    )

                await self.connection.commit()

            except JobNotFoundError:
                await self.connection.rollback()
                raise
            except Exception as e:
                await self.connection.rollback()
                logger.error(f"Failed to update progress of sync job {job_id}: {e}")
                raise JobRepositoryError(f"Failed to update sync job progress: {e}") from e

    async def set_status(
        self,
        job_id: str,
        status: SyncStatus,
        finished_at: Optional[datetime] = None,
    ) -> SyncJob:
        """Move a job to ``status``.

        Args:
            job_id: Job identifier
            status: Target status
            finished_at: Completion time for terminal statuses (default now)

        Returns:
            Snapshot of the job after the transition

        Raises:
            JobNotFoundError: If no such job exists
            InvalidJobStateError: If the job is already terminal
        """
        async with self._lock:
            current = await self._get(job_id)
            if current.is_terminal:
                raise InvalidJobStateError(
                    f"Sync job {job_id} is already {current.status.value}"
                )

            try:
                if status == SyncStatus.RUNNING:
                    await self.connection.execute(
                        "UPDATE sync_jobs SET status = ?, started_at = ? WHERE id = ?",
                        (status.value, _utcnow().isoformat(), job_id),
                    )
                elif status in TERMINAL_STATUSES:
                    await self.connection.execute(
                        "UPDATE sync_jobs SET status = ?, finished_at = ? WHERE id = ?",
                        (status.value, (finished_at or _utcnow()).isoformat(), job_id),
                    )
                else:
                    await self.connection.execute(
                        "UPDATE sync_jobs SET status = ? WHERE id = ?",
                        (status.value, job_id),
                    )
                await self.connection.commit()

                updated = await self._get(job_id)

            except Exception as e:
                await self.connection.rollback()
                logger.error(f"Failed to set status of sync job {job_id}: {e}")
                raise JobRepositoryError(f"Failed to set sync job status: {e}") from e

        logger.debug(f"Sync job {job_id}: {current.status.value} -> {status.value}")
        return updated

    async def request_cancel(self, job_id: str) -> SyncJob:
        """Durably record a cancellation request for a job.

        Args:
            job_id: Job identifier

        Returns:
            Snapshot of the job

        Raises:
            JobNotFoundError: If no such job exists
        """
        async with self._lock:
            try:
                cursor = await self.connection.execute(
                    "UPDATE sync_jobs SET cancel_requested = TRUE WHERE id = ?",
                    (job_id,),
                )
                updated_rows = cursor.rowcount
                await cursor.close()
                await self.connection.commit()
            except Exception as e:
                await self.connection.rollback()
                logger.error(f"Failed to record cancellation of sync job {job_id}: {e}")
                raise JobRepositoryError(f"Failed to record cancellation: {e}") from e

            if updated_rows == 0:
                raise JobNotFoundError(job_id)

            return await self._get(job_id)

    async def fail_unfinished(self, message: str) -> int:
        """Finalize every pending or running job as failed with ``message``.

        Args:
            message: Error message appended to each finalized job

        Returns:
            Number of jobs finalized
        """
        async with self._lock:
            try:
                cursor = await self.connection.execute(
                    "SELECT id FROM sync_jobs WHERE status IN (?, ?)",
                    _UNFINISHED,
                )
                job_ids = [row[0] for row in await cursor.fetchall()]
                await cursor.close()

                if job_ids:
                    now = _utcnow().isoformat()
                    await self.connection.executemany(
                        "UPDATE sync_jobs SET status = ?, finished_at = ? WHERE id = ?",
                        [(SyncStatus.FAILED.value, now, job_id) for job_id in job_ids],
                    )
                    await self.connection.executemany(
                        "INSERT INTO sync_job_errors (job_id, message) VALUES (?, ?)",
                        [(job_id, message) for job_id in job_ids],
                    )
                await self.connection.commit()

            except Exception as e:
                await self.connection.rollback()
                logger.error(f"Failed to finalize unfinished sync jobs: {e}")
                raise JobRepositoryError(f"Failed to finalize unfinished sync jobs: {e}") from e

        if job_ids:
            logger.warning(f"Marked {len(job_ids)} unfinished sync jobs as failed")
        return len(job_ids)

    async def _get(self, job_id: str) -> SyncJob:
        """Read a job; the caller holds the lock."""
        try:
            cursor = await self.connection.execute(
                f"SELECT {_JOB_COLUMNS} FROM sync_jobs WHERE id = ?",
                (job_id,),
            )
            row = await cursor.fetchone()
            await cursor.close()

            if row is None:
                raise JobNotFoundError(job_id)

            errors = await self._load_errors([job_id])

        except JobNotFoundError:
            raise
        except Exception as e:
            logger.error(f"Failed to get sync job {job_id}: {e}")
            raise JobRepositoryError(f"Failed to get sync job: {e}") from e

        return self._row_to_job(row, errors.get(job_id, []))

    async def _load_errors(self, job_ids: List[str]) -> dict[str, List[str]]:
        """Error messages per job id, in recording order."""
        if not job_ids:
            return {}

        placeholders = ", ".join("?" for _ in job_ids)
        cursor = await self.connection.execute(
            f"SELECT job_id, message FROM sync_job_errors "
            f"WHERE job_id IN ({placeholders}) ORDER BY seq",
            job_ids,
        )
        rows = await cursor.fetchall()
        await cursor.close()

        errors: dict[str, List[str]] = {}
        for job_id, message in rows:
            errors.setdefault(job_id, []).append(message)
        return errors

    def _row_to_job(self, row: tuple, errors: List[str]) -> SyncJob:  # type: ignore[type-arg]
        """Convert database row to SyncJob object.

        Args:
            row: Database row tuple
            errors: Error messages of the job

        Returns:
            SyncJob object
        """
        sources = json.loads(row[3]) if row[3] is not None else None
        request = SyncRequest(
            categories=tuple(json.loads(row[1])),
            language=Language(row[2]),
            sources=tuple(sources) if sources is not None else None,
            limit=row[4],
        )
        return SyncJob(
            id=row[0],
            request=request,
            status=SyncStatus(row[5]),
            created_at=datetime.fromisoformat(row[6]),
            started_at=_parse_ts(row[7]),
            finished_at=_parse_ts(row[8]),
            new_articles=row[9],
            duplicates=row[10],
            errors=errors,
            cancel_requested=bool(row[11]),
        )

"""Base repository interfaces and abstract classes.

This module defines the abstract base classes for all repositories,
establishing the repository pattern for the article store and the job store.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from news_sync.core.constants import Language, SyncStatus
from news_sync.models.domain import Article, SyncJob, SyncJobFilter, SyncRequest


class ArticleRepository(ABC):
    """Repository interface for the article store.

    The store enforces uniqueness of the content fingerprint; that
    constraint is what keeps concurrent sync jobs from inserting the same
    article twice.
    """

    @abstractmethod
    async def create(self, article: Article) -> str:
        """Store a new article.

        Args:
            article: Article to store

        Returns:
            Article ID

        Raises:
            DuplicateArticleError: If an article with the same fingerprint exists
            StorageFailureError: If the article could not be stored
        """
        pass

    @abstractmethod
    async def exists_fingerprint(self, fingerprint: str) -> bool:
        """Check whether an article with this fingerprint is stored.

        Args:
            fingerprint: Content fingerprint

        Returns:
            True if stored
        """
        pass

    @abstractmethod
    async def get_by_id(self, article_id: str) -> Optional[Article]:
        """Retrieve article by ID.

        Args:
            article_id: Article identifier

        Returns:
            Article if found, None otherwise
        """
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    async def count(self, sync_job_id: Optional[str] = None) -> int:
        """Count stored articles.

        Args:
            sync_job_id: Optional filter on the job that ingested the article

        Returns:
            Total count
        """
        pass


class SyncJobRepository(ABC):
    """Repository interface for the job store.

    Every mutation is atomic per job and every read returns a point-in-time
    snapshot.
    """

    @abstractmethod
    async def create(self, request: SyncRequest) -> SyncJob:
        """Create a pending job for ``request``.

        Args:
            request: Parameters of the sync run

        Returns:
            The new job
        """
        pass

    @abstractmethod
    async def get(self, job_id: str) -> SyncJob:
        """Retrieve a job by ID.

        Raises:
            JobNotFoundError: If no such job exists
        """
        pass

    @abstractmethod
    async def list(self, job_filter: Optional[SyncJobFilter] = None) -> List[SyncJob]:
        """List jobs newest first.

        Args:
            job_filter: Optional status/language filter and pagination

        Returns:
            List of jobs
        """
        pass

    @abstractmethod
    async def update_progress(
        self,
        job_id: str,
        new_articles: int = 0,
        duplicates: int = 0,
        errors: Iterable[str] = (),
    ) -> None:
        """Add counter deltas and append error messages in one transaction.

        Raises:
            JobNotFoundError: If no such job exists
        """
        pass

    @abstractmethod
    async def set_status(
        self,
        job_id: str,
        status: SyncStatus,
        finished_at: Optional[datetime] = None,
    ) -> SyncJob:
        """Move a job to ``status``.

        Entering ``running`` stamps ``started_at``; entering a terminal
        status stamps ``finished_at`` (now, unless given).

        Raises:
            JobNotFoundError: If no such job exists
            InvalidJobStateError: If the job is already terminal
        """
        pass

    @abstractmethod
    async def request_cancel(self, job_id: str) -> SyncJob:
        """Durably record a cancellation request for a job.

        Raises:
            JobNotFoundError: If no such job exists
        """
        pass

    @abstractmethod
    async def fail_unfinished(self, message: str) -> int:
        """Finalize every pending or running job as failed with ``message``.

        Returns:
            Number of jobs finalized
        """
        pass

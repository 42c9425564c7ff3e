"""Custom exception hierarchy for the news synchronization engine.

This module defines all custom exceptions used throughout the application,
organized in a clear hierarchy for better error handling and reporting.
"""


class NewsSyncError(Exception):
    """Base exception for all news synchronization errors.

    All custom exceptions in the system should inherit from this base class
    to allow for consistent error handling at the API boundary.
    """

    pass


class InvalidRequestError(NewsSyncError):
    """A sync request failed validation.

    Raised before any job is created, so the caller can correct the
    request and submit it again.
    """

    pass


class JobNotFoundError(NewsSyncError):
    """An operation referenced a sync job id that does not exist."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Sync job {job_id} not found")
        self.job_id = job_id


class InvalidJobStateError(NewsSyncError):
    """An operation is not allowed in the job's current status.

    Raised when retrying a job that is still pending or running, or when
    something tries to move a job out of a terminal status.
    """

    pass


class ProviderError(NewsSyncError):
    """Errors raised by external news provider adapters."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderUnavailableError(ProviderError):
    """The provider could not be reached or answered with a failure.

    Transient: the dispatcher records one error and moves on to the
    remaining sources.
    """

    pass


class ProviderRateLimitedError(ProviderError):
    """The provider rejected the call because of rate limiting.

    Transient: the dispatcher backs off and retries the same page a
    bounded number of times.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(provider, message)
        self.retry_after = retry_after


class DatabaseError(NewsSyncError):
    """Database operation errors.

    Raised when there are issues with database connections, queries,
    or transactions.
    """

    pass


class StorageFailureError(DatabaseError):
    """Persisting one article failed.

    Recorded as a per-item error on the job; the sync continues.
    """

    pass


class DuplicateArticleError(DatabaseError):
    """The article store already holds an article with this fingerprint.

    Raised on a uniqueness violation, typically when a concurrent job
    committed the same content first.
    """

    def __init__(self, fingerprint: str) -> None:
        super().__init__(f"Article with fingerprint {fingerprint} already stored")
        self.fingerprint = fingerprint


class JobRepositoryError(DatabaseError):
    """Errors specific to sync job repository operations."""

    pass


class CircuitBreakerOpenError(NewsSyncError):
    """Circuit breaker is open, preventing requests.

    Raised when the circuit breaker is in the open state and blocking
    requests to prevent cascade failures.
    """

    pass

"""Cooperative cancellation signals keyed by sync job id."""

from news_sync.utils.logging import get_logger

logger = get_logger(__name__)


class CancellationRegistry:
    """Process-wide set of job ids whose cancellation was requested.

    The dispatcher polls it between candidates; nothing here interrupts a
    running task.
    """

    def __init__(self) -> None:
        self._requested: set[str] = set()

    def request(self, job_id: str) -> None:
        logger.info(f"Cancellation requested for sync job {job_id}")
        self._requested.add(job_id)

    def is_cancelled(self, job_id: str) -> bool:
        return job_id in self._requested

    def discard(self, job_id: str) -> None:
        self._requested.discard(job_id)

    def __len__(self) -> int:
        return len(self._requested)

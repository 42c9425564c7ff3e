"""Content-fingerprint deduplication for one sync job."""

from news_sync.repositories.base import ArticleRepository


class DedupIndex:
    """Decides whether a candidate's content is already stored.

    Backed by the article store's fingerprint column plus a local set that
    covers fingerprints seen during the current job, so two identical
    candidates in one run are never both inserted. One instance per job.
    """

    def __init__(self, article_repo: ArticleRepository):
        self.article_repo = article_repo
        self._seen: set[str] = set()

    async def exists(self, fingerprint: str) -> bool:
        """Check the local set first, then the article store.

        Raises:
            StorageFailureError: If the article store lookup fails
        """
        if fingerprint in self._seen:
            return True

        if await self.article_repo.exists_fingerprint(fingerprint):
            self._seen.add(fingerprint)
            return True

        return False

    def record(self, fingerprint: str) -> None:
        """Mark ``fingerprint`` as present; call right after a successful store."""
        self._seen.add(fingerprint)

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._seen

"""Base news source adapter interface.

This module defines the abstract base class for all news source adapters,
providing a uniform paginated interface over provider-specific APIs.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

import httpx

from news_sync.core.config import settings
from news_sync.core.constants import CATEGORY_ALIASES
from news_sync.core.exceptions import (
    CircuitBreakerOpenError,
    ProviderError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
)
from news_sync.models.domain import ArticleCandidate, CandidatePage, SourceQuery
from news_sync.utils.circuit_breaker import CircuitBreaker
from news_sync.utils.fingerprint import content_fingerprint, publisher_key, strip_markup
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)


def canonical_category(category: str) -> str:
    """Lowercased category with short forms expanded ("tech" -> "technology")."""
    key = category.strip().lower()
    return CATEGORY_ALIASES.get(key, key)


def strip_publisher_suffix(title: str, publisher: str) -> str:
    """Drop a trailing " - Publisher" that aggregators append to headlines."""
    if publisher:
        for separator in (" - ", " – ", " | "):
            suffix = f"{separator}{publisher}"
            if title.endswith(suffix):
                return title[: -len(suffix)].rstrip()
    return title


def _retry_after(response: httpx.Response) -> Optional[float]:
    """Seconds from a Retry-After header, if it holds a number."""
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class NewsSourceAdapter(ABC):
    """Abstract base class for news source adapters.

    Concrete adapters implement ``_fetch_page``; callers use
    ``fetch_candidates``, which adds circuit breaker protection and makes
    sure every provider failure surfaces as ``ProviderUnavailableError`` or
    ``ProviderRateLimitedError``.

    Attributes:
        source_name: Identifier for the provider (e.g., "newsapi")
        timeout: Request timeout in seconds
        page_size: Maximum candidates requested per page
        client: Async HTTP client
        circuit_breaker: Circuit breaker guarding provider calls
    """

    def __init__(
        self,
        source_name: str,
        timeout: Optional[int] = None,
        page_size: int = 50,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize the news source adapter.

        Args:
            source_name: Identifier for the provider
            timeout: Request timeout in seconds (default from settings)
            page_size: Maximum candidates requested per page
            transport: Optional httpx transport, used by tests
        """
        self.source_name = source_name
        self.timeout = timeout or settings.news_fetch_timeout
        self.page_size = page_size
        self.client = httpx.AsyncClient(
            timeout=self.timeout,
            transport=transport,
            headers={"User-Agent": f"news-sync/{settings.api_version}"},
            follow_redirects=True,
        )
        self.circuit_breaker = CircuitBreaker(
            name=source_name,
            ignore=(ProviderRateLimitedError,),
        )

    async def fetch_candidates(
        self,
        query: SourceQuery,
        cursor: Optional[str] = None,
    ) -> CandidatePage:
        """Fetch one page of candidates for ``query``.

        Args:
            query: Category, language and remaining global budget
            cursor: Cursor returned with the previous page, None for the first

        Returns:
            Page of candidates, per-item errors and the next cursor

        Raises:
            ProviderUnavailableError: If the provider cannot serve the page
            ProviderRateLimitedError: If the provider is rate limiting
        """
        try:
            return await self.circuit_breaker.call(self._fetch_page, query, cursor)  # type: ignore[no-any-return]
        except ProviderError:
            raise
        except CircuitBreakerOpenError as e:
            raise ProviderUnavailableError(self.source_name, str(e)) from e
        except Exception as e:
            logger.error(f"Unexpected error from {self.source_name}: {e}", exc_info=True)
            raise ProviderUnavailableError(self.source_name, f"unexpected error: {e}") from e

    @abstractmethod
    async def _fetch_page(self, query: SourceQuery, cursor: Optional[str]) -> CandidatePage:
        """Fetch and normalize one page from the provider.

        Malformed items must be skipped and reported in ``CandidatePage.errors``
        rather than failing the page.
        """
        pass

    def build_candidate(
        self,
        query: SourceQuery,
        title: str,
        body: str,
        publisher_name: str,
        published_at: datetime,
        url: Optional[str] = None,
        summary: Optional[str] = None,
        image_url: Optional[str] = None,
        external_id: Optional[str] = None,
    ) -> ArticleCandidate:
        """Normalize provider fields into an ``ArticleCandidate`` with its fingerprint."""
        publisher_name = publisher_name.strip()
        title = strip_publisher_suffix(strip_markup(title), publisher_name)
        body = strip_markup(body) or title
        source_id = publisher_key(publisher_name) or self.source_name

        return ArticleCandidate(
            source_id=source_id,
            language=query.language,
            category=canonical_category(query.category),
            title=title,
            body=body,
            published_at=published_at,
            content_fingerprint=content_fingerprint(
                title, body, source_id, settings.dedup_body_prefix_chars
            ),
            provider=self.source_name,
            publisher_name=publisher_name or self.source_name,
            url=url,
            summary=strip_markup(summary) if summary else None,
            image_url=image_url,
            external_id=external_id,
        )

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        """GET ``url``, mapping transport failures and HTTP 429 to provider errors.

        Other error statuses are returned for the adapter to interpret.
        """
        try:
            response = await self.client.get(url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderUnavailableError(
                self.source_name, f"request timed out after {self.timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(self.source_name, f"request failed: {e}") from e

        if response.status_code == 429:
            raise ProviderRateLimitedError(
                self.source_name,
                "rate limited (HTTP 429)",
                retry_after=_retry_after(response),
            )
        return response

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self.client.aclose()

    async def __aenter__(self) -> "NewsSourceAdapter":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

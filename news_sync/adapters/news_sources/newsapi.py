"""NewsAPI.org adapter.

This module implements the news source adapter for the NewsAPI
``top-headlines`` endpoint, paginating by page number and parsing results
into article candidates.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from dateutil import parser as dtparser

from news_sync.adapters.news_sources.base import NewsSourceAdapter, canonical_category
from news_sync.core.config import settings
from news_sync.core.constants import NEWS_CATEGORIES, NewsSource
from news_sync.core.exceptions import ProviderRateLimitedError, ProviderUnavailableError
from news_sync.models.domain import ArticleCandidate, CandidatePage, SourceQuery
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)

# Placeholder NewsAPI returns for articles withdrawn by the publisher
REMOVED_MARKER = "[Removed]"


class NewsAPIAdapter(NewsSourceAdapter):
    """Adapter for fetching top headlines from NewsAPI.

    Categories NewsAPI knows are passed as ``category``; anything else is
    sent as a keyword query. Languages are mapped to a country code through
    ``settings.newsapi_country_by_language``.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        page_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize NewsAPI adapter.

        Args:
            api_key: API key (default from settings)
            base_url: API base URL (default from settings)
            timeout: Request timeout in seconds
            page_size: Articles requested per page (NewsAPI allows up to 100)
            transport: Optional httpx transport, used by tests
        """
        super().__init__(
            source_name=NewsSource.NEWSAPI.value,
            timeout=timeout,
            page_size=page_size or settings.newsapi_page_size,
            transport=transport,
        )
        self.api_key = api_key if api_key is not None else settings.newsapi_api_key
        self.base_url = (base_url or settings.newsapi_base_url).rstrip("/")

    async def _fetch_page(self, query: SourceQuery, cursor: Optional[str]) -> CandidatePage:
        """Fetch one page of top headlines.

        Args:
            query: Category, language and remaining budget
            cursor: Page number as a string, None for the first page

        Returns:
            Parsed page; ``next_cursor`` is None once ``totalResults`` is exhausted
        """
        if not self.api_key:
            raise ProviderUnavailableError(self.source_name, "API key is not configured")

        page = int(cursor) if cursor else 1
        response = await self._get(
            f"{self.base_url}/top-headlines",
            params=self._build_params(query, page),
            headers={"X-Api-Key": self.api_key},
        )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderUnavailableError(
                self.source_name,
                f"unreadable response (HTTP {response.status_code})",
            ) from e

        if not isinstance(data, dict):
            raise ProviderUnavailableError(self.source_name, "unexpected response shape")

        if response.status_code >= 400 or data.get("status") == "error":
            code = data.get("code") or "error"
            message = data.get("message") or "request rejected"
            if code == "rateLimited":
                raise ProviderRateLimitedError(self.source_name, message)
            raise ProviderUnavailableError(
                self.source_name, f"HTTP {response.status_code} {code}: {message}"
            )

        items = data.get("articles") or []
        candidates: list[ArticleCandidate] = []
        errors: list[str] = []

        for position, item in enumerate(items, start=1):
            try:
                candidates.append(self._parse_item(query, item))
            except (ValueError, TypeError, AttributeError) as e:
                logger.debug(f"Skipping malformed NewsAPI item {position} on page {page}: {e}")
                errors.append(
                    f"{self.source_name}: skipped malformed article {position} "
                    f"on page {page} ({query.category}): {e}"
                )

        total_results = int(data.get("totalResults") or 0)
        has_more = bool(items) and page * self.page_size < total_results

        return CandidatePage(
            candidates=candidates,
            errors=errors,
            next_cursor=str(page + 1) if has_more else None,
        )

    def _build_params(self, query: SourceQuery, page: int) -> dict[str, Any]:
        """Query parameters for ``top-headlines``."""
        category = canonical_category(query.category)
        params: dict[str, Any] = {"page": page, "pageSize": self.page_size}

        country = settings.newsapi_country_by_language.get(query.language.value)
        if country:
            params["country"] = country

        if category in NEWS_CATEGORIES:
            params["category"] = category
        else:
            params["q"] = query.category.strip()

        return params

    def _parse_item(self, query: SourceQuery, item: Any) -> ArticleCandidate:
        """Parse a single API item into an ArticleCandidate.

        Raises:
            ValueError: If the item lacks a usable title or URL
        """
        if not isinstance(item, dict):
            raise ValueError("article is not an object")

        title = (item.get("title") or "").strip()
        url = (item.get("url") or "").strip()
        if not title or title == REMOVED_MARKER:
            raise ValueError("missing title")
        if not url:
            raise ValueError("missing url")

        source = item.get("source") or {}
        publisher = source.get("name") or source.get("id") or ""
        description = item.get("description") or ""
        body = item.get("content") or description

        return self.build_candidate(
            query,
            title=title,
            body=body,
            publisher_name=publisher,
            published_at=self._parse_date(item.get("publishedAt")),
            url=url,
            summary=description or None,
            image_url=item.get("urlToImage"),
            external_id=url,
        )

    def _parse_date(self, value: Any) -> datetime:
        """Parse ``publishedAt``; missing dates fall back to now.

        Raises:
            ValueError: If the date is present but unparseable
        """
        if not value:
            return datetime.now(timezone.utc)

        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            try:
                parsed = dtparser.parse(str(value))
            except (ValueError, OverflowError) as e:
                raise ValueError(f"invalid publishedAt {value!r}") from e

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

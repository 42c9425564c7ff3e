"""Google News RSS feed adapter.

This module implements the news source adapter for Google News RSS topic
feeds, fetching headlines per category and language and parsing them into
article candidates.
"""

import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional

import httpx

from news_sync.adapters.news_sources.base import NewsSourceAdapter, canonical_category
from news_sync.core.config import settings
from news_sync.core.constants import NewsSource
from news_sync.core.exceptions import ProviderUnavailableError
from news_sync.models.domain import ArticleCandidate, CandidatePage, SourceQuery
from news_sync.utils.logging import get_logger

logger = get_logger(__name__)

TOPICS = {
    "business": "BUSINESS",
    "technology": "TECHNOLOGY",
    "entertainment": "ENTERTAINMENT",
    "health": "HEALTH",
    "science": "SCIENCE",
    "sports": "SPORTS",
}

_PUBLISHER_SUFFIX_RE = re.compile(r"\s[-–]\s([^–-]+)$")


class GoogleNewsRSSAdapter(NewsSourceAdapter):
    """Adapter for fetching headlines from Google News RSS feeds.

    ``general`` maps to the top stories feed, known categories to topic
    feeds, anything else to a search feed. A feed is a single page.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        page_size: int = 100,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize Google News adapter.

        Args:
            base_url: RSS base URL (default from settings)
            timeout: Request timeout in seconds
            page_size: Maximum items taken from a feed
            transport: Optional httpx transport, used by tests
        """
        super().__init__(
            source_name=NewsSource.GOOGLE_NEWS.value,
            timeout=timeout,
            page_size=page_size,
            transport=transport,
        )
        self.base_url = (base_url or settings.google_news_base_url).rstrip("/")

    async def _fetch_page(self, query: SourceQuery, cursor: Optional[str]) -> CandidatePage:
        """Fetch and parse the feed for ``query``.

        Returns:
            Parsed page; there is never a next cursor
        """
        url, params = self._feed_url(query)
        response = await self._get(url, params=params)

        if response.status_code >= 400:
            raise ProviderUnavailableError(
                self.source_name, f"feed request failed with HTTP {response.status_code}"
            )

        try:
            root = ET.fromstring(response.text)
        except ET.ParseError as e:
            raise ProviderUnavailableError(self.source_name, f"malformed feed: {e}") from e

        candidates: list[ArticleCandidate] = []
        errors: list[str] = []

        for position, item in enumerate(root.findall(".//item")[: self.page_size], start=1):
            try:
                candidates.append(self._parse_item(query, item))
            except ValueError as e:
                logger.debug(f"Skipping malformed Google News item {position}: {e}")
                errors.append(
                    f"{self.source_name}: skipped malformed article {position} "
                    f"({query.category}): {e}"
                )

        return CandidatePage(candidates=candidates, errors=errors, next_cursor=None)

    def _feed_url(self, query: SourceQuery) -> tuple[str, dict[str, str]]:
        """Feed URL and locale parameters for a query."""
        params = dict(settings.google_news_locale_by_language.get(query.language.value, {}))
        category = canonical_category(query.category)

        if category == "general":
            return self.base_url, params
        if category in TOPICS:
            return f"{self.base_url}/headlines/section/topic/{TOPICS[category]}", params

        params["q"] = query.category.strip()
        return f"{self.base_url}/search", params

    def _parse_item(self, query: SourceQuery, item: ET.Element) -> ArticleCandidate:
        """Parse a single RSS item into an ArticleCandidate.

        Raises:
            ValueError: If the item lacks a title or link
        """
        title = (item.findtext("title") or "").strip()
        link = (item.findtext("link") or "").strip()
        if not title:
            raise ValueError("missing title")
        if not link:
            raise ValueError("missing link")

        publisher = (item.findtext("source") or "").strip()
        if not publisher:
            match = _PUBLISHER_SUFFIX_RE.search(title)
            if match:
                publisher = match.group(1).strip()

        description = item.findtext("description") or ""

        return self.build_candidate(
            query,
            title=title,
            body=description,
            publisher_name=publisher,
            published_at=self._parse_date(item.findtext("pubDate")),
            url=link,
            summary=description or None,
            external_id=(item.findtext("guid") or link).strip(),
        )

    def _parse_date(self, date_str: Optional[str]) -> datetime:
        """Parse an RFC 822 ``pubDate``; missing dates fall back to now.

        Raises:
            ValueError: If the date is present but unparseable
        """
        if not date_str or not date_str.strip():
            return datetime.now(timezone.utc)

        try:
            parsed = parsedate_to_datetime(date_str.strip())
        except (TypeError, ValueError) as e:
            raise ValueError(f"invalid pubDate {date_str!r}") from e

        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

"""News source adapters."""

from news_sync.adapters.news_sources.base import NewsSourceAdapter, canonical_category
from news_sync.adapters.news_sources.google_news import GoogleNewsRSSAdapter
from news_sync.adapters.news_sources.newsapi import NewsAPIAdapter

__all__ = [
    "NewsSourceAdapter",
    "NewsAPIAdapter",
    "GoogleNewsRSSAdapter",
    "canonical_category",
]

"""Configuration management using Pydantic Settings.

This module provides centralized configuration management for the entire application,
loading settings from environment variables with validation and type safety.
"""

import json
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All configuration parameters are defined here with type hints, default values,
    and validation. Settings are loaded from environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database Configuration
    database_url: str = Field(
        default="sqlite:///data/news_sync.db",
        description="SQLite database URL",
    )

    # NewsAPI Configuration
    newsapi_base_url: str = Field(
        default="https://newsapi.org/v2",
        description="NewsAPI base URL",
    )
    newsapi_api_key: str = Field(default="", description="NewsAPI API key")
    newsapi_page_size: int = Field(
        default=50,
        ge=1,
        le=100,
        description="Articles requested per NewsAPI page",
    )
    newsapi_country_by_language: dict[str, str] = Field(
        default_factory=lambda: {"ENGLISH": "us", "INDONESIAN": "id"},
        description="Country code used for top headlines in each language",
    )

    # Google News Configuration
    google_news_base_url: str = Field(
        default="https://news.google.com/rss",
        description="Google News RSS base URL",
    )
    google_news_locale_by_language: dict[str, dict[str, str]] = Field(
        default_factory=lambda: {
            "ENGLISH": {"hl": "en-US", "gl": "US", "ceid": "US:en"},
            "INDONESIAN": {"hl": "id", "gl": "ID", "ceid": "ID:id"},
        },
        description="Google News locale parameters for each language",
    )

    # News Fetch Configuration
    news_fetch_timeout: int = Field(default=30, description="Provider request timeout in seconds")

    # Sync Configuration
    sync_default_sources: list[str] = Field(
        default_factory=lambda: ["newsapi", "google_news"],
        description="Providers wired up at start-up; a request naming no sources uses all of them",
    )
    sync_rate_limit_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per page when a provider rate-limits",
    )
    sync_rate_limit_min_wait: float = Field(
        default=1.0,
        ge=0.0,
        description="Initial backoff after a rate-limited page, in seconds",
    )
    sync_rate_limit_max_wait: float = Field(
        default=30.0,
        ge=0.0,
        description="Maximum backoff after a rate-limited page, in seconds",
    )
    sync_rate_limit_max_retry_after: float = Field(
        default=120.0,
        ge=0.0,
        description="Longest Retry-After a provider can impose before the next attempt, in seconds",
    )
    sync_history_page_size: int = Field(
        default=50,
        description="Default number of jobs returned by sync history",
    )

    # Dedup Configuration
    dedup_body_prefix_chars: int = Field(
        default=500,
        ge=0,
        description="Characters of normalized body included in the content fingerprint",
    )

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")
    log_file: str = Field(
        default="logs/news_sync.log",
        description="Log file path",
    )
    log_max_bytes: int = Field(
        default=10485760,
        description="Maximum log file size in bytes",
    )
    log_backup_count: int = Field(default=5, description="Number of log backup files")

    # API Configuration
    api_title: str = Field(
        default="News Synchronization Engine",
        description="API title",
    )
    api_version: str = Field(default="1.0.0", description="API version")
    api_prefix: str = Field(default="", description="Prefix for all API routes")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:8000"],
        description="CORS allowed origins",
    )

    # Circuit Breaker Configuration
    circuit_breaker_failure_threshold: int = Field(
        default=5,
        description="Failure threshold for circuit breaker",
    )
    circuit_breaker_timeout: int = Field(
        default=60,
        description="Circuit breaker timeout in seconds",
    )

    # Retry Configuration
    retry_max_attempts: int = Field(default=3, description="Maximum retry attempts")
    retry_min_wait: float = Field(default=2, description="Minimum wait time between retries")
    retry_max_wait: float = Field(default=10, description="Maximum wait time between retries")
    retry_multiplier: float = Field(default=2, description="Exponential backoff multiplier")

    # Environment
    environment: str = Field(default="development", description="Environment name")

    @field_validator(
        "newsapi_country_by_language",
        "google_news_locale_by_language",
        mode="before",
    )
    @classmethod
    def parse_language_maps(cls, v: Any) -> dict[str, Any]:
        """Parse per-language maps from JSON string or dict."""
        if isinstance(v, str):
            return json.loads(v)  # type: ignore[no-any-return]
        return v  # type: ignore[no-any-return]

    @field_validator("sync_default_sources", mode="before")
    @classmethod
    def parse_default_sources(cls, v: Any) -> list[str]:
        """Parse default sources from JSON string or list."""
        if isinstance(v, str):
            return json.loads(v)  # type: ignore[no-any-return]
        return v  # type: ignore[no-any-return]

    @field_validator("api_cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from JSON string or list."""
        if isinstance(v, str):
            return json.loads(v)  # type: ignore[no-any-return]
        return v  # type: ignore[no-any-return]


# Global settings instance
settings = Settings()

"""News Synchronization Engine.

Backend ingestion service that pulls articles from external news providers,
deduplicates them by content fingerprint, and tracks every sync run as a
cancellable, retryable job.
"""

__version__ = "1.0.0"

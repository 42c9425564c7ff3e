"""Structured logging configuration with JSON formatting.

This module provides centralized logging setup with support for both JSON
and text formats and rotating file handlers. Sync jobs run concurrently as
asyncio tasks, so per-job fields such as ``job_id`` are kept in a context
variable: every record created inside a ``LogContext`` carries them, and
records from other tasks do not.
"""

import logging
import sys
from contextvars import ContextVar
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Mapping, MutableMapping

from pythonjsonlogger import jsonlogger  # type: ignore[import-untyped, unused-ignore]

from news_sync.core.config import settings

_log_context: ContextVar[Mapping[str, Any]] = ContextVar("news_sync_log_context", default={})


def current_log_context() -> dict[str, Any]:
    """Fields attached to records created in the current task."""
    return dict(_log_context.get())


def _install_record_factory() -> None:
    """Wrap the record factory once so records pick up the current context."""
    base_factory = logging.getLogRecordFactory()
    if getattr(base_factory, "_news_sync_context", False):
        return

    def record_factory(*args: Any, **kwargs: Any) -> logging.LogRecord:
        record = base_factory(*args, **kwargs)
        record.log_context = current_log_context()
        return record

    record_factory._news_sync_context = True  # type: ignore[attr-defined]
    logging.setLogRecordFactory(record_factory)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined, misc]
    """JSON formatter adding service fields and the per-job context."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        """Add custom fields to log records.

        Args:
            log_record: The log record dictionary to modify
            record: The original LogRecord object
            message_dict: Additional message fields
        """
        super().add_fields(log_record, record, message_dict)

        # Add standard fields
        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["line"] = record.lineno
        log_record["environment"] = settings.environment

        # Flatten job context (job_id, ...) into top-level keys
        log_record.pop("log_context", None)
        log_record.update(getattr(record, "log_context", None) or {})

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class ContextTextFormatter(logging.Formatter):
    """Text formatter appending the per-job context as ``[key=value ...]``."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "log_context", None)
        if not context:
            return message
        fields = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} [{fields}]"


def setup_logging() -> None:
    """Configure application-wide logging.

    Sets up console and rotating file handlers, using JSON or text format
    based on configuration. Creates the log directory if it doesn't exist.
    """
    log_file_path = Path(settings.log_file)
    log_file_path.parent.mkdir(parents=True, exist_ok=True)

    level = getattr(logging, settings.log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    file_handler = RotatingFileHandler(
        settings.log_file,
        maxBytes=settings.log_max_bytes,
        backupCount=settings.log_backup_count,
    )

    formatter: logging.Formatter
    if settings.log_format == "json":
        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ContextTextFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    for handler in (console_handler, file_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    # Set third-party loggers to WARNING to reduce noise
    for noisy in ("httpx", "httpcore", "aiosqlite", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


class _MergingAdapter(logging.LoggerAdapter):  # type: ignore[type-arg]
    """LoggerAdapter whose fixed fields are merged with per-call ``extra``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**(self.extra or {}), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str, extra: dict[str, Any] | None = None) -> logging.LoggerAdapter[logging.Logger]:
    """Get a logger with optional extra context.

    Args:
        name: Logger name (typically __name__)
        extra: Fields added to every message; per-call ``extra`` is merged on top

    Returns:
        LoggerAdapter with extra context
    """
    return _MergingAdapter(logging.getLogger(name), extra or {})


class LogContext:
    """Context manager attaching fields to every record created inside it.

    Contexts nest, with inner values winning. The fields are scoped to the
    current asyncio task, so concurrent jobs never see each other's ids.

    Example:
        with LogContext(job_id=job.id):
            logger.info("Sync job started")
    """

    def __init__(self, **fields: Any) -> None:
        """Initialize log context.

        Args:
            **fields: Context fields to add to log records
        """
        self.fields = fields
        self._token: Any = None

    def __enter__(self) -> "LogContext":
        _install_record_factory()
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, *args: Any) -> None:
        _log_context.reset(self._token)


_install_record_factory()

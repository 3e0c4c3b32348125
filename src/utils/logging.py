"""
Logging utilities for the pet asset ingestion pipeline.

Provides structured logging with entry/exit decorators, JSON formatting,
correlation IDs, and consistent formatting across the upload and slug
stages.

Features:
    - Structured JSON logging for production environments
    - Correlation ID tracking across requests
    - Entry/exit decorators with timing (plain and coroutine functions)
    - Colorized console output for development

Example usage:
    >>> from src.utils.logging import get_logger, log_function_call, set_correlation_id
    >>>
    >>> logger = get_logger(__name__)
    >>> set_correlation_id("req-12345")
    >>>
    >>> @log_function_call
    >>> async def upload(file, category):
    >>>     logger.info("Uploading image", extra={"category": category})
"""

import functools
import inspect
import json
import logging
import os
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

import coloredlogs

F = TypeVar("F", bound=Callable[..., Any])

# Context variable for correlation ID (task-local under asyncio)
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
JSON_LOG_FORMAT = os.getenv("LOG_FORMAT", "text").lower() == "json"

# Attributes every LogRecord carries; anything else came in through `extra`
_STANDARD_RECORD_FIELDS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
    ]
)


# ============================================================================
# Correlation ID Management
# ============================================================================

def get_correlation_id() -> str:
    """
    Get current correlation ID or generate a new one.

    Returns:
        Current correlation ID (generates UUID if not set)
    """
    corr_id = _correlation_id.get()
    if corr_id is None:
        corr_id = str(uuid.uuid4())
        _correlation_id.set(corr_id)
    return corr_id


def set_correlation_id(corr_id: str) -> None:
    """Set correlation ID for the current context."""
    _correlation_id.set(corr_id)


def clear_correlation_id() -> None:
    """Clear correlation ID for the current context."""
    _correlation_id.set(None)


@contextmanager
def correlation_scope(prefix: str, corr_id: Optional[str] = None) -> Iterator[str]:
    """
    Tag every log line inside the block with one correlation ID.

    The previous ID is restored on exit, so nested scopes (a backfill run
    containing many slug assignments) keep their own IDs.

    Example:
        >>> with correlation_scope("upload") as corr_id:
        ...     logger.info("Starting upload")  # correlation_id: upload-3f2a...
    """
    scoped_id = corr_id or f"{prefix}-{uuid.uuid4().hex[:12]}"
    token = _correlation_id.set(scoped_id)
    try:
        yield scoped_id
    finally:
        _correlation_id.reset(token)


# ============================================================================
# JSON Formatter
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Example output:
        {
            "timestamp": "2026-10-19T10:30:15.123456+00:00",
            "level": "INFO",
            "logger": "src.uploader.coordinator",
            "message": "Upload completed",
            "correlation_id": "req-12345",
            "extra": {"category": "pets", "path": "pets/u1/rex-..."}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_FIELDS
        }
        if extra_fields:
            log_data["extra"] = extra_fields

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        log_data["environment"] = {
            "hostname": os.getenv("HOSTNAME", "unknown"),
            "service": os.getenv("SERVICE_NAME", "pet-asset-ingest"),
        }

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", enable_colors: bool = True) -> None:
    """
    Configure global logging settings for the application.

    Uses JSON output when LOG_FORMAT=json, colorized text otherwise.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_colors: Whether to enable colorized console output
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    if JSON_LOG_FORMAT:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(console_handler)
    elif enable_colors:
        coloredlogs.install(
            level=log_level,
            fmt=LOG_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            logger=root_logger,
        )
    else:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__ of the calling module)
    """
    return logging.getLogger(name)


def _format_call_arguments(func: Callable[..., Any], args: tuple, kwargs: dict) -> str:
    arg_names = func.__code__.co_varnames[: func.__code__.co_argcount]
    args_repr = [f"{name}={value!r}" for name, value in zip(arg_names, args)]
    kwargs_repr = [f"{key}={value!r}" for key, value in kwargs.items()]
    return ", ".join(args_repr + kwargs_repr)


def log_function_call(func: F) -> F:
    """
    Decorator that logs function entry and exit with parameters and return values.

    Works for both plain functions and coroutine functions. Exceptions are
    logged with traceback and re-raised unchanged.

    Example:
        >>> @log_function_call
        >>> def generate_file_path(category, owner_id, original_name):
        >>>     ...
        >>>
        >>> # 2026-10-19 10:30:15 - module - INFO - ENTER generate_file_path(...)
        >>> # 2026-10-19 10:30:15 - module - INFO - EXIT generate_file_path -> 'pets/...' (0.00s)
    """
    logger = get_logger(func.__module__)

    def _log_entry(args: tuple, kwargs: dict) -> str:
        correlation_id = get_correlation_id()
        logger.info(
            f"ENTER {func.__name__}",
            extra={
                "function": func.__name__,
                "func_module": func.__module__,
                "arguments": _format_call_arguments(func, args, kwargs),
                "correlation_id": correlation_id,
                "event": "function_entry",
            },
        )
        return correlation_id

    def _log_exit(result: Any, started: datetime, correlation_id: str) -> None:
        execution_time = (datetime.now() - started).total_seconds()
        logger.info(
            f"EXIT {func.__name__} -> {result!r} ({execution_time:.2f}s)",
            extra={
                "function": func.__name__,
                "func_module": func.__module__,
                "duration_seconds": execution_time,
                "correlation_id": correlation_id,
                "event": "function_exit",
                "status": "success",
            },
        )

    def _log_error(error: BaseException, started: datetime, correlation_id: str) -> None:
        execution_time = (datetime.now() - started).total_seconds()
        logger.error(
            f"ERROR {func.__name__} raised {type(error).__name__}: {error}",
            extra={
                "function": func.__name__,
                "func_module": func.__module__,
                "duration_seconds": execution_time,
                "correlation_id": correlation_id,
                "event": "function_error",
                "status": "error",
                "error_type": type(error).__name__,
                "error_message": str(error),
            },
            exc_info=True,
        )

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            correlation_id = _log_entry(args, kwargs)
            started = datetime.now()
            try:
                result = await func(*args, **kwargs)
            except Exception as error:
                _log_error(error, started, correlation_id)
                raise
            _log_exit(result, started, correlation_id)
            return result

        return cast(F, async_wrapper)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        correlation_id = _log_entry(args, kwargs)
        started = datetime.now()
        try:
            result = func(*args, **kwargs)
        except Exception as error:
            _log_error(error, started, correlation_id)
            raise
        _log_exit(result, started, correlation_id)
        return result

    return cast(F, wrapper)

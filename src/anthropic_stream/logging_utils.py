"""
Centralized logging and error classification for stream processing.

This module provides decorators and helpers that standardize logging
across the pipeline:
- Structured logging with contextual information
- Error category detection for the streaming error taxonomy
- Operation timing for collect and request calls
- Per-stream bound loggers
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, ParamSpec, TypeVar

import structlog

from .exceptions import (
    ClassificationError,
    DecodeError,
    ProtocolError,
    ProtocolViolation,
    ServerError,
    TransportError,
)

P = ParamSpec("P")
T = TypeVar("T")
AsyncCallable = Callable[P, Awaitable[T]]

PACKAGE_LOGGER = "anthropic_stream"


def configure_logging(level: str | int = "INFO", renderer: str = "console") -> None:
    """
    Install the structlog processor chain over stdlib logging.

    Args:
        level: Threshold for the package logger
        renderer: "console" for colored dev output, "json" for one object per line
    """
    if renderer == "json":
        final_processor: Any = structlog.processors.JSONRenderer()
    elif renderer == "console":
        final_processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        raise ValueError(f"Unknown log renderer '{renderer}'")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            final_processor,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(format="%(message)s")
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)


configure_logging()

logger = structlog.get_logger(__name__)


class StreamErrorHandler:
    """Maps exceptions onto stable categories for structured logs."""

    @staticmethod
    def classify_error(error: BaseException) -> str:
        """
        Classify an error into a log category.

        Args:
            error: The exception to classify

        Returns:
            Category string such as "server_error" or "protocol_violation"
        """
        if isinstance(error, ServerError):
            return "server_error"
        if isinstance(error, ProtocolViolation):
            return "protocol_violation"
        if isinstance(error, DecodeError):
            return "decode_error"
        if isinstance(error, ClassificationError):
            return "classification_error"
        if isinstance(error, ProtocolError):
            return "protocol_error"
        if isinstance(error, TransportError):
            return "transport_error"
        if isinstance(error, TimeoutError):
            return "timeout_error"
        if isinstance(error, ConnectionError | OSError):
            return "connection_error"
        return "unknown_error"

    @staticmethod
    def error_context(error: BaseException) -> dict[str, Any]:
        """Structured fields describing an error for a log entry."""
        context: dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_category": StreamErrorHandler.classify_error(error),
            "error_message": str(error),
        }
        if isinstance(error, ServerError):
            context["api_error_type"] = error.error_type
            context["status"] = error.status
        elif isinstance(error, ClassificationError):
            context["event_type"] = error.event_type
        elif isinstance(error, ProtocolViolation) and error.event_type:
            context["event_type"] = error.event_type
        return context


def log_operation(
    operation: str,
    *,
    log_timing: bool = True,
) -> Callable[[AsyncCallable[P, T]], AsyncCallable[P, T]]:
    """
    Decorator for logging async operations with structured context.

    Args:
        operation: Description of the operation being performed
        log_timing: Whether to log execution timing

    Returns:
        Decorated function with logging
    """
    def decorator(func: AsyncCallable[P, T]) -> AsyncCallable[P, T]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            operation_logger = logger.bind(
                operation=operation,
                function=func.__name__,
            )

            operation_logger.debug("Operation started")

            start_time = time.perf_counter() if log_timing else None

            try:
                result = await func(*args, **kwargs)

                end_log_data: dict[str, Any] = {}
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    end_log_data["duration_ms"] = duration

                operation_logger.info(
                    "Operation completed successfully", **end_log_data
                )
                return result

            except Exception as e:
                error_log_data = StreamErrorHandler.error_context(e)
                if log_timing and start_time is not None:
                    duration = round((time.perf_counter() - start_time) * 1000, 2)
                    error_log_data["duration_ms"] = duration

                operation_logger.error("Operation failed", **error_log_data)
                raise

        return wrapper
    return decorator


@asynccontextmanager
async def operation_context(
    operation: str,
    *,
    context: dict[str, Any] | None = None,
    log_timing: bool = True,
):
    """
    Async context manager for operation logging.

    Args:
        operation: Description of the operation
        context: Additional context for logging
        log_timing: Whether to log operation timing

    Yields:
        Bound logger for the operation
    """
    operation_logger = logger.bind(
        operation=operation,
        **(context or {}),
    )

    operation_logger.debug("Operation started")
    start_time = time.perf_counter() if log_timing else None

    try:
        yield operation_logger

        log_data: dict[str, Any] = {}
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            log_data["duration_ms"] = duration

        operation_logger.debug("Operation completed successfully", **log_data)

    except Exception as e:
        error_log_data = StreamErrorHandler.error_context(e)
        if log_timing and start_time is not None:
            duration = round((time.perf_counter() - start_time) * 1000, 2)
            error_log_data["duration_ms"] = duration

        operation_logger.error("Operation failed", **error_log_data)
        raise


class ContextualLogger:
    """Logger that maintains context across related operations."""

    def __init__(self, base_context: dict[str, Any] | None = None):
        self.base_context = base_context or {}
        self._logger = logger.bind(**self.base_context)

    def bind(self, **context: Any) -> ContextualLogger:
        """Create a new logger with additional context."""
        merged_context = {**self.base_context, **context}
        return ContextualLogger(merged_context)

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(message, **context)

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(message, **context)

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(message, **context)

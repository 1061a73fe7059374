"""
Error taxonomy for stream ingestion and accumulation.

This module provides one exception per failure layer:
- Transport failures below the protocol
- Framing and encoding failures
- Payloads that do not classify into a known event shape
- API-reported errors with retry guidance
- Ordering violations against the accumulator's transition table
"""

from __future__ import annotations

from typing import Any

from .models import ErrorKind


class StreamingError(Exception):
    """Base streaming error with structured details."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportError(StreamingError):
    """Connection or IO failure below the SSE protocol."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class ProtocolError(StreamingError):
    """Malformed SSE framing or a payload that is not valid UTF-8."""
    pass


class ClassificationError(StreamingError):
    """Payload does not match the shape declared by its event type."""

    def __init__(self, message: str, event_type: str, raw_payload: str, **kwargs):
        super().__init__(message, **kwargs)
        self.event_type = event_type
        self.raw_payload = raw_payload


class DecodeError(StreamingError):
    """Accumulated tool input is not valid JSON."""

    def __init__(self, message: str, index: int, buffer: str, **kwargs):
        super().__init__(message, **kwargs)
        self.index = index
        self.buffer = buffer


class ServerError(StreamingError):
    """Error reported by the API, either as an event or an error response."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        error_type: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.kind = kind
        self.error_type = error_type or kind.value

    @property
    def status(self) -> int:
        return self.kind.status

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        return f"{self.error_type} ({self.status}): {self.message}"


class ProtocolViolation(StreamingError):
    """An event arrived in a state the server contract does not permit."""

    def __init__(self, reason: str, event_type: str | None = None, **kwargs):
        message = f"{event_type}: {reason}" if event_type else reason
        super().__init__(message, **kwargs)
        self.reason = reason
        self.event_type = event_type


class StreamConsumedError(StreamingError):
    """A MessageStream was iterated more than once."""

    def __init__(self, message: str = "MessageStream has already been consumed"):
        super().__init__(message)

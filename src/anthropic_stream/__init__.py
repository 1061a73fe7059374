"""
Streaming ingestion and accumulation for the Anthropic Messages API.

This package provides:
- Incremental SSE decoding over any async byte source
- Typed stream events with forward-compatible unknown variants
- Opt-in suppression of transient rate-limit and overload errors
- A strict accumulator that folds events into a complete Message
- Text, delta and tool-input projections over the live stream
"""

from __future__ import annotations

from .client import MessagesClient
from .config import Configuration
from .exceptions import (
    ClassificationError,
    DecodeError,
    ProtocolError,
    ProtocolViolation,
    ServerError,
    StreamConsumedError,
    StreamingError,
    TransportError,
)
from .logging_utils import configure_logging
from .models import (
    ApiError,
    ContentBlock,
    Delta,
    ErrorKind,
    ImageBlock,
    InputJsonDelta,
    Message,
    MessageDelta,
    StopReason,
    TextBlock,
    TextDelta,
    ToolUseBlock,
    UnknownBlock,
    UnknownDelta,
    Usage,
)
from .streaming import (
    MessageAccumulator,
    MessageStream,
    StreamEvent,
    StreamStats,
    ToolInput,
    ToolInputDelta,
)

__version__ = "0.1.0"

__all__ = [
    # Models
    "ApiError",
    # Exceptions
    "ClassificationError",
    # Client
    "Configuration",
    "ContentBlock",
    "DecodeError",
    "Delta",
    "ErrorKind",
    "ImageBlock",
    "InputJsonDelta",
    "Message",
    # Streaming
    "MessageAccumulator",
    "MessageDelta",
    "MessageStream",
    "MessagesClient",
    "ProtocolError",
    "ProtocolViolation",
    "ServerError",
    "StopReason",
    "StreamConsumedError",
    "StreamEvent",
    "StreamStats",
    "StreamingError",
    "TextBlock",
    "TextDelta",
    "ToolInput",
    "ToolInputDelta",
    "ToolUseBlock",
    "TransportError",
    "UnknownBlock",
    "UnknownDelta",
    "Usage",
    "configure_logging",
]

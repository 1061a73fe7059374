"""
Streaming functionality for the Messages API.

This package contains:
- SSE frame decoding
- Event classification into typed stream events
- Rate-limit filtering and projection views
- Delta accumulation into a complete Message
"""

from __future__ import annotations

from .accumulator import MessageAccumulator, OpenBlock
from .decoder import FrameDecoder, decode_frames
from .events import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    ErrorEvent,
    MessageDeltaEvent,
    MessageStartEvent,
    MessageStopEvent,
    PingEvent,
    StreamEvent,
    UnrecognizedEvent,
    classify,
)
from .filters import deltas, filter_rate_limit, text, tool_inputs
from .models import Frame, StreamStats, ToolInput, ToolInputDelta
from .stream import MessageStream, iter_events

__all__ = [
    # Events
    "ContentBlockDeltaEvent",
    "ContentBlockStartEvent",
    "ContentBlockStopEvent",
    "ErrorEvent",
    # Pipeline
    "Frame",
    "FrameDecoder",
    "MessageAccumulator",
    "MessageDeltaEvent",
    "MessageStartEvent",
    "MessageStopEvent",
    "MessageStream",
    "OpenBlock",
    "PingEvent",
    "StreamEvent",
    "StreamStats",
    "ToolInput",
    "ToolInputDelta",
    "UnrecognizedEvent",
    "classify",
    "decode_frames",
    "deltas",
    "filter_rate_limit",
    "iter_events",
    "text",
    "tool_inputs",
]

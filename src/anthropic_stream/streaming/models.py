"""
Streaming-specific dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Frame:
    """One complete server-sent event: its name and joined data payload."""
    event: str
    data: str
    id: str | None = None
    retry: int | None = None


@dataclass
class StreamStats:
    """Counters for one stream, for monitoring."""
    bytes_received: int = 0
    frames: int = 0
    events: int = 0
    suppressed_errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "bytes_received": self.bytes_received,
            "frames": self.frames,
            "events": self.events,
            "suppressed_errors": self.suppressed_errors,
        }


@dataclass(frozen=True)
class ToolInputDelta:
    """A raw partial-JSON fragment of a tool-use block's input."""
    index: int
    tool_use_id: str
    name: str
    partial_json: str


@dataclass(frozen=True)
class ToolInput:
    """The parsed input of a tool-use block, emitted when the block closes."""
    index: int
    tool_use_id: str
    name: str
    input: Any

"""
Core response models for the Messages API.

This module provides the data shapes shared by the streaming pipeline:
- Content blocks (text, tool use, image, unknown)
- Content block deltas (text, partial JSON, unknown)
- The accumulated Message with usage counters
- API error kinds with their HTTP status mapping
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


class StopReason(str, Enum):
    """Known stop reasons. Messages keep the raw string so new values survive."""
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"
    TOOL_USE = "tool_use"


class ErrorKind(Enum):
    """API error types as reported in `error` events and error responses."""
    INVALID_REQUEST = "invalid_request_error"
    AUTHENTICATION = "authentication_error"
    PERMISSION = "permission_error"
    NOT_FOUND = "not_found_error"
    REQUEST_TOO_LARGE = "request_too_large"
    RATE_LIMIT = "rate_limit_error"
    API = "api_error"
    OVERLOADED = "overloaded_error"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, error_type: str | None) -> ErrorKind:
        """Map an API error type string, falling back to UNKNOWN."""
        try:
            return cls(error_type)
        except ValueError:
            return cls.UNKNOWN

    @property
    def status(self) -> int:
        """HTTP status code the API uses for this kind of error."""
        return _ERROR_STATUS[self]

    @property
    def retryable(self) -> bool:
        """Whether waiting is enough to recover (server load signals)."""
        return self in (ErrorKind.RATE_LIMIT, ErrorKind.OVERLOADED)


_ERROR_STATUS = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.PERMISSION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.REQUEST_TOO_LARGE: 413,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.API: 500,
    ErrorKind.OVERLOADED: 529,
    ErrorKind.UNKNOWN: 500,
}


class ApiError(BaseModel):
    """Error object carried by `error` events and non-200 responses."""
    type: str
    message: str = ""

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind.from_type(self.type)


# --------------------------------------------------------------------------- #
# Content blocks                                                              #
# --------------------------------------------------------------------------- #

class TextBlock(BaseModel):
    """A run of text."""
    type: Literal["text"] = "text"
    text: str = ""


class ToolUseBlock(BaseModel):
    """A tool invocation. `input` is the parsed JSON object."""
    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: Any = Field(default_factory=dict)


class ImageSource(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    media_type: str | None = None
    data: str | None = None


class ImageBlock(BaseModel):
    """Image placeholder referencing its source."""
    type: Literal["image"] = "image"
    source: ImageSource


class UnknownBlock(BaseModel):
    """Forward-compatibility bucket; keeps every field the API sent."""
    model_config = ConfigDict(extra="allow")

    type: str


_BLOCK_TYPES = frozenset({"text", "tool_use", "image"})


def _block_tag(value: Any) -> str:
    tag = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return tag if tag in _BLOCK_TYPES else "unknown"


ContentBlock = Annotated[
    Annotated[TextBlock, Tag("text")]
    | Annotated[ToolUseBlock, Tag("tool_use")]
    | Annotated[ImageBlock, Tag("image")]
    | Annotated[UnknownBlock, Tag("unknown")],
    Discriminator(_block_tag),
]


# --------------------------------------------------------------------------- #
# Deltas                                                                      #
# --------------------------------------------------------------------------- #

class TextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str


class InputJsonDelta(BaseModel):
    type: Literal["input_json_delta"] = "input_json_delta"
    partial_json: str


class UnknownDelta(BaseModel):
    """Delta of a modality this client does not know yet."""
    model_config = ConfigDict(extra="allow")

    type: str


_DELTA_TYPES = frozenset({"text_delta", "input_json_delta"})


def _delta_tag(value: Any) -> str:
    tag = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    return tag if tag in _DELTA_TYPES else "unknown"


Delta = Annotated[
    Annotated[TextDelta, Tag("text_delta")]
    | Annotated[InputJsonDelta, Tag("input_json_delta")]
    | Annotated[UnknownDelta, Tag("unknown")],
    Discriminator(_delta_tag),
]


# --------------------------------------------------------------------------- #
# Message                                                                     #
# --------------------------------------------------------------------------- #

class Usage(BaseModel):
    """Token usage counters."""
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None

    def merge(self, update: Usage) -> Usage:
        """Return a copy with every field the update explicitly carried applied."""
        changes = {name: getattr(update, name) for name in update.model_fields_set}
        return self.model_copy(update=changes)


class Message(BaseModel):
    """A complete assistant message, as returned by a non-streaming call."""
    id: str
    type: Literal["message"] = "message"
    role: str = "assistant"
    content: list[ContentBlock] = Field(default_factory=list)
    model: str = ""
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage = Field(default_factory=Usage)

    @property
    def text(self) -> str:
        """Concatenated text of all text blocks, in order."""
        return "".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        )

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


class MessageDelta(BaseModel):
    """Top-level field updates carried by `message_delta` events."""
    stop_reason: str | None = None
    stop_sequence: str | None = None
    usage: Usage | None = None

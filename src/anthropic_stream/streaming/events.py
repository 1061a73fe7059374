"""
Typed stream events and the frame classifier.

Each SSE frame carries a JSON payload whose shape is fixed by its event
name. Known names validate into one of the event models below; unknown
names become `UnrecognizedEvent` so new API events never break older
clients. Unknown fields inside known events are ignored.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from ..exceptions import ClassificationError, ServerError
from ..models import ApiError, ContentBlock, Delta, Message, MessageDelta, Usage
from .models import Frame


class MessageStartEvent(BaseModel):
    """The response shell with empty content."""
    type: Literal["message_start"] = "message_start"
    message: Message


class ContentBlockStartEvent(BaseModel):
    type: Literal["content_block_start"] = "content_block_start"
    index: int
    content_block: ContentBlock


class ContentBlockDeltaEvent(BaseModel):
    type: Literal["content_block_delta"] = "content_block_delta"
    index: int
    delta: Delta


class ContentBlockStopEvent(BaseModel):
    type: Literal["content_block_stop"] = "content_block_stop"
    index: int


class MessageDeltaEvent(BaseModel):
    """
    Top-level field updates.

    The API sends usage beside the delta; some producers nest it inside.
    Both placements are accepted, `effective_usage` picks whichever exists.
    """
    type: Literal["message_delta"] = "message_delta"
    delta: MessageDelta = Field(default_factory=MessageDelta)
    usage: Usage | None = None

    @property
    def effective_usage(self) -> Usage | None:
        return self.usage if self.usage is not None else self.delta.usage


class MessageStopEvent(BaseModel):
    type: Literal["message_stop"] = "message_stop"


class PingEvent(BaseModel):
    type: Literal["ping"] = "ping"


class ErrorEvent(BaseModel):
    """API-reported error delivered in-band."""
    type: Literal["error"] = "error"
    error: ApiError

    @property
    def retryable(self) -> bool:
        return self.error.kind.retryable

    def to_exception(self) -> ServerError:
        return ServerError(
            self.error.message,
            kind=self.error.kind,
            error_type=self.error.type,
        )


class UnrecognizedEvent(BaseModel):
    """An event name this client does not know; payload kept as-is."""
    type: Literal["unrecognized"] = "unrecognized"
    event_type: str
    data: Any = None


StreamEvent = (
    MessageStartEvent
    | ContentBlockStartEvent
    | ContentBlockDeltaEvent
    | ContentBlockStopEvent
    | MessageDeltaEvent
    | MessageStopEvent
    | PingEvent
    | ErrorEvent
    | UnrecognizedEvent
)

EVENT_MODELS: dict[str, type[BaseModel]] = {
    "message_start": MessageStartEvent,
    "content_block_start": ContentBlockStartEvent,
    "content_block_delta": ContentBlockDeltaEvent,
    "content_block_stop": ContentBlockStopEvent,
    "message_delta": MessageDeltaEvent,
    "message_stop": MessageStopEvent,
    "ping": PingEvent,
    "error": ErrorEvent,
}


def _payload_type(data: str) -> str | None:
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None
    if isinstance(payload, dict) and isinstance(payload.get("type"), str):
        return payload["type"]
    return None


def classify(frame: Frame) -> StreamEvent:
    """
    Deserialize one frame into a stream event.

    Frames without an `event:` line arrive named "message"; their payload's
    own `type` field names the event instead.

    Raises:
        ClassificationError: payload is not JSON or does not fit its event's shape
    """
    event_type = frame.event
    if event_type == "message":
        event_type = _payload_type(frame.data) or event_type

    model = EVENT_MODELS.get(event_type)
    if model is None:
        try:
            data: Any = json.loads(frame.data)
        except json.JSONDecodeError:
            data = frame.data
        return UnrecognizedEvent(event_type=event_type, data=data)

    try:
        return model.model_validate_json(frame.data)
    except ValidationError as e:
        raise ClassificationError(
            f"Payload does not match '{event_type}' event: {e.error_count()} error(s)",
            event_type=event_type,
            raw_payload=frame.data,
            details={"errors": e.errors(include_url=False)},
        ) from e

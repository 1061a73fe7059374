"""
Delta accumulation into a complete Message.

The accumulator is a fold over the ordered event sequence. It owns the
in-progress message shell, the finalized blocks (append-only, in index
order) and at most one open block with its string buffer. Every event is
checked against the expected ordering; anything out of order raises
ProtocolViolation instead of being patched over.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from ..exceptions import DecodeError, ProtocolViolation
from ..logging_utils import ContextualLogger
from ..models import (
    ContentBlock,
    InputJsonDelta,
    Message,
    TextBlock,
    TextDelta,
    ToolUseBlock,
    UnknownDelta,
)
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
)


@dataclass
class OpenBlock:
    """The block currently receiving deltas."""
    index: int
    block: ContentBlock
    buffer: list[str] = field(default_factory=list)

    def finalize(self) -> ContentBlock:
        """Fold the buffer into the block."""
        if isinstance(self.block, TextBlock):
            return self.block.model_copy(
                update={"text": self.block.text + "".join(self.buffer)}
            )

        raw = "".join(self.buffer)
        if isinstance(self.block, ToolUseBlock) and raw:
            try:
                tool_input = json.loads(raw)
            except json.JSONDecodeError as e:
                raise DecodeError(
                    f"Tool input for block {self.index} is not valid JSON: {e.msg}",
                    index=self.index,
                    buffer=raw,
                    details={"tool_use_id": self.block.id, "tool_name": self.block.name},
                ) from e
            return self.block.model_copy(update={"input": tool_input})

        return self.block


class MessageAccumulator:
    """
    Folds stream events into one Message.

    Usage:
        accumulator = MessageAccumulator()
        async for event in events:
            accumulator.apply(event)
        message = accumulator.finish()
    """

    def __init__(self, logger: ContextualLogger | None = None):
        self._logger = logger or ContextualLogger()
        self._message: Message | None = None
        self._blocks: list[ContentBlock] = []
        self._open: OpenBlock | None = None
        self._complete = False

    @property
    def started(self) -> bool:
        return self._message is not None

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def open_index(self) -> int | None:
        return self._open.index if self._open else None

    def apply(self, event: StreamEvent) -> None:  # noqa: PLR0911, PLR0912
        """
        Apply one event.

        Raises:
            ServerError: the event is an API error; accumulated state is dropped
            ProtocolViolation: the event is not valid in the current state
            DecodeError: a tool-use block closed with malformed JSON input
        """
        if isinstance(event, ErrorEvent):
            self.reset()
            raise event.to_exception()

        if isinstance(event, PingEvent):
            return

        if isinstance(event, UnrecognizedEvent):
            self._logger.debug("Ignoring unrecognized event", event_type=event.event_type)
            return

        if self._complete:
            raise ProtocolViolation("event after message_stop", event.type)

        if isinstance(event, MessageStartEvent):
            self._start(event)
            return

        if self._message is None:
            raise ProtocolViolation("event before message_start", event.type)

        if isinstance(event, ContentBlockStartEvent):
            self._open_block(event)
        elif isinstance(event, ContentBlockDeltaEvent):
            self._apply_delta(event)
        elif isinstance(event, ContentBlockStopEvent):
            self._close_block(event)
        elif isinstance(event, MessageDeltaEvent):
            self._merge_message_delta(self._message, event)
        elif isinstance(event, MessageStopEvent):
            if self._open is not None:
                raise ProtocolViolation(
                    f"message_stop while block {self._open.index} is open", event.type
                )
            self._complete = True

    def finish(self) -> Message:
        """
        Return the completed message.

        Raises:
            ProtocolViolation: message_stop has not been applied yet
        """
        if not self._complete or self._message is None:
            raise ProtocolViolation("message is incomplete, message_stop not seen")
        return self._message.model_copy(update={"content": list(self._blocks)})

    def reset(self) -> None:
        """Discard all partial state."""
        self._message = None
        self._blocks = []
        self._open = None
        self._complete = False

    def _start(self, event: MessageStartEvent) -> None:
        if self._message is not None:
            raise ProtocolViolation("duplicate message_start", event.type)
        if event.message.content:
            raise ProtocolViolation("message_start carried non-empty content", event.type)
        self._message = event.message
        self._logger = self._logger.bind(message_id=event.message.id)

    def _open_block(self, event: ContentBlockStartEvent) -> None:
        if self._open is not None:
            raise ProtocolViolation(
                f"block {event.index} started while block {self._open.index} is open",
                event.type,
            )
        expected = len(self._blocks)
        if event.index != expected:
            raise ProtocolViolation(
                f"block index {event.index} out of order, expected {expected}",
                event.type,
            )
        self._open = OpenBlock(index=event.index, block=event.content_block)

    def _apply_delta(self, event: ContentBlockDeltaEvent) -> None:
        current = self._require_open(event.index, event.type)
        delta = event.delta

        if isinstance(delta, TextDelta):
            if not isinstance(current.block, TextBlock):
                raise ProtocolViolation(
                    f"text delta for {current.block.type} block {event.index}", event.type
                )
            current.buffer.append(delta.text)
        elif isinstance(delta, InputJsonDelta):
            if not isinstance(current.block, ToolUseBlock):
                raise ProtocolViolation(
                    f"input_json delta for {current.block.type} block {event.index}",
                    event.type,
                )
            current.buffer.append(delta.partial_json)
        elif isinstance(delta, UnknownDelta):
            self._logger.debug(
                "Ignoring unrecognized delta", delta_type=delta.type, index=event.index
            )

    def _close_block(self, event: ContentBlockStopEvent) -> None:
        current = self._require_open(event.index, event.type)
        self._blocks.append(current.finalize())
        self._open = None

    def _merge_message_delta(self, message: Message, event: MessageDeltaEvent) -> None:
        fields = event.delta.model_fields_set
        update: dict = {}
        if "stop_reason" in fields:
            update["stop_reason"] = event.delta.stop_reason
        if "stop_sequence" in fields:
            update["stop_sequence"] = event.delta.stop_sequence
        usage = event.effective_usage
        if usage is not None:
            update["usage"] = message.usage.merge(usage)
        self._message = message.model_copy(update=update)

    def _require_open(self, index: int, event_type: str) -> OpenBlock:
        if self._open is None:
            raise ProtocolViolation(f"no open block for index {index}", event_type)
        if self._open.index != index:
            raise ProtocolViolation(
                f"index {index} does not match open block {self._open.index}", event_type
            )
        return self._open

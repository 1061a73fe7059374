"""
Composable transforms over the classified event sequence.

- filter_rate_limit: hides rate-limit and overloaded error events
- deltas / text / tool_inputs: order-preserving projections

Projections raise ServerError on any error event they meet so a consumer
reading only text still observes failures. Apply filter_rate_limit first
to keep transient load signals from ending a projection.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

from ..logging_utils import ContextualLogger
from ..models import Delta, InputJsonDelta, TextDelta, ToolUseBlock
from .accumulator import OpenBlock
from .events import (
    ContentBlockDeltaEvent,
    ContentBlockStartEvent,
    ContentBlockStopEvent,
    ErrorEvent,
    StreamEvent,
)
from .models import StreamStats, ToolInput, ToolInputDelta


async def filter_rate_limit(
    events: AsyncIterable[StreamEvent],
    *,
    logger: ContextualLogger | None = None,
    stats: StreamStats | None = None,
) -> AsyncIterator[StreamEvent]:
    """
    Drop rate-limit and overloaded error events, forward everything else.

    Reconnection and backoff belong to the transport; this only decides
    which events the consumer sees.
    """
    logger = logger or ContextualLogger()
    async for event in events:
        if isinstance(event, ErrorEvent) and event.retryable:
            if stats is not None:
                stats.suppressed_errors += 1
            logger.warning(
                "Suppressed transient server error",
                api_error_type=event.error.type,
                api_error_message=event.error.message,
            )
            continue
        yield event


async def deltas(events: AsyncIterable[StreamEvent]) -> AsyncIterator[Delta]:
    """Every content block delta payload, in arrival order."""
    async for event in events:
        if isinstance(event, ErrorEvent):
            raise event.to_exception()
        if isinstance(event, ContentBlockDeltaEvent):
            yield event.delta


async def text(events: AsyncIterable[StreamEvent]) -> AsyncIterator[str]:
    """Plain-text fragments of text deltas only."""
    async for delta in deltas(events):
        if isinstance(delta, TextDelta):
            yield delta.text


async def tool_inputs(
    events: AsyncIterable[StreamEvent],
    *,
    partial: bool = True,
) -> AsyncIterator[ToolInputDelta | ToolInput]:
    """
    Tool-use input, per block.

    Args:
        events: Classified event sequence
        partial: Also yield each raw JSON fragment as it arrives

    Yields:
        ToolInputDelta for each fragment (when partial), then one ToolInput
        with the parsed JSON once the block's content_block_stop arrives

    Raises:
        DecodeError: the concatenated fragments are not valid JSON
        ServerError: an error event was seen
    """
    current: OpenBlock | None = None

    async for event in events:
        if isinstance(event, ErrorEvent):
            raise event.to_exception()

        if isinstance(event, ContentBlockStartEvent):
            block = event.content_block
            current = (
                OpenBlock(index=event.index, block=block)
                if isinstance(block, ToolUseBlock)
                else None
            )

        elif isinstance(event, ContentBlockDeltaEvent):
            if current is None or current.index != event.index:
                continue
            if isinstance(event.delta, InputJsonDelta):
                current.buffer.append(event.delta.partial_json)
                if partial:
                    yield ToolInputDelta(
                        index=current.index,
                        tool_use_id=current.block.id,
                        name=current.block.name,
                        partial_json=event.delta.partial_json,
                    )

        elif isinstance(event, ContentBlockStopEvent):
            if current is None or current.index != event.index:
                continue
            finalized = current.finalize()
            yield ToolInput(
                index=current.index,
                tool_use_id=finalized.id,
                name=finalized.name,
                input=finalized.input,
            )
            current = None

"""
MessageStream: the consumer-facing event sequence for one completion.

Composes frame decoding and classification over a transport byte source
and offers the retry filter, the projections and `collect` on top. A
stream is single-use: once iterated, projected or collected it cannot be
started again. Closing it (explicitly, via `async with`, or by finishing
any consumer) releases the transport.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from typing import Any, TypeVar

from ..exceptions import StreamConsumedError, StreamingError, TransportError
from ..logging_utils import ContextualLogger, StreamErrorHandler, log_operation
from ..models import Delta, Message
from . import filters
from .accumulator import MessageAccumulator
from .decoder import FrameDecoder, decode_frames
from .events import StreamEvent, classify
from .models import StreamStats, ToolInput, ToolInputDelta

T = TypeVar("T")

CloseCallback = Callable[[], Awaitable[None]]


async def iter_events(
    chunks: AsyncIterable[bytes],
    *,
    decoder: FrameDecoder | None = None,
    stats: StreamStats | None = None,
    logger: ContextualLogger | None = None,
    log_events: bool = False,
) -> AsyncIterator[StreamEvent]:
    """
    Decode and classify a byte stream into stream events.

    Raises:
        ProtocolError: framing or UTF-8 failure
        ClassificationError: a payload does not fit its event shape
    """
    decoder = decoder or FrameDecoder()
    stats = stats if stats is not None else StreamStats()
    logger = logger or ContextualLogger()

    try:
        async for frame in decode_frames(chunks, decoder):
            stats.frames += 1
            stats.bytes_received = decoder.bytes_received
            event = classify(frame)
            stats.events += 1
            if log_events:
                logger.debug(
                    "Stream event",
                    event_type=event.type,
                    index=getattr(event, "index", None),
                )
            yield event
    finally:
        stats.bytes_received = decoder.bytes_received


class MessageStream:
    """
    Lazy, single-use sequence of StreamEvent.

    Error events are yielded as ErrorEvent values so callers can watch
    rate limiting themselves; `filter_rate_limit()` hides the transient
    ones. Projections and `collect()` raise ServerError for error events.

    Example:
        async with await client.stream(request) as stream:
            async for piece in stream.filter_rate_limit().text():
                print(piece, end="")
    """

    def __init__(
        self,
        events: AsyncIterable[StreamEvent],
        *,
        on_close: CloseCallback | None = None,
        stream_id: str | None = None,
        stats: StreamStats | None = None,
    ):
        self.stream_id = stream_id or uuid.uuid4().hex[:12]
        self.stats = stats if stats is not None else StreamStats()
        self._logger = ContextualLogger({"stream_id": self.stream_id})
        self._events = events
        self._on_close = on_close
        self._consumed = False
        self._closed = False

    @classmethod
    def from_bytes(
        cls,
        chunks: AsyncIterable[bytes],
        *,
        on_close: CloseCallback | None = None,
        stream_id: str | None = None,
        log_events: bool = False,
        max_buffer_bytes: int | None = None,
    ) -> MessageStream:
        """Build a stream over raw SSE bytes."""
        stream_id = stream_id or uuid.uuid4().hex[:12]
        stats = StreamStats()
        events = iter_events(
            chunks,
            decoder=FrameDecoder(max_buffer_bytes),
            stats=stats,
            logger=ContextualLogger({"stream_id": stream_id}),
            log_events=log_events,
        )
        return cls(events, on_close=on_close, stream_id=stream_id, stats=stats)

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self._drain(self._take())

    async def __aenter__(self) -> MessageStream:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def filter_rate_limit(self) -> MessageStream:
        """A new stream with rate-limit and overloaded error events removed."""
        events = filters.filter_rate_limit(
            self._take(), logger=self._logger, stats=self.stats
        )
        return MessageStream(
            events,
            on_close=self._close_source,
            stream_id=self.stream_id,
            stats=self.stats,
        )

    def deltas(self) -> AsyncIterator[Delta]:
        return self._drain(filters.deltas(self._take()))

    def text(self) -> AsyncIterator[str]:
        return self._drain(filters.text(self._take()))

    def tool_inputs(self, *, partial: bool = True) -> AsyncIterator[ToolInputDelta | ToolInput]:
        return self._drain(filters.tool_inputs(self._take(), partial=partial))

    @log_operation("collect_message")
    async def collect(self) -> Message:
        """
        Drive the accumulator to completion.

        Returns:
            The fully accumulated Message

        Raises:
            ServerError: an error event arrived; partial content is discarded
            ProtocolViolation: events arrived out of order
            TransportError: the byte stream ended before message_stop
        """
        accumulator = MessageAccumulator(self._logger)
        try:
            async for event in self._take():
                accumulator.apply(event)
                if accumulator.is_complete:
                    break

            if not accumulator.is_complete:
                accumulator.reset()
                raise TransportError(
                    "Stream ended before message_stop",
                    details=self.stats.as_dict(),
                )
            return accumulator.finish()
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """Release the transport. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._close_source()

    async def _close_source(self) -> None:
        aclose = getattr(self._events, "aclose", None)
        if aclose is not None:
            await aclose()
        if self._on_close is not None:
            await self._on_close()
            self._on_close = None

    def _take(self) -> AsyncIterable[StreamEvent]:
        if self._consumed:
            raise StreamConsumedError()
        self._consumed = True
        return self._events

    async def _drain(self, iterator: AsyncIterator[T]) -> AsyncIterator[T]:
        try:
            async for item in iterator:
                yield item
        except StreamingError as e:
            self._logger.error("Stream failed", **StreamErrorHandler.error_context(e))
            raise
        finally:
            aclose: Any = getattr(iterator, "aclose", None)
            if aclose is not None:
                await aclose()
            await self.aclose()

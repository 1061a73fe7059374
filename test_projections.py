#!/usr/bin/env python3
"""
Tests for the text, delta and tool-input projections.
"""

import pytest

from anthropic_stream.exceptions import DecodeError, ServerError
from anthropic_stream.models import InputJsonDelta, TextDelta
from anthropic_stream.streaming.models import ToolInput, ToolInputDelta
from anthropic_stream.streaming.stream import MessageStream
from conftest import (
    aiter_chunks,
    block_start,
    block_stop,
    collect_all,
    error,
    hello_frames,
    json_delta,
    message_delta,
    message_start,
    message_stop,
    ping,
    text_delta,
    tool_use_frames,
)


def stream_of(frames: list[bytes]) -> MessageStream:
    return MessageStream.from_bytes(aiter_chunks(frames))


class TestTextProjection:
    """Only text fragments, in order."""

    @pytest.mark.asyncio
    async def test_text_fragments(self):
        assert await collect_all(stream_of(hello_frames()).text()) == ["Hel", "lo"]

    @pytest.mark.asyncio
    async def test_text_skips_tool_input(self):
        frames = tool_use_frames(['{"a":', " 1}"])
        assert await collect_all(stream_of(frames).text()) == ["Checking."]

    @pytest.mark.asyncio
    async def test_text_across_blocks(self):
        frames = [
            message_start(),
            block_start(0, {"type": "text", "text": ""}),
            text_delta(0, "one "),
            block_stop(0),
            ping(),
            block_start(1, {"type": "text", "text": ""}),
            text_delta(1, "two"),
            block_stop(1),
            message_delta(),
            message_stop(),
        ]
        assert "".join(await collect_all(stream_of(frames).text())) == "one two"

    @pytest.mark.asyncio
    async def test_text_tool_text_blocks(self):
        frames = [
            message_start(),
            block_start(0, {"type": "text", "text": ""}),
            text_delta(0, "Let me "),
            text_delta(0, "check."),
            block_stop(0),
            block_start(1, {"type": "tool_use", "id": "toolu_1", "name": "search", "input": {}}),
            json_delta(1, '{"q": "weather"}'),
            block_stop(1),
            block_start(2, {"type": "text", "text": ""}),
            text_delta(2, "Done."),
            block_stop(2),
            message_delta("end_turn"),
            message_stop(),
        ]
        pieces = await collect_all(stream_of(frames).text())
        assert pieces == ["Let me ", "check.", "Done."]

    @pytest.mark.asyncio
    async def test_error_event_raises_after_earlier_fragments(self):
        frames = hello_frames()
        frames.insert(3, error("api_error", "internal"))
        received = []
        with pytest.raises(ServerError, match="internal"):
            async for piece in stream_of(frames).text():
                received.append(piece)
        assert received == ["Hel"]

    @pytest.mark.asyncio
    async def test_filtered_text_ignores_transient_errors(self):
        frames = hello_frames()
        frames.insert(3, error("overloaded_error"))
        pieces = await collect_all(stream_of(frames).filter_rate_limit().text())
        assert pieces == ["Hel", "lo"]


class TestDeltasProjection:
    """Every delta payload regardless of type."""

    @pytest.mark.asyncio
    async def test_all_deltas_in_order(self):
        frames = tool_use_frames(['{"a":', " 1}"])
        deltas = await collect_all(stream_of(frames).deltas())
        assert deltas == [
            TextDelta(text="Checking."),
            InputJsonDelta(partial_json='{"a":'),
            InputJsonDelta(partial_json=" 1}"),
        ]


class TestToolInputProjection:
    """Tool-use fragments and the parsed input."""

    @pytest.mark.asyncio
    async def test_partial_fragments_then_parsed_input(self, tool_use_bytes):
        items = await collect_all(MessageStream.from_bytes(aiter_chunks([tool_use_bytes])).tool_inputs())

        fragments = [i for i in items if isinstance(i, ToolInputDelta)]
        finals = [i for i in items if isinstance(i, ToolInput)]
        assert "".join(f.partial_json for f in fragments) == '{"location": "Paris", "unit": "c"}'
        assert all(f.tool_use_id == "toolu_1" and f.index == 1 for f in fragments)
        assert finals == [
            ToolInput(index=1, tool_use_id="toolu_1", name="get_weather",
                      input={"location": "Paris", "unit": "c"}),
        ]
        assert items[-1] == finals[0]

    @pytest.mark.asyncio
    async def test_complete_only(self, tool_use_bytes):
        stream = MessageStream.from_bytes(aiter_chunks([tool_use_bytes]))
        items = await collect_all(stream.tool_inputs(partial=False))
        assert len(items) == 1
        assert items[0].input == {"location": "Paris", "unit": "c"}

    @pytest.mark.asyncio
    async def test_empty_input_fragment_keeps_start_input(self):
        items = await collect_all(stream_of(tool_use_frames([""])).tool_inputs())
        assert items == [
            ToolInputDelta(index=1, tool_use_id="toolu_1", name="get_weather", partial_json=""),
            ToolInput(index=1, tool_use_id="toolu_1", name="get_weather", input={}),
        ]

    @pytest.mark.asyncio
    async def test_collect_tool_without_arguments(self):
        message = await stream_of(tool_use_frames([""])).collect()
        assert message.tool_uses[0].input == {}

    @pytest.mark.asyncio
    async def test_text_only_stream_yields_nothing(self):
        assert await collect_all(stream_of(hello_frames()).tool_inputs()) == []

    @pytest.mark.asyncio
    async def test_malformed_input_raises_decode_error(self):
        frames = tool_use_frames(['{"location": ', "oops"])
        with pytest.raises(DecodeError):
            await collect_all(stream_of(frames).tool_inputs(partial=False))

"""Shared SSE fixtures and helpers for the test suite."""

import json
from collections.abc import AsyncIterator, Iterable
from typing import Any

import pytest
import yaml


def sse(event: str, payload: Any, *, newline: str = "\n") -> bytes:
    """Encode one SSE frame with a JSON data line."""
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"event: {event}{newline}data: {data}{newline}{newline}".encode()


def message_start(message_id: str = "msg_1", **usage: int) -> bytes:
    return sse("message_start", {
        "type": "message_start",
        "message": {
            "id": message_id,
            "type": "message",
            "role": "assistant",
            "content": [],
            "model": "claude-test",
            "stop_reason": None,
            "stop_sequence": None,
            "usage": {"input_tokens": usage.get("input_tokens", 5), "output_tokens": 1},
        },
    })


def block_start(index: int, block: dict[str, Any]) -> bytes:
    return sse("content_block_start", {
        "type": "content_block_start", "index": index, "content_block": block,
    })


def text_delta(index: int, text: str) -> bytes:
    return sse("content_block_delta", {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "text_delta", "text": text},
    })


def json_delta(index: int, partial_json: str) -> bytes:
    return sse("content_block_delta", {
        "type": "content_block_delta",
        "index": index,
        "delta": {"type": "input_json_delta", "partial_json": partial_json},
    })


def block_stop(index: int) -> bytes:
    return sse("content_block_stop", {"type": "content_block_stop", "index": index})


def message_delta(stop_reason: str | None = "end_turn", output_tokens: int = 7) -> bytes:
    return sse("message_delta", {
        "type": "message_delta",
        "delta": {"stop_reason": stop_reason, "stop_sequence": None},
        "usage": {"output_tokens": output_tokens},
    })


def message_stop() -> bytes:
    return sse("message_stop", {"type": "message_stop"})


def ping() -> bytes:
    return sse("ping", {"type": "ping"})


def error(error_type: str, message: str = "boom") -> bytes:
    return sse("error", {
        "type": "error", "error": {"type": error_type, "message": message},
    })


def hello_frames() -> list[bytes]:
    """A single text block 'Hello' ending with end_turn."""
    return [
        message_start(),
        block_start(0, {"type": "text", "text": ""}),
        text_delta(0, "Hel"),
        text_delta(0, "lo"),
        block_stop(0),
        message_delta("end_turn", 7),
        message_stop(),
    ]


def tool_use_frames(fragments: Iterable[str]) -> list[bytes]:
    """A text block followed by a tool_use block whose input arrives in fragments."""
    frames = [
        message_start(),
        block_start(0, {"type": "text", "text": ""}),
        text_delta(0, "Checking."),
        block_stop(0),
        block_start(1, {"type": "tool_use", "id": "toolu_1", "name": "get_weather", "input": {}}),
    ]
    frames.extend(json_delta(1, fragment) for fragment in fragments)
    frames.extend([block_stop(1), message_delta("tool_use", 20), message_stop()])
    return frames


def split_every(data: bytes, size: int) -> list[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


async def aiter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def collect_all(iterator) -> list:
    return [item async for item in iterator]


@pytest.fixture
def hello_bytes() -> bytes:
    return b"".join(hello_frames())


@pytest.fixture
def tool_use_bytes() -> bytes:
    return b"".join(tool_use_frames(['{"loc', 'ation": "Par', 'is", "unit": "c"}']))


@pytest.fixture
def config_file(tmp_path):
    """Write a complete config.yaml and return its path."""
    def _write(**overrides: Any) -> str:
        config = {
            "client": {
                "base_url": "https://api.test",
                "messages_path": "/v1/messages",
                "anthropic_version": "2023-06-01",
                "connect_timeout": 5.0,
                "read_timeout": 30.0,
                "write_timeout": 5.0,
                "pool_timeout": 5.0,
            },
            "streaming": {
                "filter_rate_limit": False,
                "log_events": False,
                "max_buffer_bytes": 65536,
            },
            "logging": {"level": "DEBUG", "renderer": "console"},
        }
        for section, values in overrides.items():
            if values is None:
                config.pop(section, None)
            else:
                config[section] = {**config.get(section, {}), **values}
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump(config))
        return str(path)

    return _write

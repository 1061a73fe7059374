#!/usr/bin/env python3
"""
Test script for logging utilities.

This validates that structured logging and error classification work
correctly for the streaming error taxonomy.
"""

import pytest

from anthropic_stream.exceptions import (
    ClassificationError,
    DecodeError,
    ProtocolError,
    ProtocolViolation,
    ServerError,
    TransportError,
)
from anthropic_stream.logging_utils import (
    ContextualLogger,
    StreamErrorHandler,
    configure_logging,
    log_operation,
    operation_context,
)
from anthropic_stream.models import ErrorKind


class TestStreamErrorHandler:
    """Test the StreamErrorHandler class."""

    @pytest.mark.parametrize(
        ("error", "category"),
        [
            (ServerError("busy", kind=ErrorKind.OVERLOADED), "server_error"),
            (ProtocolViolation("duplicate message_start", "message_start"), "protocol_violation"),
            (DecodeError("bad json", index=1, buffer="{"), "decode_error"),
            (ClassificationError("bad", event_type="ping", raw_payload="x"), "classification_error"),
            (ProtocolError("not utf-8"), "protocol_error"),
            (TransportError("reset"), "transport_error"),
            (TimeoutError("slow"), "timeout_error"),
            (ConnectionError("Network unreachable"), "connection_error"),
            (ValueError("Invalid parameter"), "unknown_error"),
        ],
    )
    def test_classify_error(self, error, category):
        """Each error type maps onto its category."""
        assert StreamErrorHandler.classify_error(error) == category

    def test_error_context_for_server_error(self):
        """Server errors carry the API error type and status."""
        error = ServerError("slow down", kind=ErrorKind.RATE_LIMIT)
        context = StreamErrorHandler.error_context(error)
        assert context["error_type"] == "ServerError"
        assert context["error_category"] == "server_error"
        assert context["api_error_type"] == "rate_limit_error"
        assert context["status"] == 429

    def test_error_context_for_violation(self):
        """Protocol violations carry the offending event type."""
        error = ProtocolViolation("no open block for index 0", "content_block_stop")
        context = StreamErrorHandler.error_context(error)
        assert context["event_type"] == "content_block_stop"
        assert context["error_message"] == "content_block_stop: no open block for index 0"


class TestDecorators:
    """Test logging decorators."""

    @pytest.mark.asyncio
    async def test_log_operation_success(self):
        """Test log_operation decorator with successful function."""

        @log_operation("test_operation", log_timing=True)
        async def successful_function():
            return "success"

        result = await successful_function()
        assert result == "success"

    @pytest.mark.asyncio
    async def test_log_operation_without_timing(self):
        """Arguments pass through and the return value is unchanged."""

        @log_operation("test_operation", log_timing=False)
        async def add(a, b):
            return a + b

        assert await add(1, b=2) == 3

    @pytest.mark.asyncio
    async def test_log_operation_with_error(self):
        """Test log_operation decorator with function that raises error."""

        @log_operation("test_operation", log_timing=True)
        async def failing_function():
            raise TransportError("Test error")

        with pytest.raises(TransportError, match="Test error"):
            await failing_function()


class TestContextManager:
    """Test operation context manager."""

    @pytest.mark.asyncio
    async def test_operation_context_success(self):
        """Test operation context manager with successful operation."""
        async with operation_context("test_operation", log_timing=True) as logger:
            assert logger is not None

    @pytest.mark.asyncio
    async def test_operation_context_with_error(self):
        """Test operation context manager with failing operation."""
        with pytest.raises(ValueError, match="Test error"):
            async with operation_context("test_operation", log_timing=True):
                raise ValueError("Test error")


class TestContextualLogger:
    """Test ContextualLogger class."""

    def test_contextual_logger_initialization(self):
        """Test ContextualLogger initialization."""
        context = {"stream_id": "abc123", "message_id": "msg_1"}
        logger = ContextualLogger(context)
        assert logger.base_context == context

    def test_contextual_logger_bind(self):
        """Test ContextualLogger bind method."""
        logger = ContextualLogger({"stream_id": "abc123"})

        bound_logger = logger.bind(message_id="msg_1", index=0)
        assert bound_logger.base_context == {
            "stream_id": "abc123", "message_id": "msg_1", "index": 0,
        }
        assert logger.base_context == {"stream_id": "abc123"}

    def test_contextual_logger_methods(self):
        """Test ContextualLogger logging methods don't raise exceptions."""
        logger = ContextualLogger({"stream_id": "test"})

        logger.info("Test info message", extra="data")
        logger.warning("Test warning message", extra="data")
        logger.error("Test error message", extra="data")
        logger.debug("Test debug message", extra="data")


class TestConfigureLogging:
    """Renderer selection."""

    def test_unknown_renderer(self):
        with pytest.raises(ValueError, match="Unknown log renderer"):
            configure_logging(renderer="xml")

    def test_reconfigure_console(self):
        configure_logging(level="DEBUG", renderer="console")
        configure_logging(level="INFO")

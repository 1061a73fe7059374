"""
HTTP transport for the Messages API.

Opens the streaming POST, checks the response before any bytes reach the
decoder, and hands the body to a MessageStream. Building the request
payload is left to the caller.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import httpx
from pydantic import ValidationError

from .config import Configuration
from .exceptions import ProtocolError, ServerError, TransportError
from .logging_utils import log_operation, operation_context
from .models import Message
from .streaming.events import ErrorEvent
from .streaming.stream import MessageStream

HTTP_OK = 200
SSE_CONTENT_TYPE = "text/event-stream"


class MessagesClient:
    """
    Async client for streaming Messages API responses.

    Usage:
        async with MessagesClient() as client:
            stream = await client.stream({"model": ..., "messages": [...]})
            async for piece in stream.text():
                ...
    """

    def __init__(
        self,
        api_key: str | None = None,
        config: Configuration | None = None,
        *,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config or Configuration()
        client_config = self.config.get_client_config()
        streaming_config = self.config.get_streaming_config()

        self.api_key: str = api_key or self.config.api_key
        self.base_url: str = (base_url or client_config["base_url"]).rstrip("/")
        self.messages_url: str = f"{self.base_url}{client_config['messages_path']}"
        self.headers: dict[str, str] = {
            "x-api-key": self.api_key,
            "anthropic-version": client_config["anthropic_version"],
            "content-type": "application/json",
            "accept": SSE_CONTENT_TYPE,
        }
        self.filter_rate_limit: bool = streaming_config["filter_rate_limit"]
        self.log_events: bool = streaming_config["log_events"]
        self.max_buffer_bytes: int | None = streaming_config.get("max_buffer_bytes")

        self._owns_client = http_client is None
        self.client: httpx.AsyncClient = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=client_config["connect_timeout"],
                read=client_config["read_timeout"],
                write=client_config["write_timeout"],
                pool=client_config["pool_timeout"],
            ),
        )

    async def __aenter__(self) -> MessagesClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def stream(
        self,
        request: dict[str, Any],
        *,
        filter_rate_limit: bool | None = None,
    ) -> MessageStream:
        """
        Open a streaming request.

        Args:
            request: Messages API request body; `stream` is forced on
            filter_rate_limit: Override the configured rate-limit filtering

        Returns:
            A MessageStream owning the open response

        Raises:
            ServerError: the API answered with an error body
            TransportError: connection failure or a non-200 status
            ProtocolError: the response is not an event stream
        """
        payload = {**request, "stream": True}
        http_request = self.client.build_request(
            "POST", self.messages_url, json=payload, headers=self.headers
        )

        async with operation_context(
            "open_stream",
            context={"url": self.messages_url, "model": request.get("model")},
        ) as op_logger:
            try:
                response = await self.client.send(http_request, stream=True)
            except httpx.HTTPError as e:
                raise TransportError(f"Request failed: {e}") from e

            try:
                await self._check_response(response)
            except Exception:
                await response.aclose()
                raise

            request_id = response.headers.get("request-id")
            op_logger.debug(
                "Response accepted", status=response.status_code, request_id=request_id
            )

        message_stream = MessageStream.from_bytes(
            self._iter_bytes(response),
            on_close=response.aclose,
            stream_id=request_id,
            log_events=self.log_events,
            max_buffer_bytes=self.max_buffer_bytes,
        )

        if filter_rate_limit is None:
            filter_rate_limit = self.filter_rate_limit
        if filter_rate_limit:
            return message_stream.filter_rate_limit()
        return message_stream

    @log_operation("create_message")
    async def message(
        self,
        request: dict[str, Any],
        *,
        filter_rate_limit: bool | None = None,
    ) -> Message:
        """Stream a request and accumulate it into a complete Message."""
        message_stream = await self.stream(request, filter_rate_limit=filter_rate_limit)
        return await message_stream.collect()

    async def _check_response(self, response: httpx.Response) -> None:
        # FAIL FAST: nothing reaches the decoder unless this is an event stream
        if response.status_code != HTTP_OK:
            body = await response.aread()
            try:
                error_event = ErrorEvent.model_validate_json(body)
            except ValidationError:
                raise TransportError(
                    f"Streaming API error {response.status_code}: "
                    f"{body.decode('utf-8', errors='replace')[:500]}",
                    status_code=response.status_code,
                ) from None

            raise ServerError(
                error_event.error.message,
                kind=error_event.error.kind,
                error_type=error_event.error.type,
                details={"status_code": response.status_code},
            )

        content_type = response.headers.get("content-type", "")
        if SSE_CONTENT_TYPE not in content_type:
            raise ProtocolError(
                f"Expected streaming response, got content-type: {content_type}",
                details={"content_type": content_type},
            )

    @staticmethod
    async def _iter_bytes(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as e:
            raise TransportError(f"Stream read failed: {e}") from e

"""
Server-sent event frame decoder.

Splits an arbitrary byte stream into complete frames. Chunk boundaries
may fall anywhere, including inside a line terminator or a multi-byte
UTF-8 sequence, so bytes are buffered until a full line is available
and decoded one line at a time.
"""

from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator

import structlog

from ..exceptions import ProtocolError
from .models import Frame

logger = structlog.get_logger(__name__)

# Constants
DEFAULT_EVENT = "message"
BOM = "\ufeff"
CR = 0x0D
LF = 0x0A


class FrameDecoder:
    """
    Incremental SSE decoder.

    Feed it byte chunks in arrival order; it returns every frame completed
    by that chunk. A frame is only emitted once its terminating blank line
    has been seen. Frames that carry no `data:` field (comments,
    keep-alives) are dropped.
    """

    def __init__(self, max_buffer_bytes: int | None = None):
        self.max_buffer_bytes = max_buffer_bytes
        self.bytes_received = 0
        self._buffer = bytearray()
        self._first_line = True
        self._event = ""
        self._data: list[str] = []
        self._last_id: str | None = None
        self._retry: int | None = None

    @property
    def has_pending(self) -> bool:
        """True when a partial line or an undispatched frame is buffered."""
        return bool(self._buffer) or bool(self._data) or bool(self._event)

    def feed(self, chunk: bytes) -> list[Frame]:
        """Buffer a chunk and return the frames it completes."""
        self.bytes_received += len(chunk)
        self._buffer.extend(chunk)

        frames = []
        for line in self._lines(final=False):
            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)

        if self.max_buffer_bytes is not None and len(self._buffer) > self.max_buffer_bytes:
            raise ProtocolError(
                f"SSE line exceeds {self.max_buffer_bytes} bytes without a terminator",
                details={"buffered": len(self._buffer)},
            )
        return frames

    def flush(self) -> list[Frame]:
        """
        Signal end of input.

        A lone trailing carriage return still terminates its line. Anything
        not closed by a blank line is an incomplete frame and is discarded.
        """
        frames = []
        for line in self._lines(final=True):
            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)

        if self.has_pending:
            logger.debug(
                "Discarding incomplete frame at end of stream",
                buffered_bytes=len(self._buffer),
                pending_data_lines=len(self._data),
            )
        self._buffer.clear()
        self._reset_frame()
        return frames

    def _lines(self, final: bool):
        while True:
            cr = self._buffer.find(CR)
            lf = self._buffer.find(LF)
            if cr == -1 and lf == -1:
                return

            if lf != -1 and (cr == -1 or lf < cr):
                end, skip = lf, 1
            elif cr + 1 < len(self._buffer):
                end, skip = cr, 2 if self._buffer[cr + 1] == LF else 1
            elif final:
                end, skip = cr, 1
            else:
                # A CR at the end of the buffer may be the first half of CRLF
                return

            raw = bytes(self._buffer[:end])
            del self._buffer[:end + skip]
            yield self._decode(raw)

    def _decode(self, raw: bytes) -> str:
        try:
            line = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(
                "SSE payload is not valid UTF-8",
                details={"position": e.start, "line_length": len(raw)},
            ) from e

        if self._first_line:
            self._first_line = False
            line = line.removeprefix(BOM)
        return line

    def _process_line(self, line: str) -> Frame | None:
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        elif field == "id":
            if "\0" not in value:
                self._last_id = value
        elif field == "retry":
            if value.isascii() and value.isdigit():
                self._retry = int(value)
        # Unknown fields are ignored

        return None

    def _dispatch(self) -> Frame | None:
        if not self._data:
            self._reset_frame()
            return None

        frame = Frame(
            event=self._event or DEFAULT_EVENT,
            data="\n".join(self._data),
            id=self._last_id,
            retry=self._retry,
        )
        self._reset_frame()
        return frame

    def _reset_frame(self) -> None:
        self._event = ""
        self._data = []


async def decode_frames(
    chunks: AsyncIterable[bytes],
    decoder: FrameDecoder | None = None,
) -> AsyncIterator[Frame]:
    """
    Lazily decode an async byte stream into frames.

    Args:
        chunks: Transport byte chunks in arrival order
        decoder: Optional decoder instance, e.g. to read its byte counter

    Yields:
        Complete frames in order
    """
    decoder = decoder or FrameDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
    for frame in decoder.flush():
        yield frame

"""Incremental parser for the streamed messages wire format.

Hidden design decisions:
- Network reads arrive in arbitrary sizes; bytes are buffered raw and only
  complete lines are decoded, so a multi-byte character split across two
  reads is never corrupted.
- Lines without the `data:` prefix (event names, pings, blank lines) are
  framing and are ignored.
- A frame that fails to decode is skipped, not fatal.
- Exactly one terminal increment is produced per stream. If the byte
  source ends without one, a DoneIncrement is synthesized.
"""

import logging
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from ..errors import ProtocolError
from .models import (
    DoneIncrement,
    ErrorIncrement,
    Increment,
    StreamEvent,
    TextIncrement,
)

logger = logging.getLogger(__name__)

DATA_PREFIX = b"data:"

# Event discriminants
CONTENT_BLOCK_DELTA = "content_block_delta"
TEXT_DELTA = "text_delta"
MESSAGE_STOP = "message_stop"
ERROR_EVENT = "error"


def decode_frame(line: bytes) -> StreamEvent | None:
    """Decode one complete line.

    Returns:
        The decoded event, or None for lines that are not data frames

    Raises:
        ProtocolError: If a data frame carries a malformed payload
    """
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    if payload.startswith(b" "):
        payload = payload[1:]
    try:
        text = payload.decode("utf-8")
        return StreamEvent.model_validate_json(text)
    except (UnicodeDecodeError, ValidationError) as e:
        raise ProtocolError(f"Malformed data frame: {e}") from e


def event_to_increment(event: StreamEvent) -> Increment | None:
    """Map a decoded event to an increment; unknown events map to None."""
    if event.type == CONTENT_BLOCK_DELTA:
        delta = event.delta
        if delta is not None and delta.type == TEXT_DELTA and delta.text is not None:
            return TextIncrement(delta.text)
        return None
    if event.type == MESSAGE_STOP:
        return DoneIncrement()
    if event.type == ERROR_EVENT:
        message = event.error.message if event.error and event.error.message else None
        return ErrorIncrement(message or "Stream error")
    return None


class StreamParser:
    """Push parser turning raw byte fragments into increments.

    Usage:
        parser = StreamParser()
        for chunk in reads:
            for increment in parser.feed(chunk):
                ...
        for increment in parser.finish():
            ...
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._terminated = False
        self.skipped_frames = 0

    @property
    def terminated(self) -> bool:
        """True once a terminal increment has been produced."""
        return self._terminated

    def feed(self, chunk: bytes) -> list[Increment]:
        """Consume one network read and return the increments it completes."""
        if self._terminated:
            return []
        self._buffer.extend(chunk)
        increments: list[Increment] = []
        while not self._terminated:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(self._buffer[:newline])
            del self._buffer[:newline + 1]
            increment = self._process_line(line)
            if increment is not None:
                increments.append(increment)
        return increments

    def finish(self) -> list[Increment]:
        """Signal end of input. Always leaves the parser terminated."""
        if self._terminated:
            return []
        increments: list[Increment] = []
        # The byte source closed, so whatever is left is a complete line
        if self._buffer:
            line = bytes(self._buffer)
            self._buffer.clear()
            increment = self._process_line(line)
            if increment is not None:
                increments.append(increment)
        if not self._terminated:
            self._terminated = True
            increments.append(DoneIncrement())
        return increments

    def _process_line(self, line: bytes) -> Increment | None:
        if line.endswith(b"\r"):
            line = line[:-1]
        try:
            event = decode_frame(line)
        except ProtocolError as e:
            self.skipped_frames += 1
            logger.debug("Skipping frame: %s", e)
            return None
        if event is None:
            return None
        increment = event_to_increment(event)
        if isinstance(increment, (DoneIncrement, ErrorIncrement)):
            self._terminated = True
        return increment


async def parse_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[Increment]:
    """Lazily parse an async byte source into increments.

    Stops after the first terminal increment, without reading further.
    """
    parser = StreamParser()
    async for chunk in chunks:
        for increment in parser.feed(chunk):
            yield increment
        if parser.terminated:
            return
    for increment in parser.finish():
        yield increment

"""Unit tests for the streamed wire format parser."""
import pytest
from hypothesis import given
from hypothesis import strategies as st

from conftest import error_frame, message_stop, sse_frame, stream_body, text_delta
from tabchat.errors import ProtocolError
from tabchat.llm import (
    DoneIncrement,
    ErrorIncrement,
    StreamParser,
    TextIncrement,
    is_terminal,
    parse_stream,
)
from tabchat.llm.stream_parser import decode_frame, event_to_increment

MULTIBYTE_TEXTS = ("Grüße, ", "naïve café ", "日本語 ", "🚀✨ done")
MULTIBYTE_BODY = stream_body(*MULTIBYTE_TEXTS)


def parse_all(*chunks: bytes) -> list:
    parser = StreamParser()
    increments = []
    for chunk in chunks:
        increments.extend(parser.feed(chunk))
    increments.extend(parser.finish())
    return increments


def joined_text(increments) -> str:
    return "".join(i.text for i in increments if isinstance(i, TextIncrement))


class TestDecodeFrame:
    """Tests for single-line decoding."""

    def test_non_data_lines_are_framing(self):
        """Event names, pings and blank lines decode to nothing."""
        assert decode_frame(b"event: content_block_delta") is None
        assert decode_frame(b"") is None
        assert decode_frame(b": keep-alive") is None

    def test_data_frame_with_space(self):
        event = decode_frame(b'data: {"type": "message_stop"}')
        assert event is not None
        assert event.type == "message_stop"

    def test_data_frame_without_space(self):
        event = decode_frame(b'data:{"type":"ping"}')
        assert event is not None
        assert event.type == "ping"

    def test_unknown_fields_are_ignored(self):
        event = decode_frame(b'data: {"type": "message_delta", "usage": {"output_tokens": 3}}')
        assert event is not None
        assert event_to_increment(event) is None

    def test_malformed_payload_raises(self):
        with pytest.raises(ProtocolError):
            decode_frame(b"data: {not json")

    def test_invalid_utf8_raises(self):
        with pytest.raises(ProtocolError):
            decode_frame(b'data: {"type": "\xff"}')


class TestEventToIncrement:
    """Tests for the event-to-increment mapping."""

    def test_text_delta(self):
        event = decode_frame(text_delta("Hi").split(b"\n")[1])
        assert event_to_increment(event) == TextIncrement("Hi")

    def test_non_text_delta_ignored(self):
        line = sse_frame(
            "content_block_delta",
            index=0,
            delta={"type": "input_json_delta", "partial_json": "{"},
        ).split(b"\n")[1]
        assert event_to_increment(decode_frame(line)) is None

    def test_error_event_without_message(self):
        line = error_frame(None).split(b"\n")[1]
        assert event_to_increment(decode_frame(line)) == ErrorIncrement("Stream error")


class TestStreamParser:
    """Tests for incremental parsing."""

    def test_whole_stream_in_one_read(self):
        increments = parse_all(stream_body("Hel", "lo"))
        assert increments == [TextIncrement("Hel"), TextIncrement("lo"), DoneIncrement()]

    def test_one_byte_reads(self):
        body = stream_body("Hello", " world")
        increments = parse_all(*(body[i:i + 1] for i in range(len(body))))
        assert joined_text(increments) == "Hello world"
        assert increments[-1] == DoneIncrement()

    def test_multibyte_character_split_across_reads(self):
        body = text_delta("é") + message_stop()
        split = body.index("é".encode("utf-8")) + 1
        increments = parse_all(body[:split], body[split:])
        assert increments == [TextIncrement("é"), DoneIncrement()]

    @given(st.lists(st.integers(min_value=1, max_value=len(MULTIBYTE_BODY) - 1), max_size=30))
    def test_any_split_reassembles_the_same_text(self, cuts: list[int]):
        """Property test: splitting the byte stream anywhere never changes the text."""
        points = [0, *sorted(set(cuts)), len(MULTIBYTE_BODY)]
        chunks = [MULTIBYTE_BODY[a:b] for a, b in zip(points, points[1:])]

        increments = parse_all(*chunks)

        assert joined_text(increments) == "".join(MULTIBYTE_TEXTS)
        assert sum(1 for i in increments if is_terminal(i)) == 1
        assert increments[-1] == DoneIncrement()

    def test_malformed_frame_is_skipped(self):
        body = text_delta("a") + b"data: {broken\n\n" + text_delta("b") + message_stop()
        parser = StreamParser()
        increments = parser.feed(body) + parser.finish()

        assert increments == [TextIncrement("a"), TextIncrement("b"), DoneIncrement()]
        assert parser.skipped_frames == 1

    def test_missing_stop_synthesizes_done(self):
        increments = parse_all(stream_body("partial", stop=False))
        assert increments == [TextIncrement("partial"), DoneIncrement()]

    def test_error_event_terminates(self):
        increments = parse_all(text_delta("a") + error_frame("Overloaded"))
        assert increments == [TextIncrement("a"), ErrorIncrement("Overloaded")]

    def test_nothing_after_terminal(self):
        parser = StreamParser()
        first = parser.feed(message_stop() + text_delta("late"))
        assert first == [DoneIncrement()]
        assert parser.terminated
        assert parser.feed(text_delta("later")) == []
        assert parser.finish() == []

    def test_crlf_line_endings(self):
        body = stream_body("Hi").replace(b"\n", b"\r\n")
        assert parse_all(body) == [TextIncrement("Hi"), DoneIncrement()]

    def test_final_line_without_newline(self):
        parser = StreamParser()
        assert parser.feed(b'data: {"type": "message_stop"}') == []
        assert parser.finish() == [DoneIncrement()]

    def test_empty_source_is_done(self):
        assert parse_all() == [DoneIncrement()]


class TestParseStream:
    """Tests for the async adapter."""

    @pytest.mark.asyncio
    async def test_yields_increments_in_order(self):
        async def chunks():
            yield text_delta("a")
            yield text_delta("b") + message_stop()

        increments = [i async for i in parse_stream(chunks())]
        assert increments == [TextIncrement("a"), TextIncrement("b"), DoneIncrement()]

    @pytest.mark.asyncio
    async def test_stops_reading_after_terminal(self):
        reads = []

        async def chunks():
            for chunk in (text_delta("a"), message_stop(), text_delta("never")):
                reads.append(chunk)
                yield chunk

        increments = [i async for i in parse_stream(chunks())]
        assert increments == [TextIncrement("a"), DoneIncrement()]
        assert len(reads) == 2

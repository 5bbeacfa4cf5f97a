"""
Tests for the server-sent events decoder and stream.
"""

import httpx
import pytest
from pydantic import BaseModel

from memorykit import ErrorKind, MemoryKitError, SSEDecoder, SSEEvent, SSEStream
from memorykit.sse import iter_lines


def decode_all(text: str) -> list[SSEEvent]:
    """Run the decoder over ``text`` the way SSEStream does."""
    decoder = SSEDecoder()
    events = []
    lines = text.split("\n")
    # A trailing "\n" produces an empty final element that is not a line
    if lines and lines[-1] == "":
        lines.pop()
    for line in lines:
        event = decoder.feed(line)
        if event is not None:
            events.append(event)
    event = decoder.flush()
    if event is not None:
        events.append(event)
    return events


async def chunks(*parts: bytes):
    for part in parts:
        yield part


def streaming_response(*parts: bytes) -> httpx.Response:
    return httpx.Response(
        200,
        headers={"Content-Type": "text/event-stream"},
        content=chunks(*parts),
    )


class TestSSEDecoder:
    def test_single_typed_event(self):
        events = decode_all("event: text\ndata: hello\n\n")

        assert events == [SSEEvent(event="text", data="hello", id=None)]

    def test_default_event_type_is_message(self):
        events = decode_all("data: hello\n\n")

        assert events[0].event == "message"

    def test_multiple_events_in_order(self):
        events = decode_all(
            "event: text\ndata: one\n\n"
            "event: text\ndata: two\n\n"
            "event: done\ndata: {}\n\n"
        )

        assert [e.data for e in events] == ["one", "two", "{}"]
        assert [e.event for e in events] == ["text", "text", "done"]
        assert events[-1].is_done

    def test_multiline_data_joined_with_newline(self):
        events = decode_all("data: first\ndata: second\ndata: third\n\n")

        assert len(events) == 1
        assert events[0].data == "first\nsecond\nthird"

    def test_event_id(self):
        events = decode_all("id: 42\nevent: usage\ndata: {}\n\n")

        assert events[0].id == "42"

    def test_empty_id_clears_to_none(self):
        events = decode_all("id: 42\nid:\ndata: x\n\n")

        assert events[0].id is None

    def test_accumulator_resets_between_events(self):
        events = decode_all("event: text\nid: 1\ndata: a\n\ndata: b\n\n")

        assert events[1] == SSEEvent(event="message", data="b", id=None)

    def test_trailing_partial_event_flushed_once(self):
        decoder = SSEDecoder()
        assert decoder.feed("data: partial") is None

        flushed = decoder.flush()

        assert flushed == SSEEvent(data="partial")
        assert decoder.flush() is None

    def test_comments_only_emit_nothing(self):
        events = decode_all(": keep-alive\n\n" * 5)

        assert events == []

    def test_comment_between_fields_is_ignored(self):
        events = decode_all("data: a\n: ping\ndata: b\n\n")

        assert events[0].data == "a\nb"

    def test_blank_lines_without_data_are_keep_alives(self):
        events = decode_all("\n\n\ndata: x\n\n\n\n")

        assert len(events) == 1

    def test_only_one_leading_space_is_stripped(self):
        events = decode_all("data:  indented\n\n")

        assert events[0].data == " indented"

    def test_value_without_space_after_colon(self):
        events = decode_all("event:text\ndata:hello\n\n")

        assert events[0] == SSEEvent(event="text", data="hello")

    def test_value_keeps_later_colons(self):
        events = decode_all('data: {"time": "12:30"}\n\n')

        assert events[0].data == '{"time": "12:30"}'

    def test_field_without_colon_has_empty_value(self):
        events = decode_all("data\ndata\n\n")

        assert events[0].data == "\n"

    def test_unknown_fields_are_ignored(self):
        events = decode_all("retry: 3000\nfoo: bar\ndata: x\n\n")

        assert events == [SSEEvent(data="x")]

    def test_event_type_overwritten_within_cycle(self):
        events = decode_all("event: first\nevent: second\ndata: x\n\n")

        assert events[0].event == "second"


class TestSSEEventDecode:
    def test_decode_json(self):
        event = SSEEvent(event="sources", data='{"sources": [{"id": "m1"}]}')

        assert event.decode() == {"sources": [{"id": "m1"}]}

    def test_decode_into_model(self):
        class TextChunk(BaseModel):
            content: str

        event = SSEEvent(event="text", data='{"content": "Hello"}')

        assert event.decode(TextChunk) == TextChunk(content="Hello")

    def test_decode_failure_is_a_decoding_error(self):
        event = SSEEvent(event="text", data="not json")

        with pytest.raises(MemoryKitError) as exc_info:
            event.decode()

        assert exc_info.value.kind is ErrorKind.DECODING

    def test_event_is_immutable(self):
        event = SSEEvent(data="x")

        with pytest.raises(Exception, match="frozen"):
            event.data = "y"


class TestIterLines:
    @pytest.mark.asyncio
    async def test_lines_split_across_chunks(self):
        lines = [
            line
            async for line in iter_lines(chunks(b"event: te", b"xt\ndata: he", b"llo\n\n"))
        ]

        assert lines == ["event: text", "data: hello", ""]

    @pytest.mark.asyncio
    async def test_crlf_split_across_chunks(self):
        lines = [line async for line in iter_lines(chunks(b"data: a\r", b"\n\r\n"))]

        assert lines == ["data: a", ""]

    @pytest.mark.asyncio
    async def test_bare_carriage_return_terminates_line(self):
        lines = [line async for line in iter_lines(chunks(b"data: a\rdata: b\r\r"))]

        assert lines == ["data: a", "data: b", ""]

    @pytest.mark.asyncio
    async def test_unterminated_last_line_is_delivered(self):
        lines = [line async for line in iter_lines(chunks(b"data: partial"))]

        assert lines == ["data: partial"]

    @pytest.mark.asyncio
    async def test_multibyte_character_split_across_chunks(self):
        encoded = "data: héllo\n".encode()
        split = encoded.index(b"\xc3") + 1

        lines = [
            line async for line in iter_lines(chunks(encoded[:split], encoded[split:]))
        ]

        assert lines == ["data: héllo"]

    @pytest.mark.asyncio
    async def test_invalid_utf8_raises_stream_error(self):
        with pytest.raises(MemoryKitError) as exc_info:
            async for _ in iter_lines(chunks(b"data: \xff\xfe\n")):
                pass

        assert exc_info.value.kind is ErrorKind.STREAM

    @pytest.mark.asyncio
    async def test_truncated_multibyte_sequence_at_end_raises(self):
        with pytest.raises(MemoryKitError) as exc_info:
            async for _ in iter_lines(chunks(b"data: \xc3")):
                pass

        assert exc_info.value.kind is ErrorKind.STREAM


class TestSSEStream:
    @pytest.mark.asyncio
    async def test_yields_events_in_arrival_order(self):
        stream = SSEStream(
            streaming_response(
                b"event: text\ndata: {\"content\": \"Hel\"}\n\n",
                b": keep-alive\n\n",
                b"event: text\ndata: {\"content\": \"lo\"}\n\nevent: done\ndata: {}\n\n",
            )
        )

        events = [event async for event in stream]

        assert [e.event for e in events] == ["text", "text", "done"]
        assert "".join(e.decode()["content"] for e in events[:2]) == "Hello"
        assert stream.response.is_closed

    @pytest.mark.asyncio
    async def test_flushes_trailing_event_at_end_of_stream(self):
        stream = SSEStream(streaming_response(b"data: one\n\n", b"data: partial"))

        events = [event async for event in stream]

        assert [e.data for e in events] == ["one", "partial"]

    @pytest.mark.asyncio
    async def test_malformed_bytes_terminate_stream(self):
        stream = SSEStream(
            streaming_response(b"data: ok\n\n", b"data: \xff\n\n", b"data: never\n\n")
        )
        received = []

        with pytest.raises(MemoryKitError) as exc_info:
            async for event in stream:
                received.append(event)

        assert exc_info.value.kind is ErrorKind.STREAM
        assert [e.data for e in received] == ["ok"]
        assert stream.response.is_closed

    @pytest.mark.asyncio
    async def test_malformed_bytes_discard_pending_event(self):
        stream = SSEStream(streaming_response(b"data: pending\n", b"\xff"))

        with pytest.raises(MemoryKitError):
            async for _ in stream:
                pytest.fail("No event should be emitted")

    @pytest.mark.asyncio
    async def test_transport_error_mid_stream_is_network_error(self):
        async def failing():
            yield b"data: first\n\n"
            raise httpx.ReadError("connection reset")

        stream = SSEStream(httpx.Response(200, content=failing()))
        received = []

        with pytest.raises(MemoryKitError) as exc_info:
            async for event in stream:
                received.append(event)

        assert exc_info.value.kind is ErrorKind.NETWORK
        assert [e.data for e in received] == ["first"]

    @pytest.mark.asyncio
    async def test_corrupt_content_encoding_is_decoding_error(self):
        response = httpx.Response(
            200,
            stream=httpx.ByteStream(b"not gzip"),
            headers={"Content-Encoding": "gzip"},
        )
        stream = SSEStream(response)

        with pytest.raises(MemoryKitError) as exc_info:
            async for _ in stream:
                pass

        assert exc_info.value.kind is ErrorKind.DECODING
        assert response.is_closed

    @pytest.mark.asyncio
    async def test_undecodable_event_does_not_end_stream(self):
        stream = SSEStream(
            streaming_response(
                b"event: text\ndata: not json\n\n",
                b'event: text\ndata: {"content": "ok"}\n\n',
            )
        )
        decoded = []

        async for event in stream:
            try:
                decoded.append(event.decode()["content"])
            except MemoryKitError as e:
                assert e.kind is ErrorKind.DECODING
                decoded.append(None)

        assert decoded == [None, "ok"]

    @pytest.mark.asyncio
    async def test_stream_is_single_use(self):
        stream = SSEStream(streaming_response(b"data: x\n\n"))
        [event async for event in stream]

        with pytest.raises(MemoryKitError) as exc_info:
            async for _ in stream:
                pass

        assert exc_info.value.kind is ErrorKind.STREAM

    @pytest.mark.asyncio
    async def test_aclose_releases_abandoned_stream(self):
        stream = SSEStream(
            streaming_response(b"data: one\n\n", b"data: two\n\n", b"data: three\n\n")
        )

        async with stream:
            async for event in stream:
                assert event.data == "one"
                break

        assert stream.response.is_closed

    @pytest.mark.asyncio
    async def test_aclose_before_iteration(self):
        stream = SSEStream(streaming_response(b"data: x\n\n"))

        await stream.aclose()

        assert stream.response.is_closed

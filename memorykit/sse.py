"""
Server-sent events support.

``SSEDecoder`` turns lines into events, ``iter_lines`` turns raw response
bytes into lines, and ``SSEStream`` ties both to an open ``httpx.Response``
so callers can simply write::

    async with await mk.memories.stream(query="Summarize Q4") as stream:
        async for event in stream:
            if event.event == "text":
                print(event.decode()["content"], end="")
"""

import codecs
import re
from collections.abc import AsyncIterator
from functools import lru_cache
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, TypeAdapter

from .exceptions import MemoryKitError
from .logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_EVENT_TYPE = "message"

_LINE_END = re.compile(r"\r\n|\r|\n")


class SSEEvent(BaseModel):
    """An event parsed from a server-sent events stream."""

    model_config = ConfigDict(frozen=True)

    # Event type, e.g. "text", "sources", "usage", "done" or "error"
    event: str = DEFAULT_EVENT_TYPE
    data: str
    id: str | None = None

    @property
    def is_done(self) -> bool:
        return self.event == "done"

    def decode(self, model: type[T] | None = None) -> T | Any:
        """Parse ``data`` as JSON, optionally validating it into ``model``.

        A failure only concerns this one event; the stream it came from is
        still usable.

        Raises:
            MemoryKitError: With kind ``DECODING`` if the data is not valid
                JSON or does not match ``model``.
        """
        try:
            if model is None:
                return _json_adapter().validate_json(self.data)
            return _adapter(model).validate_json(self.data)
        except ValueError as e:
            raise MemoryKitError.decoding(e) from e


@lru_cache(maxsize=1)
def _json_adapter() -> TypeAdapter[Any]:
    return TypeAdapter(Any)


@lru_cache(maxsize=64)
def _adapter(model: Any) -> TypeAdapter[Any]:
    return TypeAdapter(model)


class SSEDecoder:
    """Incremental decoder for the SSE line protocol.

    Feed it one line at a time (without the line terminator). ``feed``
    returns an event when a blank line completes one; ``flush`` returns the
    residual event, if any, once the line source is exhausted.
    """

    def __init__(self) -> None:
        self._event_type: str | None = None
        self._data_lines: list[str] = []
        self._id: str | None = None

    def feed(self, line: str) -> SSEEvent | None:
        if not line:
            # Blank line terminates an event; without data it is a keep-alive
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event_type = value
        elif field == "data":
            self._data_lines.append(value)
        elif field == "id":
            self._id = value or None

        return None

    def flush(self) -> SSEEvent | None:
        return self._dispatch()

    def _dispatch(self) -> SSEEvent | None:
        if not self._data_lines:
            return None

        event = SSEEvent(
            event=self._event_type
            if self._event_type is not None
            else DEFAULT_EVENT_TYPE,
            data="\n".join(self._data_lines),
            id=self._id,
        )
        self._event_type = None
        self._data_lines = []
        self._id = None
        return event


async def iter_lines(chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Split a UTF-8 byte stream into lines.

    Lines end at ``\\r\\n``, ``\\n`` or ``\\r``. A final line without a
    terminator is still delivered.

    Raises:
        MemoryKitError: With kind ``STREAM`` on a malformed byte sequence.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
    buffer = ""

    async for chunk in chunks:
        buffer += _decode_chunk(decoder, chunk, final=False)
        lines, buffer = _split_lines(buffer, final=False)
        for line in lines:
            yield line

    buffer += _decode_chunk(decoder, b"", final=True)
    lines, buffer = _split_lines(buffer, final=True)
    for line in lines:
        yield line
    if buffer:
        yield buffer


def _decode_chunk(decoder: codecs.IncrementalDecoder, chunk: bytes, final: bool) -> str:
    try:
        return decoder.decode(chunk, final)
    except UnicodeDecodeError as e:
        raise MemoryKitError.stream(f"Event stream is not valid UTF-8: {e}") from e


def _split_lines(buffer: str, final: bool) -> tuple[list[str], str]:
    lines = []
    start = 0
    while match := _LINE_END.search(buffer, start):
        # A trailing "\r" may be the first half of a "\r\n" split across chunks
        if match.group() == "\r" and match.end() == len(buffer) and not final:
            break
        lines.append(buffer[start : match.start()])
        start = match.end()
    return lines, buffer[start:]


class SSEStream:
    """A single-use async iterator of ``SSEEvent`` bound to one response.

    The underlying response is closed when the events are exhausted, when
    reading fails, or when ``aclose`` is called.
    """

    def __init__(self, response: httpx.Response):
        self._response = response
        self._iterator: AsyncIterator[SSEEvent] | None = None
        self._closed = False

    @property
    def response(self) -> httpx.Response:
        return self._response

    def __aiter__(self) -> AsyncIterator[SSEEvent]:
        if self._iterator is not None:
            raise MemoryKitError.stream("SSE stream has already been consumed")
        self._iterator = self._iter_events()
        return self._iterator

    async def _iter_events(self) -> AsyncIterator[SSEEvent]:
        decoder = SSEDecoder()
        try:
            async for line in iter_lines(self._response.aiter_bytes()):
                event = decoder.feed(line)
                if event is not None:
                    yield event

            event = decoder.flush()
            if event is not None:
                yield event
        except httpx.TransportError as e:
            raise MemoryKitError.network(e) from e
        except httpx.DecodingError as e:
            raise MemoryKitError.decoding(e) from e
        finally:
            await self._close_response()

    async def aclose(self) -> None:
        """Stop reading and release the connection."""
        if self._iterator is not None:
            await self._iterator.aclose()  # type: ignore[attr-defined]
        await self._close_response()

    async def _close_response(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._response.aclose()
        logger.debug("Closed event stream")

    async def __aenter__(self) -> "SSEStream":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

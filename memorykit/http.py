"""
Internal HTTP layer: authentication, error classification and retries.

Every resource call goes through ``HTTPClient``. A call is one logical
operation made of up to ``max_retries + 1`` strictly sequential attempts.
Transport failures and 429/5xx responses are retried with exponential
backoff plus jitter (or the server's ``Retry-After``); anything else is
raised to the caller on first occurrence.
"""

import asyncio
import json
import math
import random
from collections.abc import Awaitable, Callable, Mapping
from functools import lru_cache
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError
from tenacity import RetryCallState
from tenacity.asyncio import AsyncRetrying
from tenacity.retry import retry_if_exception
from tenacity.stop import stop_after_attempt
from tenacity.wait import wait_base

from .config import MemoryKitConfig
from .exceptions import MemoryKitError
from .logging import get_logger
from .sse import SSEStream


logger = get_logger(__name__)

T = TypeVar("T")

MAX_RETRY_DELAY = 30.0
JITTER_FACTOR = 0.1
ERROR_BODY_LIMIT = 4096

JSON_CONTENT_TYPE = "application/json"
EVENT_STREAM_CONTENT_TYPE = "text/event-stream"


# === Retry policy ===


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given as a number of seconds.

    HTTP-date values and anything else unparseable return None.
    """
    if value is None:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    if math.isnan(seconds) or math.isinf(seconds):
        return None
    return seconds


def compute_retry_delay(
    attempt: int,
    base_delay: float,
    retry_after: float | None = None,
    max_delay: float = MAX_RETRY_DELAY,
) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (1-based).

    ``retry_after`` wins when present. Otherwise the delay is
    ``base_delay * 2 ** (attempt - 1)`` plus up to 10% jitter. The result is
    always within ``[0, max_delay]``.
    """
    if retry_after is not None:
        delay = retry_after
    else:
        # Exponent capped so huge attempt numbers cannot overflow a float
        exponential = base_delay * 2.0 ** min(attempt - 1, 64)
        delay = exponential + random.uniform(0, exponential * JITTER_FACTOR)
    return max(0.0, min(delay, max_delay))


class RetryAfterOrExponentialWait(wait_base):
    """tenacity wait strategy honoring ``MemoryKitError.retry_after``."""

    def __init__(self, base_delay: float, max_delay: float = MAX_RETRY_DELAY):
        self.base_delay = base_delay
        self.max_delay = max_delay

    def __call__(self, retry_state: RetryCallState) -> float:
        retry_after = None
        if retry_state.outcome is not None and retry_state.outcome.failed:
            retry_after = getattr(retry_state.outcome.exception(), "retry_after", None)
        return compute_retry_delay(
            retry_state.attempt_number,
            self.base_delay,
            retry_after=retry_after,
            max_delay=self.max_delay,
        )


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, MemoryKitError) and error.is_retryable


# === Error classification ===


def parse_error(
    status_code: int,
    content: bytes,
    headers: Mapping[str, str] | None = None,
) -> MemoryKitError:
    """Build a ``REQUEST_FAILED`` error from a non-2xx response.

    Understands ``{"error": {"code": ..., "message": ...}}`` and flat
    ``{"code": ..., "message": ...}`` bodies (plus FastAPI-style
    ``{"detail": ...}``), then falls back to the raw body text and finally
    to ``"Unknown error"``.
    """
    retry_after = parse_retry_after(headers.get("Retry-After")) if headers else None

    try:
        payload = json.loads(content) if content else None
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        code = None
        message = None
        detail = payload.get("error")
        if isinstance(detail, dict):
            code = _as_text(detail.get("code"))
            message = _as_text(detail.get("message"))
        elif isinstance(detail, str):
            message = detail
        code = code or _as_text(payload.get("code"))
        message = (
            message
            or _as_text(payload.get("message"))
            or _as_text(payload.get("detail"))
            or "Unknown error"
        )
        return MemoryKitError.request_failed(
            status_code, message, code=code, retry_after=retry_after
        )

    text = content.decode("utf-8", errors="replace").strip() if content else ""
    return MemoryKitError.request_failed(
        status_code, text or "Unknown error", retry_after=retry_after
    )


def _as_text(value: Any) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return str(value)


@lru_cache(maxsize=128)
def _type_adapter(response_model: Any) -> TypeAdapter[Any]:
    return TypeAdapter(response_model)


# === Client ===


class HTTPClient:
    """
    Authenticated, retrying wrapper around ``httpx.AsyncClient``.

    One instance is shared by all resources of a ``MemoryKit`` client. It
    holds no per-request state, so concurrent calls are independent.
    """

    def __init__(
        self,
        config: MemoryKitConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            config: Client configuration, including the retry policy
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
            sleep: Coroutine used to wait between attempts
        """
        from . import __version__

        self.config = config
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Accept": JSON_CONTENT_TYPE,
                "User-Agent": f"memorykit-python/{__version__}",
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # === Verbs ===

    async def get(
        self,
        path: str,
        response_model: type[T] | Any,
        params: Mapping[str, Any] | None = None,
    ) -> T:
        request = self._build_request("GET", path, params=params)
        response = await self._execute(request)
        return self._decode(response, response_model)

    async def post(
        self, path: str, body: Any, response_model: type[T] | Any
    ) -> T:
        request = self._build_request("POST", path, body=body)
        response = await self._execute(request)
        return self._decode(response, response_model)

    async def post_no_content(self, path: str, body: Any) -> None:
        """POST expecting no response body (e.g. 202/204)."""
        request = self._build_request("POST", path, body=body)
        await self._execute(request)

    async def put(self, path: str, body: Any, response_model: type[T] | Any) -> T:
        request = self._build_request("PUT", path, body=body)
        response = await self._execute(request)
        return self._decode(response, response_model)

    async def delete(
        self, path: str, params: Mapping[str, Any] | None = None
    ) -> None:
        request = self._build_request("DELETE", path, params=params)
        await self._execute(request)

    async def post_multipart(
        self,
        path: str,
        files: Mapping[str, Any],
        data: Mapping[str, str] | None,
        response_model: type[T] | Any,
    ) -> T:
        request = self._build_request("POST", path, files=files, data=data)
        response = await self._execute(request)
        return self._decode(response, response_model)

    async def post_stream(self, path: str, body: Any) -> SSEStream:
        """POST and return the response as a live ``SSEStream``.

        Opening the stream follows the normal retry policy. Once an
        ``SSEStream`` is returned, nothing is retried.
        """
        request = self._build_request(
            "POST", path, body=body, accept=EVENT_STREAM_CONTENT_TYPE
        )
        response = await self._execute(request, stream=True)
        logger.debug(f"Opened event stream {request.method} {request.url.path}")
        return SSEStream(response)

    # === Internals ===

    def _build_request(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
        body: Any = None,
        files: Mapping[str, Any] | None = None,
        data: Mapping[str, str] | None = None,
        accept: str | None = None,
    ) -> httpx.Request:
        headers = {}
        content = None
        if body is not None:
            content = self._encode_body(body)
            headers["Content-Type"] = JSON_CONTENT_TYPE
        if accept is not None:
            headers["Accept"] = accept

        try:
            return self._client.build_request(
                method,
                path,
                params=self._query_params(params),
                content=content,
                files=files,
                data=data,
                headers=headers,
            )
        except httpx.InvalidURL as e:
            raise MemoryKitError.invalid_url(path) from e

    @staticmethod
    def _encode_body(body: Any) -> bytes:
        try:
            if isinstance(body, BaseModel):
                body = body.model_dump(mode="json", exclude_none=True)
            return json.dumps(body, allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise MemoryKitError.encoding(e) from e

    @staticmethod
    def _query_params(params: Mapping[str, Any] | None) -> dict[str, str] | None:
        if not params:
            return None
        query = {}
        for key, value in params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                query[key] = "true" if value else "false"
            else:
                query[key] = str(value)
        return query or None

    async def _execute(
        self, request: httpx.Request, stream: bool = False
    ) -> httpx.Response:
        """Send ``request`` under the retry policy and return a 2xx response."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=RetryAfterOrExponentialWait(self.config.retry_base_delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._send_once(request, stream=stream)
        except MemoryKitError as e:
            logger.debug(f"{request.method} {request.url.path} failed: {e}")
            raise

        return response

    async def _send_once(self, request: httpx.Request, stream: bool) -> httpx.Response:
        try:
            response = await self._client.send(request, stream=stream)
        except httpx.TransportError as e:
            raise MemoryKitError.network(e) from e
        except httpx.DecodingError as e:
            # Corrupt Content-Encoding; another attempt would get the same bytes
            raise MemoryKitError.decoding(e) from e

        if response.is_success:
            return response

        if stream:
            content = await self._read_error_body(response)
        else:
            content = response.content
        raise parse_error(response.status_code, content, response.headers)

    @staticmethod
    async def _read_error_body(response: httpx.Response) -> bytes:
        """Drain at most ``ERROR_BODY_LIMIT`` bytes of a streamed error body."""
        content = bytearray()
        try:
            async for chunk in response.aiter_bytes():
                content.extend(chunk)
                if len(content) >= ERROR_BODY_LIMIT:
                    break
        except (httpx.TransportError, httpx.DecodingError) as e:
            logger.debug(f"Error body truncated by read failure: {e}")
        finally:
            await response.aclose()
        return bytes(content[:ERROR_BODY_LIMIT])

    @staticmethod
    def _decode(response: httpx.Response, response_model: Any) -> Any:
        try:
            return _type_adapter(response_model).validate_json(response.content)
        except ValidationError as e:
            raise MemoryKitError.decoding(e) from e

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            f"Retrying MemoryKit request after attempt "
            f"{retry_state.attempt_number}/{self.config.max_retries + 1} "
            f"in {delay:.2f}s: {error}"
        )

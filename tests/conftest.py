from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock

import httpx
import pytest

from memorykit import MemoryKit, MemoryKitConfig


BASE_URL = "https://api.memorykit.test/v1"


@pytest.fixture
def config() -> MemoryKitConfig:
    return MemoryKitConfig(
        api_key="ctx_test_key",
        base_url=BASE_URL,
        timeout=5.0,
        max_retries=3,
        retry_base_delay=1.0,
    )


@pytest.fixture
def sleep() -> AsyncMock:
    """Stands in for asyncio.sleep between retry attempts."""
    return AsyncMock()


class RecordingHandler:
    """MockTransport handler that records requests and replays responses.

    ``responses`` is either a callable taking the request, or a list of
    responses (or exceptions to raise) consumed one per request.
    """

    def __init__(self, responses):
        self.responses = responses
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if callable(self.responses):
            result = self.responses(request)
        else:
            result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
async def make_client(
    config: MemoryKitConfig, sleep: AsyncMock
) -> AsyncGenerator[Callable[..., tuple[MemoryKit, RecordingHandler]], None]:
    """Build MemoryKit clients backed by a RecordingHandler."""
    clients = []

    def factory(responses, **config_overrides):
        handler = RecordingHandler(responses)
        client_config = (
            config.model_copy(update=config_overrides) if config_overrides else config
        )
        client = MemoryKit(
            client_config, transport=httpx.MockTransport(handler), sleep=sleep
        )
        clients.append(client)
        return client, handler

    yield factory

    for client in clients:
        await client.close()

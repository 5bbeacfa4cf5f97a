"""
MemoryKit API Client

This module provides the async client for the MemoryKit REST API.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import httpx

from .config import DEFAULT_BASE_URL, MemoryKitConfig, load_settings
from .exceptions import MemoryKitError
from .http import HTTPClient
from .resources import (
    ChatsResource,
    FeedbackResource,
    MemoriesResource,
    StatusResource,
    UsersResource,
    WebhooksResource,
)


if TYPE_CHECKING:
    from typing_extensions import Self


class MemoryKit:
    """
    Client for the MemoryKit REST API.

    Endpoints are grouped by resource:
    - memories: create, batch, list, get, update, upload, reprocess, delete,
      RAG query, hybrid search and streaming query
    - chats: conversations, messages and streaming replies
    - users: users and user events
    - webhooks: registration and testing
    - status: API health
    - feedback: ratings for query and chat responses

    Example:
        ```python
        async with MemoryKit.from_api_key("ctx_...") as mk:
            memory = await mk.memories.create(
                content="Meeting notes from Q4...",
                title="Q4 Planning Notes",
                tags=["planning", "q4"],
            )
            answer = await mk.memories.query(
                query="Summarize our Q4 goals", mode="balanced"
            )
        ```
    """

    def __init__(
        self,
        config: MemoryKitConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        """
        Initialize the MemoryKit client.

        Args:
            config: MemoryKitConfig with credentials, timeout and retry policy
            transport: Optional httpx transport, mainly for testing
            sleep: Optional coroutine used to wait between retry attempts
        """
        self.config = config
        self._http = HTTPClient(
            config, transport=transport, sleep=sleep or asyncio.sleep
        )

        self.memories = MemoriesResource(self._http)
        self.chats = ChatsResource(self._http)
        self.users = UsersResource(self._http)
        self.webhooks = WebhooksResource(self._http)
        self.status = StatusResource(self._http)
        self.feedback = FeedbackResource(self._http)

    @classmethod
    def from_api_key(
        cls,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
    ) -> "MemoryKit":
        """Build a client from individual settings."""
        return cls(
            MemoryKitConfig(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=max_retries,
                retry_base_delay=retry_base_delay,
            )
        )

    @classmethod
    def from_env(cls) -> "MemoryKit":
        """Build a client from ``MEMORYKIT_*`` environment variables (or ``.env``)."""
        return cls(load_settings().to_config())

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def __aenter__(self) -> "Self":
        """Support using the client as an async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Close the client when exiting the context manager."""
        await self.close()


async def create_client(
    api_key: str,
    base_url: str = DEFAULT_BASE_URL,
    timeout: float = 30.0,
    max_retries: int = 3,
    retry_base_delay: float = 1.0,
) -> MemoryKit:
    """
    Create a MemoryKit client and verify that the API is reachable.

    Args:
        api_key: MemoryKit API key (starts with ``ctx_``)
        base_url: API base URL (default: https://api.memorykit.io/v1)
        timeout: Per-attempt request timeout in seconds (default: 30.0)
        max_retries: Retries for 429/5xx and transport failures (default: 3)
        retry_base_delay: Base delay for exponential backoff (default: 1.0)

    Returns:
        A MemoryKit client whose status check succeeded

    Raises:
        MemoryKitError: If the status check fails

    Example:
        ```python
        async with await create_client("ctx_...") as mk:
            results = await mk.memories.search(query="user preferences")
        ```
    """
    client = MemoryKit.from_api_key(
        api_key,
        base_url=base_url,
        timeout=timeout,
        max_retries=max_retries,
        retry_base_delay=retry_base_delay,
    )

    try:
        await client.status.check()
    except MemoryKitError as e:
        await client.close()
        raise MemoryKitError(
            e.kind,
            f"Failed to connect to MemoryKit at {base_url}: {e.message}",
            status_code=e.status_code,
            code=e.code,
            retry_after=e.retry_after,
        ) from e

    return client

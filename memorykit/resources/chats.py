from collections.abc import AsyncIterator
from typing import Any

from ..models import (
    Chat,
    ChatMessageResponse,
    ChatWithMessages,
    CreateChatRequest,
    ListResponse,
    SendMessageRequest,
)
from ..sse import SSEStream
from .base import Resource, encode_path


class ChatsResource(Resource):
    """Chat conversations grounded in stored memories."""

    async def create(
        self,
        user_id: str | None = None,
        title: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Chat:
        """Create a new chat conversation."""
        body = CreateChatRequest(user_id=user_id, title=title, metadata=metadata)
        return await self._client.post("/chats", body, Chat)

    async def list(
        self,
        user_id: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> ListResponse[Chat]:
        """
        List chats with cursor-based pagination.

        Args:
            user_id: Filter by user ID
            limit: Maximum number of results per page (server default: 20)
            cursor: Cursor from a previous page's ``next_cursor``
        """
        params = {"userId": user_id, "limit": limit, "cursor": cursor}
        return await self._client.get("/chats", ListResponse[Chat], params=params)

    async def list_all(
        self, user_id: str | None = None, page_size: int | None = None
    ) -> AsyncIterator[Chat]:
        """Yield every chat, following pagination cursors."""
        cursor = None
        while True:
            page = await self.list(user_id=user_id, limit=page_size, cursor=cursor)
            for chat in page.data:
                yield chat

            if not page.has_more or not page.next_cursor:
                break
            cursor = page.next_cursor

    async def get_history(self, chat_id: str) -> ChatWithMessages:
        """Retrieve a chat with its full message history."""
        return await self._client.get(encode_path("chats", chat_id), ChatWithMessages)

    async def send_message(
        self, chat_id: str, message: str, mode: str | None = None
    ) -> ChatMessageResponse:
        """
        Send a message and wait for the assistant's complete reply.

        Args:
            chat_id: The chat ID
            message: The message content
            mode: Query mode, e.g. "balanced", "precise" or "creative"
        """
        body = SendMessageRequest(message=message, mode=mode)
        return await self._client.post(
            encode_path("chats", chat_id, "messages"), body, ChatMessageResponse
        )

    async def stream_message(
        self, chat_id: str, message: str, mode: str | None = None
    ) -> SSEStream:
        """Send a message and stream the assistant's reply as SSE events."""
        body = SendMessageRequest(message=message, mode=mode)
        return await self._client.post_stream(
            encode_path("chats", chat_id, "messages", "stream"), body
        )

    async def delete(self, chat_id: str) -> None:
        """Delete a chat and all its messages."""
        await self._client.delete(encode_path("chats", chat_id))

from typing import Any

from ..models import (
    CreateEventRequest,
    ListResponse,
    UpdateUserRequest,
    UpsertUserRequest,
    User,
    UserEvent,
)
from .base import Resource, encode_path


class UsersResource(Resource):
    """Users and their behavioral events."""

    # === Users ===

    async def upsert(
        self,
        user_id: str,
        email: str | None = None,
        name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> User:
        """
        Create a user, or update it if ``user_id`` already exists.

        Returns:
            The created or updated User
        """
        body = UpsertUserRequest(id=user_id, email=email, name=name, metadata=metadata)
        return await self._client.post("/users", body, User)

    async def get(self, user_id: str) -> User:
        return await self._client.get(encode_path("users", user_id), User)

    async def update(
        self,
        user_id: str,
        email: str | None = None,
        name: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> User:
        body = UpdateUserRequest(email=email, name=name, metadata=metadata)
        return await self._client.put(encode_path("users", user_id), body, User)

    async def delete(self, user_id: str, cascade: bool | None = None) -> None:
        """
        Delete a user.

        Args:
            user_id: The user ID
            cascade: Also delete the user's memories and chats
        """
        await self._client.delete(
            encode_path("users", user_id), params={"cascade": cascade}
        )

    # === User events ===

    async def create_event(
        self,
        user_id: str,
        type: str,
        data: dict[str, Any] | None = None,
    ) -> UserEvent:
        """
        Record an event for a user.

        Args:
            user_id: The user ID
            type: Event type, e.g. "page_view" or "click"
            data: Event-specific data
        """
        body = CreateEventRequest(type=type, data=data)
        return await self._client.post(
            encode_path("users", user_id, "events"), body, UserEvent
        )

    async def list_events(
        self,
        user_id: str,
        limit: int | None = None,
        type: str | None = None,
    ) -> ListResponse[UserEvent]:
        params = {"limit": limit, "type": type}
        return await self._client.get(
            encode_path("users", user_id, "events"),
            ListResponse[UserEvent],
            params=params,
        )

    async def delete_event(self, user_id: str, event_id: str) -> None:
        await self._client.delete(encode_path("users", user_id, "events", event_id))

from collections.abc import Sequence

from ..models import CreateWebhookRequest, EmptyBody, Webhook, WebhookTestResponse
from .base import Resource, encode_path


class WebhooksResource(Resource):
    """Webhook registrations for memory processing events."""

    async def create(self, url: str, events: Sequence[str] | None = None) -> Webhook:
        """
        Register a webhook.

        Args:
            url: URL that receives webhook events
            events: Event types to subscribe to (all events if omitted)
        """
        body = CreateWebhookRequest(
            url=url, events=list(events) if events is not None else None
        )
        return await self._client.post("/webhooks", body, Webhook)

    async def get(self, webhook_id: str) -> Webhook:
        return await self._client.get(encode_path("webhooks", webhook_id), Webhook)

    async def delete(self, webhook_id: str) -> None:
        await self._client.delete(encode_path("webhooks", webhook_id))

    async def test(self, webhook_id: str) -> WebhookTestResponse:
        """Send a test event to a webhook and report how its endpoint answered."""
        return await self._client.post(
            encode_path("webhooks", webhook_id, "test"),
            EmptyBody(),
            WebhookTestResponse,
        )

    async def list(self) -> list[Webhook]:
        """List all registered webhooks."""
        return await self._client.get("/webhooks", list[Webhook])

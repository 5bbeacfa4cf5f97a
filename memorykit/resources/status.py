from ..models import StatusResponse
from .base import Resource


class StatusResource(Resource):
    async def check(self) -> StatusResponse:
        """Check the current API status."""
        return await self._client.get("/status", StatusResponse)

from ..models import CreateFeedbackRequest, FeedbackResponse, JSONValue
from .base import Resource


class FeedbackResource(Resource):
    async def submit(
        self,
        request_id: str,
        rating: JSONValue = None,
        comment: str | None = None,
    ) -> FeedbackResponse:
        """
        Submit feedback for a previous query or chat response.

        Args:
            request_id: ``request_id`` from a query or search response
            rating: A score (e.g. 1-5) or a label such as "thumbs_up"
            comment: Optional free-text comment
        """
        body = CreateFeedbackRequest(
            request_id=request_id, rating=rating, comment=comment
        )
        return await self._client.post("/feedback", body, FeedbackResponse)

"""
Pydantic models for MemoryKit API requests and responses.

Field names match the JSON wire format (snake_case). Response models ignore
unknown fields so that additive API changes do not break decoding.
"""

from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")

JSONValue = str | int | float | bool | None | list[Any] | dict[str, Any]

MAX_BATCH_SIZE = 100


class APIModel(BaseModel):
    """Base class for models decoded from API responses."""

    model_config = ConfigDict(extra="ignore")


class RequestModel(BaseModel):
    """Base class for request bodies (serialized with ``exclude_none``)."""

    model_config = ConfigDict(extra="forbid")


# === Shared ===


class ListResponse(APIModel, Generic[T]):
    """A page of results from a cursor-paginated list endpoint."""

    data: list[T] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None
    total: int | None = None


class Usage(APIModel):
    """Token usage information."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None


class Source(APIModel):
    """A source memory referenced in a query or chat answer."""

    id: str | None = None
    title: str | None = None
    content: str | None = None
    score: float | None = None
    metadata: dict[str, Any] | None = None


# === Memories ===


class Memory(APIModel):
    """A memory stored in MemoryKit."""

    id: str
    content: str | None = None
    title: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    user_id: str | None = None
    language: str | None = None
    format: str | None = None
    # Processing status, e.g. "pending", "processing", "completed", "failed"
    status: str | None = None
    chunks_count: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreateMemoryRequest(RequestModel):
    content: str
    title: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    user_id: str | None = None
    language: str | None = None
    format: str | None = None


class UpdateMemoryRequest(RequestModel):
    title: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    content: str | None = None


class BatchMemoryItem(RequestModel):
    """A single item in a batch ingest request."""

    content: str
    title: str | None = None
    type: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    user_id: str | None = None
    language: str | None = None
    format: str | None = None


class BatchDefaults(RequestModel):
    """Default values applied to every item of a batch ingest."""

    type: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    user_id: str | None = None
    language: str | None = None
    format: str | None = None


class BatchIngestRequest(RequestModel):
    items: list[BatchMemoryItem]
    defaults: BatchDefaults | None = None


class BatchMemoryResult(APIModel):
    id: str
    title: str | None = None
    status: str | None = None
    # Position of the item in the submitted batch
    index: int | None = None


class BatchError(APIModel):
    index: int | None = None
    error: str | None = None
    message: str | None = None


class BatchIngestResponse(APIModel):
    items: list[BatchMemoryResult] | None = None
    total: int | None = None
    failed: int | None = None
    errors: list[BatchError] | None = None


# === Query & search ===


class QueryFilters(RequestModel):
    """Filters applied to queries and searches."""

    type: str | None = None
    # Memories must carry all of these tags
    tags: list[str] | None = None
    user_id: str | None = None
    metadata: dict[str, Any] | None = None


class QueryRequest(RequestModel):
    query: str
    max_sources: int | None = None
    temperature: float | None = None
    mode: str | None = None
    user_id: str | None = None
    instructions: str | None = None
    response_format: str | None = None
    include_graph: bool | None = None
    filters: QueryFilters | None = None
    stream: bool | None = None


class QueryResponse(APIModel):
    """Answer to a RAG query."""

    answer: str
    confidence: float | None = None
    sources: list[Source] | None = None
    model: str | None = None
    request_id: str | None = None
    usage: Usage | None = None


class SearchRequest(RequestModel):
    query: str
    limit: int | None = None
    score_threshold: float | None = None
    include_graph: bool | None = None
    filters: QueryFilters | None = None
    user_id: str | None = None


class GraphNode(APIModel):
    id: str | None = None
    label: str | None = None
    type: str | None = None
    properties: dict[str, Any] | None = None


class GraphEdge(APIModel):
    source: str | None = None
    target: str | None = None
    label: str | None = None
    type: str | None = None


class GraphData(APIModel):
    """Knowledge graph data returned with search or query results."""

    nodes: list[GraphNode] | None = None
    edges: list[GraphEdge] | None = None


class SearchResult(APIModel):
    id: str | None = None
    title: str | None = None
    content: str | None = None
    score: float | None = None
    type: str | None = None
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None


class SearchResponse(APIModel):
    """Results of a hybrid search."""

    results: list[SearchResult]
    graph: GraphData | None = None
    request_id: str | None = None
    total_results: int | None = None


# === Chats ===


class Chat(APIModel):
    id: str
    user_id: str | None = None
    title: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ChatMessage(APIModel):
    id: str | None = None
    # "user" or "assistant"
    role: str
    content: str
    created_at: datetime | None = None


class ChatWithMessages(Chat):
    """A chat with its message history."""

    messages: list[ChatMessage] = Field(default_factory=list)


class ChatMessageResponse(APIModel):
    """The assistant's reply to a chat message."""

    message: ChatMessage
    sources: list[Source] | None = None
    usage: Usage | None = None


class CreateChatRequest(RequestModel):
    user_id: str | None = None
    title: str | None = None
    metadata: dict[str, Any] | None = None


class SendMessageRequest(RequestModel):
    message: str
    mode: str | None = None


# === Users ===


class User(APIModel):
    id: str
    email: str | None = None
    name: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UserEvent(APIModel):
    id: str | None = None
    # e.g. "page_view", "click"
    type: str
    data: dict[str, Any] | None = None
    user_id: str | None = None
    created_at: datetime | None = None


class UpsertUserRequest(RequestModel):
    id: str
    email: str | None = None
    name: str | None = None
    metadata: dict[str, Any] | None = None


class UpdateUserRequest(RequestModel):
    email: str | None = None
    name: str | None = None
    metadata: dict[str, Any] | None = None


class CreateEventRequest(RequestModel):
    type: str
    data: dict[str, Any] | None = None


# === Webhooks ===


class Webhook(APIModel):
    id: str
    url: str
    events: list[str] | None = None
    secret: str | None = None
    active: bool | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class WebhookTestResponse(APIModel):
    success: bool | None = None
    # Status code returned by the webhook endpoint, not by MemoryKit
    status_code: int | None = None
    response_body: str | None = None
    error: str | None = None


class CreateWebhookRequest(RequestModel):
    url: str
    events: list[str] | None = None


# === Status & feedback ===


class StatusResponse(APIModel):
    # e.g. "ok" or "degraded"
    status: str
    version: str | None = None
    timestamp: datetime | None = None
    services: dict[str, Any] | None = None


class FeedbackResponse(APIModel):
    success: bool | None = None
    id: str | None = None
    message: str | None = None


class CreateFeedbackRequest(RequestModel):
    request_id: str
    # Numeric score or a label such as "thumbs_up"
    rating: JSONValue = None
    comment: str | None = None


class EmptyBody(RequestModel):
    """Body for POST endpoints that take no parameters."""

import asyncio
import json
from collections.abc import AsyncIterator, Sequence
from typing import Any

from ..models import (
    MAX_BATCH_SIZE,
    BatchDefaults,
    BatchIngestRequest,
    BatchIngestResponse,
    BatchMemoryItem,
    CreateMemoryRequest,
    EmptyBody,
    ListResponse,
    Memory,
    QueryFilters,
    QueryRequest,
    QueryResponse,
    SearchRequest,
    SearchResponse,
    UpdateMemoryRequest,
)
from ..sse import SSEStream
from .base import Resource, encode_path


class MemoriesResource(Resource):
    """Create, list, update, query and search memories."""

    # === CRUD ===

    async def create(
        self,
        content: str,
        title: str | None = None,
        type: str | None = None,
        tags: Sequence[str] | None = None,
        metadata: dict[str, Any] | None = None,
        user_id: str | None = None,
        language: str | None = None,
        format: str | None = None,
    ) -> Memory:
        """
        Create a new memory.

        Args:
            content: The content of the memory
            title: Optional title
            type: Memory type, e.g. "note" or "document"
            tags: Tags to associate with the memory
            metadata: Arbitrary key-value metadata
            user_id: User that owns the memory
            language: Language of the content
            format: Format of the content

        Returns:
            The created Memory; processing (chunking, embedding) continues
            server-side and is reflected in ``status``

        Example:
            ```python
            memory = await mk.memories.create(
                content="Meeting notes from Q4...",
                title="Q4 Planning Notes",
                tags=["planning", "q4"],
            )
            ```
        """
        body = CreateMemoryRequest(
            content=content,
            title=title,
            type=type,
            tags=list(tags) if tags is not None else None,
            metadata=metadata,
            user_id=user_id,
            language=language,
            format=format,
        )
        return await self._client.post("/memories", body, Memory)

    async def batch_create(
        self,
        items: Sequence[BatchMemoryItem],
        defaults: BatchDefaults | None = None,
    ) -> BatchIngestResponse:
        """
        Ingest up to 100 memories in one request.

        Use ``bulk_create`` for larger collections.

        Args:
            items: The memory items to ingest
            defaults: Values applied to every item that does not set them

        Returns:
            BatchIngestResponse with created items and per-item errors
        """
        body = BatchIngestRequest(items=list(items), defaults=defaults)
        return await self._client.post("/memories/batch", body, BatchIngestResponse)

    async def bulk_create(
        self,
        items: Sequence[BatchMemoryItem],
        defaults: BatchDefaults | None = None,
        batch_size: int = MAX_BATCH_SIZE,
        delay_between_batches: float = 0.0,
    ) -> list[BatchIngestResponse]:
        """
        Ingest any number of memories as consecutive batch requests.

        Args:
            items: The memory items to ingest
            defaults: Values applied to every item that does not set them
            batch_size: Items per request (at most 100)
            delay_between_batches: Seconds to wait between requests

        Returns:
            One BatchIngestResponse per request, in order
        """
        if not 0 < batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")

        results = []
        for i in range(0, len(items), batch_size):
            if i > 0 and delay_between_batches > 0:
                await asyncio.sleep(delay_between_batches)
            chunk = items[i : i + batch_size]
            results.append(await self.batch_create(chunk, defaults=defaults))
        return results

    async def list(
        self,
        limit: int | None = None,
        cursor: str | None = None,
        status: str | None = None,
        type: str | None = None,
        user_id: str | None = None,
    ) -> ListResponse[Memory]:
        """
        List memories with cursor-based pagination.

        Args:
            limit: Maximum number of results per page (server default: 20)
            cursor: Cursor from a previous page's ``next_cursor``
            status: Filter by processing status
            type: Filter by memory type
            user_id: Filter by user ID

        Returns:
            ListResponse containing a page of memories
        """
        params = {
            "limit": limit,
            "cursor": cursor,
            "status": status,
            "type": type,
            "userId": user_id,
        }
        return await self._client.get("/memories", ListResponse[Memory], params=params)

    async def list_all(
        self,
        page_size: int | None = None,
        status: str | None = None,
        type: str | None = None,
        user_id: str | None = None,
    ) -> AsyncIterator[Memory]:
        """
        Auto-paginating listing that yields every matching memory.

        Yields:
            Individual memories from all result pages
        """
        cursor = None
        while True:
            page = await self.list(
                limit=page_size,
                cursor=cursor,
                status=status,
                type=type,
                user_id=user_id,
            )
            for memory in page.data:
                yield memory

            if not page.has_more or not page.next_cursor:
                break
            cursor = page.next_cursor

    async def get(self, memory_id: str) -> Memory:
        return await self._client.get(encode_path("memories", memory_id), Memory)

    async def update(
        self,
        memory_id: str,
        title: str | None = None,
        type: str | None = None,
        tags: Sequence[str] | None = None,
        metadata: dict[str, Any] | None = None,
        content: str | None = None,
    ) -> Memory:
        """
        Update an existing memory. Only the fields given are sent.

        Returns:
            The updated Memory
        """
        body = UpdateMemoryRequest(
            title=title,
            type=type,
            tags=list(tags) if tags is not None else None,
            metadata=metadata,
            content=content,
        )
        return await self._client.put(encode_path("memories", memory_id), body, Memory)

    async def upload(
        self,
        file_data: bytes,
        file_name: str,
        mime_type: str = "application/octet-stream",
        title: str | None = None,
        tags: Sequence[str] | None = None,
        metadata: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> Memory:
        """
        Upload a file as a memory.

        Supported formats are PDF, TXT, Markdown, HTML, JSON and CSV.

        Args:
            file_data: The file contents
            file_name: File name, e.g. "document.pdf"
            mime_type: MIME type, e.g. "application/pdf"
            title: Optional title
            tags: Tags to associate with the memory
            metadata: Arbitrary key-value metadata
            user_id: User that owns the memory

        Returns:
            The created Memory
        """
        fields = {}
        if title is not None:
            fields["title"] = title
        if tags is not None:
            fields["tags"] = ",".join(tags)
        if user_id is not None:
            fields["userId"] = user_id
        if metadata is not None:
            fields["metadata"] = json.dumps(metadata)

        files = {"file": (file_name, file_data, mime_type)}
        return await self._client.post_multipart(
            "/memories/upload", files=files, data=fields, response_model=Memory
        )

    async def reprocess(self, memory_id: str) -> Memory:
        """Trigger re-chunking and re-embedding of an existing memory."""
        return await self._client.post(
            encode_path("memories", memory_id, "reprocess"), EmptyBody(), Memory
        )

    async def delete(self, memory_id: str) -> None:
        await self._client.delete(encode_path("memories", memory_id))

    # === Query & search ===

    async def query(
        self,
        query: str,
        max_sources: int | None = None,
        temperature: float | None = None,
        mode: str | None = None,
        user_id: str | None = None,
        instructions: str | None = None,
        response_format: str | None = None,
        include_graph: bool | None = None,
        filters: QueryFilters | None = None,
    ) -> QueryResponse:
        """
        Run a RAG query against stored memories.

        Args:
            query: Natural language question
            max_sources: Maximum number of source memories to reference
            temperature: LLM temperature for generation
            mode: Query mode, e.g. "balanced", "precise" or "creative"
            user_id: Scope the query to one user's memories
            instructions: Additional instructions for the LLM
            response_format: Desired response format
            include_graph: Whether to include knowledge graph data
            filters: Filters applied to candidate memories

        Returns:
            QueryResponse with the answer, sources and usage
        """
        body = QueryRequest(
            query=query,
            max_sources=max_sources,
            temperature=temperature,
            mode=mode,
            user_id=user_id,
            instructions=instructions,
            response_format=response_format,
            include_graph=include_graph,
            filters=filters,
        )
        return await self._client.post("/memories/query", body, QueryResponse)

    async def search(
        self,
        query: str,
        limit: int | None = None,
        score_threshold: float | None = None,
        include_graph: bool | None = None,
        filters: QueryFilters | None = None,
        user_id: str | None = None,
    ) -> SearchResponse:
        """
        Hybrid (semantic + keyword) search across memories.

        Args:
            query: The search query
            limit: Maximum number of results
            score_threshold: Minimum relevance score
            include_graph: Whether to include knowledge graph data
            filters: Filters applied to candidate memories
            user_id: Scope the search to one user's memories

        Returns:
            SearchResponse with results and optional graph data
        """
        body = SearchRequest(
            query=query,
            limit=limit,
            score_threshold=score_threshold,
            include_graph=include_graph,
            filters=filters,
            user_id=user_id,
        )
        return await self._client.post("/memories/search", body, SearchResponse)

    async def stream(
        self,
        query: str,
        max_sources: int | None = None,
        temperature: float | None = None,
        mode: str | None = None,
        user_id: str | None = None,
        instructions: str | None = None,
        response_format: str | None = None,
        include_graph: bool | None = None,
        filters: QueryFilters | None = None,
    ) -> SSEStream:
        """
        Run a RAG query and stream the answer as server-sent events.

        Takes the same arguments as ``query``. The server sends ``text``
        events with answer fragments, then ``sources``, ``usage`` and a
        final ``done`` (or ``error``) event.

        Example:
            ```python
            async with await mk.memories.stream(query="Summarize Q4") as stream:
                async for event in stream:
                    if event.event == "text":
                        print(event.decode()["content"], end="")
            ```
        """
        body = QueryRequest(
            query=query,
            max_sources=max_sources,
            temperature=temperature,
            mode=mode,
            user_id=user_id,
            instructions=instructions,
            response_format=response_format,
            include_graph=include_graph,
            filters=filters,
            stream=True,
        )
        return await self._client.post_stream("/memories/stream", body)

"""
MemoryKit Client

An async Python client for the MemoryKit REST API: memories, RAG queries,
hybrid search, chats, users, webhooks and server-sent event streaming.
"""

__version__ = "0.1.1"

from .client import MemoryKit, create_client
from .config import MemoryKitConfig, MemoryKitSettings
from .exceptions import ErrorKind, MemoryKitError
from .models import (
    BatchDefaults,
    BatchMemoryItem,
    ListResponse,
    Memory,
    QueryFilters,
)
from .sse import SSEDecoder, SSEEvent, SSEStream


__all__ = [
    # Client classes
    "MemoryKit",
    "MemoryKitConfig",
    "MemoryKitSettings",
    "create_client",
    # Exceptions
    "ErrorKind",
    "MemoryKitError",
    # Streaming
    "SSEDecoder",
    "SSEEvent",
    "SSEStream",
    # Types
    "BatchDefaults",
    "BatchMemoryItem",
    "ListResponse",
    "Memory",
    "QueryFilters",
]

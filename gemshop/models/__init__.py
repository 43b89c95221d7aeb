"""Domain models for gemshop."""

from gemshop.models.documents import Chunk, Document, Gem, NewChunk
from gemshop.models.rag import (
    ChatResult,
    ChatSource,
    IngestionResult,
    IngestionStatus,
    RetrievedChunk,
    StoreStats,
)

__all__ = [
    "ChatResult",
    "ChatSource",
    "Chunk",
    "Document",
    "Gem",
    "IngestionResult",
    "IngestionStatus",
    "NewChunk",
    "RetrievedChunk",
    "StoreStats",
]

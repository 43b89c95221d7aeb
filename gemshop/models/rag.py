"""RAG pipeline result models: retrieval hits, ingestion outcomes, chat answers.

RAG overview:

    1. INGESTION: an uploaded file is extracted to text and split into
       overlapping character windows (chunks).
    2. EMBEDDING: each chunk is converted into a fixed-dimension vector.
    3. STORAGE: chunks + vectors are stored next to their document.
    4. RETRIEVAL: at chat time the question is embedded and the closest
       chunks *from the active Gem's documents only* are selected.
    5. GENERATION: the retrieved excerpts are passed to the LLM as the
       only allowed source of facts.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from gemshop.models.documents import Chunk


class RetrievedChunk(BaseModel):
    """A stored chunk returned by a scoped similarity search."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk = Field(description="The retrieved chunk.")
    similarity: float = Field(
        ge=-1.0,
        le=1.0,
        description="Cosine similarity (1 - cosine distance) to the query vector.",
    )


class IngestionStatus(str, Enum):
    """Terminal state of one file's ingestion."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class IngestionResult(BaseModel):
    """Summary of a single file ingestion run.

    Background workers only log it; the CLI prints it.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    status: IngestionStatus
    document_id: str | None = None
    chunks_created: int = Field(default=0, ge=0)
    error: str | None = None
    ingestion_time: float = Field(default=0.0, ge=0.0, description="Wall-clock seconds.")


class ChatSource(BaseModel):
    """One retrieved chunk as presented alongside an answer."""

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    chunk_index: int
    text_excerpt: str
    metadata: str | None = None
    similarity: float
    name: str = Field(description="Source filename from metadata, else the document id.")


class ChatResult(BaseModel):
    """Answer for one chat turn plus the sources it was grounded on."""

    model_config = ConfigDict(frozen=True)

    response: str
    sources: list[ChatSource] = Field(default_factory=list)


class StoreStats(BaseModel):
    """Aggregate counts for the document store (health endpoint, CLI)."""

    model_config = ConfigDict(frozen=True)

    total_documents: int = Field(default=0, ge=0)
    total_chunks: int = Field(default=0, ge=0)
    total_gems: int = Field(default=0, ge=0)
    documents_by_type: dict[str, int] = Field(default_factory=dict)

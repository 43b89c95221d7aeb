"""Stored records: documents, their embedded chunks, and Gems.

Defines Pydantic v2 models mirroring the four persisted relations
(``documents``, ``embeddings``, ``gems``, ``gem_documents``).  All records
are write-once, so every model is frozen.

Relationships:
    Document 1 --- * Chunk          (chunks belong to exactly one document)
    Gem      * --- * Document       (via gem_documents; defines retrieval scope)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Document -- one per successfully ingested file.
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """An ingested source file.

    Created once by the ingestion orchestrator after the file's chunks have
    been embedded; never updated afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) for this document.")
    tenant_id: str | None = Field(default=None, description="Owning tenant, if multi-tenant.")
    name: str = Field(description="Display name, normally the uploaded filename.")
    source_type: str = Field(
        description='File category derived from the extension, e.g. "pdf", "csv", "txt".'
    )
    source_ref: str | None = Field(
        default=None, description="Where the raw file lives (upload path or URL)."
    )
    content: str | None = Field(default=None, description="Optional raw text content.")
    metadata: dict[str, Any] | None = Field(
        default=None, description="Optional structured metadata."
    )
    created_at: datetime = Field(description="Creation timestamp (UTC).")


# ---------------------------------------------------------------------------
# Chunk -- one embedded window of a document's text.
# ---------------------------------------------------------------------------
class NewChunk(BaseModel):
    """A chunk ready for bulk insertion (no id or timestamp yet)."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    chunk_index: int = Field(ge=0, description="Zero-based ordinal within the document.")
    vector: list[float] = Field(description="Embedding vector for ``text_excerpt``.")
    text_excerpt: str = Field(description="The chunk text, verbatim.")
    # Kept as a JSON string; readers must tolerate malformed values.
    metadata: str | None = Field(
        default=None, description='JSON-encoded metadata, e.g. {"source_filename": ...}.'
    )


class Chunk(NewChunk):
    """A stored chunk (embedding record)."""

    id: str = Field(description="Unique identifier (UUID) for this chunk.")
    created_at: datetime = Field(description="Creation timestamp (UTC).")


# ---------------------------------------------------------------------------
# Gem -- a named assistant scoped to a set of documents.
# ---------------------------------------------------------------------------
class Gem(BaseModel):
    """A named, scoped AI assistant.

    ``system_prompt`` is synthesized from ``name`` and ``description`` when
    the Gem is created and is not editable afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str | None = None
    name: str
    description: str
    system_prompt: str | None = None
    rules: str | None = None
    created_at: datetime
    updated_at: datetime

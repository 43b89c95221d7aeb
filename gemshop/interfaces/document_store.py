"""Abstract base class for the document store and scoped retriever.

One relational store holds documents, their embedded chunks, Gems, and the
Gem <-> Document links.  Retrieval is a method of the store because the
scoping (only chunks of documents linked to the Gem) is a join over the
same relations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from gemshop.models.documents import Document, Gem, NewChunk
from gemshop.models.rag import RetrievedChunk, StoreStats


# Concrete implementation: SQLiteDocumentStore (gemshop/providers/store/)
class IDocumentStore(ABC):
    """Contract for persistence and retrieval used by the orchestrators.

    Implementations hold one process-scoped connection: :meth:`initialize`
    opens it (creating the schema if needed) and :meth:`close` releases it.
    """

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    async def initialize(self) -> None:
        """Open the connection and create the schema if it does not exist."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection.  Safe to call more than once."""

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    async def insert_document(
        self,
        name: str,
        source_type: str,
        source_ref: str | None = None,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
        tenant_id: str | None = None,
    ) -> Document:
        """Persist a new document and return it with its generated id."""

    @abstractmethod
    async def insert_chunks_bulk(self, chunks: list[NewChunk]) -> int:
        """Insert all *chunks* in one set-oriented statement.

        Returns
        -------
        int
            Number of rows inserted.
        """

    @abstractmethod
    async def create_gem(
        self,
        name: str,
        description: str,
        system_prompt: str | None = None,
        rules: str | None = None,
        tenant_id: str | None = None,
    ) -> Gem:
        """Persist a new Gem and return it."""

    @abstractmethod
    async def link_documents_to_gem(self, gem_id: str, document_ids: list[str]) -> None:
        """Add *document_ids* to the Gem's retrieval scope.

        An empty list is a no-op.  Links that already exist are ignored.
        """

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @abstractmethod
    async def list_documents(self, tenant_id: str | None = None) -> list[Document]:
        """Return all documents, newest first."""

    @abstractmethod
    async def get_documents_by_ids(self, document_ids: list[str]) -> list[Document]:
        """Return the documents among *document_ids* that exist."""

    @abstractmethod
    async def list_gems(self, tenant_id: str | None = None) -> list[Gem]:
        """Return all Gems, newest first."""

    @abstractmethod
    async def get_gem_by_id(self, gem_id: str) -> Gem | None:
        """Return the Gem with *gem_id*, or ``None``."""

    @abstractmethod
    async def get_gem_document_ids(self, gem_id: str) -> list[str]:
        """Return the ids of the documents linked to *gem_id*."""

    @abstractmethod
    async def find_relevant_chunks_for_gem(
        self,
        gem_id: str,
        query_vector: list[float],
        top_k: int = 5,
    ) -> list[RetrievedChunk]:
        """Return the *top_k* chunks most similar to *query_vector*.

        Candidates are restricted to chunks whose document is linked to
        *gem_id*.  Results are ordered by descending similarity
        (``1 - cosine_distance``); equal scores keep storage order.
        """

    @abstractmethod
    async def get_stats(self) -> StoreStats:
        """Return aggregate counts for the store."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite"``."""

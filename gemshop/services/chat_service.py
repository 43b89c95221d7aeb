"""Query orchestrator: one chat turn against one Gem.

Flow: **gem lookup -> embed question -> scoped retrieval -> generate**.

The Gem is resolved before any provider is contacted, so an unknown id
costs nothing upstream.  Retrieval only ever sees chunks of documents
linked to the Gem; a Gem with no linked documents still gets an answer,
just with no sources.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import structlog

from gemshop.config.loader import DEFAULT_TOP_K
from gemshop.interfaces.llm_provider import SERVICE_ERROR_MESSAGE
from gemshop.models.rag import ChatResult, ChatSource, RetrievedChunk
from gemshop.utils.errors import GemNotFoundError, RAGError

if TYPE_CHECKING:
    from gemshop.interfaces.document_store import IDocumentStore
    from gemshop.interfaces.embedding_provider import IEmbeddingProvider
    from gemshop.interfaces.llm_provider import ILLMProvider

logger = structlog.get_logger(logger_name=__name__)


def fallback_system_prompt(gem_name: str) -> str:
    return f"You are a helpful assistant named {gem_name}."


def source_display_name(metadata: str | None, document_id: str) -> str:
    """Return ``source_filename`` from chunk metadata, else *document_id*.

    Metadata is stored as a JSON string and may be missing or malformed.
    """
    if metadata:
        try:
            parsed = json.loads(metadata)
        except (TypeError, ValueError):
            parsed = None
        if isinstance(parsed, dict):
            name = parsed.get("source_filename")
            if isinstance(name, str) and name:
                return name
    return document_id


def _to_source(hit: RetrievedChunk) -> ChatSource:
    chunk = hit.chunk
    return ChatSource(
        id=chunk.id,
        document_id=chunk.document_id,
        chunk_index=chunk.chunk_index,
        text_excerpt=chunk.text_excerpt,
        metadata=chunk.metadata,
        similarity=hit.similarity,
        name=source_display_name(chunk.metadata, chunk.document_id),
    )


class ChatService:
    """Answers questions with a Gem's documents as the only source of facts."""

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        llm_provider: ILLMProvider,
        document_store: IDocumentStore,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._llm = llm_provider
        self._store = document_store
        self._top_k = top_k

    async def answer(
        self,
        gem_id: str,
        message: str,
        top_k: int | None = None,
    ) -> ChatResult:
        """Run one chat turn.

        Raises
        ------
        GemNotFoundError
            If *gem_id* does not exist.  No provider is called.
        """
        gem = await self._store.get_gem_by_id(gem_id)
        if gem is None:
            logger.warning("chat_unknown_gem", gem_id=gem_id)
            raise GemNotFoundError(gem_id)

        limit = self._top_k if top_k is None else top_k
        try:
            query_vector = await self._embedding_provider.embed_single(message)
        except RAGError as exc:
            logger.error(
                "chat_embedding_failed",
                gem_id=gem_id,
                provider=exc.provider_name,
                error=str(exc),
            )
            return ChatResult(response=SERVICE_ERROR_MESSAGE, sources=[])

        hits = await self._store.find_relevant_chunks_for_gem(gem_id, query_vector, top_k=limit)

        system_prompt = gem.system_prompt or fallback_system_prompt(gem.name)
        response = await self._llm.complete(
            system_prompt=system_prompt,
            user_question=message,
            context_chunks=[hit.chunk.text_excerpt for hit in hits],
        )

        logger.info(
            "chat_answered",
            gem_id=gem_id,
            sources=len(hits),
            llm_provider=self._llm.get_provider_name(),
        )
        return ChatResult(response=response, sources=[_to_source(hit) for hit in hits])

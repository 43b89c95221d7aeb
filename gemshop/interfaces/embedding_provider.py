"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap OpenAI ``text-embedding-3-small`` or Nomic
``nomic-embed-text`` (local via Ollama); the orchestrators only ever see
this interface, so backends are interchangeable.

The degraded mode lives here rather than in each adapter: when a provider
reports itself unavailable (no credential), :meth:`embed` returns
zero-filled vectors of the provider's declared dimension so ingestion and
chat keep working end to end.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from gemshop.utils.errors import EmbeddingError
from gemshop.utils.logging import get_logger

logger = get_logger(__name__)


# Concrete implementations:
#   OpenAIEmbeddingProvider  -- text-embedding-3-small, 1536 dims (OPENAI_API_KEY)
#   NomicEmbeddingProvider   -- nomic-embed-text via Ollama, 768 dims (OLLAMA_BASE_URL)
# Located in: gemshop/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the RAG pipeline."""

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  All of them are sent
            upstream together; adapters split only where the upstream API
            has a per-call limit.

        Returns
        -------
        list[list[float]]
            One vector per input, in input order, each of length
            :meth:`get_dimension`.  Zero vectors when the provider is not
            configured.

        Raises
        ------
        gemshop.utils.errors.EmbeddingError
            If a configured provider's API call fails, or returns a
            different number of vectors than texts.
        """
        if not texts:
            return []

        if not self.is_available():
            logger.warning(
                "embedding_provider_degraded",
                provider=self.get_provider_name(),
                texts=len(texts),
                dimension=self.get_dimension(),
            )
            return [[0.0] * self.get_dimension() for _ in texts]

        vectors = await self._embed_batch(texts)
        if len(vectors) != len(texts):
            raise EmbeddingError(
                message=f"Expected {len(texts)} embeddings, received {len(vectors)}",
                provider_name=self.get_provider_name(),
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string (e.g. a chat query)."""
        result = await self.embed([text])
        return result[0]

    @abstractmethod
    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Call the upstream API for a non-empty list of texts.

        Only invoked when :meth:`is_available` is ``True``.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors.

        Constant for the lifetime of the provider instance.  Example values:
        ``1536`` (OpenAI ``text-embedding-3-small``), ``768`` (Nomic).
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider has the configuration it needs.

        Must not make a network call.
        """

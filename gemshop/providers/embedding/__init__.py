"""Embedding provider adapters."""

from gemshop.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from gemshop.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["NomicEmbeddingProvider", "OpenAIEmbeddingProvider"]

"""Public interface definitions for all swappable collaborators.

Every external service used by the retrieval pipeline is reached through
one of the abstract base classes below.  Concrete adapters live in
``gemshop/providers/`` and are selected in ``gemshop/main.py`` at startup,
so the orchestrators never import an SDK directly and tests can inject
fakes.

    Interface            ->  Concrete implementations
    ----------------------------------------------------------------
    IEmbeddingProvider   ->  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    ILLMProvider         ->  OpenAILLMProvider, AnthropicLLMProvider
    IDocumentStore       ->  SQLiteDocumentStore
"""

from gemshop.interfaces.document_store import IDocumentStore
from gemshop.interfaces.embedding_provider import IEmbeddingProvider
from gemshop.interfaces.llm_provider import ILLMProvider

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "ILLMProvider",
]

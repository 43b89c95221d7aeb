"""Shared pytest fixtures for the gemshop test suite."""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest
import structlog

import gemshop.main  # noqa: F401 -- configures logging on import
from gemshop.config.settings import Settings
from gemshop.interfaces.embedding_provider import IEmbeddingProvider
from gemshop.interfaces.llm_provider import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, ILLMProvider
from gemshop.providers.store.sqlite_document_store import SQLiteDocumentStore

# Cached loggers would keep writing to the first test's captured stdout.
structlog.configure(cache_logger_on_first_use=False)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(**overrides) -> Settings:
    """Settings with every credential blanked so the host environment can't leak in."""
    defaults = {
        "database_url": "",
        "openai_api_key": "",
        "openai_base_url": "",
        "openai_text_model": "",
        "openai_embedding_model": "",
        "anthropic_api_key": "",
        "anthropic_model": "",
        "ollama_base_url": "",
        "embedding_provider": "auto",
        "llm_provider": "auto",
        "ingestion_workers": 1,
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embeddings: each text hashes to a fixed small vector.

    ``vectors`` pins specific texts to specific vectors; ``fail`` makes the
    upstream call raise.  Every batch is recorded in ``calls``.
    """

    def __init__(
        self,
        dimension: int = 4,
        available: bool = True,
        vectors: dict[str, list[float]] | None = None,
        fail: Exception | None = None,
    ) -> None:
        self._dimension = dimension
        self._available = available
        self._vectors = vectors or {}
        self._fail = fail
        self.calls: list[list[str]] = []

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self._fail is not None:
            raise self._fail
        return [self._vectors.get(text) or self._hash_vector(text) for text in texts]

    def _hash_vector(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [(digest[i] + 1) / 256.0 for i in range(self._dimension)]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return self._available


class FakeLLMProvider(ILLMProvider):
    """Records every exchange and answers with a fixed string."""

    def __init__(self, answer: str = "Réponse de test.", available: bool = True) -> None:
        self._answer = answer
        self._available = available
        self.prompts: list[tuple[str, str]] = []

    async def _generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        self.prompts.append((system_prompt, user_prompt))
        return self._answer

    def get_provider_name(self) -> str:
        return "fake_llm"

    def is_available(self) -> bool:
        return self._available


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "gemshop-test.db"


@pytest.fixture
async def store(db_path: Path):
    """An initialized SQLiteDocumentStore on a temporary file."""
    s = SQLiteDocumentStore(db_path=db_path)
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def llm_provider() -> FakeLLMProvider:
    return FakeLLMProvider()

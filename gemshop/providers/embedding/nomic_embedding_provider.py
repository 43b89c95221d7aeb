"""Nomic embedding provider adapter (local via Ollama).

Talks to the OpenAI-compatible ``/v1`` endpoint that Ollama exposes and
produces 768-dimensional ``nomic-embed-text`` vectors.  The "credential"
for this backend is ``OLLAMA_BASE_URL``.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from gemshop.config.settings import Settings
from gemshop.interfaces.embedding_provider import IEmbeddingProvider
from gemshop.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 512


class NomicEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by ``nomic-embed-text`` served via Ollama."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._model = "nomic-embed-text"
        self._dimension = 768

        self._client: openai.AsyncOpenAI | None = None
        if self._base_url:
            self._client = openai.AsyncOpenAI(
                base_url=f"{self._base_url}/v1",
                api_key="ollama",  # Ollama ignores the key but the SDK requires one
                timeout=settings.provider_timeout_seconds,
            )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def _embed_batch(self, texts: list[str]) -> list[list[float]]:
        assert self._client is not None
        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OLLAMA_BATCH_LIMIT):
                batch = texts[start : start + _OLLAMA_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.info(
                    "nomic_embedding_batch",
                    model=self._model,
                    batch_size=len(batch),
                )
            return all_embeddings
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"Nomic/Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_dimension(self) -> int:
        """Return 768 (nomic-embed-text dimension)."""
        return self._dimension

    def get_provider_name(self) -> str:
        return "nomic_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if an Ollama base URL is configured."""
        return bool(self._base_url)

    async def check_reachable(self, timeout: float = 3.0) -> bool:
        """Ping the Ollama server once (used at startup, not per request)."""
        if not self._base_url:
            return False
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(f"{self._base_url}/api/tags")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources, in priority
# order:
#
#   1. Environment variables, e.g. OPENAI_API_KEY=sk-abc123
#   2. The .env file in the working directory (local development)
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.
#
# Empty-string credentials mean "not configured": the provider adapters
# degrade to their documented fallbacks (zero vectors, fixed messages)
# instead of failing.  The one hard requirement is DATABASE_URL; see
# :func:`gemshop.main.build_document_store`.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_SQLITE_PREFIXES = ("sqlite+aiosqlite:///", "sqlite:///")


class Settings(BaseSettings):
    """gemshop application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Storage ===
    # sqlite:///data/gemshop.db or a bare filesystem path.
    database_url: str = ""

    # === Providers ===
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_text_model: str = ""
    openai_embedding_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = ""
    ollama_base_url: str = ""

    # "auto" picks the first configured backend; see main.py.
    embedding_provider: str = "auto"
    llm_provider: str = "auto"
    provider_timeout_seconds: float = 30.0

    # === Ingestion ===
    upload_dir: str = "uploads"
    ingestion_workers: int = 2

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_database_path(self) -> Path | None:
        """Return the SQLite file path named by ``database_url``, or ``None`` if unset."""
        url = self.database_url.strip()
        if not url:
            return None
        for prefix in _SQLITE_PREFIXES:
            if url.startswith(prefix):
                return Path(url[len(prefix):])
        return Path(url)

    def get_available_llm_providers(self) -> list[str]:
        """Return the generation backends that have credentials configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.anthropic_api_key:
            providers.append("anthropic")
        return providers

    def get_available_embedding_providers(self) -> list[str]:
        """Return the embedding backends that have credentials configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("nomic")
        return providers

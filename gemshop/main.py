"""gemshop FastAPI application entry point.

Wires providers, services, and routes together via dependency injection.
Configuration comes from ``.env`` / environment (:class:`Settings`) and
``config/config.yaml`` (chunking and retrieval defaults).

Component assembly (:func:`build_components`) is shared with the CLI so
both entrypoints select providers the same way.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from gemshop import __version__
from gemshop.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    register_exception_handlers,
)
from gemshop.api.routes import router as api_router
from gemshop.config.loader import load_config
from gemshop.config.settings import Settings
from gemshop.interfaces.document_store import IDocumentStore
from gemshop.interfaces.embedding_provider import IEmbeddingProvider
from gemshop.interfaces.llm_provider import ILLMProvider
from gemshop.pipeline.ingestion_queue import IngestionQueue
from gemshop.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from gemshop.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from gemshop.providers.llm.anthropic_provider import AnthropicLLMProvider
from gemshop.providers.llm.openai_provider import OpenAILLMProvider
from gemshop.providers.store.sqlite_document_store import SQLiteDocumentStore
from gemshop.services.chat_service import ChatService
from gemshop.services.gem_service import GemService
from gemshop.services.ingestion.chunker import TextChunker
from gemshop.services.ingestion.ingestion_service import IngestionService
from gemshop.utils.errors import ConfigurationError
from gemshop.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    """Select the embedding backend.

    ``EMBEDDING_PROVIDER=auto`` picks OpenAI when a key is set, then Nomic
    when an Ollama URL is set.  With neither configured, an unconfigured
    OpenAI provider is returned; it yields zero vectors.
    """
    choice = app_settings.embedding_provider.strip().lower()
    if choice == "openai":
        return OpenAIEmbeddingProvider(settings=app_settings)
    if choice == "nomic":
        return NomicEmbeddingProvider(settings=app_settings)
    if choice != "auto":
        raise ConfigurationError(f"Unknown EMBEDDING_PROVIDER: {app_settings.embedding_provider}")

    if app_settings.openai_api_key:
        return OpenAIEmbeddingProvider(settings=app_settings)
    if app_settings.ollama_base_url:
        return NomicEmbeddingProvider(settings=app_settings)
    _logger.warning("no_embedding_provider_configured", fallback="zero_vectors")
    return OpenAIEmbeddingProvider(settings=app_settings)


def build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the generation backend.

    ``LLM_PROVIDER=auto`` picks OpenAI, then Anthropic, by configured key.
    With neither configured, an unconfigured OpenAI provider is returned;
    it answers with the fixed "service unavailable" message.
    """
    choice = app_settings.llm_provider.strip().lower()
    if choice == "openai":
        return OpenAILLMProvider(settings=app_settings)
    if choice == "anthropic":
        return AnthropicLLMProvider(settings=app_settings)
    if choice != "auto":
        raise ConfigurationError(f"Unknown LLM_PROVIDER: {app_settings.llm_provider}")

    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    _logger.warning("no_llm_provider_configured", fallback="service_unavailable_message")
    return OpenAILLMProvider(settings=app_settings)


def build_document_store(app_settings: Settings) -> IDocumentStore:
    """Build the document store named by ``DATABASE_URL``.

    Raises
    ------
    ConfigurationError
        If ``DATABASE_URL`` is not set.
    """
    db_path = app_settings.get_database_path()
    if db_path is None:
        raise ConfigurationError(
            "DATABASE_URL is not set; cannot open the document store",
            provider_name="sqlite",
        )
    return SQLiteDocumentStore(db_path=db_path)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(
    app_settings: Settings,
    app_config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components to be stored on ``app.state``.
    The document store is built but not yet initialized.
    """
    app_config = app_config or load_config()
    chunking = app_config["chunking"]
    retrieval = app_config["retrieval"]

    document_store = build_document_store(app_settings)
    embedding_provider = build_embedding_provider(app_settings)
    llm_provider = build_llm_provider(app_settings)

    ingestion_service = IngestionService(
        embedding_provider=embedding_provider,
        document_store=document_store,
        chunker=TextChunker(chunk_size=chunking["chunk_size"], overlap=chunking["overlap"]),
    )
    ingestion_queue = IngestionQueue(
        ingestion_service=ingestion_service,
        workers=app_settings.ingestion_workers,
    )

    return {
        "settings": app_settings,
        "config": app_config,
        "document_store": document_store,
        "embedding_provider": embedding_provider,
        "llm_provider": llm_provider,
        "ingestion_service": ingestion_service,
        "ingestion_queue": ingestion_queue,
        "gem_service": GemService(document_store=document_store),
        "chat_service": ChatService(
            embedding_provider=embedding_provider,
            llm_provider=llm_provider,
            document_store=document_store,
            top_k=retrieval["top_k"],
        ),
        "provider_status": {
            "embedding": {
                "name": embedding_provider.get_provider_name(),
                "available": embedding_provider.is_available(),
                "dimension": embedding_provider.get_dimension(),
            },
            "llm": {
                "name": llm_provider.get_provider_name(),
                "available": llm_provider.is_available(),
            },
        },
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Open the store and start ingestion workers; undo both on shutdown."""
    components = build_components(application.state.settings)
    for key, value in components.items():
        setattr(application.state, key, value)

    store: IDocumentStore = components["document_store"]
    await store.initialize()

    embedding_provider = components["embedding_provider"]
    if isinstance(embedding_provider, NomicEmbeddingProvider):
        reachable = await embedding_provider.check_reachable()
        components["provider_status"]["embedding"]["reachable"] = reachable
        if not reachable:
            _logger.warning("ollama_unreachable", base_url=application.state.settings.ollama_base_url)

    queue: IngestionQueue = components["ingestion_queue"]
    queue.start()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=application.state.settings.app_env,
        embedding_provider=embedding_provider.get_provider_name(),
        llm_provider=components["llm_provider"].get_provider_name(),
    )

    try:
        yield
    finally:
        await queue.stop()
        await store.close()
        _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="gemshop API",
        version=__version__,
        description=(
            "Upload documents, create Gems scoped to them, and chat with "
            "answers grounded only in each Gem's documents."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings or settings

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)
    register_exception_handlers(application)

    application.include_router(api_router)
    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def run() -> None:
    uvicorn.run(
        "gemshop.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )


if __name__ == "__main__":
    run()

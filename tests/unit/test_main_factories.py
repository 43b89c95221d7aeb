"""Unit tests for provider selection and component assembly in gemshop.main."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_settings
from gemshop.main import (
    build_components,
    build_document_store,
    build_embedding_provider,
    build_llm_provider,
)
from gemshop.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from gemshop.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from gemshop.providers.llm.anthropic_provider import AnthropicLLMProvider
from gemshop.providers.llm.openai_provider import OpenAILLMProvider
from gemshop.providers.store.sqlite_document_store import SQLiteDocumentStore
from gemshop.utils.errors import ConfigurationError


class TestEmbeddingSelection:
    def test_auto_prefers_openai(self) -> None:
        provider = build_embedding_provider(
            make_settings(openai_api_key="sk-test", ollama_base_url="http://localhost:11434")
        )
        assert isinstance(provider, OpenAIEmbeddingProvider)

    def test_auto_falls_back_to_nomic(self) -> None:
        provider = build_embedding_provider(make_settings(ollama_base_url="http://localhost:11434"))
        assert isinstance(provider, NomicEmbeddingProvider)

    def test_auto_without_credentials_is_degraded_openai(self) -> None:
        provider = build_embedding_provider(make_settings())
        assert isinstance(provider, OpenAIEmbeddingProvider)
        assert provider.is_available() is False

    def test_explicit_choice(self) -> None:
        provider = build_embedding_provider(
            make_settings(embedding_provider="Nomic", openai_api_key="sk-test")
        )
        assert isinstance(provider, NomicEmbeddingProvider)

    def test_unknown_choice_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="EMBEDDING_PROVIDER"):
            build_embedding_provider(make_settings(embedding_provider="cohere"))


class TestLLMSelection:
    def test_auto_prefers_openai(self) -> None:
        provider = build_llm_provider(make_settings(openai_api_key="sk-test", anthropic_api_key="sk-ant"))
        assert isinstance(provider, OpenAILLMProvider)

    def test_auto_falls_back_to_anthropic(self) -> None:
        provider = build_llm_provider(make_settings(anthropic_api_key="sk-ant"))
        assert isinstance(provider, AnthropicLLMProvider)

    def test_auto_without_credentials_is_unavailable(self) -> None:
        provider = build_llm_provider(make_settings())
        assert provider.is_available() is False

    def test_explicit_anthropic(self) -> None:
        provider = build_llm_provider(make_settings(llm_provider="anthropic"))
        assert isinstance(provider, AnthropicLLMProvider)

    def test_unknown_choice_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="LLM_PROVIDER"):
            build_llm_provider(make_settings(llm_provider="mistral"))


class TestDocumentStore:
    def test_missing_database_url_is_a_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError, match="DATABASE_URL"):
            build_document_store(make_settings(database_url=""))

    def test_database_url_selects_sqlite(self, tmp_path: Path) -> None:
        store = build_document_store(make_settings(database_url=f"sqlite:///{tmp_path}/x.db"))
        assert isinstance(store, SQLiteDocumentStore)


class TestBuildComponents:
    def test_wires_every_component(self, tmp_path: Path) -> None:
        config = {"chunking": {"chunk_size": 500, "overlap": 50}, "retrieval": {"top_k": 7}}

        components = build_components(
            make_settings(database_url=str(tmp_path / "c.db"), ollama_base_url="http://localhost:11434"),
            app_config=config,
        )

        assert set(components) >= {
            "settings",
            "config",
            "document_store",
            "embedding_provider",
            "llm_provider",
            "ingestion_service",
            "ingestion_queue",
            "gem_service",
            "chat_service",
            "provider_status",
        }
        assert components["config"] is config
        assert components["provider_status"]["embedding"] == {
            "name": "nomic_embedding",
            "available": True,
            "dimension": 768,
        }
        assert components["provider_status"]["llm"]["available"] is False

    def test_invalid_chunking_config_fails_fast(self, tmp_path: Path) -> None:
        config = {"chunking": {"chunk_size": 100, "overlap": 100}, "retrieval": {"top_k": 5}}

        with pytest.raises(ValueError, match="overlap"):
            build_components(make_settings(database_url=str(tmp_path / "c.db")), app_config=config)

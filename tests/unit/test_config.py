"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_settings
from gemshop.config.loader import (
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TOP_K,
    _deep_merge,
    load_config,
)


class TestDatabasePath:
    def test_unset_is_none(self) -> None:
        assert make_settings(database_url="").get_database_path() is None
        assert make_settings(database_url="   ").get_database_path() is None

    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("sqlite:///data/gemshop.db", Path("data/gemshop.db")),
            ("sqlite+aiosqlite:///data/gemshop.db", Path("data/gemshop.db")),
            ("sqlite:////var/lib/gemshop.db", Path("/var/lib/gemshop.db")),
            ("/tmp/plain.db", Path("/tmp/plain.db")),
        ],
    )
    def test_url_forms(self, url: str, expected: Path) -> None:
        assert make_settings(database_url=url).get_database_path() == expected


class TestAvailableProviders:
    def test_none_configured(self) -> None:
        s = make_settings()
        assert s.get_available_llm_providers() == []
        assert s.get_available_embedding_providers() == []

    def test_keys_enable_providers(self) -> None:
        s = make_settings(
            openai_api_key="sk-test",
            anthropic_api_key="sk-ant",
            ollama_base_url="http://localhost:11434",
        )
        assert s.get_available_llm_providers() == ["openai", "anthropic"]
        assert s.get_available_embedding_providers() == ["openai", "nomic"]

    def test_environment_variables_are_read(self, monkeypatch: pytest.MonkeyPatch) -> None:
        from gemshop.config.settings import Settings

        monkeypatch.setenv("DATABASE_URL", "sqlite:///env.db")
        monkeypatch.setenv("INGESTION_WORKERS", "4")

        s = Settings(_env_file=None)

        assert s.get_database_path() == Path("env.db")
        assert s.ingestion_workers == 4


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"))

        assert config["chunking"] == {
            "chunk_size": DEFAULT_CHUNK_SIZE,
            "overlap": DEFAULT_CHUNK_OVERLAP,
        }
        assert config["retrieval"] == {"top_k": DEFAULT_TOP_K}

    def test_yaml_overrides_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("chunking:\n  chunk_size: 800\nretrieval:\n  top_k: 3\n", encoding="utf-8")

        config = load_config(str(path))

        assert config["chunking"] == {"chunk_size": 800, "overlap": DEFAULT_CHUNK_OVERLAP}
        assert config["retrieval"]["top_k"] == 3

    def test_empty_yaml_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(str(path))["retrieval"]["top_k"] == DEFAULT_TOP_K

    def test_only_tuning_sections_are_returned(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"))

        assert set(config) == {"chunking", "retrieval"}

    def test_repository_config_file(self) -> None:
        path = Path(__file__).resolve().parents[2] / "config" / "config.yaml"

        config = load_config(str(path))

        assert config["chunking"]["chunk_size"] == 1500
        assert config["chunking"]["overlap"] == 200
        assert config["retrieval"]["top_k"] == 5


class TestDeepMerge:
    def test_nested_merge(self) -> None:
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        _deep_merge(base, {"a": {"y": 3, "z": 4}, "c": 5})
        assert base == {"a": {"x": 1, "y": 3, "z": 4}, "b": 1, "c": 5}

    def test_scalar_replaces_dict(self) -> None:
        base = {"a": {"x": 1}}
        _deep_merge(base, {"a": None})
        assert base == {"a": None}

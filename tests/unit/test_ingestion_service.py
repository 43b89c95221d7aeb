"""Unit tests for IngestionService: extract -> chunk -> embed -> store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import FakeEmbeddingProvider
from gemshop.models.rag import IngestionStatus
from gemshop.services.ingestion.chunker import TextChunker
from gemshop.services.ingestion.ingestion_service import IngestionService
from gemshop.utils.errors import EmbeddingError


@pytest.fixture
def service(store, embedding_provider: FakeEmbeddingProvider) -> IngestionService:
    return IngestionService(embedding_provider=embedding_provider, document_store=store)


async def _stored_chunks(store, document_id: str, dimension: int = 4):
    """Pull every chunk of *document_id* back out through a throwaway Gem."""
    gem = await store.create_gem(name="inspect", description="chunk readback")
    await store.link_documents_to_gem(gem.id, [document_id])
    hits = await store.find_relevant_chunks_for_gem(gem.id, [1.0] * dimension, top_k=100)
    return sorted((h.chunk for h in hits), key=lambda c: c.chunk_index)


class TestIngestFile:
    async def test_3000_char_file_creates_three_chunks(
        self, service: IngestionService, store, embedding_provider, tmp_path: Path
    ) -> None:
        path = tmp_path / "upload_guide.txt"
        path.write_text("a" * 3000, encoding="utf-8")

        result = await service.ingest_file(path, "guide.txt")

        assert result.status == IngestionStatus.COMPLETED
        assert result.chunks_created == 3
        chunks = await _stored_chunks(store, result.document_id)
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        assert [len(c.text_excerpt) for c in chunks] == [1500, 1500, 400]

    async def test_all_chunks_embedded_in_one_call(
        self, service: IngestionService, embedding_provider, tmp_path: Path
    ) -> None:
        path = tmp_path / "guide.txt"
        path.write_text("b" * 3000, encoding="utf-8")

        await service.ingest_file(path, "guide.txt")

        assert len(embedding_provider.calls) == 1
        assert len(embedding_provider.calls[0]) == 3

    async def test_document_row_describes_upload(
        self, service: IngestionService, store, tmp_path: Path
    ) -> None:
        path = tmp_path / "0001_products.csv"
        path.write_text("name,price\nWidget,9.99\n", encoding="utf-8")

        result = await service.ingest_file(path, "products.csv", tenant_id="acme")

        [doc] = await store.get_documents_by_ids([result.document_id])
        assert doc.name == "products.csv"
        assert doc.source_type == "csv"
        assert doc.source_ref == str(path)
        assert doc.tenant_id == "acme"

    async def test_chunk_metadata_names_source_file(
        self, service: IngestionService, store, tmp_path: Path
    ) -> None:
        path = tmp_path / "notes.md"
        path.write_text("# Notes\n\nShipping takes two days.", encoding="utf-8")

        result = await service.ingest_file(path, "notes.md")

        [chunk] = await _stored_chunks(store, result.document_id)
        assert json.loads(chunk.metadata) == {"source_filename": "notes.md", "chunk_index": 0}
        assert chunk.text_excerpt == "# Notes Shipping takes two days."

    async def test_custom_chunker(self, store, embedding_provider, tmp_path: Path) -> None:
        service = IngestionService(
            embedding_provider=embedding_provider,
            document_store=store,
            chunker=TextChunker(chunk_size=10, overlap=2),
        )
        path = tmp_path / "short.txt"
        path.write_text("abcdefghijklmnopqrst", encoding="utf-8")

        result = await service.ingest_file(path, "short.txt")

        assert result.chunks_created == 3

    async def test_degraded_embeddings_still_store_chunks(self, store, tmp_path: Path) -> None:
        service = IngestionService(
            embedding_provider=FakeEmbeddingProvider(available=False),
            document_store=store,
        )
        path = tmp_path / "a.txt"
        path.write_text("hello world", encoding="utf-8")

        result = await service.ingest_file(path, "a.txt")

        assert result.status == IngestionStatus.COMPLETED
        [chunk] = await _stored_chunks(store, result.document_id)
        assert chunk.vector == [0.0, 0.0, 0.0, 0.0]


class TestSkippedAndFailed:
    async def test_empty_text_is_skipped(
        self, service: IngestionService, store, embedding_provider, tmp_path: Path
    ) -> None:
        path = tmp_path / "blank.txt"
        path.write_text("   \n\n  ", encoding="utf-8")

        result = await service.ingest_file(path, "blank.txt")

        assert result.status == IngestionStatus.SKIPPED
        assert result.document_id is None
        assert embedding_provider.calls == []
        assert await store.list_documents() == []

    async def test_unsupported_type_is_skipped(
        self, service: IngestionService, store, tmp_path: Path
    ) -> None:
        path = tmp_path / "photo.png"
        path.write_bytes(b"\x89PNG\r\n")

        result = await service.ingest_file(path, "photo.png")

        assert result.status == IngestionStatus.SKIPPED
        assert await store.list_documents() == []

    async def test_extraction_failure_reported(
        self, service: IngestionService, store, tmp_path: Path
    ) -> None:
        path = tmp_path / "bad.txt"
        path.write_bytes(b"\xff\xfe\xfa")

        result = await service.ingest_file(path, "bad.txt")

        assert result.status == IngestionStatus.FAILED
        assert "bad.txt" in result.error
        assert await store.list_documents() == []

    async def test_ragged_csv_fails_ingestion(
        self, service: IngestionService, store, embedding_provider, tmp_path: Path
    ) -> None:
        path = tmp_path / "ragged.csv"
        path.write_text("name,price\nWidget,9.99,extra\n", encoding="utf-8")

        result = await service.ingest_file(path, "ragged.csv")

        assert result.status == IngestionStatus.FAILED
        assert "line 2 has 3 cells" in result.error
        assert embedding_provider.calls == []
        assert await store.list_documents() == []

    async def test_embedding_failure_writes_no_document(self, store, tmp_path: Path) -> None:
        service = IngestionService(
            embedding_provider=FakeEmbeddingProvider(
                fail=EmbeddingError("quota exceeded", provider_name="fake_embedding")
            ),
            document_store=store,
        )
        path = tmp_path / "a.txt"
        path.write_text("some content", encoding="utf-8")

        result = await service.ingest_file(path, "a.txt")

        assert result.status == IngestionStatus.FAILED
        assert "quota exceeded" in result.error
        assert await store.list_documents() == []


class TestIngestDirectory:
    async def test_supported_files_in_name_order(
        self, service: IngestionService, tmp_path: Path
    ) -> None:
        folder = tmp_path / "docs"
        folder.mkdir()
        (folder / "b.md").write_text("second", encoding="utf-8")
        (folder / "a.txt").write_text("first", encoding="utf-8")
        (folder / "c.png").write_bytes(b"\x89PNG")
        (folder / "sub").mkdir()

        results = await service.ingest_directory(folder, concurrency=2)

        assert [r.filename for r in results] == ["a.txt", "b.md"]
        assert all(r.status == IngestionStatus.COMPLETED for r in results)

    async def test_one_bad_file_does_not_stop_the_rest(
        self, service: IngestionService, tmp_path: Path
    ) -> None:
        (tmp_path / "a.txt").write_bytes(b"\xff\xfe")
        (tmp_path / "b.txt").write_text("fine", encoding="utf-8")

        results = await service.ingest_directory(tmp_path)

        assert [r.status for r in results] == [IngestionStatus.FAILED, IngestionStatus.COMPLETED]

    async def test_missing_directory_returns_empty(
        self, service: IngestionService, tmp_path: Path
    ) -> None:
        assert await service.ingest_directory(tmp_path / "absent") == []

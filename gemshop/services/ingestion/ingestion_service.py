"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **extract -> chunk -> embed -> store**.

:class:`IngestionService` coordinates four collaborators (text extractor,
chunker, embedding provider, document store) without any of them knowing
about each other:

    1. TextExtractor      -- reads the raw format, returns plain text
    2. TextChunker        -- splits the text into overlapping windows
    3. IEmbeddingProvider -- one batched call for every chunk of the file
    4. IDocumentStore     -- inserts the Document row, then all chunk rows
                             in one bulk statement

The Document row is only written once embeddings exist, so a failed
embedding call never leaves a document without chunks.  Every failure is
caught and reported as a ``failed`` :class:`IngestionResult`; callers
(background workers, the CLI) never see an exception.
"""

from __future__ import annotations

import asyncio
import json
import time
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from gemshop.models.documents import NewChunk
from gemshop.models.rag import IngestionResult, IngestionStatus
from gemshop.services.ingestion.chunker import TextChunker
from gemshop.services.ingestion.text_extractor import (
    SUPPORTED_EXTENSIONS,
    TextExtractor,
    source_type_for,
)

if TYPE_CHECKING:
    from gemshop.interfaces.document_store import IDocumentStore
    from gemshop.interfaces.embedding_provider import IEmbeddingProvider

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Turns uploaded files into stored, embedded chunks.

    Parameters
    ----------
    embedding_provider:
        Produces one vector per chunk.
    document_store:
        Persists the Document and its chunks.
    chunker:
        Splits text into windows.  Defaults to 1500/200 characters.
    extractor:
        Converts files to text.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        document_store: IDocumentStore,
        chunker: TextChunker | None = None,
        extractor: TextExtractor | None = None,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._store = document_store
        self._chunker = chunker or TextChunker()
        self._extractor = extractor or TextExtractor()

    async def ingest_file(
        self,
        file_path: str | Path,
        filename: str,
        tenant_id: str | None = None,
    ) -> IngestionResult:
        """Ingest one file and report what happened.

        Parameters
        ----------
        file_path:
            Where the uploaded bytes live on disk.
        filename:
            Original upload name; drives format dispatch, the Document
            name, and chunk metadata.
        tenant_id:
            Optional owner recorded on the Document.

        Returns
        -------
        IngestionResult
            ``completed`` with the new document id, ``skipped`` when the
            file produced no text, or ``failed`` with the error message.
        """
        start = time.monotonic()
        logger.info("ingestion_started", filename=filename, file_path=str(file_path))

        try:
            text = await self._extractor.extract(file_path, filename)
            chunks = self._chunker.chunk(text)
            if not chunks:
                logger.info("ingestion_no_content", filename=filename)
                return IngestionResult(
                    filename=filename,
                    status=IngestionStatus.SKIPPED,
                    ingestion_time=round(time.monotonic() - start, 2),
                )

            vectors = await self._embedding_provider.embed(chunks)

            document = await self._store.insert_document(
                name=filename,
                source_type=source_type_for(filename),
                source_ref=str(file_path),
                tenant_id=tenant_id,
            )
            new_chunks = [
                NewChunk(
                    document_id=document.id,
                    chunk_index=index,
                    vector=vector,
                    text_excerpt=chunk,
                    metadata=json.dumps(
                        {"source_filename": filename, "chunk_index": index}
                    ),
                )
                for index, (chunk, vector) in enumerate(zip(chunks, vectors, strict=True))
            ]
            stored = await self._store.insert_chunks_bulk(new_chunks)
        except Exception as exc:  # noqa: BLE001 -- one bad file must not stop the worker
            elapsed = round(time.monotonic() - start, 2)
            logger.error(
                "ingestion_failed",
                filename=filename,
                error=str(exc),
                error_type=type(exc).__name__,
                time_s=elapsed,
            )
            return IngestionResult(
                filename=filename,
                status=IngestionStatus.FAILED,
                error=str(exc),
                ingestion_time=elapsed,
            )

        result = IngestionResult(
            filename=filename,
            status=IngestionStatus.COMPLETED,
            document_id=document.id,
            chunks_created=stored,
            ingestion_time=round(time.monotonic() - start, 2),
        )
        logger.info(
            "ingestion_complete",
            filename=filename,
            document_id=document.id,
            chunks=stored,
            embedding_provider=self._embedding_provider.get_provider_name(),
            time_s=result.ingestion_time,
        )
        return result

    async def ingest_directory(
        self,
        dir_path: str | Path,
        concurrency: int = 1,
        tenant_id: str | None = None,
    ) -> list[IngestionResult]:
        """Ingest every supported file directly inside *dir_path*.

        Files are processed in name order with at most *concurrency* in
        flight.  Results come back in the same order.
        """
        path = Path(dir_path)
        if not path.is_dir():
            logger.error("ingest_directory_not_found", dir_path=str(dir_path))
            return []

        files = sorted(
            fp for fp in path.iterdir()
            if fp.is_file() and fp.suffix.lower() in SUPPORTED_EXTENSIONS
        )
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def _process_file(fp: Path) -> IngestionResult:
            async with semaphore:
                return await self.ingest_file(fp, fp.name, tenant_id=tenant_id)

        results = await asyncio.gather(*(_process_file(fp) for fp in files))
        logger.info(
            "ingest_directory_complete",
            dir_path=str(dir_path),
            files=len(files),
            completed=sum(1 for r in results if r.status == IngestionStatus.COMPLETED),
            failed=sum(1 for r in results if r.status == IngestionStatus.FAILED),
        )
        return list(results)

"""SQLite-backed document store and Gem-scoped retriever.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IDocumentStore).
#
# Relations:
#   documents       one row per ingested file
#   embeddings      one row per chunk; vector stored as a float32 BLOB
#                   alongside its dimension
#   gems            named assistants
#   gem_documents   many-to-many link defining each Gem's retrieval scope
#
# Similarity search joins embeddings -> gem_documents so only chunks of
# documents linked to the Gem are ever candidates, then ranks the
# candidates by cosine similarity with numpy.
#
# Uses ``aiosqlite`` with one connection per store instance, opened by
# initialize() and closed by close() (application lifespan).
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import numpy as np
import structlog

from gemshop.interfaces.document_store import IDocumentStore
from gemshop.models.documents import Chunk, Document, Gem, NewChunk
from gemshop.models.rag import RetrievedChunk, StoreStats
from gemshop.utils.errors import StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/gemshop.db")
_MEMORY_DB = ":memory:"

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_DOCUMENTS_TABLE = """\
CREATE TABLE IF NOT EXISTS documents (
    id           TEXT PRIMARY KEY,
    tenant_id    TEXT,
    name         TEXT NOT NULL,
    source_type  TEXT NOT NULL,
    source_ref   TEXT,
    content      TEXT,
    metadata     TEXT,
    created_at   TEXT NOT NULL
);
"""

_CREATE_EMBEDDINGS_TABLE = """\
CREATE TABLE IF NOT EXISTS embeddings (
    id            TEXT PRIMARY KEY,
    document_id   TEXT NOT NULL REFERENCES documents(id),
    chunk_index   INTEGER NOT NULL,
    vector        BLOB NOT NULL,
    dimension     INTEGER NOT NULL,
    text_excerpt  TEXT NOT NULL,
    metadata      TEXT,
    created_at    TEXT NOT NULL,
    UNIQUE(document_id, chunk_index)
);
"""

_CREATE_GEMS_TABLE = """\
CREATE TABLE IF NOT EXISTS gems (
    id             TEXT PRIMARY KEY,
    tenant_id      TEXT,
    name           TEXT NOT NULL,
    description    TEXT NOT NULL,
    system_prompt  TEXT,
    rules          TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL
);
"""

_CREATE_GEM_DOCUMENTS_TABLE = """\
CREATE TABLE IF NOT EXISTS gem_documents (
    gem_id       TEXT NOT NULL REFERENCES gems(id),
    document_id  TEXT NOT NULL REFERENCES documents(id),
    PRIMARY KEY (gem_id, document_id)
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_embeddings_document ON embeddings(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_gem_documents_document ON gem_documents(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_created ON documents(created_at);",
    "CREATE INDEX IF NOT EXISTS idx_gems_created ON gems(created_at);",
]

# ── DML ───────────────────────────────────────────────────────────────

_INSERT_DOCUMENT = """\
INSERT INTO documents (id, tenant_id, name, source_type, source_ref, content, metadata, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_CHUNK = """\
INSERT INTO embeddings (id, document_id, chunk_index, vector, dimension, text_excerpt, metadata, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_GEM = """\
INSERT INTO gems (id, tenant_id, name, description, system_prompt, rules, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

_LINK_DOCUMENT = """\
INSERT OR IGNORE INTO gem_documents (gem_id, document_id) VALUES (?, ?);
"""

_DOCUMENT_COLUMNS = "id, tenant_id, name, source_type, source_ref, content, metadata, created_at"
_GEM_COLUMNS = "id, tenant_id, name, description, system_prompt, rules, created_at, updated_at"

_SELECT_SCOPED_CHUNKS = """\
SELECT e.id, e.document_id, e.chunk_index, e.vector, e.dimension,
       e.text_excerpt, e.metadata, e.created_at
FROM embeddings e
JOIN gem_documents gd ON gd.document_id = e.document_id
WHERE gd.gem_id = ?
ORDER BY e.rowid;
"""


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _encode_vector(vector: list[float]) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def _decode_vector(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)


def _cosine_similarities(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of *query* against each row of *matrix*.

    Rows (or a query) with zero norm score 0.0.
    """
    query_norm = float(np.linalg.norm(query))
    row_norms = np.linalg.norm(matrix, axis=1)
    if query_norm == 0.0:
        return np.zeros(matrix.shape[0], dtype=np.float64)
    dots = matrix @ query
    denom = row_norms * query_norm
    scores = np.divide(
        dots,
        denom,
        out=np.zeros_like(dots, dtype=np.float64),
        where=denom > 0,
    )
    return np.clip(scores, -1.0, 1.0)


class SQLiteDocumentStore(IDocumentStore):
    """SQLite persistence for documents, chunks, Gems, and their links.

    ``db_path`` may be ``":memory:"`` for throwaway stores (tests, CLI
    dry runs).
    """

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = str(db_path)
        self._db: aiosqlite.Connection | None = None
        # Serializes multi-statement writes from concurrent ingestion workers.
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the connection and create all tables and indices."""
        if self._db is not None:
            return
        if self._db_path != _MEMORY_DB:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        if self._db_path != _MEMORY_DB:
            # WAL mode enables concurrent readers while a writer is active.
            await self._db.execute("PRAGMA journal_mode=WAL;")
        await self._db.execute("PRAGMA foreign_keys=ON;")
        await self._db.execute(_CREATE_DOCUMENTS_TABLE)
        await self._db.execute(_CREATE_EMBEDDINGS_TABLE)
        await self._db.execute(_CREATE_GEMS_TABLE)
        await self._db.execute(_CREATE_GEM_DOCUMENTS_TABLE)
        for idx_sql in _CREATE_INDICES:
            await self._db.execute(idx_sql)
        await self._db.commit()
        logger.info("document_store_initialized", path=self._db_path)

    async def close(self) -> None:
        if self._db is None:
            return
        await self._db.close()
        self._db = None
        logger.info("document_store_closed", path=self._db_path)

    def get_provider_name(self) -> str:
        return "sqlite"

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError(
                message="Document store is not initialized",
                provider_name=self.get_provider_name(),
            )
        return self._db

    @asynccontextmanager
    async def _write(self, action: str) -> AsyncIterator[aiosqlite.Connection]:
        """Serialize a write on the shared connection and commit it.

        Any driver error rolls the open transaction back and is re-raised
        as :class:`StorageError`.
        """
        db = self._conn()
        async with self._write_lock:
            try:
                yield db
                await db.commit()
            except sqlite3.Error as exc:
                await db.rollback()
                raise StorageError(
                    message=f"{action} rejected: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

    # ── Writes ─────────────────────────────────────────────────────────

    async def insert_document(
        self,
        name: str,
        source_type: str,
        source_ref: str | None = None,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
        tenant_id: str | None = None,
    ) -> Document:
        document = Document(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            name=name,
            source_type=source_type,
            source_ref=source_ref,
            content=content,
            metadata=metadata,
            created_at=_now(),
        )
        async with self._write("Document insert") as db:
            await db.execute(_INSERT_DOCUMENT, (
                document.id,
                document.tenant_id,
                document.name,
                document.source_type,
                document.source_ref,
                document.content,
                json.dumps(metadata) if metadata is not None else None,
                document.created_at.isoformat(),
            ))
        logger.debug("document_inserted", document_id=document.id, name=name)
        return document

    async def insert_chunks_bulk(self, chunks: list[NewChunk]) -> int:
        if not chunks:
            return 0

        created_at = _now().isoformat()
        rows = [
            (
                str(uuid.uuid4()),
                chunk.document_id,
                chunk.chunk_index,
                _encode_vector(chunk.vector),
                len(chunk.vector),
                chunk.text_excerpt,
                chunk.metadata,
                created_at,
            )
            for chunk in chunks
        ]

        async with self._write("Chunk insert") as db:
            await db.executemany(_INSERT_CHUNK, rows)

        logger.debug(
            "chunks_inserted",
            document_id=chunks[0].document_id,
            count=len(rows),
        )
        return len(rows)

    async def create_gem(
        self,
        name: str,
        description: str,
        system_prompt: str | None = None,
        rules: str | None = None,
        tenant_id: str | None = None,
    ) -> Gem:
        now = _now()
        gem = Gem(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            name=name,
            description=description,
            system_prompt=system_prompt,
            rules=rules,
            created_at=now,
            updated_at=now,
        )
        async with self._write("Gem insert") as db:
            await db.execute(_INSERT_GEM, (
                gem.id,
                gem.tenant_id,
                gem.name,
                gem.description,
                gem.system_prompt,
                gem.rules,
                now.isoformat(),
                now.isoformat(),
            ))
        logger.info("gem_created", gem_id=gem.id, name=name)
        return gem

    async def link_documents_to_gem(self, gem_id: str, document_ids: list[str]) -> None:
        if not document_ids:
            return
        async with self._write("Gem/document link") as db:
            await db.executemany(
                _LINK_DOCUMENT,
                [(gem_id, document_id) for document_id in document_ids],
            )
        logger.info("gem_documents_linked", gem_id=gem_id, count=len(document_ids))

    # ── Reads ──────────────────────────────────────────────────────────

    async def list_documents(self, tenant_id: str | None = None) -> list[Document]:
        query = f"SELECT {_DOCUMENT_COLUMNS} FROM documents"
        params: tuple = ()
        if tenant_id is not None:
            query += " WHERE tenant_id = ?"
            params = (tenant_id,)
        query += " ORDER BY created_at DESC, rowid DESC;"
        async with self._conn().execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_document(row) for row in rows]

    async def get_documents_by_ids(self, document_ids: list[str]) -> list[Document]:
        if not document_ids:
            return []
        placeholders = ", ".join("?" for _ in document_ids)
        query = f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id IN ({placeholders});"
        async with self._conn().execute(query, tuple(document_ids)) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_document(row) for row in rows]

    async def list_gems(self, tenant_id: str | None = None) -> list[Gem]:
        query = f"SELECT {_GEM_COLUMNS} FROM gems"
        params: tuple = ()
        if tenant_id is not None:
            query += " WHERE tenant_id = ?"
            params = (tenant_id,)
        query += " ORDER BY created_at DESC, rowid DESC;"
        async with self._conn().execute(query, params) as cursor:
            rows = await cursor.fetchall()
        return [self._row_to_gem(row) for row in rows]

    async def get_gem_by_id(self, gem_id: str) -> Gem | None:
        query = f"SELECT {_GEM_COLUMNS} FROM gems WHERE id = ?;"
        async with self._conn().execute(query, (gem_id,)) as cursor:
            row = await cursor.fetchone()
        return self._row_to_gem(row) if row else None

    async def get_gem_document_ids(self, gem_id: str) -> list[str]:
        query = "SELECT document_id FROM gem_documents WHERE gem_id = ? ORDER BY rowid;"
        async with self._conn().execute(query, (gem_id,)) as cursor:
            rows = await cursor.fetchall()
        return [row["document_id"] for row in rows]

    async def find_relevant_chunks_for_gem(
        self,
        gem_id: str,
        query_vector: list[float],
        top_k: int = 5,
    ) -> list[RetrievedChunk]:
        if top_k <= 0:
            return []

        async with self._conn().execute(_SELECT_SCOPED_CHUNKS, (gem_id,)) as cursor:
            rows = await cursor.fetchall()
        if not rows:
            return []

        query = np.asarray(query_vector, dtype=np.float32)
        candidates = [row for row in rows if row["dimension"] == query.shape[0]]
        skipped = len(rows) - len(candidates)
        if skipped:
            logger.warning(
                "retrieval_dimension_mismatch",
                gem_id=gem_id,
                query_dimension=int(query.shape[0]),
                skipped=skipped,
            )
        if not candidates:
            return []

        matrix = np.vstack([_decode_vector(row["vector"]) for row in candidates])
        scores = _cosine_similarities(query.astype(np.float64), matrix.astype(np.float64))
        # Stable sort keeps storage order for equal scores.
        order = np.argsort(-scores, kind="stable")[:top_k]

        results = [
            RetrievedChunk(
                chunk=self._row_to_chunk(candidates[i]),
                similarity=float(scores[i]),
            )
            for i in order
        ]
        logger.debug(
            "chunks_retrieved",
            gem_id=gem_id,
            candidates=len(candidates),
            returned=len(results),
        )
        return results

    async def get_stats(self) -> StoreStats:
        db = self._conn()
        async with db.execute("SELECT COUNT(*) AS n FROM documents;") as cursor:
            total_documents = (await cursor.fetchone())["n"]
        async with db.execute("SELECT COUNT(*) AS n FROM embeddings;") as cursor:
            total_chunks = (await cursor.fetchone())["n"]
        async with db.execute("SELECT COUNT(*) AS n FROM gems;") as cursor:
            total_gems = (await cursor.fetchone())["n"]
        async with db.execute(
            "SELECT source_type, COUNT(*) AS n FROM documents GROUP BY source_type;"
        ) as cursor:
            by_type = {row["source_type"]: row["n"] for row in await cursor.fetchall()}
        return StoreStats(
            total_documents=total_documents,
            total_chunks=total_chunks,
            total_gems=total_gems,
            documents_by_type=by_type,
        )

    # ── Row mapping ────────────────────────────────────────────────────

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        metadata = None
        if row["metadata"]:
            try:
                metadata = json.loads(row["metadata"])
            except json.JSONDecodeError:
                metadata = None
        return Document(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            source_type=row["source_type"],
            source_ref=row["source_ref"],
            content=row["content"],
            metadata=metadata if isinstance(metadata, dict) else None,
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _row_to_gem(row: aiosqlite.Row) -> Gem:
        return Gem(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            description=row["description"],
            system_prompt=row["system_prompt"],
            rules=row["rules"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row) -> Chunk:
        return Chunk(
            id=row["id"],
            document_id=row["document_id"],
            chunk_index=row["chunk_index"],
            vector=_decode_vector(row["vector"]).tolist(),
            text_excerpt=row["text_excerpt"],
            metadata=row["metadata"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

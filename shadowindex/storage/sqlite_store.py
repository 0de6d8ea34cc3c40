"""SQLite-backed local store for documents and embedded chunks."""

from __future__ import annotations

import sqlite3
import struct
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from shadowindex.ingest.models import Document, EmbeddedChunk
from shadowindex.storage.base import StoreSnapshot
from shadowindex.utils.exceptions import StoreError
from shadowindex.utils.helpers import ensure_dir


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _embedding_to_blob(vec: Sequence[float]) -> bytes:
    return struct.pack(f"{len(vec)}f", *vec)


def _blob_to_embedding(blob: bytes) -> list[float]:
    n = len(blob) // 4
    return list(struct.unpack(f"{n}f", blob))


class SQLiteDocumentStore:
    """Local SQLite store. Chunks reference their document and are removed with it."""

    name = "sqlite"

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        ensure_dir(self.db_path.parent)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON;")
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StoreError(self.name, str(e)) from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    type TEXT NOT NULL,
                    size INTEGER NOT NULL DEFAULT 0,
                    content TEXT NOT NULL,
                    path TEXT,
                    module_name TEXT,
                    status TEXT NOT NULL,
                    indexing_status TEXT,
                    is_selected INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS embeddings (
                    id TEXT PRIMARY KEY,
                    document_id TEXT NOT NULL,
                    content TEXT NOT NULL,
                    start_index INTEGER NOT NULL,
                    end_index INTEGER NOT NULL,
                    embedding BLOB NOT NULL,
                    dims INTEGER NOT NULL,
                    FOREIGN KEY(document_id) REFERENCES documents(id) ON DELETE CASCADE
                );

                CREATE INDEX IF NOT EXISTS idx_embeddings_document_id ON embeddings(document_id);
                """
            )

    def upsert_documents(self, documents: Sequence[Document]) -> None:
        if not documents:
            return
        now = _utc_now()
        rows = [
            (
                d.id,
                d.name,
                d.type,
                d.size,
                d.content,
                d.path,
                d.module_name,
                d.status.value,
                d.indexing_status.value if d.indexing_status else None,
                1 if d.is_selected else 0,
                now,
            )
            for d in documents
        ]
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO documents (id, name, type, size, content, path, module_name, status,
                                       indexing_status, is_selected, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    type = excluded.type,
                    size = excluded.size,
                    content = excluded.content,
                    path = excluded.path,
                    module_name = excluded.module_name,
                    status = excluded.status,
                    indexing_status = excluded.indexing_status,
                    is_selected = excluded.is_selected,
                    updated_at = excluded.updated_at
                """,
                rows,
            )

    def upsert_embeddings(self, chunks: Sequence[EmbeddedChunk]) -> None:
        """Insert or replace chunks. Every chunk's document must already be stored."""
        if not chunks:
            return
        rows = [
            (
                c.id,
                c.document_id,
                c.content,
                c.start_index,
                c.end_index,
                _embedding_to_blob(c.embedding),
                len(c.embedding),
            )
            for c in chunks
        ]
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO embeddings (id, document_id, content, start_index, end_index, embedding, dims)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                rows,
            )

    def fetch_all(self) -> StoreSnapshot:
        with self._connect() as conn:
            doc_rows = conn.execute("SELECT * FROM documents ORDER BY path, id").fetchall()
            chunk_rows = conn.execute(
                "SELECT * FROM embeddings ORDER BY document_id, start_index"
            ).fetchall()
        documents = [
            Document.from_dict({**dict(r), "is_selected": bool(r["is_selected"])})
            for r in doc_rows
        ]
        embeddings = [
            EmbeddedChunk(
                id=r["id"],
                document_id=r["document_id"],
                content=r["content"],
                start_index=r["start_index"],
                end_index=r["end_index"],
                embedding=_blob_to_embedding(r["embedding"]),
            )
            for r in chunk_rows
        ]
        return StoreSnapshot(documents=documents, embeddings=embeddings)

    def delete_document(self, document_id: str) -> None:
        """Delete a document and its chunks in one transaction."""
        with self._connect() as conn:
            removed = conn.execute("DELETE FROM embeddings WHERE document_id = ?", (document_id,)).rowcount
            conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        logger.debug(f"Deleted document {document_id} and {removed} chunks")

    def delete_all(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM embeddings")
            conn.execute("DELETE FROM documents")

    def count_embeddings(self, document_id: str | None = None) -> int:
        with self._connect() as conn:
            if document_id is None:
                row = conn.execute("SELECT COUNT(*) FROM embeddings").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM embeddings WHERE document_id = ?", (document_id,)
                ).fetchone()
        return int(row[0])

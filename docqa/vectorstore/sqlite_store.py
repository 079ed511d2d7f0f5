"""SQLite document/chunk store with embedded float32 vectors."""

from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Mapping, Sequence

import numpy as np

from docqa.config import Settings, get_settings
from docqa.errors import ConflictError
from docqa.logger import get_logger
from docqa.models.chunk import ChunkDraft, EmbeddedChunk, StoredChunk, UnembeddedChunk
from docqa.models.document import Document, DocumentMetadata

logger = get_logger(__name__)

_CREATE_TABLES = """\
CREATE TABLE IF NOT EXISTS documents (
    id           TEXT PRIMARY KEY,
    title        TEXT NOT NULL,
    filename     TEXT NOT NULL,
    metadata     TEXT NOT NULL DEFAULT '{}',
    uploaded_at  TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS chunks (
    id           TEXT PRIMARY KEY,
    document_id  TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    content      TEXT NOT NULL,
    page_number  INTEGER NOT NULL,
    chunk_index  INTEGER NOT NULL,
    embedding    BLOB,
    UNIQUE (document_id, chunk_index)
);

CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id);
"""


def encode_vector(vector: Sequence[float]) -> bytes:
    return np.asarray(vector, dtype=np.float32).tobytes()


def decode_vector(blob: bytes) -> list[float]:
    return np.frombuffer(blob, dtype=np.float32).tolist()


def _chunk_fields(row: sqlite3.Row) -> dict:
    return {
        "id": row["id"],
        "document_id": row["document_id"],
        "content": row["content"],
        "page_number": row["page_number"],
        "chunk_index": row["chunk_index"],
    }


def _row_to_chunk(row: sqlite3.Row) -> StoredChunk:
    if row["embedding"] is None:
        return UnembeddedChunk(**_chunk_fields(row))
    return EmbeddedChunk(**_chunk_fields(row), embedding=decode_vector(row["embedding"]))


class DocumentStore:
    """Persists documents and their chunks; the only shared mutable state.

    Every method opens its own connection, so a store instance can be used
    from worker threads. Writes run in explicit transactions; embedding
    writes take the database write lock before checking for existing
    vectors, which makes the at-most-once guard hold under concurrency.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = str(self._settings.database_path)
        self.dimensions = self._settings.embedding_dimensions
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.executescript(_CREATE_TABLES)
        logger.debug("Document store initialised", path=self._db_path)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path, timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self, conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    # ── Write ────────────────────────────────────────────────────

    def create_document_with_chunks(
        self,
        title: str,
        filename: str,
        metadata: DocumentMetadata,
        chunks: Sequence[ChunkDraft],
    ) -> Document:
        """Insert a document and all of its chunk drafts in one transaction."""
        document = Document(title=title, filename=filename, metadata=metadata)
        stored = [
            UnembeddedChunk(
                id=uuid.uuid4().hex,
                document_id=document.id,
                content=draft.content,
                page_number=draft.page_number,
                chunk_index=draft.chunk_index,
            )
            for draft in chunks
        ]

        with self._connect() as conn, self._transaction(conn):
            conn.execute(
                "INSERT INTO documents (id, title, filename, metadata, uploaded_at) VALUES (?, ?, ?, ?, ?)",
                (
                    document.id,
                    document.title,
                    document.filename,
                    document.metadata.model_dump_json(),
                    document.uploaded_at.isoformat(),
                ),
            )
            conn.executemany(
                """
                INSERT INTO chunks (id, document_id, content, page_number, chunk_index)
                VALUES (?, ?, ?, ?, ?)
                """,
                [(c.id, c.document_id, c.content, c.page_number, c.chunk_index) for c in stored],
            )

        document.chunks = list(stored)
        logger.info("Document stored", doc_id=document.id, chunks=len(stored))
        return document

    def store_embeddings(self, document_id: str, vectors: Mapping[str, Sequence[float]]) -> int:
        """Attach vectors to chunks of one document, all or nothing.

        ``vectors`` maps chunk id to vector. Fails with ``ConflictError`` if
        any chunk of the document is already embedded, or if a chunk could
        not be updated; in both cases nothing is written.
        """
        if not vectors:
            return 0
        for chunk_id, vector in vectors.items():
            if len(vector) != self.dimensions:
                raise ValueError(
                    f"Vector for chunk {chunk_id} has {len(vector)} dimensions, expected {self.dimensions}"
                )

        params = [(encode_vector(v), chunk_id, document_id) for chunk_id, v in vectors.items()]

        with self._connect() as conn, self._transaction(conn):
            already = conn.execute(
                "SELECT COUNT(*) FROM chunks WHERE document_id = ? AND embedding IS NOT NULL",
                (document_id,),
            ).fetchone()[0]
            if already:
                raise ConflictError(
                    "Embeddings already exist for this document. "
                    "Delete and re-upload the document to regenerate embeddings.",
                    document_id=document_id,
                )
            cursor = conn.executemany(
                """
                UPDATE chunks SET embedding = ?
                WHERE id = ? AND document_id = ? AND embedding IS NULL
                """,
                params,
            )
            if cursor.rowcount != len(params):
                raise ConflictError(
                    f"Only {cursor.rowcount} of {len(params)} chunks could be updated; "
                    "the document changed while embeddings were generated.",
                    document_id=document_id,
                )

        logger.info("Embeddings stored", doc_id=document_id, chunks=len(params))
        return len(params)

    def delete_document(self, document_id: str) -> bool:
        """Delete a document and, by cascade, its chunks. False if it did not exist."""
        with self._connect() as conn, self._transaction(conn):
            cursor = conn.execute("DELETE FROM documents WHERE id = ?", (document_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Document deleted", doc_id=document_id)
        return deleted

    # ── Read ─────────────────────────────────────────────────────

    def _load_document(self, conn: sqlite3.Connection, row: sqlite3.Row) -> Document:
        chunk_rows = conn.execute(
            "SELECT * FROM chunks WHERE document_id = ? ORDER BY chunk_index ASC",
            (row["id"],),
        ).fetchall()
        return Document(
            id=row["id"],
            title=row["title"],
            filename=row["filename"],
            metadata=DocumentMetadata.model_validate_json(row["metadata"]),
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
            chunks=[_row_to_chunk(r) for r in chunk_rows],
        )

    def get_document_with_chunks(self, document_id: str) -> Document | None:
        """Return the document with chunks in ``chunk_index`` order, or None."""
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM documents WHERE id = ?", (document_id,)).fetchone()
            if row is None:
                return None
            return self._load_document(conn, row)

    def list_documents(self) -> list[Document]:
        """All documents, newest upload first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM documents ORDER BY uploaded_at DESC, rowid DESC"
            ).fetchall()
            return [self._load_document(conn, row) for row in rows]

    def list_chunks_with_embeddings(
        self, document_id: str | None = None
    ) -> list[tuple[EmbeddedChunk, str]]:
        """Embedded chunks with their document title, in storage order.

        Vectors whose length differs from ``embedding_dimensions`` (written
        under an earlier model setting) are skipped with a warning.
        """
        query = """
            SELECT c.*, d.title AS document_title
            FROM chunks c JOIN documents d ON d.id = c.document_id
            WHERE c.embedding IS NOT NULL
        """
        params: tuple[str, ...] = ()
        if document_id is not None:
            query += " AND c.document_id = ?"
            params = (document_id,)
        query += " ORDER BY c.rowid ASC"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()

        expected_bytes = self.dimensions * np.dtype(np.float32).itemsize
        results: list[tuple[EmbeddedChunk, str]] = []
        skipped: list[str] = []
        for row in rows:
            if len(row["embedding"]) != expected_bytes:
                skipped.append(row["id"])
                continue
            chunk = EmbeddedChunk(**_chunk_fields(row), embedding=decode_vector(row["embedding"]))
            results.append((chunk, row["document_title"]))
        if skipped:
            logger.warning(
                "Skipping chunks with mismatched embedding dimensions",
                expected=self.dimensions,
                skipped=len(skipped),
                chunk_ids=skipped,
            )
        return results

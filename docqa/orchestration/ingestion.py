"""Ingestion pipeline: Extract → Chunk → Store, and on request → Embed."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import structlog

from docqa.config import Settings, get_settings
from docqa.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from docqa.ingestion.pdf_extractor import delete_temp_file, extract_pdf
from docqa.llm.embedding_client import EmbeddingClient
from docqa.logger import get_logger
from docqa.models.chunk import EmbeddedChunk
from docqa.models.document import Document, EmbeddingReport, ExtractedContent
from docqa.preprocessing.chunker import TextChunker
from docqa.vectorstore.sqlite_store import DocumentStore

logger = get_logger(__name__)


class IngestionPipeline:
    """Turns uploaded PDFs into stored, chunked documents and embeds them."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        embedder: EmbeddingClient | None = None,
        chunker: TextChunker | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store or DocumentStore(self._settings)
        self._embedder = embedder or EmbeddingClient(self._settings)
        self._chunker = chunker or TextChunker(self._settings)

    # ── Ingestion ────────────────────────────────────────────────

    async def ingest_content(self, content: ExtractedContent) -> Document:
        """Chunk extracted pages and persist the document without embeddings."""
        if not content.is_valid:
            raise ValidationError(
                "No text could be extracted from the document",
                filename=content.filename,
                errors=content.extraction_errors,
            )

        t0 = time.time()
        drafts = self._chunker.chunk_pages(content.pages)
        if not drafts:
            raise ValidationError("Document produced no chunks", filename=content.filename)

        title = Path(content.filename).stem or content.filename
        document = await asyncio.to_thread(
            self._store.create_document_with_chunks,
            title,
            content.filename,
            content.metadata,
            drafts,
        )
        logger.info(
            "Document ingested",
            doc_id=document.id,
            filename=content.filename,
            pages=content.metadata.page_count,
            chunks=document.chunk_count,
            elapsed_s=round(time.time() - t0, 3),
        )
        return document

    async def ingest_file(self, file_path: str | Path, filename: str | None = None) -> Document:
        """Extract and ingest an uploaded file, then remove it from disk.

        The file is deleted whether ingestion succeeds or fails.
        """
        try:
            content = await asyncio.to_thread(extract_pdf, file_path, filename)
            return await self.ingest_content(content)
        finally:
            await asyncio.to_thread(delete_temp_file, file_path)

    # ── Embedding ────────────────────────────────────────────────

    async def generate_embeddings(self, document_id: str) -> EmbeddingReport:
        """Embed every chunk of a document, at most once.

        Raises:
            NotFoundError: the document does not exist.
            ConflictError: the document already has embeddings.
            UpstreamError: the embedding service failed or returned vectors
                of the wrong dimensionality.
        """
        document = await asyncio.to_thread(self._store.get_document_with_chunks, document_id)
        if document is None:
            raise NotFoundError("Document not found", document_id=document_id)
        if any(isinstance(c, EmbeddedChunk) for c in document.chunks):
            raise ConflictError(
                "Embeddings already exist for this document. "
                "Delete and re-upload the document to regenerate embeddings.",
                document_id=document_id,
            )

        chunks = sorted(document.chunks, key=lambda c: c.chunk_index)
        with structlog.contextvars.bound_contextvars(doc_id=document_id):
            vectors = await self._embedder.embed_batch([c.content for c in chunks])

        expected = self._embedder.dimensions
        for chunk, vector in zip(chunks, vectors):
            if len(vector) != expected:
                raise UpstreamError(
                    "embed documents",
                    f"chunk {chunk.chunk_index} got a {len(vector)}-d vector, expected {expected}",
                )

        stored = await asyncio.to_thread(
            self._store.store_embeddings,
            document_id,
            {c.id: v for c, v in zip(chunks, vectors)},
        )
        report = EmbeddingReport(
            document_id=document_id,
            title=document.title,
            chunks_processed=stored,
            embedding_dimensions=len(vectors[0]) if vectors else 0,
        )
        logger.info(
            "Embeddings generated for document",
            doc_id=document_id,
            chunks=report.chunks_processed,
            dimensions=report.embedding_dimensions,
        )
        return report

"""Pydantic models for documents and extracted content."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from docqa.models.chunk import EmbeddedChunk, StoredChunk


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PageContent(BaseModel):
    """Text content for a single page."""

    page_number: int = Field(ge=1)
    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class DocumentMetadata(BaseModel):
    """Metadata extracted from a document."""

    page_count: int = 0
    word_count: int = 0
    author: str | None = None
    title: str | None = None
    creation_date: datetime | None = None


class ExtractedContent(BaseModel):
    """Result of text extraction for one uploaded file."""

    filename: str
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    pages: list[PageContent] = Field(default_factory=list)
    raw_text: str = ""
    extraction_errors: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.raw_text.strip()) > 0


class Document(BaseModel):
    """A stored document and its ordered chunks."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str
    filename: str
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    uploaded_at: datetime = Field(default_factory=_utcnow)
    chunks: list[StoredChunk] = Field(default_factory=list)

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    @property
    def embeddings_generated(self) -> bool:
        return any(isinstance(c, EmbeddedChunk) for c in self.chunks)


class EmbeddingReport(BaseModel):
    """Outcome of generating embeddings for one document."""

    document_id: str
    title: str
    chunks_processed: int
    embedding_dimensions: int

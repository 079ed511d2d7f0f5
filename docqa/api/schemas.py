"""Pydantic response/request models for the API, providing typed contracts and OpenAPI docs."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from docqa.models.chunk import EmbeddedChunk
from docqa.models.document import Document, DocumentMetadata
from docqa.orchestration.query import Answer


# ── Health ───────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    environment: str


# ── Documents ────────────────────────────────────────────────────────────────


class ChunkEntry(BaseModel):
    id: str
    content: str
    page_number: int
    chunk_index: int
    has_embedding: bool


class DocumentSummary(BaseModel):
    id: str
    title: str
    filename: str
    uploaded_at: datetime
    chunk_count: int
    embeddings_generated: bool

    @classmethod
    def from_document(cls, document: Document) -> "DocumentSummary":
        return cls(
            id=document.id,
            title=document.title,
            filename=document.filename,
            uploaded_at=document.uploaded_at,
            chunk_count=document.chunk_count,
            embeddings_generated=document.embeddings_generated,
        )


class DocumentDetail(DocumentSummary):
    metadata: DocumentMetadata
    chunks: list[ChunkEntry]

    @classmethod
    def from_document(cls, document: Document) -> "DocumentDetail":
        summary = DocumentSummary.from_document(document)
        return cls(
            **summary.model_dump(),
            metadata=document.metadata,
            chunks=[
                ChunkEntry(
                    id=c.id,
                    content=c.content,
                    page_number=c.page_number,
                    chunk_index=c.chunk_index,
                    has_embedding=isinstance(c, EmbeddedChunk),
                )
                for c in document.chunks
            ],
        )


class DocumentListResponse(BaseModel):
    documents: list[DocumentSummary]


class DeleteResponse(BaseModel):
    id: str
    deleted: bool


class EmbeddingResponse(BaseModel):
    document_id: str
    title: str
    chunks_processed: int
    embedding_dimensions: int


# ── RAG ──────────────────────────────────────────────────────────────────────


class QueryRequest(BaseModel):
    query: str = Field(min_length=1)
    top_k: int | None = Field(default=None, ge=1, le=50)
    document_id: str | None = None


class SourceEntry(BaseModel):
    document_id: str
    document_title: str
    chunk_id: str
    content: str
    page_number: int
    chunk_index: int
    distance: float


class QueryResponse(BaseModel):
    query: str
    answer: str
    sources: list[SourceEntry]
    usage: dict[str, float | int] = Field(default_factory=dict)

    @classmethod
    def from_answer(cls, answer: Answer) -> "QueryResponse":
        return cls(
            query=answer.query,
            answer=answer.answer,
            sources=[
                SourceEntry(
                    document_id=h.document_id,
                    document_title=h.document_title,
                    chunk_id=h.chunk_id,
                    content=h.content,
                    page_number=h.page_number,
                    chunk_index=h.chunk_index,
                    distance=h.distance,
                )
                for h in answer.sources
            ],
            usage=answer.usage,
        )


# ── Errors ───────────────────────────────────────────────────────────────────


class ErrorResponse(BaseModel):
    error: str
    message: str

"""API v1 router: all /api/v1/* endpoints."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

from fastapi import APIRouter, Depends, File, UploadFile, status

from docqa.api.schemas import (
    DeleteResponse,
    DocumentDetail,
    DocumentListResponse,
    DocumentSummary,
    EmbeddingResponse,
    ErrorResponse,
    QueryRequest,
    QueryResponse,
)
from docqa.config import Settings, get_settings
from docqa.errors import NotFoundError, ValidationError
from docqa.llm.embedding_client import EmbeddingClient
from docqa.logger import get_logger
from docqa.orchestration.ingestion import IngestionPipeline
from docqa.orchestration.query import QueryPipeline
from docqa.retrieval.retriever import RetrievalEngine
from docqa.vectorstore.sqlite_store import DocumentStore

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/v1",
    tags=["v1"],
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")
# Readers accept the header anywhere in the first 1024 bytes
_PDF_MAGIC = b"%PDF-"
_PDF_HEADER_WINDOW = 1024


# ── Dependencies ─────────────────────────────────────────────────────────────


@lru_cache
def get_store() -> DocumentStore:
    return DocumentStore(get_settings())


@lru_cache
def get_embedder() -> EmbeddingClient:
    return EmbeddingClient(get_settings())


@lru_cache
def get_ingestion_pipeline() -> IngestionPipeline:
    return IngestionPipeline(get_store(), get_embedder(), settings=get_settings())


@lru_cache
def get_query_pipeline() -> QueryPipeline:
    settings = get_settings()
    retrieval = RetrievalEngine(get_store(), get_embedder(), settings)
    return QueryPipeline(retrieval, settings=settings)


def _is_pdf(file: UploadFile) -> bool:
    return Path(file.filename or "").suffix.lower() == ".pdf" or file.content_type == "application/pdf"


def _upload_name(filename: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    safe = _UNSAFE_CHARS_RE.sub("_", Path(filename).name).strip("._") or "upload.pdf"
    return f"{stamp}-{safe}"


# ── Documents ────────────────────────────────────────────────────────────────


@router.post("/documents/upload", response_model=DocumentDetail, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """Upload a PDF, extract its text, and store it as chunks (without embeddings)."""
    if not file.filename:
        raise ValidationError("No file provided")
    if not _is_pdf(file):
        raise ValidationError("Only PDF files are supported", filename=file.filename)

    content = await file.read()
    if not content:
        raise ValidationError("Uploaded file is empty", filename=file.filename)
    if len(content) > settings.max_upload_bytes:
        raise ValidationError(
            f"File exceeds the {settings.max_upload_size_mb} MB upload limit",
            filename=file.filename,
        )
    if _PDF_MAGIC not in content[:_PDF_HEADER_WINDOW]:
        raise ValidationError("Only PDF files are supported", filename=file.filename)

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    save_path = upload_dir / _upload_name(file.filename)
    save_path.write_bytes(content)
    logger.info("Document uploaded", filename=file.filename, size=len(content), path=str(save_path))

    document = await pipeline.ingest_file(save_path, filename=file.filename)
    return DocumentDetail.from_document(document)


@router.get("/documents", response_model=DocumentListResponse)
def list_documents(store: DocumentStore = Depends(get_store)):
    """List stored documents, newest first."""
    documents = store.list_documents()
    return DocumentListResponse(documents=[DocumentSummary.from_document(d) for d in documents])


@router.get("/documents/{document_id}", response_model=DocumentDetail)
def get_document(document_id: str, store: DocumentStore = Depends(get_store)):
    document = store.get_document_with_chunks(document_id)
    if document is None:
        raise NotFoundError("Document not found", document_id=document_id)
    return DocumentDetail.from_document(document)


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
def delete_document(document_id: str, store: DocumentStore = Depends(get_store)):
    """Delete a document together with its chunks and embeddings."""
    if not store.delete_document(document_id):
        raise NotFoundError("Document not found", document_id=document_id)
    return DeleteResponse(id=document_id, deleted=True)


@router.post("/documents/{document_id}/embed", response_model=EmbeddingResponse)
async def embed_document(
    document_id: str,
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """Generate embeddings for every chunk of a document. Allowed once per document."""
    report = await pipeline.generate_embeddings(document_id)
    return EmbeddingResponse(**report.model_dump())


# ── RAG ──────────────────────────────────────────────────────────────────────


@router.post("/rag/query", response_model=QueryResponse)
async def rag_query(
    body: QueryRequest,
    pipeline: QueryPipeline = Depends(get_query_pipeline),
):
    """Answer a question from the most relevant stored chunks."""
    answer = await pipeline.answer(body.query, top_k=body.top_k, document_id=body.document_id)
    return QueryResponse.from_answer(answer)

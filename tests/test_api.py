"""Tests for the FastAPI application endpoints."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models import FakeListChatModel

from conftest import make_pdf
from docqa.api.main import app
from docqa.api.routers import v1
from docqa.config import get_settings
from docqa.llm.embedding_client import EmbeddingClient
from docqa.orchestration.ingestion import IngestionPipeline
from docqa.orchestration.query import QueryPipeline
from docqa.retrieval.retriever import RetrievalEngine


@pytest.fixture
def client(settings, store, fake_embeddings):
    embedder = EmbeddingClient(settings, embeddings=fake_embeddings)
    ingestion = IngestionPipeline(store, embedder, settings=settings)
    query = QueryPipeline(
        RetrievalEngine(store, embedder, settings),
        llm=FakeListChatModel(responses=["The answer is on page one."]),
        settings=settings,
    )
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[v1.get_store] = lambda: store
    app.dependency_overrides[v1.get_ingestion_pipeline] = lambda: ingestion
    app.dependency_overrides[v1.get_query_pipeline] = lambda: query
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client: TestClient, tmp_path: Path, text: str = "Refunds are accepted within 30 days."):
    pdf = make_pdf(tmp_path / "source.pdf", [text])
    return client.post(
        "/api/v1/documents/upload",
        files={"file": ("policy.pdf", pdf.read_bytes(), "application/pdf")},
    )


class TestHealthEndpoint:
    def test_health_returns_ok(self, client: TestClient):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["environment"] == "development"


class TestDocumentUpload:
    def test_upload_no_file_returns_422(self, client: TestClient):
        resp = client.post("/api/v1/documents/upload")
        assert resp.status_code == 422

    def test_upload_unsupported_format(self, client: TestClient):
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "validation", "message": "Only PDF files are supported"}

    def test_upload_text_file_claiming_pdf_content_type(self, client: TestClient):
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("notes.txt", b"plain text that only claims to be a PDF document", "application/pdf")},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation"
        assert client.get("/api/v1/documents").json()["documents"] == []

    def test_upload_pdf_named_file_without_pdf_bytes(self, client: TestClient):
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("report.pdf", b"just some text", "application/pdf")},
        )
        assert resp.status_code == 400

    def test_upload_too_large(self, client: TestClient, settings):
        settings.max_upload_size_mb = 1
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("big.pdf", b"%" * (1024 * 1024 + 1), "application/pdf")},
        )
        assert resp.status_code == 400
        assert "upload limit" in resp.json()["message"]

    def test_upload_valid_pdf(self, client: TestClient, settings, tmp_path: Path):
        resp = _upload(client, tmp_path)

        assert resp.status_code == 201
        data = resp.json()
        assert data["title"] == "policy"
        assert data["filename"] == "policy.pdf"
        assert data["chunk_count"] == 1
        assert data["embeddings_generated"] is False
        assert data["chunks"][0]["has_embedding"] is False
        assert data["chunks"][0]["page_number"] == 1
        assert list(Path(settings.upload_dir).iterdir()) == []

    def test_upload_pdf_without_text(self, client: TestClient, tmp_path: Path):
        pdf = make_pdf(tmp_path / "blank.pdf", [""])
        resp = client.post(
            "/api/v1/documents/upload",
            files={"file": ("blank.pdf", pdf.read_bytes(), "application/pdf")},
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation"


class TestDocuments:
    def test_list_get_delete(self, client: TestClient, tmp_path: Path):
        doc_id = _upload(client, tmp_path).json()["id"]

        listed = client.get("/api/v1/documents").json()["documents"]
        assert [d["id"] for d in listed] == [doc_id]

        detail = client.get(f"/api/v1/documents/{doc_id}")
        assert detail.status_code == 200
        assert detail.json()["chunks"][0]["content"] == "Refunds are accepted within 30 days."

        assert client.delete(f"/api/v1/documents/{doc_id}").json() == {"id": doc_id, "deleted": True}
        assert client.get(f"/api/v1/documents/{doc_id}").status_code == 404
        assert client.delete(f"/api/v1/documents/{doc_id}").status_code == 404

    def test_embed_once(self, client: TestClient, tmp_path: Path):
        doc_id = _upload(client, tmp_path).json()["id"]

        resp = client.post(f"/api/v1/documents/{doc_id}/embed")
        assert resp.status_code == 200
        assert resp.json() == {
            "document_id": doc_id,
            "title": "policy",
            "chunks_processed": 1,
            "embedding_dimensions": 4,
        }
        assert client.get(f"/api/v1/documents/{doc_id}").json()["embeddings_generated"] is True

        again = client.post(f"/api/v1/documents/{doc_id}/embed")
        assert again.status_code == 400
        assert again.json()["error"] == "conflict"

    def test_embed_missing_document(self, client: TestClient):
        resp = client.post("/api/v1/documents/nope/embed")
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"


class TestRagQuery:
    def test_query_with_sources(self, client: TestClient, tmp_path: Path):
        doc_id = _upload(client, tmp_path).json()["id"]
        client.post(f"/api/v1/documents/{doc_id}/embed")

        resp = client.post("/api/v1/rag/query", json={"query": "What is the refund window?", "top_k": 3})

        assert resp.status_code == 200
        data = resp.json()
        assert data["answer"] == "The answer is on page one."
        assert len(data["sources"]) == 1
        source = data["sources"][0]
        assert source["document_id"] == doc_id
        assert source["document_title"] == "policy"
        assert source["page_number"] == 1
        assert source["chunk_index"] == 0
        assert "distance" in source

    def test_query_without_documents(self, client: TestClient):
        resp = client.post("/api/v1/rag/query", json={"query": "Anything?"})
        assert resp.status_code == 200
        assert resp.json()["sources"] == []

    def test_blank_query(self, client: TestClient):
        assert client.post("/api/v1/rag/query", json={"query": ""}).status_code == 422
        resp = client.post("/api/v1/rag/query", json={"query": "   "})
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation"


class TestOpenAPI:
    def test_error_shape_is_documented(self, client: TestClient):
        openapi = client.get("/openapi.json").json()

        schema = openapi["components"]["schemas"]["ErrorResponse"]
        assert set(schema["properties"]) == {"error", "message"}
        upload = openapi["paths"]["/api/v1/documents/upload"]["post"]["responses"]
        assert upload["400"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
        lookup = openapi["paths"]["/api/v1/documents/{document_id}"]["get"]["responses"]
        assert "404" in lookup

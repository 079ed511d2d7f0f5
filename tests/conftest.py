"""Test configuration and shared fixtures."""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Ensure the project root is on PYTHONPATH
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(_PROJECT_ROOT))

# Set test environment variables before anything else imports config
_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="docqa-tests-"))
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("OPENAI_API_KEY", "test-key-not-real")
os.environ.setdefault("DATABASE_PATH", str(_TEST_DATA_DIR / "docqa.db"))
os.environ.setdefault("UPLOAD_DIR", str(_TEST_DATA_DIR / "uploads"))

import fitz  # noqa: E402
from langchain_core.embeddings import Embeddings  # noqa: E402

from docqa.config import Settings, get_settings  # noqa: E402
from docqa.vectorstore.sqlite_store import DocumentStore  # noqa: E402

DIMS = 4


class FakeEmbeddings(Embeddings):
    """Deterministic in-memory embedding model that records every call.

    Texts found in ``vectors`` get that vector; anything else is mapped to a
    small vector derived from its characters.
    """

    def __init__(self, dimensions: int = DIMS, vectors: dict[str, list[float]] | None = None):
        self.dimensions = dimensions
        self.vectors = vectors or {}
        self.document_calls: list[list[str]] = []
        self.query_calls: list[str] = []

    def _vector(self, text: str) -> list[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        base = [float(len(text)), float(text.count("a")), float(text.count("e")), 1.0]
        return (base * (self.dimensions // len(base) + 1))[: self.dimensions]

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        self.document_calls.append(list(texts))
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> list[float]:
        self.query_calls.append(text)
        return self._vector(text)

    async def aembed_documents(self, texts: list[str]) -> list[list[float]]:
        return self.embed_documents(texts)

    async def aembed_query(self, text: str) -> list[float]:
        return self.embed_query(text)


def make_pdf(path: Path, pages: list[str], metadata: dict | None = None) -> Path:
    """Write a PDF with one page per entry of ``pages`` (empty string = blank page)."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    if metadata:
        doc.set_metadata(metadata)
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_path=str(tmp_path / "docqa.db"),
        upload_dir=str(tmp_path / "uploads"),
        embedding_dimensions=DIMS,
        openai_api_key="test-key-not-real",
        upstream_timeout_seconds=5,
        upstream_backoff_seconds=0,
    )


@pytest.fixture
def store(settings: Settings) -> DocumentStore:
    return DocumentStore(settings)


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()

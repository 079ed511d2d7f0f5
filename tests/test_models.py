"""Tests for Pydantic data models."""

import pytest
from pydantic import ValidationError

from docqa.models.chunk import ChunkDraft, EmbeddedChunk, UnembeddedChunk, estimate_tokens
from docqa.models.document import Document, DocumentMetadata, ExtractedContent, PageContent


# ─────────────────────────────── Chunk Models ────────────────────────────────


class TestEstimateTokens:
    def test_empty(self):
        assert estimate_tokens("") == 0

    def test_rounds_up(self):
        assert estimate_tokens("abcde") == 2
        assert estimate_tokens("abcd") == 1


class TestChunkDraft:
    def test_valid(self):
        c = ChunkDraft(content="Some text.", page_number=2, chunk_index=3)
        assert c.page_number == 2
        assert c.chunk_index == 3
        assert c.token_estimate == estimate_tokens("Some text.")

    def test_blank_content_rejected(self):
        with pytest.raises(ValidationError):
            ChunkDraft(content="   \n\t ")

    def test_page_number_must_be_positive(self):
        with pytest.raises(ValidationError):
            ChunkDraft(content="x", page_number=0)

    def test_chunk_index_must_be_non_negative(self):
        with pytest.raises(ValidationError):
            ChunkDraft(content="x", chunk_index=-1)


class TestStoredChunks:
    def test_embedded_chunk_requires_embedding(self):
        with pytest.raises(ValidationError):
            EmbeddedChunk(id="c1", document_id="d1", content="x", page_number=1, chunk_index=0)

    def test_embedded_is_an_unembedded_chunk_plus_vector(self):
        c = EmbeddedChunk(
            id="c1", document_id="d1", content="x", page_number=1, chunk_index=0, embedding=[0.1, 0.2]
        )
        assert isinstance(c, UnembeddedChunk)
        assert c.dimensions == 2


# ────────────────────────────── Document Models ──────────────────────────────


class TestExtractedContent:
    def test_valid_when_text_present(self):
        content = ExtractedContent(
            filename="a.pdf",
            pages=[PageContent(page_number=1, text="Hello")],
            raw_text="Hello",
        )
        assert content.is_valid

    def test_invalid_when_blank(self):
        assert not ExtractedContent(filename="a.pdf", raw_text="  \n").is_valid


class TestDocument:
    def _chunk(self, index: int, embedded: bool = False):
        fields = dict(id=f"c{index}", document_id="d1", content=f"chunk {index}", page_number=1, chunk_index=index)
        if embedded:
            return EmbeddedChunk(**fields, embedding=[1.0, 0.0])
        return UnembeddedChunk(**fields)

    def test_defaults(self):
        doc = Document(title="report", filename="report.pdf")
        assert len(doc.id) == 32
        assert doc.uploaded_at.tzinfo is not None
        assert doc.chunk_count == 0
        assert not doc.embeddings_generated
        assert doc.metadata == DocumentMetadata()

    def test_embeddings_generated(self):
        doc = Document(title="t", filename="t.pdf", chunks=[self._chunk(0), self._chunk(1)])
        assert doc.chunk_count == 2
        assert not doc.embeddings_generated

        doc = Document(title="t", filename="t.pdf", chunks=[self._chunk(0, embedded=True)])
        assert doc.embeddings_generated

    def test_union_keeps_chunk_shape(self):
        doc = Document(title="t", filename="t.pdf", chunks=[self._chunk(0, embedded=True), self._chunk(1)])
        assert isinstance(doc.chunks[0], EmbeddedChunk)
        assert not isinstance(doc.chunks[1], EmbeddedChunk)

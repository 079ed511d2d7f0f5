"""Pydantic models for text chunks.

A chunk moves through three shapes: the chunker emits a ``ChunkDraft``,
storage turns it into an ``UnembeddedChunk`` with an id, and the embedding
step upgrades it to an ``EmbeddedChunk``. ``StoredChunk`` is the union of the
two persisted shapes, so embedding presence is a type check, not a null check.
"""

from __future__ import annotations

import math
from typing import Union

from pydantic import BaseModel, Field, field_validator


def estimate_tokens(text: str) -> int:
    """Rough token estimate (1 token ≈ 4 characters)."""
    return math.ceil(len(text) / 4)


class ChunkDraft(BaseModel):
    """A chunk produced by the chunker, not yet persisted."""

    content: str
    page_number: int = Field(default=1, ge=1)
    chunk_index: int = Field(default=0, ge=0)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("chunk content must not be blank")
        return v

    @property
    def token_estimate(self) -> int:
        return estimate_tokens(self.content)


class UnembeddedChunk(ChunkDraft):
    """A persisted chunk whose embedding has not been generated yet."""

    id: str
    document_id: str


class EmbeddedChunk(UnembeddedChunk):
    """A persisted chunk carrying its embedding vector."""

    embedding: list[float]

    @property
    def dimensions(self) -> int:
        return len(self.embedding)


StoredChunk = Union[EmbeddedChunk, UnembeddedChunk]

"""Retrieval engine: embeds the query and ranks stored chunk vectors exactly."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from docqa.config import Settings, get_settings
from docqa.errors import ValidationError
from docqa.llm.embedding_client import EmbeddingClient
from docqa.logger import get_logger
from docqa.models.chunk import EmbeddedChunk
from docqa.vectorstore.sqlite_store import DocumentStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetrievalHit:
    """One ranked chunk. Lower ``distance`` is a closer match for every metric."""

    chunk_id: str
    document_id: str
    document_title: str
    content: str
    page_number: int
    chunk_index: int
    distance: float


@dataclass
class RetrievalResult:
    """Structured result from a retrieval query."""

    query: str
    metric: str = "cosine"
    hits: list[RetrievalHit] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.hits

    @property
    def context_text(self) -> str:
        """Assemble retrieved chunks into a single context string, best first."""
        parts: list[str] = []
        for hit in self.hits:
            parts.append(f"[Document: {hit.document_title} | Page: {hit.page_number}]\n{hit.content}")
        return "\n\n---\n\n".join(parts)


def distances(query: Sequence[float], matrix: np.ndarray, metric: str = "cosine") -> np.ndarray:
    """Distance from ``query`` to every row of ``matrix``.

    ``cosine`` is 1 - cosine similarity (a zero vector is at distance 1),
    ``l2`` is Euclidean distance and ``inner_product`` is the negated dot
    product, so smaller is always better.
    """
    q = np.asarray(query, dtype=np.float64)
    m = np.asarray(matrix, dtype=np.float64)
    if m.ndim != 2 or m.shape[1] != q.shape[0]:
        raise ValueError(f"Cannot score a {q.shape[0]}-d query against matrix of shape {m.shape}")

    match metric:
        case "cosine":
            norms = np.linalg.norm(m, axis=1) * np.linalg.norm(q)
            dots = m @ q
            similarity = np.divide(dots, norms, out=np.zeros_like(dots), where=norms != 0)
            return 1.0 - similarity
        case "l2":
            return np.linalg.norm(m - q, axis=1)
        case "inner_product":
            return -(m @ q)
        case _:
            raise ValueError(f"Unsupported distance metric: {metric}")


def rank(
    query_vector: Sequence[float],
    candidates: Sequence[tuple[EmbeddedChunk, str]],
    k: int,
    metric: str = "cosine",
) -> list[RetrievalHit]:
    """Return the ``k`` closest candidates, ties kept in candidate order."""
    if k < 1:
        raise ValueError(f"k must be positive, got {k}")
    if not candidates:
        return []

    matrix = np.array([chunk.embedding for chunk, _ in candidates], dtype=np.float64)
    scores = distances(query_vector, matrix, metric)
    order = np.argsort(scores, kind="stable")[:k]

    hits: list[RetrievalHit] = []
    for i in order:
        chunk, title = candidates[int(i)]
        hits.append(
            RetrievalHit(
                chunk_id=chunk.id,
                document_id=chunk.document_id,
                document_title=title,
                content=chunk.content,
                page_number=chunk.page_number,
                chunk_index=chunk.chunk_index,
                distance=float(scores[i]),
            )
        )
    return hits


class RetrievalEngine:
    """Embed a query and rank every stored chunk vector against it."""

    def __init__(
        self,
        store: DocumentStore | None = None,
        embedder: EmbeddingClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._store = store or DocumentStore(self._settings)
        self._embedder = embedder or EmbeddingClient(self._settings)
        self.metric = self._settings.retrieval_distance_metric

    async def retrieve(
        self,
        query: str,
        k: int | None = None,
        document_id: str | None = None,
    ) -> RetrievalResult:
        """Run a top-k search for a single query.

        Args:
            query: The user's question.
            k: Override the configured top-k.
            document_id: Restrict the search to one document.
        """
        if not query or not query.strip():
            raise ValidationError("Query is required")
        k = k or self._settings.retrieval_top_k

        query_vector = await self._embedder.embed_one(query)
        candidates = await asyncio.to_thread(self._store.list_chunks_with_embeddings, document_id)
        hits = rank(query_vector, candidates, k, self.metric)

        logger.info(
            "Retrieval complete",
            query=query[:80],
            candidates=len(candidates),
            hits=len(hits),
            best_distance=hits[0].distance if hits else None,
        )
        return RetrievalResult(query=query, metric=self.metric, hits=hits)

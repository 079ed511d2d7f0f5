"""Batched, order-preserving access to the embedding model."""

from __future__ import annotations

from typing import Iterator, Sequence

from langchain_core.embeddings import Embeddings

from docqa.config import MAX_EMBEDDING_BATCH, Settings, get_settings
from docqa.errors import UpstreamError
from docqa.llm.factory import get_embeddings
from docqa.llm.resilience import call_upstream
from docqa.logger import get_logger

logger = get_logger(__name__)


class EmbeddingClient:
    """Turns texts into vectors through a LangChain ``Embeddings`` model.

    The model is built lazily from Settings on first use, so a missing API
    key surfaces as ``ConfigurationError`` at call time rather than at
    construction. Pass ``embeddings`` to use a pre-built model instead.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        embeddings: Embeddings | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._embeddings = embeddings
        requested = batch_size or self._settings.embedding_batch_size
        if requested < 1:
            raise ValueError(f"batch_size must be positive, got {requested}")
        self.batch_size = min(requested, MAX_EMBEDDING_BATCH)

    @property
    def dimensions(self) -> int:
        return self._settings.embedding_dimensions

    def _model(self) -> Embeddings:
        if self._embeddings is None:
            self._embeddings = get_embeddings(self._settings)
        return self._embeddings

    def batches(self, texts: Sequence[str]) -> Iterator[list[str]]:
        """Yield consecutive slices of at most ``batch_size`` texts."""
        for i in range(0, len(texts), self.batch_size):
            yield list(texts[i : i + self.batch_size])

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single text (typically a user query)."""
        model = self._model()
        vector = await call_upstream(
            "embed query",
            lambda: model.aembed_query(text),
            self._settings,
        )
        return list(vector)

    async def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed ``texts`` and return one vector per text, in input order.

        Requests are issued one sub-batch at a time. If any sub-batch fails
        the whole call fails and nothing is returned.
        """
        if not texts:
            return []

        model = self._model()
        total_batches = (len(texts) + self.batch_size - 1) // self.batch_size
        vectors: list[list[float]] = []

        for number, batch in enumerate(self.batches(texts), start=1):
            result = await call_upstream(
                "embed documents",
                lambda batch=batch: model.aembed_documents(batch),
                self._settings,
            )
            if len(result) != len(batch):
                raise UpstreamError(
                    "embed documents",
                    f"expected {len(batch)} vectors, got {len(result)}",
                )
            vectors.extend(list(v) for v in result)
            logger.debug("Embedded batch", batch=number, of=total_batches, size=len(batch))

        logger.info("Embeddings generated", count=len(vectors), batches=total_batches)
        return vectors

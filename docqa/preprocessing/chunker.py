"""Overlapping character-window chunking with sentence boundary snapping."""

from __future__ import annotations

import re
from typing import Iterable

from docqa.config import Settings, get_settings
from docqa.logger import get_logger
from docqa.models.chunk import ChunkDraft
from docqa.models.document import PageContent

logger = get_logger(__name__)

# How far back from the raw cut we look for a sentence end, and how far past it
_BOUNDARY_LOOKBACK = 200
_BOUNDARY_LOOKAHEAD = 100

# Sentence terminator followed by whitespace; the match is always two chars
_SENTENCE_END_RE = re.compile(r"[.!?]\s")


def _check_args(chunk_size: int, overlap: int, page_number: int, start_index: int) -> None:
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0:
        raise ValueError(f"overlap must be non-negative, got {overlap}")
    if page_number < 1:
        raise ValueError(f"page_number must be >= 1, got {page_number}")
    if start_index < 0:
        raise ValueError(f"start_index must be >= 0, got {start_index}")


def _next_start(start: int, end: int, overlap: int) -> int:
    """Step back by ``overlap`` from ``end`` unless that would stall the window."""
    candidate = end - overlap
    return candidate if candidate > start else end


def _snap_to_sentence_end(text: str, start: int, end: int) -> int:
    """Move ``end`` to just past the last sentence terminator near the cut."""
    search_start = max(end - _BOUNDARY_LOOKBACK, start)
    segment = text[search_start : end + _BOUNDARY_LOOKAHEAD]
    matches = list(_SENTENCE_END_RE.finditer(segment))
    if not matches:
        return end
    return search_start + matches[-1].end()


def _windows(text: str, chunk_size: int, overlap: int, snap: bool) -> Iterable[tuple[int, int]]:
    length = len(text)
    start = 0
    while start < length:
        end = min(start + chunk_size, length)
        if snap and end < length:
            end = _snap_to_sentence_end(text, start, end)
        yield start, end
        if end >= length:
            break
        start = _next_start(start, end, overlap)


def _emit(
    text: str,
    windows: Iterable[tuple[int, int]],
    page_number: int,
    start_index: int,
) -> list[ChunkDraft]:
    chunks: list[ChunkDraft] = []
    chunk_index = start_index
    for start, end in windows:
        content = text[start:end].strip()
        if not content:
            continue
        chunks.append(ChunkDraft(content=content, page_number=page_number, chunk_index=chunk_index))
        chunk_index += 1
    return chunks


def chunk_text(
    text: str,
    chunk_size: int,
    overlap: int,
    page_number: int = 1,
    start_index: int = 0,
) -> list[ChunkDraft]:
    """Split text into fixed-size windows that overlap by ``overlap`` characters.

    Windows whose trimmed content is empty are skipped without consuming a
    chunk index. When ``overlap >= chunk_size`` each window starts where the
    previous one ended.
    """
    _check_args(chunk_size, overlap, page_number, start_index)
    return _emit(text, _windows(text, chunk_size, overlap, snap=False), page_number, start_index)


def chunk_text_by_sentence(
    text: str,
    chunk_size: int,
    overlap: int,
    page_number: int = 1,
    start_index: int = 0,
) -> list[ChunkDraft]:
    """Split text like :func:`chunk_text`, but end windows on sentence boundaries.

    For every window that does not reach the end of the text, the last
    ``.``, ``!`` or ``?`` followed by whitespace within the final 200
    characters of the window (plus 100 characters past it) becomes the new
    end. Without such a boundary the raw ``chunk_size`` cut is kept.
    """
    _check_args(chunk_size, overlap, page_number, start_index)
    return _emit(text, _windows(text, chunk_size, overlap, snap=True), page_number, start_index)


class TextChunker:
    """Chunks extracted pages using the sizes and strategy from Settings."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self.chunk_size = self._settings.chunk_size
        self.overlap = self._settings.chunk_overlap
        self.strategy = self._settings.chunk_strategy
        if self.overlap >= self.chunk_size:
            logger.warning(
                "Chunk overlap is not smaller than chunk size; windows will not overlap",
                chunk_size=self.chunk_size,
                overlap=self.overlap,
            )

    def chunk(self, text: str, page_number: int = 1, start_index: int = 0) -> list[ChunkDraft]:
        splitter = chunk_text_by_sentence if self.strategy == "sentence" else chunk_text
        return splitter(text, self.chunk_size, self.overlap, page_number, start_index)

    def chunk_pages(self, pages: Iterable[PageContent]) -> list[ChunkDraft]:
        """Chunk pages in order with one chunk index running across all of them."""
        chunks: list[ChunkDraft] = []
        for page in pages:
            chunks.extend(self.chunk(page.text, page.page_number, start_index=len(chunks)))

        logger.info(
            "Chunking complete",
            strategy=self.strategy,
            total_chunks=len(chunks),
            total_tokens=sum(c.token_estimate for c in chunks),
        )
        return chunks

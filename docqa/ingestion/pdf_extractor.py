"""PDF text extraction using PyMuPDF (fitz)."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

import fitz  # PyMuPDF

from docqa.logger import get_logger
from docqa.models.document import DocumentMetadata, ExtractedContent, PageContent

logger = get_logger(__name__)

_BLANK_LINES_RE = re.compile(r"\n{3,}")
_SPACES_RE = re.compile(r"[ \t]+")
# PDF date strings look like D:20240131120000+01'00'
_PDF_DATE_RE = re.compile(r"^(?:D:)?(\d{4})(\d{2})?(\d{2})?(\d{2})?(\d{2})?(\d{2})?")


def clean_text(text: str) -> str:
    """Normalise line endings and whitespace in extracted page text."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _BLANK_LINES_RE.sub("\n\n", text)
    text = _SPACES_RE.sub(" ", text)
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(lines).strip()


def _parse_pdf_date(value: str | None) -> datetime | None:
    if not value:
        return None
    m = _PDF_DATE_RE.match(value.strip())
    if not m:
        return None
    year, month, day, hour, minute, second = (int(g) if g else None for g in m.groups())
    try:
        return datetime(
            year,
            month or 1,
            day or 1,
            hour or 0,
            minute or 0,
            second or 0,
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


def extract_pdf(file_path: str | Path, filename: str | None = None) -> ExtractedContent:
    """Extract per-page text and metadata from a PDF file.

    Args:
        file_path: Path to the PDF on disk.
        filename: Name to record for the document; defaults to the file's name.
    """
    file_path = Path(file_path)
    filename = filename or file_path.name
    logger.info("Extracting PDF", path=str(file_path))

    errors: list[str] = []

    try:
        # Parse as PDF regardless of the file extension
        doc = fitz.open(str(file_path), filetype="pdf")
    except Exception as exc:
        logger.error("Failed to open PDF", path=str(file_path), error=str(exc))
        return ExtractedContent(
            filename=filename,
            extraction_errors=[f"Failed to open PDF: {exc}"],
        )
    if not doc.is_pdf or doc.page_count == 0:
        doc.close()
        logger.error("Not a readable PDF", path=str(file_path))
        return ExtractedContent(
            filename=filename,
            extraction_errors=["Failed to open PDF: file is not a PDF document"],
        )

    pages: list[PageContent] = []
    try:
        for page_num, page in enumerate(doc, start=1):
            try:
                page_text = clean_text(page.get_text("text") or "")
            except Exception as exc:
                errors.append(f"Page {page_num}: {exc}")
                logger.warning("Error extracting page", page=page_num, error=str(exc))
                continue
            if page_text:
                pages.append(PageContent(page_number=page_num, text=page_text))

        meta_raw = doc.metadata or {}
        page_count = len(doc)
    finally:
        doc.close()

    raw_text = "\n\n".join(p.text for p in pages)
    metadata = DocumentMetadata(
        page_count=page_count,
        word_count=len(raw_text.split()),
        author=meta_raw.get("author") or None,
        title=meta_raw.get("title") or None,
        creation_date=_parse_pdf_date(meta_raw.get("creationDate")),
    )

    content = ExtractedContent(
        filename=filename,
        metadata=metadata,
        pages=pages,
        raw_text=raw_text,
        extraction_errors=errors,
    )
    logger.info(
        "PDF extraction complete",
        pages=page_count,
        pages_with_text=len(pages),
        words=metadata.word_count,
    )
    return content


def delete_temp_file(path: str | Path) -> None:
    """Remove an uploaded file once it has been processed."""
    try:
        Path(path).unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not delete temp file", path=str(path), error=str(exc))

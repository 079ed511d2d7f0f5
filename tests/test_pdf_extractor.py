"""Tests for PDF extraction with PyMuPDF."""

from __future__ import annotations

from pathlib import Path

from conftest import make_pdf
from docqa.ingestion.pdf_extractor import _parse_pdf_date, clean_text, delete_temp_file, extract_pdf


class TestCleanText:
    def test_normalises_line_endings(self):
        assert clean_text("a\r\nb\rc") == "a\nb\nc"

    def test_collapses_blank_lines(self):
        assert clean_text("a\n\n\n\n\nb") == "a\n\nb"

    def test_collapses_spaces_and_trims_lines(self):
        assert clean_text("  hello \t  world  \n   next   ") == "hello world\nnext"


class TestParsePdfDate:
    def test_full_date(self):
        d = _parse_pdf_date("D:20240131120530+01'00'")
        assert (d.year, d.month, d.day, d.hour, d.minute, d.second) == (2024, 1, 31, 12, 5, 30)

    def test_year_only(self):
        assert _parse_pdf_date("D:2023").month == 1

    def test_invalid(self):
        assert _parse_pdf_date("") is None
        assert _parse_pdf_date("yesterday") is None
        assert _parse_pdf_date("D:20241399") is None


class TestExtractPdf:
    def test_pages_and_metadata(self, tmp_path: Path):
        path = make_pdf(
            tmp_path / "guide.pdf",
            ["First page text.", "", "Third page text."],
            {"title": "User Guide", "author": "Docs Team", "creationDate": "D:20240201090000Z"},
        )
        content = extract_pdf(path)

        assert content.is_valid
        assert content.filename == "guide.pdf"
        assert [p.page_number for p in content.pages] == [1, 3]
        assert content.pages[0].text == "First page text."
        assert content.metadata.page_count == 3
        assert content.metadata.title == "User Guide"
        assert content.metadata.author == "Docs Team"
        assert content.metadata.creation_date.year == 2024
        assert content.metadata.word_count == 6
        assert content.extraction_errors == []

    def test_filename_override(self, tmp_path: Path):
        path = make_pdf(tmp_path / "20240101-upload.pdf", ["Text."])
        assert extract_pdf(path, filename="original.pdf").filename == "original.pdf"

    def test_unreadable_file(self, tmp_path: Path):
        path = tmp_path / "broken.pdf"
        path.write_bytes(b"this is not a pdf")
        content = extract_pdf(path)
        assert not content.is_valid
        assert content.extraction_errors
        assert "Failed to open PDF" in content.extraction_errors[0]

    def test_text_file_is_not_parsed_as_text(self, tmp_path: Path):
        path = tmp_path / "notes.txt"
        path.write_text("Plain text notes. They have words but are not a PDF.")
        content = extract_pdf(path)
        assert not content.is_valid
        assert content.pages == []
        assert content.extraction_errors[0].startswith("Failed to open PDF")

    def test_blank_pdf_has_no_text(self, tmp_path: Path):
        content = extract_pdf(make_pdf(tmp_path / "blank.pdf", [""]))
        assert content.metadata.page_count == 1
        assert content.pages == []
        assert not content.is_valid


class TestDeleteTempFile:
    def test_deletes(self, tmp_path: Path):
        f = tmp_path / "upload.pdf"
        f.write_bytes(b"x")
        delete_temp_file(f)
        assert not f.exists()

    def test_missing_file_is_ignored(self, tmp_path: Path):
        delete_temp_file(tmp_path / "gone.pdf")

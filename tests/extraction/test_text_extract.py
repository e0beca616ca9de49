from __future__ import annotations

import io
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from docx import Document

from src.candidates.errors import ExtractionError, InsufficientText, InvalidFileType
from src.candidates.extraction.text_extract import (
    FileKind,
    extract_text,
    require_min_text,
    resolve_file_kind,
    sanitize_text,
)


def _docx_bytes(*paragraphs: str, table_cells: tuple[str, ...] = ()) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table_cells:
        table = document.add_table(rows=1, cols=len(table_cells))
        for cell, value in zip(table.rows[0].cells, table_cells):
            cell.text = value
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _fake_reader(*page_texts: str, encrypted: bool = False):
    return SimpleNamespace(
        is_encrypted=encrypted,
        pages=[SimpleNamespace(extract_text=lambda text=text: text) for text in page_texts],
    )


@pytest.mark.parametrize(
    ("file_name", "content_type", "expected"),
    [
        ("cv.pdf", None, FileKind.PDF),
        ("CV.PDF", "application/octet-stream", FileKind.PDF),
        ("resume.docx", None, FileKind.DOCX),
        ("notes.txt", None, FileKind.TXT),
        ("resume", "application/pdf", FileKind.PDF),
        ("resume", "text/plain; charset=utf-8", FileKind.TXT),
        ("Resume - J. Smith", "application/pdf", FileKind.PDF),
        ("Jane.Doe CV", "application/pdf", FileKind.PDF),
        ("photo.png", "application/pdf", FileKind.PDF),
    ],
)
def test_resolve_file_kind(file_name, content_type, expected):
    assert resolve_file_kind(file_name, content_type) == expected


@pytest.mark.parametrize(
    ("file_name", "content_type"),
    [
        ("malware.exe", None),
        ("Jane.Doe CV", None),
        ("Resume - J. Smith", "image/png"),
        ("resume", "image/png"),
        ("resume", None),
    ],
)
def test_resolve_file_kind_rejects_unsupported(file_name, content_type):
    with pytest.raises(InvalidFileType):
        resolve_file_kind(file_name, content_type)


def test_sanitize_text_strips_control_characters_but_keeps_whitespace():
    assert sanitize_text("Jane\x00 Doe\x07\tPython\r\nDjango\x1f") == "Jane Doe\tPython\r\nDjango"


def test_extract_txt_sanitizes():
    text = extract_text(b"Jane\x00 Doe\nPython developer", FileKind.TXT)

    assert text == "Jane Doe\nPython developer"


def test_extract_txt_invalid_utf8_is_empty():
    assert extract_text(b"\xff\xfe\xfa", "txt") == ""


@patch("src.candidates.extraction.text_extract.PdfReader")
def test_extract_pdf_joins_pages(mock_reader_cls):
    mock_reader_cls.return_value = _fake_reader("Jane Doe\x00", "", "Python developer")

    text = extract_text(b"%PDF-1.7 fake body", FileKind.PDF)

    assert text == "Jane Doe\nPython developer"
    assert "\x00" not in text


def test_extract_pdf_rejects_wrong_magic_bytes():
    with pytest.raises(ExtractionError) as exc_info:
        extract_text(b"PK\x03\x04 this is a zip", FileKind.PDF)

    assert exc_info.value.code == "pdf-decode-failed"


@patch("src.candidates.extraction.text_extract.PdfReader")
def test_extract_pdf_encrypted_fails(mock_reader_cls):
    mock_reader_cls.return_value = _fake_reader("secret", encrypted=True)

    with pytest.raises(ExtractionError) as exc_info:
        extract_text(b"%PDF-1.4", FileKind.PDF)

    assert exc_info.value.code == "pdf-decode-failed"


@patch("src.candidates.extraction.text_extract.PdfReader", side_effect=ValueError("bad xref"))
def test_extract_pdf_decoder_error_is_wrapped(_mock_reader_cls):
    with pytest.raises(ExtractionError) as exc_info:
        extract_text(b"%PDF-1.4 broken", FileKind.PDF)

    assert exc_info.value.code == "pdf-decode-failed"
    assert "bad xref" in str(exc_info.value)


def test_extract_docx_reads_paragraphs_and_tables():
    data = _docx_bytes("Jane Doe", "Backend Engineer", table_cells=("Python", "Django"))

    text = extract_text(data, FileKind.DOCX)

    assert text.splitlines() == ["Jane Doe", "Backend Engineer", "Python", "Django"]


def test_extract_docx_rejects_non_zip():
    with pytest.raises(ExtractionError) as exc_info:
        extract_text(b"%PDF-1.4 not a docx", FileKind.DOCX)

    assert exc_info.value.code == "docx-decode-failed"


def test_extract_docx_corrupt_archive():
    with pytest.raises(ExtractionError) as exc_info:
        extract_text(b"PK\x03\x04garbage", FileKind.DOCX)

    assert exc_info.value.code == "docx-decode-failed"


def test_require_min_text():
    assert require_min_text("  " + "x" * 60 + "  ", 50) == "x" * 60
    with pytest.raises(InsufficientText):
        require_min_text("short", 50)

"""Turn uploaded resume bytes into plain text."""

from __future__ import annotations

import io
import logging
import re
from enum import StrEnum

from docx import Document
from pypdf import PdfReader

from src.candidates.errors import ExtractionError, InsufficientText, InvalidFileType

logger = logging.getLogger(__name__)


class FileKind(StrEnum):
    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"


CONTENT_TYPES = {
    "application/pdf": FileKind.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": FileKind.DOCX,
    "text/plain": FileKind.TXT,
}

# C0 controls except tab, newline and carriage return; Postgres rejects NUL in text columns.
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_text(text: str) -> str:
    return _CONTROL_CHARS.sub("", text or "")


def resolve_file_kind(file_name: str, content_type: str | None = None) -> FileKind:
    """Pick the decoder from a supported extension, else from the declared MIME type.

    Names like "Resume - J. Smith" carry a dot without a real extension, so an
    unknown trailing token still defers to the content type.
    """
    name = (file_name or "").lower()
    if "." in name:
        extension = name.rsplit(".", 1)[1]
        if extension in {kind.value for kind in FileKind}:
            return FileKind(extension)

    kind = CONTENT_TYPES.get((content_type or "").split(";")[0].strip().lower())
    if kind is None:
        raise InvalidFileType(file_name)
    return kind


def _extract_pdf(data: bytes) -> str:
    if not data.lstrip()[:5].startswith(b"%PDF"):
        raise ExtractionError("pdf-decode-failed", "missing PDF header")
    try:
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted:
            raise ExtractionError("pdf-decode-failed", "document is encrypted")
        pages = [page.extract_text() or "" for page in reader.pages]
    except ExtractionError:
        raise
    except Exception as exc:
        raise ExtractionError("pdf-decode-failed", str(exc)) from exc

    logger.debug("Decoded PDF with %s pages", len(pages))
    return "\n".join(part for part in pages if part)


def _extract_docx(data: bytes) -> str:
    if not data.startswith(b"PK"):
        raise ExtractionError("docx-decode-failed", "not a DOCX archive")
    try:
        document = Document(io.BytesIO(data))
    except Exception as exc:
        raise ExtractionError("docx-decode-failed", str(exc)) from exc

    parts = [paragraph.text for paragraph in document.paragraphs if paragraph.text.strip()]
    for table in document.tables:
        for row in table.rows:
            for cell in row.cells:
                if cell.text.strip():
                    parts.append(cell.text)
    return "\n".join(parts)


def _extract_txt(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("TXT upload is not valid UTF-8; treating it as empty")
        return ""


_DECODERS = {
    FileKind.PDF: _extract_pdf,
    FileKind.DOCX: _extract_docx,
    FileKind.TXT: _extract_txt,
}


def extract_text(data: bytes, kind: FileKind | str) -> str:
    """Decode a document and return sanitized plain text.

    Raises ``ExtractionError`` when the decoder cannot read the buffer and
    ``InvalidFileType`` for kinds outside PDF/DOCX/TXT.
    """
    try:
        decoder = _DECODERS[FileKind(kind)]
    except ValueError:
        raise InvalidFileType(f"*.{kind}") from None

    text = sanitize_text(decoder(data))
    logger.info("Extracted %s chars from %s document", len(text), FileKind(kind).value)
    return text


def require_min_text(text: str, min_chars: int) -> str:
    """Return the stripped text, or raise ``InsufficientText`` when it is too short to use."""
    stripped = (text or "").strip()
    if len(stripped) < min_chars:
        raise InsufficientText(f"Extracted {len(stripped)} chars, need at least {min_chars}")
    return stripped

"""Error taxonomy for resume ingestion and candidate ranking."""

from __future__ import annotations


class IngestionError(Exception):
    """Base class for errors raised while turning a document into a candidate."""


class InvalidFileType(IngestionError):
    """The upload is not one of the supported resume formats."""

    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(
            f"Invalid file type for {file_name!r}. Only PDF, DOCX, and TXT files are supported"
        )


class ExtractionError(IngestionError):
    """A decoder could not read the document (corrupt, encrypted, image-only)."""

    def __init__(self, code: str, detail: str = ""):
        self.code = code
        self.detail = detail
        super().__init__(f"{code}: {detail}" if detail else code)


class InsufficientText(IngestionError):
    """Extracted text is too short to carry a usable profile."""


class DuplicateCandidate(IngestionError):
    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Candidate with email {email} already exists")


class StorageError(IngestionError):
    """The object store rejected an upload."""


class BatchTooLarge(IngestionError):
    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Maximum {limit} items allowed per batch, got {size}")


class RankingError(Exception):
    """Base class for ranking/scoring errors."""


class InvalidJobDescription(RankingError):
    pass


class ScoreParseError(RankingError):
    """The ranking model response did not contain a usable score."""


class DownloadError(IngestionError):
    """A remote resume (Drive file, spreadsheet link) could not be fetched."""


class InvalidSpreadsheet(IngestionError):
    pass

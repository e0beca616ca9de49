"""Candidate import from CSV/Excel sheets."""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, replace

import pandas as pd
import requests
from django.conf import settings
from django.db import DatabaseError, IntegrityError

from src.candidates.errors import InvalidSpreadsheet
from src.candidates.models import Candidate, CandidateStatus
from src.candidates.services.ingestion import (
    IngestionMetadata,
    IngestionResult,
    ResumeIngestionService,
)
from src.candidates.services.storage import sanitize_file_name

logger = logging.getLogger(__name__)

HEADER_ALIASES: dict[str, tuple[str, ...]] = {
    "name": ("name", "candidate name", "full name", "candidate"),
    "email": ("email", "email address", "e mail", "mail", "email id"),
    "phone": ("phone", "phone number", "mobile", "contact", "contact number", "mobile number"),
    "experience": (
        "experience", "exp", "years of experience", "total experience", "yrs", "years",
        "work experience",
    ),
    "location": ("location", "city", "address", "current location", "place"),
    "skills": ("skills", "skill", "key skills", "skillset", "skill set", "technologies"),
    "resume_url": (
        "resume url", "resume link", "resume", "cv link", "cv url", "drive link",
        "google drive link", "link", "submit your resume", "upload resume",
    ),
    "role": ("role", "position", "job title", "designation", "title", "current role"),
}
COLUMN_MAP = {alias: column for column, aliases in HEADER_ALIASES.items() for alias in aliases}

_HEADER_PUNCTUATION = re.compile(r"[_\-*#]")
_SKILL_SEPARATORS = re.compile(r"[,;|]")
_DRIVE_FILE_ID = re.compile(r"/file/d/([^/]+)|[?&]id=([^/&]+)")
_LEADING_NUMBER = re.compile(r"\s*(-?\d+(?:\.\d+)?)")


@dataclass(frozen=True)
class SpreadsheetRow:
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    experience: int | None = None
    location: str | None = None
    skills: str | None = None
    resume_url: str | None = None
    role: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or "Unknown Candidate"


def normalize_header(raw) -> str:
    text = _HEADER_PUNCTUATION.sub(" ", str(raw).strip().lower())
    return re.sub(r"\s+", " ", text).strip()


def map_headers(headers) -> dict[int, str]:
    mapping = {}
    for index, header in enumerate(headers):
        column = COLUMN_MAP.get(normalize_header(header))
        if column:
            mapping[index] = column
    return mapping


def split_skills(value: str | None) -> list[str]:
    if not value:
        return []
    return [skill.strip() for skill in _SKILL_SEPARATORS.split(value) if skill.strip()]


def _parse_experience(value: str) -> int:
    """Years from the leading number of the cell, so "5 years" reads as 5."""
    match = _LEADING_NUMBER.match(value)
    if match is None:
        return 0
    return max(0, int(float(match.group(1))))


def _read_frame(data: bytes, file_name: str) -> pd.DataFrame:
    buffer = io.BytesIO(data)
    if file_name.lower().endswith(".csv"):
        return pd.read_csv(buffer, header=None, dtype=str, keep_default_na=False)
    return pd.read_excel(buffer, header=None, dtype=str, sheet_name=0).fillna("")


def parse_spreadsheet(data: bytes, file_name: str) -> list[SpreadsheetRow]:
    """Read the first sheet, map fuzzy headers and keep rows with a name or an email."""
    try:
        frame = _read_frame(data, file_name)
    except (ValueError, OSError, pd.errors.ParserError) as exc:
        raise InvalidSpreadsheet(f"Could not read spreadsheet: {exc}") from exc

    if len(frame.index) < 2:
        raise InvalidSpreadsheet("Sheet is empty")

    mapping = map_headers(frame.iloc[0].tolist())
    if "name" not in mapping.values() and "email" not in mapping.values():
        raise InvalidSpreadsheet("Could not find 'Name' or 'Email' column")

    rows = []
    for values in frame.iloc[1:].itertuples(index=False):
        parsed = {}
        for index, column in mapping.items():
            cell = str(values[index]).strip()
            if not cell:
                continue
            parsed[column] = _parse_experience(cell) if column == "experience" else cell
        if parsed.get("name") or parsed.get("email"):
            rows.append(SpreadsheetRow(**parsed))

    logger.info("Parsed %s candidate rows from %s", len(rows), file_name)
    return rows


def to_direct_download_url(url: str) -> str:
    """Rewrite Drive share links to the public download endpoint."""
    if "drive.google.com" not in url:
        return url
    match = _DRIVE_FILE_ID.search(url)
    if not match:
        return url
    file_id = match.group(1) or match.group(2)
    # confirm=t skips the virus-scan interstitial for larger files.
    return f"https://drive.google.com/uc?export=download&id={file_id}&confirm=t"


def _row_metadata(row: SpreadsheetRow, metadata: IngestionMetadata) -> IngestionMetadata:
    return replace(
        metadata,
        source="Spreadsheet Import",
        source_url=row.resume_url,
        name=row.name,
        email=row.email.lower() if row.email else None,
        phone=row.phone,
        location=row.location,
        experience=row.experience or None,
        role=row.role,
        skills=split_skills(row.skills) or None,
    )


def _import_with_resume(
    row: SpreadsheetRow,
    metadata: IngestionMetadata,
    service: ResumeIngestionService,
    session: requests.Session,
) -> IngestionResult | None:
    """Download the linked resume and run it through ingestion; ``None`` means fall back."""
    url = to_direct_download_url(row.resume_url)
    try:
        response = session.get(url, timeout=settings.DOWNLOAD_TIMEOUT_SECONDS)
    except requests.RequestException as exc:
        logger.warning("Resume download failed for %s: %s", row.display_name, exc)
        return None

    if not response.ok:
        logger.warning(
            "Resume download failed for %s (HTTP %s)", row.display_name, response.status_code
        )
        return None
    if "text/html" in response.headers.get("Content-Type", ""):
        # Usually a sign-in or permission page rather than the file.
        logger.warning("Resume link for %s returned HTML, not a document", row.display_name)
        return None

    file_name = sanitize_file_name(f"{row.name or 'resume'}.pdf")
    result = service.ingest(
        response.content,
        file_name,
        "application/pdf",
        metadata=_row_metadata(row, metadata),
    )
    if not result.success:
        logger.warning("Resume processing failed for %s: %s", row.display_name, result.message)
        return None
    return IngestionResult(
        success=True,
        message="Imported with resume",
        file_name=file_name,
        candidate_id=result.candidate_id,
        candidate_name=result.candidate_name,
    )


def _insert_row(row: SpreadsheetRow, metadata: IngestionMetadata) -> IngestionResult:
    email = row.email.lower() if row.email else None
    try:
        candidate = Candidate.objects.create(
            name=row.name or "Unknown",
            email=email,
            phone=row.phone,
            experience=row.experience or 0,
            location=row.location,
            role=row.role or metadata.position or "General Application",
            skills=split_skills(row.skills),
            status=CandidateStatus.NEW,
            source="Spreadsheet Import",
            position=metadata.position,
            job_opening=metadata.job_opening,
            domain=metadata.domain,
        )
    except IntegrityError:
        return IngestionResult(
            success=False,
            message=f"Candidate with email {email} already exists",
            file_name=row.display_name,
        )
    except DatabaseError as exc:
        logger.exception("Direct insert failed for %s", row.display_name)
        return IngestionResult(
            success=False, message=f"Database error: {exc}", file_name=row.display_name
        )

    return IngestionResult(
        success=True,
        message="Imported directly",
        file_name=row.display_name,
        candidate_id=str(candidate.id),
        candidate_name=candidate.name,
    )


def process_row(
    row: SpreadsheetRow,
    metadata: IngestionMetadata | None = None,
    *,
    service: ResumeIngestionService | None = None,
    session: requests.Session | None = None,
) -> IngestionResult:
    """Import one row, through its resume link when it has one, else from the cells alone."""
    metadata = metadata or IngestionMetadata()
    if row.resume_url:
        result = _import_with_resume(
            row, metadata, service or ResumeIngestionService(), session or requests.Session()
        )
        if result is not None:
            return result
        logger.info("Falling back to direct insert for %s", row.display_name)
    return _insert_row(row, metadata)

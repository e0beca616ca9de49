"""Turn one resume file into a Candidate row."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import DatabaseError, IntegrityError

from src.candidates.errors import (
    DuplicateCandidate,
    ExtractionError,
    InsufficientText,
    InvalidFileType,
    StorageError,
)
from src.candidates.extraction.fields import pre_extract_fields
from src.candidates.extraction.llm import ExtractedProfile, ResumeDataExtractor
from src.candidates.extraction.text_extract import (
    extract_text,
    require_min_text,
    resolve_file_kind,
)
from src.candidates.models import Candidate, CandidateStatus
from src.candidates.retrieve.embeddings import build_embedder, embed_text
from src.candidates.retrieve.ranking import CandidateScorer
from src.candidates.services.storage import ResumeStorage, StoredFile

logger = logging.getLogger(__name__)

INSUFFICIENT_TEXT_MESSAGE = "Could not extract enough text from the file"
SKIPPED_MESSAGE = "Skipped - insufficient data"


@dataclass
class IngestionMetadata:
    """Classification metadata and caller overrides applied to the created row.

    Any override left as ``None`` is taken from the model output instead.
    """

    position: str | None = None
    job_opening: str | None = None
    domain: str | None = None
    source_url: str | None = None
    source: str = "Bulk Upload"
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    experience: int | None = None
    role: str | None = None
    skills: list[str] | None = None

    @property
    def has_identity(self) -> bool:
        return bool(self.name and self.email)


@dataclass
class IngestionResult:
    success: bool
    message: str
    file_name: str = ""
    candidate_id: str | None = None
    candidate_name: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "file_name": self.file_name,
            "candidate_id": self.candidate_id,
            "candidate_name": self.candidate_name,
        }


def scoring_context(metadata: IngestionMetadata) -> str:
    """Requirements text a freshly ingested candidate is scored against."""
    context = "General Requirements"
    if metadata.job_opening:
        context = f"Job Opening: {metadata.job_opening}"
    if metadata.position:
        context += f", Position: {metadata.position}"
    return context


def _profile_from_overrides(metadata: IngestionMetadata) -> ExtractedProfile:
    return ExtractedProfile(name=metadata.name or "", email=(metadata.email or "").strip().lower())


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


class ResumeIngestionService:
    """Validate, store, extract and insert one resume.

    ``ingest`` never raises: every failure is reported through ``IngestionResult`` so
    batch loops can keep going. The stored file is removed again when the candidate
    turns out to be a duplicate or the insert fails; extraction failures keep it
    around for manual review.
    """

    def __init__(
        self,
        *,
        storage: ResumeStorage | None = None,
        extractor: ResumeDataExtractor | None = None,
        embedder: Any = None,
        scorer: CandidateScorer | None = None,
        min_chars: int | None = None,
        score_on_ingest: bool | None = None,
    ):
        self.storage = storage or ResumeStorage()
        self.extractor = extractor or ResumeDataExtractor()
        self._embedder = embedder
        self.scorer = scorer
        self.min_chars = min_chars if min_chars is not None else settings.RESUME_MIN_CHARS
        self.score_on_ingest = (
            score_on_ingest if score_on_ingest is not None else settings.SCORE_ON_INGEST
        )

    @property
    def embedder(self):
        if self._embedder is None:
            self._embedder = build_embedder()
        return self._embedder

    def ingest(
        self,
        data: bytes,
        file_name: str,
        content_type: str | None = None,
        metadata: IngestionMetadata | None = None,
    ) -> IngestionResult:
        metadata = metadata or IngestionMetadata()

        def fail(message: str) -> IngestionResult:
            logger.warning("Ingestion of %s failed: %s", file_name, message)
            return IngestionResult(success=False, message=message, file_name=file_name)

        try:
            kind = resolve_file_kind(file_name, content_type)
        except InvalidFileType as exc:
            return fail(str(exc))

        try:
            stored = self.storage.upload(file_name, data, content_type)
        except StorageError as exc:
            return fail(str(exc))

        try:
            text = require_min_text(extract_text(data, kind), self.min_chars)
        except ExtractionError as exc:
            return fail(f"Text extraction failed ({exc.code})")
        except InsufficientText:
            return fail(INSUFFICIENT_TEXT_MESSAGE)

        try:
            profile = self.extractor.extract(text, pre_extract_fields(text))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Structured extraction errored for %s", file_name)
            return fail(f"AI extraction failed: {exc}")

        if profile is None:
            if not metadata.has_identity:
                return fail(SKIPPED_MESSAGE)
            logger.info("Model gave no usable profile for %s, using caller overrides", file_name)
            profile = _profile_from_overrides(metadata)

        try:
            candidate = self._insert(profile, text, stored, metadata)
        except DuplicateCandidate as exc:
            self.storage.remove([stored.path])
            return fail(str(exc))
        except DatabaseError as exc:
            logger.exception("Insert failed for %s", file_name)
            self.storage.remove([stored.path])
            return fail(f"Database error: {exc}")

        if self.score_on_ingest:
            self._score_new_candidate(candidate, metadata)

        logger.info("Ingested %s as candidate %s (%s)", file_name, candidate.id, candidate.name)
        return IngestionResult(
            success=True,
            message=f"Successfully added {candidate.name}",
            file_name=file_name,
            candidate_id=str(candidate.id),
            candidate_name=candidate.name,
        )

    def _embed(self, text: str) -> list[float] | None:
        try:
            return embed_text(self.embedder, text)
        except Exception:  # noqa: BLE001
            logger.exception("Embedding failed, storing candidate without a vector")
            return None

    def _insert(
        self,
        profile: ExtractedProfile,
        text: str,
        stored: StoredFile,
        metadata: IngestionMetadata,
    ) -> Candidate:
        email = (metadata.email or profile.email).strip().lower()
        if Candidate.objects.filter(email__iexact=email).exists():
            raise DuplicateCandidate(email)

        fields = {
            "name": metadata.name or profile.name,
            "email": email,
            "phone": _first_set(metadata.phone, profile.phone),
            "role": metadata.role or profile.role or "General Application",
            "experience": _first_set(metadata.experience, profile.experience, 0),
            "skills": list(_first_set(metadata.skills, profile.skills, [])),
            "summary": profile.summary,
            "resume_text": text,
            "embedding": self._embed(text),
            "location": _first_set(metadata.location, profile.location),
            "willing_to_relocate": profile.willing_to_relocate,
            "status": CandidateStatus.NEW,
            "source": metadata.source,
            "resume_url": stored.url,
            "source_url": metadata.source_url,
            "position": metadata.position,
            "job_opening": metadata.job_opening,
            "domain": metadata.domain,
        }
        try:
            return Candidate.objects.create(**fields)
        except IntegrityError as exc:
            # A concurrent insert won the race for this email.
            raise DuplicateCandidate(email) from exc

    def _score_new_candidate(self, candidate: Candidate, metadata: IngestionMetadata) -> None:
        context = scoring_context(metadata)
        try:
            if self.scorer is None:
                self.scorer = CandidateScorer()
            outcome = self.scorer.score_and_save(context, candidate)
            if not outcome.success:
                logger.warning("Auto-scoring skipped for %s: %s", candidate.id, outcome.error)
        except Exception:  # noqa: BLE001
            logger.exception("Auto-scoring failed for candidate %s", candidate.id)

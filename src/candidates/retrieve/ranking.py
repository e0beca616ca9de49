"""Score candidates against a job description with a generative model."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from datapizza.clients.openai import OpenAIClient
from django.conf import settings
from django.db import DatabaseError
from django.db.models import QuerySet
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from src.candidates.errors import InvalidJobDescription, ScoreParseError
from src.candidates.models import Candidate
from src.candidates.services.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

RANKING_SYSTEM_PROMPT = """You are an expert technical recruiter.
Compare the candidate profile with the job description and rate how well the candidate fits.
Return ONLY a JSON object with exactly these keys:

{
  "match_score": <integer from 0 to 100>,
  "reasoning": "two or three sentences explaining the score"
}"""

_JSON_DECODER = json.JSONDecoder()


def validate_job_description(job_description: str, min_chars: int | None = None) -> str:
    min_chars = min_chars if min_chars is not None else settings.JOB_DESCRIPTION_MIN_CHARS
    text = (job_description or "").strip()
    if len(text) < min_chars:
        raise InvalidJobDescription(
            f"Job description is too short. Please provide at least {min_chars} characters."
        )
    return text


def clamp_score(value: Any) -> float:
    score = float(value)
    if math.isnan(score):
        raise ScoreParseError("Ranking score is not a number")
    return max(0.0, min(100.0, score))


def _first_json_object(text: str) -> dict[str, Any]:
    start = text.find("{")
    while start != -1:
        try:
            parsed, _ = _JSON_DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", start + 1)
    raise ScoreParseError(f"No JSON object in ranking response: {text[:200]!r}")


class ScoreResponse(BaseModel):
    score: float = Field(
        validation_alias=AliasChoices("match_score", "score"), allow_inf_nan=False
    )
    justification: str | None = Field(
        default=None, validation_alias=AliasChoices("reasoning", "justification")
    )


def parse_score_response(text: str) -> tuple[float, str]:
    """Return ``(score, justification)`` from a raw ranking answer, score clamped to 0..100."""
    data = _first_json_object(text or "")
    try:
        parsed = ScoreResponse.model_validate(data)
    except ValidationError as exc:
        raise ScoreParseError(f"Invalid ranking response: {exc}") from exc
    return clamp_score(parsed.score), (parsed.justification or "").strip()


def build_candidate_profile(candidate: Candidate, max_chars: int) -> str:
    if candidate.resume_text:
        return candidate.resume_text[:max_chars]

    skills = ", ".join(candidate.skills or [])
    lines = [
        f"Name: {candidate.name}",
        f"Role: {candidate.role or 'N/A'}",
        f"Experience: {candidate.experience or 0} years",
        f"Skills: {skills or 'N/A'}",
        f"Location: {candidate.location or 'N/A'}",
        f"Summary: {candidate.summary or 'N/A'}",
    ]
    return "\n".join(lines)[:max_chars]


@dataclass
class CandidateScore:
    candidate_id: str
    candidate_name: str
    success: bool
    score: float | None = None
    justification: str | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "candidate_id": self.candidate_id,
            "candidate_name": self.candidate_name,
            "success": self.success,
            "score": self.score,
            "justification": self.justification,
            "error": self.error,
        }


class CandidateScorer:
    def __init__(self, client: OpenAIClient | None = None, *, max_chars: int | None = None):
        self.client = client or OpenAIClient(
            api_key=settings.OPENAI_API_KEY, model=settings.RANKING_MODEL
        )
        self.max_chars = max_chars or settings.RANKING_PROFILE_MAX_CHARS

    def score(self, job_description: str, candidate: Candidate) -> tuple[float, str]:
        profile = build_candidate_profile(candidate, self.max_chars)
        response = self.client.invoke(
            system_prompt=RANKING_SYSTEM_PROMPT,
            input=f"JOB DESCRIPTION:\n{job_description}\n\nCANDIDATE PROFILE:\n{profile}",
            max_tokens=500,
        )
        return parse_score_response(getattr(response, "text", "") or "")

    def score_and_save(self, job_description: str, candidate: Candidate) -> CandidateScore:
        """Score one candidate and persist the outcome; failures come back as results."""
        outcome = CandidateScore(
            candidate_id=str(candidate.id), candidate_name=candidate.name, success=False
        )
        try:
            score, justification = self.score(job_description, candidate)
            Candidate.objects.filter(id=candidate.id).update(
                match_score=score, ai_justification=justification
            )
        except DatabaseError as exc:
            logger.exception("Could not save score for candidate %s", candidate.id)
            outcome.error = f"Database error: {exc}"
            return outcome
        except Exception as exc:  # noqa: BLE001
            logger.warning("Scoring failed for candidate %s: %s", candidate.id, exc)
            outcome.error = str(exc)
            return outcome

        candidate.match_score = score
        candidate.ai_justification = justification
        outcome.success = True
        outcome.score = score
        outcome.justification = justification
        return outcome


@dataclass(frozen=True)
class RankingProgress:
    processed: int
    total: int
    current: str
    outcome: CandidateScore

    @property
    def percent(self) -> int:
        return round(self.processed * 100 / self.total) if self.total else 100


@dataclass
class RankingSummary:
    results: list[CandidateScore] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return len(self.results) - self.succeeded

    def ranked(self) -> list[CandidateScore]:
        """Successful scores, best first; equal scores keep their input order."""
        return sorted(
            (result for result in self.results if result.success),
            key=lambda result: result.score,
            reverse=True,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "results": [result.as_dict() for result in self.ranked()],
            "failures": [result.as_dict() for result in self.results if not result.success],
        }


class RankingScheduler:
    """Score candidates one at a time with a pause between model calls."""

    def __init__(
        self, scorer: CandidateScorer | None = None, *, limiter: RateLimiter | None = None
    ):
        self.scorer = scorer or CandidateScorer()
        self.limiter = limiter or RateLimiter(settings.RANKING_DELAY_SECONDS)

    def iter_rank(
        self, job_description: str, candidates: Iterable[Candidate]
    ) -> Iterator[RankingProgress]:
        candidates = list(candidates)
        total = len(candidates)
        for index, candidate in enumerate(candidates, start=1):
            with self.limiter:
                outcome = self.scorer.score_and_save(job_description, candidate)
            logger.info(
                "Ranked %s/%s (%s): %s",
                index,
                total,
                candidate.name,
                outcome.score if outcome.success else outcome.error,
            )
            yield RankingProgress(
                processed=index, total=total, current=candidate.name, outcome=outcome
            )

    def rank(
        self, job_description: str, candidates: Iterable[Candidate], on_progress=None
    ) -> RankingSummary:
        summary = RankingSummary()
        for progress in self.iter_rank(job_description, candidates):
            summary.results.append(progress.outcome)
            if on_progress is not None:
                on_progress(progress)
        logger.info("Ranking finished: %s succeeded, %s failed", summary.succeeded, summary.failed)
        return summary


def candidates_for_filters(filters: dict[str, Any] | None) -> QuerySet:
    """Candidates scoped by position (contains), job opening (exact) and domain (contains)."""
    filters = filters or {}
    qs = Candidate.objects.all()
    if filters.get("position"):
        qs = qs.filter(position__icontains=filters["position"])
    if filters.get("job_opening"):
        qs = qs.filter(job_opening=filters["job_opening"])
    if filters.get("domain"):
        qs = qs.filter(domain__icontains=filters["domain"])
    return qs.order_by("-created_at")

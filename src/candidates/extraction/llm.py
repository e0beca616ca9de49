"""Structured resume extraction with a generative model."""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from datapizza.clients.openai import OpenAIClient
from django.conf import settings
from openai import RateLimitError

from src.candidates.extraction.fields import PreExtractedFields
from src.candidates.extraction.text_extract import sanitize_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXTRACTION_SYSTEM_PROMPT = """You are an expert resume parser.
Extract the candidate profile from the resume text and return ONLY a valid JSON object,
with no additional text or markdown formatting, using exactly this schema:

{
  "name": "full name of the candidate",
  "email": "email address or null",
  "phone": "phone number or null",
  "role": "primary job role/title inferred from experience and skills",
  "experience": <total years of experience as an integer>,
  "skills": ["array", "of", "key", "skills"],
  "summary": "a single sentence summarizing their expertise and experience",
  "location": "current city and country, or null",
  "willing_to_relocate": <true or false>
}

Do NOT invent information. Use null when a field is not present in the resume."""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass
class ExtractedProfile:
    name: str
    email: str
    phone: str | None = None
    role: str = ""
    experience: int = 0
    skills: list[str] = field(default_factory=list)
    summary: str = ""
    location: str | None = None
    willing_to_relocate: bool | None = None


def invoke_with_backoff(
    func: Callable[[], T],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` retrying only on throttling, doubling the delay each time.

    With the defaults the waits are 1s then 2s; the last throttling error is re-raised.
    """
    attempt = 1
    while True:
        try:
            return func()
        except RateLimitError:
            if attempt >= max_attempts:
                logger.error("Model still throttled after %s attempts", attempt)
                raise
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                "Model throttled (attempt %s/%s), retrying in %.1fs", attempt, max_attempts, delay
            )
            sleep(delay)
            attempt += 1


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", (text or "").strip()).strip()


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = sanitize_text(str(value)).strip()
    return text or None


def _coerce_skills(value: Any) -> list[str]:
    if isinstance(value, str):
        value = re.split(r"[,;|]", value)
    if not isinstance(value, (list, tuple)):
        return []
    return [skill for skill in (_clean(item) for item in value) if skill]


def _coerce_experience(value: Any) -> int:
    try:
        return max(0, int(float(value)))
    except (TypeError, ValueError):
        return 0


def _coerce_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "yes"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "no"}:
        return False
    return None


def merge_fields(llm_fields: dict[str, Any], regex_fields: PreExtractedFields) -> dict[str, Any]:
    """Prefer non-empty model values; fall back to the deterministic ones."""
    merged = dict(llm_fields)
    email = _clean(llm_fields.get("email")) or regex_fields.email or ""
    merged["email"] = email.strip().lower()
    merged["phone"] = _clean(llm_fields.get("phone")) or regex_fields.phone or None
    return merged


class ResumeDataExtractor:
    """Send truncated resume text to the extraction model and build a profile."""

    def __init__(
        self,
        client: OpenAIClient | None = None,
        *,
        max_chars: int | None = None,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client or OpenAIClient(
            api_key=settings.OPENAI_API_KEY, model=settings.EXTRACTION_MODEL
        )
        self.max_chars = max_chars or settings.RESUME_MAX_CHARS
        self.max_attempts = max_attempts or settings.EXTRACTION_MAX_ATTEMPTS
        self.base_delay = (
            base_delay if base_delay is not None else settings.EXTRACTION_BACKOFF_BASE_SECONDS
        )
        self.sleep = sleep

    def _invoke(self, resume_text: str) -> str:
        response = self.client.invoke(
            system_prompt=EXTRACTION_SYSTEM_PROMPT,
            input=f"Resume text:\n{resume_text[: self.max_chars]}\n\nReturn ONLY the JSON object.",
            max_tokens=1000,
        )
        return getattr(response, "text", "") or ""

    @staticmethod
    def parse_response(raw_text: str) -> dict[str, Any] | None:
        try:
            parsed = json.loads(strip_code_fences(raw_text))
        except json.JSONDecodeError:
            logger.warning("Extraction model returned invalid JSON: %.200s", raw_text)
            return None
        return parsed if isinstance(parsed, dict) else None

    def extract(
        self, resume_text: str, pre_extracted: PreExtractedFields | None = None
    ) -> ExtractedProfile | None:
        """Return the structured profile, or ``None`` when name or email cannot be resolved.

        Throttling that outlasts the retry budget and any other client error propagate.
        """
        raw = invoke_with_backoff(
            lambda: self._invoke(resume_text),
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            sleep=self.sleep,
        )
        data = self.parse_response(raw)
        if data is None:
            return None

        name = _clean(data.get("name"))
        if not name:
            logger.warning("Extraction returned no candidate name")
            return None

        merged = merge_fields(data, pre_extracted or PreExtractedFields())
        if not merged["email"]:
            logger.warning("No email could be resolved for %s", name)
            return None

        return ExtractedProfile(
            name=name,
            email=merged["email"],
            phone=merged["phone"],
            role=_clean(data.get("role")) or "",
            experience=_coerce_experience(data.get("experience")),
            skills=_coerce_skills(data.get("skills")),
            summary=_clean(data.get("summary")) or "",
            location=_clean(data.get("location")),
            willing_to_relocate=_coerce_bool(data.get("willing_to_relocate")),
        )

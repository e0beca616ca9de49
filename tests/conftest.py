from __future__ import annotations

import itertools
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from openai import RateLimitError

from src.candidates.services.ratelimit import RateLimiter
from src.candidates.services.storage import StoredFile

RESUME_TEXT = (
    "Jane Doe\n"
    "Senior Backend Engineer\n"
    "jane.doe@example.com | +1 415-555-0134\n"
    "San Francisco, USA\n"
    "Skills: Python, Django, PostgreSQL, Celery\n"
    "Eight years building APIs and data pipelines for hiring platforms."
)


def make_rate_limit_error() -> RateLimitError:
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    return RateLimitError(
        "Rate limit reached", response=httpx.Response(429, request=request), body=None
    )


@pytest.fixture
def api_client():
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def make_uploaded_file():
    def _make(
        name: str = "cv_test.txt",
        content: bytes = RESUME_TEXT.encode(),
        content_type: str = "text/plain",
    ) -> SimpleUploadedFile:
        return SimpleUploadedFile(name, content, content_type=content_type)

    return _make


@pytest.fixture
def resume_text() -> str:
    return RESUME_TEXT


@pytest.fixture
def no_wait_limiter() -> RateLimiter:
    return RateLimiter(0, sleep=lambda _: None)


@pytest.fixture
def fake_storage():
    """ResumeStorage double that hands out unique paths and records removals."""
    counter = itertools.count(1)
    storage = MagicMock()

    def _upload(file_name, data, content_type=None):
        key = f"resumes/{next(counter)}_{file_name}"
        return StoredFile(path=key, url=f"https://files.test/{key}")

    storage.upload.side_effect = _upload
    return storage


@pytest.fixture
def make_candidate():
    def _make(name: str = "Jane Doe", **fields) -> SimpleNamespace:
        defaults = {
            "id": uuid.uuid4(),
            "name": name,
            "email": f"{name.lower().replace(' ', '.')}@example.com",
            "role": "Backend Engineer",
            "experience": 5,
            "skills": ["Python", "Django"],
            "summary": "Backend engineer.",
            "resume_text": f"{name} resume text",
            "location": None,
            "match_score": None,
            "ai_justification": None,
        }
        defaults.update(fields)
        return SimpleNamespace(**defaults)

    return _make


@pytest.fixture(autouse=True)
def local_cache(settings):
    settings.CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "talent-match-tests",
        }
    }

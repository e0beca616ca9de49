from __future__ import annotations

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings

from src.candidates.models import RankingJob, RankingJobStatus
from src.candidates.serializers import (
    BulkUploadSerializer,
    DriveImportSerializer,
    JobDescriptionSerializer,
    RankingJobCreateSerializer,
    RankingJobSerializer,
    ResumeUploadSerializer,
    SpreadsheetImportSerializer,
)

JOB_DESCRIPTION = "Senior Python engineer with Django, PostgreSQL and Celery experience."


def test_resume_upload_serializer_builds_metadata(make_uploaded_file):
    serializer = ResumeUploadSerializer(
        data={
            "file": make_uploaded_file(),
            "position": "Backend",
            "job_opening": "",
            "email": "jane@example.com",
            "experience": 0,
            "skills": ["Python"],
        }
    )
    assert serializer.is_valid(), serializer.errors

    metadata = serializer.to_metadata(source="Direct Upload")

    assert metadata.position == "Backend"
    assert metadata.job_opening is None
    assert metadata.email == "jane@example.com"
    assert metadata.name is None
    assert metadata.experience == 0
    assert metadata.skills == ["Python"]
    assert metadata.source == "Direct Upload"


@override_settings(BATCH_MAX_ITEMS=2)
def test_bulk_upload_serializer_enforces_batch_cap(make_uploaded_file):
    serializer = BulkUploadSerializer(
        data={"files": [make_uploaded_file(f"cv{i}.txt") for i in range(3)]}
    )

    assert not serializer.is_valid()
    assert serializer.errors["files"] == ["Maximum 2 files allowed per batch"]


@pytest.mark.parametrize(
    ("name", "valid"), [("list.csv", True), ("list.XLSX", True), ("a.pdf", False)]
)
def test_spreadsheet_serializer_checks_extension(name, valid):
    upload = SimpleUploadedFile(name, b"Name,Email\n", content_type="text/csv")

    assert SpreadsheetImportSerializer(data={"file": upload}).is_valid() is valid


def test_drive_import_serializer():
    serializer = DriveImportSerializer(
        data={
            "files": [{"id": "abc", "name": "cv.pdf", "mime_type": "application/pdf"}],
            "access_token": " token ",
            "batch_id": "4b7e1a52-4f5e-4c59-9d0e-3f39a3f2a001",
        }
    )

    assert serializer.is_valid(), serializer.errors
    assert serializer.validated_data["access_token"] == "token"
    assert serializer.validated_data["files"][0]["id"] == "abc"


@pytest.mark.parametrize(
    ("payload", "expected_error"),
    [
        ({}, "job_description is required"),
        ({"job_description": "   "}, "job_description is required"),
        (
            {"job_description": "Python dev"},
            "Job description is too short. Please provide at least 50 characters.",
        ),
    ],
)
def test_job_description_serializer_errors(payload, expected_error):
    serializer = JobDescriptionSerializer(data=payload)

    assert not serializer.is_valid()
    assert serializer.errors["job_description"] == [expected_error]


def test_ranking_job_create_serializer_filters():
    serializer = RankingJobCreateSerializer(
        data={"job_description": JOB_DESCRIPTION, "position": "Backend", "domain": ""}
    )
    assert serializer.is_valid(), serializer.errors

    assert serializer.filters() == {"position": "Backend"}


@pytest.mark.parametrize(
    ("status", "total", "processed", "expected"),
    [
        (RankingJobStatus.QUEUED, 0, 0, 0),
        (RankingJobStatus.PROCESSING, 8, 2, 25),
        (RankingJobStatus.FAILED, 0, 0, 100),
    ],
)
def test_ranking_job_serializer_progress(status, total, processed, expected):
    job = RankingJob(
        job_description=JOB_DESCRIPTION,
        status=status,
        total_candidates=total,
        processed_candidates=processed,
    )

    data = RankingJobSerializer(job).data

    assert data["progress"] == expected
    assert data["status"] == status

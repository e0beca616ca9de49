"""Domain models for candidates and ranking jobs."""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from pgvector.django import VectorField


class CandidateStatus(models.TextChoices):
    NEW = "New", "New"
    SCREENING = "Screening", "Screening"
    INTERVIEW = "Interview", "Interview"
    FINAL_ROUND = "Final Round", "Final Round"
    SELECTED = "Selected", "Selected"
    REJECTED = "Rejected", "Rejected"
    TALENT_POOL = "Talent Pool", "Talent Pool"


class Candidate(models.Model):
    """One applicant profile built from a resume or a spreadsheet row."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    # Uniqueness is enforced here; the insert's IntegrityError is the duplicate signal.
    email = models.EmailField(null=True, blank=True, unique=True)
    phone = models.CharField(max_length=64, null=True, blank=True)
    role = models.CharField(max_length=255, blank=True, default="General Application")
    experience = models.PositiveIntegerField(default=0)
    skills = models.JSONField(default=list, blank=True)
    summary = models.TextField(blank=True)
    resume_text = models.TextField(blank=True)
    embedding = VectorField(dimensions=settings.EMBEDDING_DIM, null=True, blank=True)
    status = models.CharField(
        max_length=32,
        choices=CandidateStatus.choices,
        default=CandidateStatus.NEW,
        db_index=True,
    )
    source = models.CharField(max_length=64, blank=True)
    resume_url = models.URLField(max_length=1024, null=True, blank=True)
    # Where the document came from (Drive link, spreadsheet cell), if not a direct upload.
    source_url = models.URLField(max_length=1024, null=True, blank=True)
    applied_date = models.DateField(default=timezone.localdate)
    match_score = models.FloatField(null=True, blank=True)
    ai_justification = models.TextField(null=True, blank=True)
    location = models.CharField(max_length=255, null=True, blank=True)
    willing_to_relocate = models.BooleanField(null=True, blank=True)
    position = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    job_opening = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    domain = models.CharField(max_length=255, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(match_score__isnull=True)
                | Q(match_score__gte=0, match_score__lte=100),
                name="candidate_match_score_range",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.email or 'no email'})"


class RankingJobStatus(models.TextChoices):
    QUEUED = "queued", "Queued"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


_STATUS_ORDER = {
    RankingJobStatus.QUEUED: 0,
    RankingJobStatus.PROCESSING: 1,
    RankingJobStatus.COMPLETED: 2,
    RankingJobStatus.FAILED: 2,
}


class RankingJob(models.Model):
    """Pollable unit of work: score all matching candidates against one job description."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    job_description = models.TextField()
    status = models.CharField(
        max_length=16,
        choices=RankingJobStatus.choices,
        default=RankingJobStatus.QUEUED,
        db_index=True,
    )
    total_candidates = models.PositiveIntegerField(default=0)
    processed_candidates = models.PositiveIntegerField(default=0)
    error_message = models.TextField(blank=True)
    filters = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    @property
    def is_terminal(self) -> bool:
        return self.status in (RankingJobStatus.COMPLETED, RankingJobStatus.FAILED)

    def transition_to(self, status: str, *, error_message: str = "") -> list[str]:
        """Move the job forward and return the fields that changed; backward moves raise."""
        if self.is_terminal or _STATUS_ORDER[status] <= _STATUS_ORDER[self.status]:
            raise ValueError(f"Invalid ranking job transition {self.status} -> {status}")

        self.status = status
        changed = ["status"]
        if status == RankingJobStatus.PROCESSING:
            self.started_at = timezone.now()
            changed.append("started_at")
        else:
            self.completed_at = timezone.now()
            changed.append("completed_at")
        if error_message:
            self.error_message = error_message
            changed.append("error_message")
        return changed

    def record_progress(self, processed: int) -> None:
        self.processed_candidates = min(processed, self.total_candidates)

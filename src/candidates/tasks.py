"""Celery tasks for asynchronous ranking and maintenance."""

from __future__ import annotations

import logging
from typing import Any

from celery import shared_task

from src.candidates.errors import RankingError
from src.candidates.models import RankingJob, RankingJobStatus
from src.candidates.retrieve.ranking import (
    RankingScheduler,
    candidates_for_filters,
    validate_job_description,
)
from src.candidates.services.location import backfill_candidate_locations

logger = logging.getLogger(__name__)


def create_ranking_job(job_description: str, filters: dict[str, Any] | None = None) -> RankingJob:
    """Persist a queued RankingJob and hand it to the ranking worker.

    Raises ``InvalidJobDescription`` before anything is stored. If the broker refuses
    the task, the job is returned already ``failed`` with the reason.
    """
    text = validate_job_description(job_description)
    job = RankingJob.objects.create(job_description=text, filters=filters or None)
    try:
        rank_candidates_job_task.delay(str(job.id))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Could not enqueue ranking job %s", job.id)
        job.save(
            update_fields=job.transition_to(
                RankingJobStatus.FAILED, error_message=f"Failed to start ranking job: {exc}"
            )
        )
    return job


@shared_task(name="candidates.rank_candidates_job_task")
def rank_candidates_job_task(job_id: str) -> str:
    """Score every candidate in the job's filter scope and keep the row's progress current."""
    job = RankingJob.objects.filter(id=job_id).first()
    if job is None:
        raise ValueError(f"RankingJob {job_id} not found")
    if job.status != RankingJobStatus.QUEUED:
        logger.warning("Ranking job %s already %s, skipping", job.id, job.status)
        return str(job.id)

    job.save(update_fields=job.transition_to(RankingJobStatus.PROCESSING))

    try:
        candidates = list(candidates_for_filters(job.filters))
        if not candidates:
            raise RankingError("No candidates found to rank")

        job.total_candidates = len(candidates)
        job.save(update_fields=["total_candidates"])

        failed = 0
        for progress in RankingScheduler().iter_rank(job.job_description, candidates):
            if not progress.outcome.success:
                failed += 1
            job.record_progress(progress.processed)
            job.save(update_fields=["processed_candidates"])

        note = f"{failed} of {len(candidates)} candidates could not be scored" if failed else ""
        job.save(update_fields=job.transition_to(RankingJobStatus.COMPLETED, error_message=note))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Ranking job %s failed", job.id)
        # A completion save that raised leaves only the in-memory status advanced.
        job.status = RankingJobStatus.PROCESSING
        job.save(
            update_fields=job.transition_to(RankingJobStatus.FAILED, error_message=str(exc))
        )

    return str(job.id)


@shared_task(name="candidates.backfill_locations_task")
def backfill_locations_task() -> dict[str, Any]:
    return backfill_candidate_locations().as_dict()

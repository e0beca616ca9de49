"""Fill in missing candidate locations from stored resume text, without model calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from django.db import DatabaseError

from src.candidates.extraction.fields import extract_location
from src.candidates.models import Candidate

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    total: int = 0
    updated: int = 0
    skipped: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "updated": self.updated,
            "skipped": self.skipped,
            "details": self.details,
        }


def backfill_candidate_locations() -> BackfillResult:
    candidates = list(
        Candidate.objects.filter(location__isnull=True).only("id", "name", "resume_text")
    )
    result = BackfillResult(total=len(candidates))

    for candidate in candidates:
        location = extract_location(candidate.resume_text or "")
        if location:
            try:
                Candidate.objects.filter(id=candidate.id).update(location=location)
            except DatabaseError:
                logger.exception("Failed to update location for %s", candidate.name)
                location = None

        if location:
            result.updated += 1
            logger.info("%s -> %s", candidate.name, location)
        else:
            result.skipped += 1
        result.details.append(
            {"id": str(candidate.id), "name": candidate.name, "location": location}
        )

    logger.info(
        "Location backfill: %s updated, %s skipped of %s",
        result.updated,
        result.skipped,
        result.total,
    )
    return result

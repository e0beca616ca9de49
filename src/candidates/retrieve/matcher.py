"""Shortlist candidates for a job description by embedding similarity."""

from __future__ import annotations

import logging
from typing import Any

from django.conf import settings

from src.candidates.db import CandidateHit, CandidateVectorStore
from src.candidates.retrieve.embeddings import build_embedder, embed_text
from src.candidates.retrieve.ranking import RankingScheduler, RankingSummary

logger = logging.getLogger(__name__)


class CandidateMatcher:
    def __init__(
        self,
        *,
        embedder: Any = None,
        vector_store: CandidateVectorStore | None = None,
        threshold: float | None = None,
        count: int | None = None,
    ):
        self.embedder = embedder or build_embedder()
        self.vector_store = vector_store or CandidateVectorStore()
        self.threshold = threshold if threshold is not None else settings.MATCH_THRESHOLD
        self.count = count or settings.MATCH_COUNT

    def match(self, job_description: str) -> list[CandidateHit]:
        """Embed the job description and return the closest candidates.

        Embedding errors are not retried here and propagate to the caller. An empty
        list means no candidate cleared the similarity threshold.
        """
        vector = embed_text(self.embedder, job_description)
        hits = self.vector_store.search(vector, k=self.count, threshold=self.threshold)
        logger.info("Vector search returned %s candidates", len(hits))
        return hits


class CandidateMatchPipeline:
    """Vector shortlist followed by model scoring of each shortlisted candidate."""

    def __init__(
        self,
        *,
        matcher: CandidateMatcher | None = None,
        scheduler: RankingScheduler | None = None,
    ):
        self.matcher = matcher or CandidateMatcher()
        self.scheduler = scheduler or RankingScheduler()

    def run(self, job_description: str) -> RankingSummary:
        hits = self.matcher.match(job_description)
        if not hits:
            return RankingSummary()
        return self.scheduler.rank(job_description, [hit.candidate for hit in hits])

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings
from pgvector.django import CosineDistance

from src.candidates.models import Candidate


@dataclass
class CandidateHit:
    candidate: Candidate
    similarity: float


class CandidateVectorStore:
    """Nearest-neighbour search over candidate embeddings backed by pgvector."""

    def __init__(self, dimensions: int | None = None):
        self.dimensions = dimensions or settings.EMBEDDING_DIM

    def _validate_embedding(self, vector: list[float]) -> None:
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Invalid embedding dimension {len(vector)}, expected {self.dimensions}"
            )

    def search(
        self, query_vector: list[float], k: int = 5, threshold: float = 0.0
    ) -> list[CandidateHit]:
        """Top ``k`` candidates with cosine similarity >= ``threshold``, most similar first."""
        self._validate_embedding(query_vector)

        # Similarity >= threshold is distance <= 1 - threshold.
        rows = (
            Candidate.objects.exclude(embedding__isnull=True)
            .annotate(distance=CosineDistance("embedding", query_vector))
            .filter(distance__lte=1.0 - threshold)
            .order_by("distance")[: max(1, int(k))]
        )

        hits = []
        for candidate in rows:
            # pgvector returns distance; convert to similarity in [0, 1].
            sim = max(0.0, 1.0 - float(candidate.distance))
            hits.append(CandidateHit(candidate=candidate, similarity=sim))
        return hits

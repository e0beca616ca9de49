"""Embedding client construction shared by ingestion and matching."""

from __future__ import annotations

from typing import Any

from datapizza.embedders.openai import OpenAIEmbedder
from django.conf import settings

# Keeps the request inside the embedding model's context window.
EMBEDDING_MAX_CHARS = 8000


def build_embedder() -> OpenAIEmbedder:
    if not settings.OPENAI_API_KEY:
        raise ValueError("Missing OPENAI_API_KEY environment variable")
    return OpenAIEmbedder(api_key=settings.OPENAI_API_KEY, model_name=settings.EMBEDDING_MODEL_NAME)


def embed_text(embedder: Any, text: str) -> list[float]:
    """Embed one text and return a flat vector."""
    vector = embedder.embed(text[:EMBEDDING_MAX_CHARS])
    # Some embedders answer a single string with a one-element batch.
    if vector and isinstance(vector[0], (list, tuple)):
        vector = vector[0]
    return [float(value) for value in vector]

"""
Shared fixtures: controllable embeddings and a baseline settings object.
"""

import numpy as np
import pytest

from ragcontext.core.config import PipelineSettings
from ragcontext.core.errors import EmbeddingServiceError
from ragcontext.vector.embeddings import IEmbeddingProvider


class StaticEmbedding(IEmbeddingProvider):
    """Looks texts up in a fixed table; unknown text behaves like a service failure."""

    name = "static"

    def __init__(self, vectors, dimension: int = 3):
        self.vectors = dict(vectors)
        self.dimension = dimension
        self.calls = []

    def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        if text not in self.vectors:
            raise EmbeddingServiceError(f"no vector for {text!r}")
        return list(self.vectors[text])

    def get_dimension(self) -> int:
        return self.dimension


def _unit(score: float, dim: int = 3) -> np.ndarray:
    """Unit vector whose cosine similarity with [1, 0, 0, ...] equals score."""
    vector = np.zeros(dim)
    vector[0] = score
    vector[1] = np.sqrt(max(0.0, 1.0 - score ** 2))
    return vector


@pytest.fixture
def unit():
    return _unit


@pytest.fixture
def static_provider():
    return StaticEmbedding


@pytest.fixture
def settings():
    """Settings with hypothetical answers off; tests switch on what they need."""
    return PipelineSettings(
        collection_name="kb",
        system_prompt="You are the support assistant for ACME.",
        post_prompt="Answer in two sentences.",
        error_message="Something went wrong, please try again.",
        no_answer_message="Sorry, that is not related to our documentation.",
        scope_threshold=0.75,
        passage_threshold=0.75,
        history_threshold=0.75,
        context_max_length=4000,
        hypothetical_enabled=False
    )

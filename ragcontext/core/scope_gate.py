"""
Scope gate - decides whether retrieval-augmented answering engages at all.

The gating embedding (hypothetical answer when available, question otherwise)
is compared with a sample of source passage embeddings. Aggregation:

    max   - one strongly matching passage is enough. Favours recall: a
            question touching a single topic of the source gets through.
    mean  - the sample as a whole must match. Favours precision: partially
            related questions are rejected more often.

The default is max.
"""

from typing import List, Optional

import numpy as np

from .errors import ScopeRejected
from .similarity import cosine_similarity
from ..util.logging import logger
from ..vector.types import HypotheticalAnswer

AGGREGATIONS = ("max", "mean")


class ScopeGate:
    """Threshold gate over aggregated cosine similarity."""

    def __init__(self, threshold: float = 0.75, aggregation: str = "max"):
        if aggregation not in AGGREGATIONS:
            raise ValueError(f"aggregation must be one of: {AGGREGATIONS}")
        self.threshold = threshold
        self.aggregation = aggregation

    @staticmethod
    def gating_embedding(question_embedding: Optional[np.ndarray],
                         hypothetical: Optional[HypotheticalAnswer]) -> Optional[np.ndarray]:
        """Hypothetical answer embedding if present, else the question embedding."""
        if hypothetical is not None and hypothetical.embedding is not None:
            return hypothetical.embedding
        return question_embedding

    def score(self, embedding: np.ndarray, sample_embeddings: List[np.ndarray]) -> float:
        """Aggregated similarity against the samples; 0.0 for an empty sample."""
        if embedding is None or not sample_embeddings:
            return 0.0

        scores = [cosine_similarity(embedding, sample) for sample in sample_embeddings]
        if self.aggregation == "mean":
            return float(np.mean(scores))
        return max(scores)

    def is_in_scope(self, question_embedding: Optional[np.ndarray],
                    hypothetical: Optional[HypotheticalAnswer],
                    sample_embeddings: List[np.ndarray]) -> bool:
        """True when the aggregated score reaches the threshold (inclusive)."""
        embedding = self.gating_embedding(question_embedding, hypothetical)
        score = self.score(embedding, sample_embeddings)
        logger.log_scope_decision(score, self.threshold, self.aggregation, len(sample_embeddings))
        return score >= self.threshold

    def enforce(self, question_embedding: Optional[np.ndarray],
                hypothetical: Optional[HypotheticalAnswer],
                sample_embeddings: List[np.ndarray]) -> float:
        """
        Return the score, or raise ScopeRejected when it is below the threshold.

        Raises:
            ScopeRejected: question is out of scope for the source
        """
        embedding = self.gating_embedding(question_embedding, hypothetical)
        score = self.score(embedding, sample_embeddings)
        logger.log_scope_decision(score, self.threshold, self.aggregation, len(sample_embeddings))
        if score < self.threshold:
            raise ScopeRejected(score, self.threshold)
        return score

"""
Ephemeral conversation store.

Session-scoped, append-only index of completed Q/A pairs, queried by semantic
similarity instead of recency. Nothing here is persisted; dropping the object
ends the conversation's recall.
"""

from typing import List, Tuple

import numpy as np

from ..core.similarity import best_similarity
from .types import QAPair


class EphemeralConversationStore:
    """In-memory vector index over one conversation's Q/A pairs."""

    def __init__(self, session_id: str = "ephemeral"):
        self.session_id = session_id
        self._pairs: List[QAPair] = []

    def insert(self, pair: QAPair) -> None:
        """Append a completed turn. Existing entries are never modified."""
        self._pairs.append(pair)

    def score(self, pair: QAPair, embedding: np.ndarray) -> float:
        """Best similarity of the embedding against the pair's question or answer."""
        return best_similarity(embedding, [pair.question_embedding, pair.answer_embedding])

    def query_scored(self, embedding: np.ndarray, k: int) -> List[Tuple[QAPair, float]]:
        """Top-k pairs with their scores, descending; ties keep insertion order."""
        if k <= 0 or not self._pairs:
            return []

        scored = [(pair, self.score(pair, embedding)) for pair in self._pairs]
        # sorted() is stable, so equal scores stay in insertion order
        scored = sorted(scored, key=lambda item: -item[1])
        return scored[:k]

    def query_top_k(self, embedding: np.ndarray, k: int) -> List[QAPair]:
        """Top-k most relevant pairs sorted by descending similarity."""
        return [pair for pair, _ in self.query_scored(embedding, k)]

    def pairs(self) -> List[QAPair]:
        """Snapshot of all pairs in insertion order."""
        return list(self._pairs)

    def __len__(self) -> int:
        return len(self._pairs)

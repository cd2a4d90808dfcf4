"""
History providers - supply the prior Q/A turns relevant to the current question.

Two interchangeable strategies:
    window     - last N turns, filtered by relevance (filter_history)
    ephemeral  - every turn of the session, recalled by semantic top-k

Both return pairs in chronological order so the assembled context reads like
the conversation did.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import List

import numpy as np

from .similarity import best_similarity
from ..util.logging import logger
from ..vector.ephemeral_store import EphemeralConversationStore
from ..vector.types import QAPair


def filter_history(history: List[QAPair], current_embedding: np.ndarray,
                   max_keep: int = 3, threshold: float = 0.75) -> List[QAPair]:
    """
    Keep the most relevant historical pairs.

    Each pair is scored against current_embedding using its question embedding,
    or the better of question and answer embedding when the answer one exists.
    Pairs scoring below threshold are dropped. Of the rest, the max_keep best
    (earlier pair wins a tie) are returned in their original order.

    Args:
        history: Pairs in chronological order
        current_embedding: Embedding the current turn is matched with
        max_keep: Upper bound on returned pairs
        threshold: Minimum relevance score, inclusive

    Returns:
        Subsequence of history; never padded
    """
    if max_keep <= 0:
        return []

    scored = []
    for position, pair in enumerate(history):
        score = best_similarity(current_embedding, [pair.question_embedding, pair.answer_embedding])
        if score >= threshold:
            scored.append((position, score))

    best = sorted(scored, key=lambda item: -item[1])[:max_keep]
    return [history[position] for position in sorted(position for position, _ in best)]


class HistoryProvider(ABC):
    """Supplies relevant conversation history for one session."""

    strategy = "abstract"

    @abstractmethod
    def record(self, pair: QAPair) -> None:
        """Remember a completed turn."""
        pass

    @abstractmethod
    def relevant(self, embedding: np.ndarray) -> List[QAPair]:
        """Relevant pairs for the current turn, chronological."""
        pass

    @abstractmethod
    def reset(self) -> None:
        """Forget the whole conversation."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class WindowedHistoryProvider(HistoryProvider):
    """Recency window of the last `window` turns, relevance filtered."""

    strategy = "window"

    def __init__(self, window: int = 3, max_keep: int = 3, threshold: float = 0.75):
        self.window = window
        self.max_keep = max_keep
        self.threshold = threshold
        self._recent = deque(maxlen=window)

    def record(self, pair: QAPair) -> None:
        self._recent.append(pair)

    def relevant(self, embedding: np.ndarray) -> List[QAPair]:
        candidates = list(self._recent)
        kept = filter_history(candidates, embedding, self.max_keep, self.threshold)
        logger.log_history_selection(self.strategy, len(candidates), [p.sequence for p in kept])
        return kept

    def reset(self) -> None:
        self._recent.clear()

    def __len__(self) -> int:
        return len(self._recent)


class EphemeralHistoryProvider(HistoryProvider):
    """Whole-session semantic recall through an EphemeralConversationStore."""

    strategy = "ephemeral"

    def __init__(self, session_id: str = "default", top_k: int = 3, threshold: float = 0.75):
        self.session_id = session_id
        self.top_k = top_k
        self.threshold = threshold
        self.store = EphemeralConversationStore(session_id)

    def record(self, pair: QAPair) -> None:
        self.store.insert(pair)

    def relevant(self, embedding: np.ndarray) -> List[QAPair]:
        scored = self.store.query_scored(embedding, self.top_k)
        kept = [pair for pair, score in scored if score >= self.threshold]
        kept.sort(key=lambda pair: pair.sequence)
        logger.log_history_selection(self.strategy, len(self.store), [p.sequence for p in kept])
        return kept

    def reset(self) -> None:
        self.store = EphemeralConversationStore(self.session_id)

    def __len__(self) -> int:
        return len(self.store)

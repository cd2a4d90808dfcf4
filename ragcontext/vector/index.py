"""
Source collections - the static knowledge source queried by similarity.
The pipeline only ever reads from a collection; ingestion happens out of band.
"""

from abc import ABC, abstractmethod
from typing import List

import numpy as np

from ..core.similarity import similarities
from ..core.errors import DimensionMismatchError, VectorStoreError
from .types import SourceHit, SourcePassage


class ISourceCollection(ABC):
    """Abstract interface for a collection of source passages."""

    name = "source"

    @abstractmethod
    def add(self, passage: SourcePassage) -> None:
        """Add a single passage to the collection."""
        pass

    @abstractmethod
    def batch_add(self, passages: List[SourcePassage]) -> None:
        """Add multiple passages to the collection."""
        pass

    @abstractmethod
    def query(self, embedding: np.ndarray, top_k: int = 5) -> List[SourceHit]:
        """Return up to top_k passages ordered by descending similarity."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every passage."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass


class InMemorySourceCollection(ISourceCollection):
    """Simple in-memory collection using exact cosine similarity."""

    def __init__(self, name: str = "source"):
        self.name = name
        self._passages = {}  # passage_id -> SourcePassage, insertion ordered

    def add(self, passage: SourcePassage) -> None:
        """Add a passage; a passage with an existing id replaces the old one."""
        if self._passages:
            dimension = next(iter(self._passages.values())).embedding.shape[0]
            if passage.embedding.shape[0] != dimension:
                raise DimensionMismatchError(dimension, passage.embedding.shape[0])
        self._passages[passage.id] = passage

    def batch_add(self, passages: List[SourcePassage]) -> None:
        for passage in passages:
            self.add(passage)

    def query(self, embedding: np.ndarray, top_k: int = 5) -> List[SourceHit]:
        if not self._passages or top_k <= 0:
            return []

        passages = list(self._passages.values())
        try:
            scores = similarities(embedding, np.vstack([p.embedding for p in passages]))
        except DimensionMismatchError as e:
            raise VectorStoreError(f"Query against {self.name} failed: {e}") from e

        # Stable sort keeps insertion order among equal scores
        order = sorted(range(len(passages)), key=lambda i: -scores[i])
        return [SourceHit(passage=passages[i], score=float(scores[i])) for i in order[:top_k]]

    def clear(self) -> None:
        self._passages.clear()

    def __len__(self) -> int:
        return len(self._passages)

"""
FAISS-backed source collection.
Vectors are L2-normalised on insert so inner product equals cosine similarity.
"""

from typing import List

import numpy as np

from ..core.errors import DimensionMismatchError, VectorStoreError
from .index import ISourceCollection
from .types import SourceHit, SourcePassage


class FaissSourceCollection(ISourceCollection):
    """FAISS implementation of ISourceCollection (flat inner-product index)."""

    def __init__(self, dimension: int = 384, name: str = "source"):
        """
        Initialize FAISS source collection.

        Args:
            dimension: Dimension of the passage embeddings
            name: Collection name used in logs
        """
        import faiss
        self.faiss = faiss
        self.dimension = dimension
        self.name = name

        self.index = faiss.IndexFlatIP(dimension)

        # FAISS row -> passage; FAISS has no metadata storage of its own
        self.passages: List[SourcePassage] = []

    def _normalized(self, vector) -> np.ndarray:
        vector = np.asarray(vector, dtype=np.float32).reshape(-1)
        if vector.shape[0] != self.dimension:
            raise DimensionMismatchError(self.dimension, vector.shape[0])
        norm = np.linalg.norm(vector)
        if norm == 0:  # zero vectors stay zero and score 0 against everything
            return vector
        return vector / norm

    def add(self, passage: SourcePassage) -> None:
        self.batch_add([passage])

    def batch_add(self, passages: List[SourcePassage]) -> None:
        if not passages:
            return

        batch_vectors = np.vstack([self._normalized(p.embedding) for p in passages]).astype(np.float32)
        self.index.add(batch_vectors)
        self.passages.extend(passages)

    def query(self, embedding: np.ndarray, top_k: int = 5) -> List[SourceHit]:
        if not self.index.ntotal or top_k <= 0:
            return []

        try:
            query_array = self._normalized(embedding).reshape(1, -1)
        except DimensionMismatchError as e:
            raise VectorStoreError(f"Query against {self.name} failed: {e}") from e

        scores, indices = self.index.search(query_array, min(top_k, self.index.ntotal))

        hits = []
        for score, row in zip(scores[0], indices[0]):
            if row < 0:
                continue
            hits.append(SourceHit(passage=self.passages[row], score=float(np.clip(score, -1.0, 1.0))))
        return hits

    def clear(self) -> None:
        """Clear all passages by recreating the index."""
        self.index = self.faiss.IndexFlatIP(self.dimension)
        self.passages.clear()

    def __len__(self) -> int:
        return self.index.ntotal

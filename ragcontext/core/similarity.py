"""
Cosine similarity over precomputed embeddings.
Pure numpy; no I/O and no model calls.
"""

import numpy as np

from .errors import DimensionMismatchError


def cosine_similarity(a, b) -> float:
    """
    Cosine similarity between two embeddings.

    Returns 0.0 when either vector has zero norm. The result is clipped to
    [-1, 1] to absorb floating point drift.

    Raises:
        DimensionMismatchError: if the vectors have different lengths
    """
    a = np.asarray(a, dtype=np.float64).reshape(-1)
    b = np.asarray(b, dtype=np.float64).reshape(-1)
    if a.shape[0] != b.shape[0]:
        raise DimensionMismatchError(a.shape[0], b.shape[0])

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    score = float(np.dot(a, b) / (norm_a * norm_b))
    return max(-1.0, min(1.0, score))


def similarities(query, matrix) -> np.ndarray:
    """
    Cosine similarity of one query against every row of a matrix.

    Rows with zero norm score 0.0, as does everything when the query is zero.
    """
    query = np.asarray(query, dtype=np.float64).reshape(-1)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.size == 0:
        return np.zeros(0)
    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.shape[1] != query.shape[0]:
        raise DimensionMismatchError(query.shape[0], matrix.shape[1])

    query_norm = np.linalg.norm(query)
    row_norms = np.linalg.norm(matrix, axis=1)
    if query_norm == 0:
        return np.zeros(matrix.shape[0])

    denominators = row_norms * query_norm
    dots = matrix @ query
    scores = np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators > 0)
    return np.clip(scores, -1.0, 1.0)


def best_similarity(query, candidates) -> float:
    """Highest cosine similarity of the query against any non-None candidate."""
    scores = [cosine_similarity(query, c) for c in candidates if c is not None]
    return max(scores) if scores else 0.0

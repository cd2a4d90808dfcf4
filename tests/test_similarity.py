"""
Tests for the cosine similarity engine.
"""

import numpy as np
import pytest

from ragcontext.core.errors import DimensionMismatchError
from ragcontext.core.similarity import best_similarity, cosine_similarity, similarities


def test_similarity_is_symmetric():
    """sim(a, b) == sim(b, a) for random vectors."""
    rng = np.random.default_rng(7)
    for _ in range(50):
        a = rng.normal(size=16)
        b = rng.normal(size=16)
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))


def test_self_similarity_is_one():
    rng = np.random.default_rng(11)
    for _ in range(20):
        a = rng.normal(size=32)
        assert cosine_similarity(a, a) == pytest.approx(1.0)


def test_known_values():
    assert cosine_similarity([1.0, 0.0], [3.0, 4.0]) == pytest.approx(0.6)
    assert cosine_similarity([1.0, 0.0], [0.0, 2.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 1.0], [-2.0, -2.0]) == pytest.approx(-1.0)


def test_magnitude_does_not_matter():
    a = np.array([0.2, 0.5, -0.1])
    assert cosine_similarity(a, a * 40) == pytest.approx(1.0)


def test_zero_vector_scores_zero():
    """A zero norm on either side is defined as no similarity, not an error."""
    assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0
    assert cosine_similarity([1.0, 2.0, 3.0], [0.0, 0.0, 0.0]) == 0.0


def test_dimension_mismatch_raises():
    with pytest.raises(DimensionMismatchError) as exc_info:
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])

    assert exc_info.value.left == 2
    assert exc_info.value.right == 3


def test_result_stays_in_range():
    rng = np.random.default_rng(3)
    for _ in range(50):
        score = cosine_similarity(rng.normal(size=8), rng.normal(size=8))
        assert -1.0 <= score <= 1.0


def test_vectorised_matches_scalar():
    rng = np.random.default_rng(5)
    query = rng.normal(size=6)
    matrix = rng.normal(size=(4, 6))
    matrix[2] = 0.0

    scores = similarities(query, matrix)

    assert len(scores) == 4
    assert scores[2] == 0.0
    for row, score in zip(matrix, scores):
        assert score == pytest.approx(cosine_similarity(query, row))


def test_vectorised_dimension_mismatch():
    with pytest.raises(DimensionMismatchError):
        similarities([1.0, 0.0], np.ones((3, 4)))


def test_vectorised_empty_matrix():
    assert len(similarities([1.0, 0.0], np.zeros((0, 2)))) == 0


def test_best_similarity_ignores_missing_candidates():
    query = [1.0, 0.0]
    assert best_similarity(query, [[3.0, 4.0], None, [4.0, 3.0]]) == pytest.approx(0.8)
    assert best_similarity(query, [None]) == 0.0

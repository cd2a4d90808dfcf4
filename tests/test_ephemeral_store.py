"""
Tests for the session-scoped ephemeral conversation store.
"""

import numpy as np
import pytest

from ragcontext.vector.ephemeral_store import EphemeralConversationStore
from ragcontext.vector.types import QAPair, as_embedding


def pair(sequence, question_vector, answer_vector=None):
    return QAPair(
        question=f"question {sequence}",
        answer=f"answer {sequence}",
        question_embedding=as_embedding(question_vector),
        answer_embedding=as_embedding(answer_vector) if answer_vector is not None else None,
        sequence=sequence
    )


class TestEphemeralConversationStore:

    @pytest.fixture
    def store(self, unit):
        store = EphemeralConversationStore("chat-1")
        for sequence, score in enumerate([0.3, 0.9, 0.5, 0.7]):
            store.insert(pair(sequence, unit(score)))
        return store

    def test_insert_is_append_only(self, store):
        assert len(store) == 4
        assert [p.sequence for p in store.pairs()] == [0, 1, 2, 3]

    def test_query_top_k_descending(self, store):
        results = store.query_top_k(np.array([1.0, 0.0, 0.0]), k=3)

        assert [p.sequence for p in results] == [1, 3, 2]

    def test_scores_strictly_descending(self, store):
        scored = store.query_scored(np.array([1.0, 0.0, 0.0]), k=4)
        scores = [score for _, score in scored]

        assert scores == sorted(scores, reverse=True)
        assert len(set(scores)) == len(scores)

    def test_ties_broken_by_insertion_order(self, unit):
        store = EphemeralConversationStore()
        store.insert(pair(0, unit(0.4)))
        store.insert(pair(1, unit(0.8)))
        store.insert(pair(2, unit(0.8)))
        store.insert(pair(3, unit(0.8)))

        results = store.query_top_k(np.array([1.0, 0.0, 0.0]), k=4)

        assert [p.sequence for p in results] == [1, 2, 3, 0]

    def test_old_pairs_resurface_when_relevant(self, unit):
        """Recall is semantic, not recency biased."""
        store = EphemeralConversationStore()
        store.insert(pair(0, unit(0.95)))
        for sequence in range(1, 20):
            store.insert(pair(sequence, unit(0.1)))

        assert store.query_top_k(np.array([1.0, 0.0, 0.0]), k=1)[0].sequence == 0

    def test_answer_embedding_counts(self, unit):
        store = EphemeralConversationStore()
        store.insert(pair(0, unit(0.2), answer_vector=unit(0.9)))
        store.insert(pair(1, unit(0.5)))

        scored = store.query_scored(np.array([1.0, 0.0, 0.0]), k=2)

        assert scored[0][0].sequence == 0
        assert scored[0][1] == pytest.approx(0.9)

    def test_query_never_mutates(self, store):
        before = store.pairs()
        store.query_top_k(np.array([0.0, 1.0, 0.0]), k=2)

        assert store.pairs() == before

    def test_k_bounds(self, store):
        assert store.query_top_k(np.array([1.0, 0.0, 0.0]), k=0) == []
        assert len(store.query_top_k(np.array([1.0, 0.0, 0.0]), k=10)) == 4

    def test_empty_store(self):
        assert EphemeralConversationStore().query_top_k(np.array([1.0, 0.0]), k=3) == []

"""
Test cases for the FAISS source collection.
"""

import numpy as np
import pytest

from ragcontext.core.errors import DimensionMismatchError, VectorStoreError
from ragcontext.vector import FaissSourceCollection, SourcePassage, as_embedding


def passage(passage_id, vector):
    return SourcePassage(id=passage_id, text=f"text {passage_id}", embedding=as_embedding(vector),
                         metadata={"source": "manual.pdf"})


def test_faiss_collection_initialization():
    collection = FaissSourceCollection(dimension=8, name="kb")

    assert collection.dimension == 8
    assert collection.name == "kb"
    assert len(collection) == 0


def test_faiss_collection_add_and_query():
    collection = FaissSourceCollection(dimension=4)
    collection.batch_add([
        passage("first", [1.0, 0.0, 0.0, 0.0]),
        passage("second", [0.0, 1.0, 0.0, 0.0]),
        passage("mixed", [1.0, 1.0, 0.0, 0.0]),
    ])

    hits = collection.query(np.array([1.0, 0.0, 0.0, 0.0]), top_k=3)

    assert len(collection) == 3
    assert [h.passage.id for h in hits] == ["first", "mixed", "second"]
    assert hits[0].score == pytest.approx(1.0, abs=1e-5)
    assert hits[1].score == pytest.approx(np.sqrt(0.5), abs=1e-5)
    assert hits[0].passage.metadata["source"] == "manual.pdf"


def test_faiss_scores_are_cosine_not_inner_product():
    """Stored and query vectors are normalised, so magnitude is ignored."""
    collection = FaissSourceCollection(dimension=2)
    collection.add(passage("long", [30.0, 40.0]))

    hits = collection.query(np.array([10.0, 0.0]), top_k=1)

    assert hits[0].score == pytest.approx(0.6, abs=1e-5)


def test_faiss_top_k_larger_than_collection():
    collection = FaissSourceCollection(dimension=2)
    collection.add(passage("only", [1.0, 0.0]))

    assert len(collection.query(np.array([1.0, 0.0]), top_k=10)) == 1


def test_faiss_dimension_checks():
    collection = FaissSourceCollection(dimension=3)

    with pytest.raises(DimensionMismatchError):
        collection.add(passage("bad", [1.0, 0.0]))

    collection.add(passage("good", [1.0, 0.0, 0.0]))
    with pytest.raises(VectorStoreError):
        collection.query(np.array([1.0, 0.0]))


def test_faiss_clear():
    collection = FaissSourceCollection(dimension=2)
    collection.add(passage("p", [1.0, 0.0]))
    collection.clear()

    assert len(collection) == 0
    assert collection.query(np.array([1.0, 0.0])) == []

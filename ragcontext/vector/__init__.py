"""
Vector layer - embeddings, source collections and the ephemeral conversation store.
"""

# Package initialization for vector module
from .index import ISourceCollection, InMemorySourceCollection
from .faiss_store import FaissSourceCollection
from .ephemeral_store import EphemeralConversationStore
from .types import Embedding, SourcePassage, SourceHit, QAPair, HypotheticalAnswer, as_embedding
from .embeddings import (
    IEmbeddingProvider,
    DeterministicHashEmbedding,
    SentenceTransformerEmbedding,
    OllamaEmbedding,
    HttpEmbedding,
    Embedder
)

__all__ = [
    'ISourceCollection',
    'InMemorySourceCollection',
    'FaissSourceCollection',
    'EphemeralConversationStore',
    'Embedding',
    'SourcePassage',
    'SourceHit',
    'QAPair',
    'HypotheticalAnswer',
    'as_embedding',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'OllamaEmbedding',
    'HttpEmbedding',
    'Embedder'
]

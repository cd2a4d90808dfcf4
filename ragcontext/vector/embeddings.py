"""
Embedding providers and the Embedder used by the pipeline.

Providers talk to one embedding backend each and raise EmbeddingServiceError on
any failure. The Embedder adds dimension checks and an optional bounded retry.
"""

from abc import ABC, abstractmethod
import hashlib
import time

import httpx
import numpy as np
import ollama
import requests

from ..core.errors import EmbeddingServiceError
from ..util.logging import logger
from .types import Embedding, as_embedding


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    name = "abstract"

    @abstractmethod
    def embed_text(self, text: str) -> list[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for testing purposes.

    Identical text always maps to the identical vector, which makes it usable
    offline and in tests without any model dependency. It carries no semantic
    signal: different texts are effectively random directions.
    """

    name = "hash"

    def __init__(self, dimension: int = 384):
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        """Generate deterministic embedding vector using chained sha256 blocks."""
        vector = []
        block = 0
        while len(vector) < self.dimension:
            digest = hashlib.sha256(f"{block}:{text}".encode()).digest()
            for i in range(0, len(digest), 4):
                value = int.from_bytes(digest[i:i + 4], "big")
                # Map to [-1, 1] for cosine similarity
                vector.append((value / (2**32)) * 2 - 1)
            block += 1

        return vector[:self.dimension]

    def get_dimension(self) -> int:
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Local sentence-transformers model, loaded on first use."""

    name = "sentence-transformers"

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            try:
                self._model = SentenceTransformer(self.model_name)
            except Exception as e:
                raise EmbeddingServiceError(f"Cannot load embedding model {self.model_name}: {e}") from e
        return self._model

    def embed_text(self, text: str) -> list[float]:
        try:
            embedding = self.model.encode(text, convert_to_tensor=False)
        except EmbeddingServiceError:
            raise
        except Exception as e:
            raise EmbeddingServiceError(f"Encoding failed: {e}") from e
        return embedding.tolist()

    def get_dimension(self) -> int:
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


class OllamaEmbedding(IEmbeddingProvider):
    """Embeddings from a local Ollama server."""

    name = "ollama"

    def __init__(self, model_name: str = "nomic-embed-text", dimension: int = 768):
        self.model_name = model_name
        self.dimension = dimension

    def embed_text(self, text: str) -> list[float]:
        try:
            response = ollama.embed(model=self.model_name, input=text)
        except (ollama.ResponseError, ollama.RequestError, httpx.HTTPError, ConnectionError) as e:
            raise EmbeddingServiceError(f"Ollama embedding error: {e}") from e

        embeddings = response.get('embeddings') or []
        if not embeddings:
            raise EmbeddingServiceError("Ollama returned no embedding")
        return list(embeddings[0])

    def get_dimension(self) -> int:
        return self.dimension


class HttpEmbedding(IEmbeddingProvider):
    """
    OpenAI-compatible embeddings endpoint (POST {endpoint}/embeddings).

    Args:
        endpoint: Base URL, e.g. https://api.openai.com/v1
        model_name: Model identifier sent with every request
        api_key: Optional bearer token
        dimension: Expected vector size (1536 for text-embedding-ada-002)
        timeout: Request timeout in seconds
    """

    name = "http"

    def __init__(self, endpoint: str, model_name: str = "text-embedding-ada-002",
                 api_key: str = None, dimension: int = 1536, timeout: float = 30.0):
        self.endpoint = endpoint.rstrip("/")
        self.model_name = model_name
        self.api_key = api_key
        self.dimension = dimension
        self.timeout = timeout

    def embed_text(self, text: str) -> list[float]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = requests.post(
                f"{self.endpoint}/embeddings",
                json={"model": self.model_name, "input": text},
                headers=headers,
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise EmbeddingServiceError(f"Embedding request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingServiceError(f"Embedding response is not JSON: {e}") from e

        try:
            return list(payload["data"][0]["embedding"])
        except (KeyError, IndexError, TypeError) as e:
            raise EmbeddingServiceError("Malformed embedding response") from e

    def get_dimension(self) -> int:
        return self.dimension


class Embedder:
    """
    Turns text into embeddings through one provider.

    Failures surface as EmbeddingServiceError. Retries happen only when
    retry_times > 0, with exponential backoff starting at backoff_sec.
    Every vector returned by one Embedder has the same dimension.
    """

    def __init__(self, provider: IEmbeddingProvider, retry_times: int = 0, backoff_sec: float = 0.5):
        self.provider = provider
        self.retry_times = max(0, retry_times)
        self.backoff_sec = backoff_sec
        self._dimension = None

    @property
    def dimension(self):
        """Dimension seen so far, or None before the first embedding."""
        return self._dimension

    def embed(self, text: str) -> Embedding:
        attempts = self.retry_times + 1
        for attempt in range(attempts):
            try:
                values = self.provider.embed_text(text)
                break
            except EmbeddingServiceError as e:
                logger.log_embedding_call(self.provider.name, text, "failed", {
                    "attempt": attempt + 1,
                    "error": str(e)
                })
                if attempt == attempts - 1:
                    raise
                time.sleep(self.backoff_sec * (2 ** attempt))

        try:
            vector = as_embedding(values)
        except (TypeError, ValueError) as e:
            raise EmbeddingServiceError(f"Embedding provider returned a malformed vector: {e}") from e

        if vector.size == 0 or not np.all(np.isfinite(vector)):
            raise EmbeddingServiceError("Embedding provider returned an empty or non-finite vector")

        if self._dimension is None:
            self._dimension = vector.shape[0]
        elif vector.shape[0] != self._dimension:
            raise EmbeddingServiceError(
                f"Embedding dimension {vector.shape[0]} does not match expected dimension {self._dimension}"
            )

        logger.log_embedding_call(self.provider.name, text, details={"dimension": vector.shape[0]})
        return vector

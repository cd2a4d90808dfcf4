"""
Pipeline configuration.

Settings are read from the environment (and a .env file) once at process start
into a frozen PipelineSettings object, which is then passed explicitly to every
component. Nothing reads os.environ after load_settings().
"""

import os
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


DEFAULT_NO_ANSWER_MESSAGE = "No answer"


class PipelineSettings(BaseModel):
    """Immutable configuration for one process."""

    model_config = ConfigDict(frozen=True)

    # Content
    collection_name: str = ""
    system_prompt: str = ""
    post_prompt: str = ""
    error_message: str = ""
    no_answer_message: str = DEFAULT_NO_ANSWER_MESSAGE

    # Scope gate
    scope_threshold: float = 0.75
    scope_aggregation: Literal["max", "mean"] = "max"
    scope_sample_size: int = 5
    scope_description: str = ""

    # Source retrieval
    passage_threshold: float = 0.75
    source_top_k: int = 5

    # History
    history_strategy: Literal["window", "ephemeral"] = "window"
    history_window: int = 3
    history_max_keep: int = 3
    history_threshold: float = 0.75
    qa_max_chars: int = 1500

    # Assembly
    context_max_length: int = 8000

    # Embeddings
    embed_provider: Literal["hash", "sentence-transformers", "ollama", "http"] = "hash"
    embed_model: str = "all-MiniLM-L6-v2"
    embed_dim: int = 384
    embed_endpoint: str = ""
    embed_api_key: Optional[str] = None
    embed_retry_times: int = 0

    # Language models
    hypothetical_enabled: bool = True
    hypothetical_model: str = "llama3.1"
    hypothetical_max_tokens: int = 128
    chat_model: str = "llama3.1"

    # Source collection backend
    vector_provider: Literal["memory", "faiss"] = "memory"

    @field_validator('scope_threshold', 'passage_threshold', 'history_threshold')
    @classmethod
    def threshold_in_cosine_range(cls, v):
        if not -1.0 <= v <= 1.0:
            raise ValueError('thresholds must be within [-1, 1]')
        return v

    @field_validator('scope_sample_size', 'source_top_k', 'history_window', 'embed_dim',
                     'context_max_length', 'qa_max_chars', 'hypothetical_max_tokens')
    @classmethod
    def must_be_positive(cls, v):
        if v < 1:
            raise ValueError('must be >= 1')
        return v

    @field_validator('history_max_keep', 'embed_retry_times')
    @classmethod
    def must_not_be_negative(cls, v):
        if v < 0:
            raise ValueError('must be >= 0')
        return v

    @model_validator(mode='after')
    def http_provider_needs_endpoint(self):
        if self.embed_provider == "http" and not self.embed_endpoint:
            raise ValueError('embed_endpoint is required when embed_provider is "http"')
        return self


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def load_settings(env_file: Optional[str] = None) -> PipelineSettings:
    """Load settings from the environment, after applying an optional .env file."""
    load_dotenv(env_file)

    return PipelineSettings(
        collection_name=os.getenv("COLLECTION_NAME", ""),
        system_prompt=os.getenv("SYSTEM_PROMPT", ""),
        post_prompt=os.getenv("POST_PROMPT", ""),
        error_message=os.getenv("ERROR_MESSAGE", ""),
        no_answer_message=os.getenv("NO_ANSWER_MESSAGE", DEFAULT_NO_ANSWER_MESSAGE),
        scope_threshold=float(os.getenv("SCOPE_THRESHOLD", "0.75")),
        scope_aggregation=os.getenv("SCOPE_AGGREGATION", "max"),  # max|mean
        scope_sample_size=int(os.getenv("SCOPE_SAMPLE_SIZE", "5")),
        scope_description=os.getenv("SCOPE_DESCRIPTION", ""),
        passage_threshold=float(os.getenv("PASSAGE_THRESHOLD", "0.75")),
        source_top_k=int(os.getenv("SOURCE_TOP_K", "5")),
        history_strategy=os.getenv("HISTORY_STRATEGY", "window"),  # window|ephemeral
        history_window=int(os.getenv("HISTORY_WINDOW", "3")),
        history_max_keep=int(os.getenv("HISTORY_MAX_KEEP", "3")),
        history_threshold=float(os.getenv("HISTORY_THRESHOLD", "0.75")),
        qa_max_chars=int(os.getenv("QA_MAX_CHARS", "1500")),
        context_max_length=int(os.getenv("CONTEXT_MAX_LENGTH", "8000")),
        embed_provider=os.getenv("EMBED_PROVIDER", "hash"),  # hash|sentence-transformers|ollama|http
        embed_model=os.getenv("EMBED_MODEL", "all-MiniLM-L6-v2"),
        embed_dim=int(os.getenv("EMBED_DIM", "384")),
        embed_endpoint=os.getenv("EMBED_ENDPOINT", ""),
        embed_api_key=os.getenv("EMBED_API_KEY"),
        embed_retry_times=int(os.getenv("EMBED_RETRY_TIMES", "0")),
        hypothetical_enabled=_env_bool("HYPOTHETICAL_ENABLED", "true"),
        hypothetical_model=os.getenv("HYPOTHETICAL_MODEL", "llama3.1"),
        hypothetical_max_tokens=int(os.getenv("HYPOTHETICAL_MAX_TOKENS", "128")),
        chat_model=os.getenv("CHAT_MODEL", "llama3.1"),
        vector_provider=os.getenv("VECTOR_PROVIDER", "memory"),  # memory|faiss
    )


def validate_settings(settings: PipelineSettings) -> List[str]:
    """Return configuration issues that are legal but almost certainly mistakes."""
    issues = []

    if not settings.collection_name:
        issues.append("COLLECTION_NAME is empty")

    if not settings.error_message:
        issues.append("ERROR_MESSAGE is empty; failed turns will reply with an empty message")

    if settings.history_strategy == "window" and settings.history_max_keep > settings.history_window:
        issues.append("HISTORY_MAX_KEEP exceeds HISTORY_WINDOW; at most HISTORY_WINDOW pairs can be kept")

    if settings.embed_provider == "hash":
        issues.append("EMBED_PROVIDER=hash carries no semantic signal; use it for testing only")

    fixed_length = len(settings.system_prompt) + len(settings.post_prompt)
    if fixed_length >= settings.context_max_length:
        issues.append("SYSTEM_PROMPT and POST_PROMPT alone exceed CONTEXT_MAX_LENGTH")

    return issues


def get_embedding_provider(settings: PipelineSettings):
    """Get configured embedding provider implementation."""
    if settings.embed_provider == "sentence-transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(settings.embed_model)
    elif settings.embed_provider == "ollama":
        from ..vector.embeddings import OllamaEmbedding
        return OllamaEmbedding(settings.embed_model, dimension=settings.embed_dim)
    elif settings.embed_provider == "http":
        from ..vector.embeddings import HttpEmbedding
        return HttpEmbedding(
            settings.embed_endpoint,
            model_name=settings.embed_model,
            api_key=settings.embed_api_key,
            dimension=settings.embed_dim
        )
    else:
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(settings.embed_dim)


def get_embedder(settings: PipelineSettings):
    """Embedder over the configured provider with the configured retry policy."""
    from ..vector.embeddings import Embedder
    return Embedder(get_embedding_provider(settings), retry_times=settings.embed_retry_times)


def get_source_collection(settings: PipelineSettings):
    """Get configured source collection implementation."""
    if settings.vector_provider == "faiss":
        from ..vector.faiss_store import FaissSourceCollection
        return FaissSourceCollection(settings.embed_dim, name=settings.collection_name or "source")
    else:
        from ..vector.index import InMemorySourceCollection
        return InMemorySourceCollection(name=settings.collection_name or "source")


def get_history_provider(settings: PipelineSettings, session_id: str = "default"):
    """Get a fresh history provider for one conversation session."""
    from .history import EphemeralHistoryProvider, WindowedHistoryProvider

    if settings.history_strategy == "ephemeral":
        return EphemeralHistoryProvider(
            session_id=session_id,
            top_k=settings.history_max_keep,
            threshold=settings.history_threshold
        )
    return WindowedHistoryProvider(
        window=settings.history_window,
        max_keep=settings.history_max_keep,
        threshold=settings.history_threshold
    )

"""
Error taxonomy for the context pipeline.

External-service failures degrade locally wherever a fallback exists;
ScopeRejected is a normal terminal outcome, not a failure.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class EmbeddingServiceError(PipelineError):
    """Embedding provider failed (network, timeout, malformed or empty response)."""


class LanguageModelError(PipelineError):
    """Auxiliary or primary language model call failed."""


class DimensionMismatchError(PipelineError):
    """Two embeddings of different dimensionality were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Embedding dimension mismatch: {left} != {right}")
        self.left = left
        self.right = right


class VectorStoreError(PipelineError):
    """Source collection query failed."""


class ScopeRejected(PipelineError):
    """Question is unrelated to the knowledge source."""

    def __init__(self, score: float, threshold: float):
        super().__init__(f"Scope score {score:.3f} below threshold {threshold:.3f}")
        self.score = score
        self.threshold = threshold


class BudgetExceeded(PipelineError):
    """Rendered context is longer than the configured budget. Handled by truncation."""

    def __init__(self, length: int, budget: int):
        super().__init__(f"Context length {length} exceeds budget {budget}")
        self.length = length
        self.budget = budget

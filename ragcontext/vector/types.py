"""
Value types shared by the embedder, source collections and the conversation store.
"""

from typing import Dict, Optional
from dataclasses import dataclass, field
from datetime import datetime
import numpy as np


Embedding = np.ndarray


def as_embedding(values) -> Embedding:
    """Copy values into a read-only float vector."""
    vector = np.array(values, dtype=np.float64).reshape(-1)
    vector.setflags(write=False)
    return vector


@dataclass(frozen=True)
class SourcePassage:
    """A chunk of source material held by a source collection."""

    id: str
    """Identifier unique within the collection"""

    text: str
    """The passage text"""

    embedding: Embedding
    """Embedding of the passage text"""

    metadata: Dict[str, object] = field(default_factory=dict)
    """Source identifier and anything else the collection stores"""


@dataclass(frozen=True)
class SourceHit:
    """A passage returned by a collection query together with its similarity."""

    passage: SourcePassage
    score: float


@dataclass(frozen=True)
class QAPair:
    """One completed question/answer turn of a conversation."""

    question: str
    answer: str
    question_embedding: Embedding
    answer_embedding: Optional[Embedding] = None
    sequence: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def as_text(self, max_chars: int = 1500) -> str:
        """Render the pair the way it is embedded and shown in the prompt."""
        return f"{self.question}\n {self.answer}"[:max_chars]


@dataclass(frozen=True)
class HypotheticalAnswer:
    """Unverified draft answer used only to sharpen retrieval."""

    text: str
    embedding: Optional[Embedding] = None

"""
Context pipeline - turns one user question into a prompt context.

Order of work for one turn:
    1. hypothetical answer (auxiliary model)
    2. embeddings of the hypothetical answer and the question
    3. source query and scope gate
    4. history selection through the session's HistoryProvider
    5. assembly

Relevance decisions are numeric only; the primary model is never consulted
before the context is ready. A rejected question never reaches it at all.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .assembler import ContextAssembler
from .config import PipelineSettings, get_embedder
from .errors import EmbeddingServiceError, LanguageModelError, ScopeRejected, VectorStoreError
from .history import HistoryProvider
from .scope_gate import ScopeGate
from ..util.logging import logger
from ..vector.embeddings import Embedder
from ..vector.index import ISourceCollection
from ..vector.types import Embedding, HypotheticalAnswer, QAPair, SourceHit

ENGAGED = "engaged"
REJECTED = "rejected"
ERROR = "error"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""
    status: str
    context: str = ""
    message: str = ""
    question_embedding: Optional[Embedding] = None
    source_hits: List[SourceHit] = field(default_factory=list)
    history: List[QAPair] = field(default_factory=list)
    scope_score: Optional[float] = None
    hypothetical_used: bool = False

    @property
    def engaged(self) -> bool:
        return self.status == ENGAGED


class ContextPipeline:
    """
    Builds enriched prompt contexts for one knowledge source.

    The pipeline itself holds no conversation state; every call receives the
    session's HistoryProvider.
    """

    def __init__(self, settings: PipelineSettings, embedder: Embedder, collection: ISourceCollection,
                 hypothetical_generator=None, scope_gate: ScopeGate = None,
                 assembler: ContextAssembler = None):
        self.settings = settings
        self.embedder = embedder
        self.collection = collection
        self.hypothetical_generator = hypothetical_generator
        self.scope_gate = scope_gate or ScopeGate(settings.scope_threshold, settings.scope_aggregation)
        self.assembler = assembler or ContextAssembler(settings.context_max_length,
                                                       qa_max_chars=settings.qa_max_chars)
        self._description_embedding = None

    @classmethod
    def from_settings(cls, settings: PipelineSettings, collection: ISourceCollection) -> "ContextPipeline":
        """Wire the configured embedder and hypothetical answer model around a collection."""
        generator = None
        if settings.hypothetical_enabled:
            from ..agents.hypothetical import HypotheticalAnswerGenerator
            generator = HypotheticalAnswerGenerator(settings.hypothetical_model,
                                                    max_tokens=settings.hypothetical_max_tokens)
        return cls(settings, get_embedder(settings), collection, hypothetical_generator=generator)

    def build_context(self, question: str, history: HistoryProvider) -> PipelineResult:
        """
        Run the pipeline for one question.

        Returns:
            PipelineResult with status engaged (context set), rejected
            (no_answer_message) or error (error_message)
        """
        hypothetical = self._hypothetical_answer(question)
        question_embedding = self._embed_or_none(question, "question")

        gating_embedding = ScopeGate.gating_embedding(question_embedding, hypothetical)
        if gating_embedding is None:
            logger.log_operation("pipeline.turn", "aborted", {"reason": "no embedding available"})
            return PipelineResult(status=ERROR, message=self.settings.error_message)

        scope_score = None
        source_hits: List[SourceHit] = []
        try:
            primary_hits, secondary_hits = self._query_collection(gating_embedding, question_embedding, hypothetical)
        except VectorStoreError as e:
            # Collection unavailable: no passages and no gate, history only
            logger.log_operation("retrieval.source", "degraded", {"error": str(e)})
        else:
            samples = [hit.passage.embedding for hit in primary_hits[:self.settings.scope_sample_size]]
            description_embedding = self._scope_description_embedding()
            if description_embedding is not None:
                samples.append(description_embedding)

            try:
                scope_score = self.scope_gate.enforce(question_embedding, hypothetical, samples)
            except ScopeRejected as e:
                return PipelineResult(
                    status=REJECTED,
                    message=self.settings.no_answer_message,
                    question_embedding=question_embedding,
                    scope_score=e.score,
                    hypothetical_used=hypothetical is not None
                )
            source_hits = self._merge_hits(primary_hits + secondary_hits)
            logger.log_retrieval(self.collection.name, len(primary_hits) + len(secondary_hits), len(source_hits))

        relevant_history = history.relevant(gating_embedding)
        context = self.assembler.assemble(
            source_hits,
            relevant_history,
            system_prompt=self.settings.system_prompt,
            post_prompt=self.settings.post_prompt
        )

        return PipelineResult(
            status=ENGAGED,
            context=context,
            question_embedding=question_embedding,
            source_hits=source_hits,
            history=relevant_history,
            scope_score=scope_score,
            hypothetical_used=hypothetical is not None
        )

    def make_pair(self, question: str, answer: str, question_embedding: Optional[Embedding],
                  sequence: int) -> Optional[QAPair]:
        """
        Build the QAPair for a completed turn.

        The answer side is embedded on the combined "question\\n answer" text,
        capped at qa_max_chars. Returns None when the question cannot be
        embedded, since such a pair could never be recalled.
        """
        if question_embedding is None:
            question_embedding = self._embed_or_none(question, "question")
            if question_embedding is None:
                return None

        pair = QAPair(question=question, answer=answer, question_embedding=question_embedding, sequence=sequence)
        answer_embedding = self._embed_or_none(pair.as_text(self.settings.qa_max_chars), "answer")
        if answer_embedding is not None:
            pair = dataclasses.replace(pair, answer_embedding=answer_embedding)
        return pair

    def _hypothetical_answer(self, question: str) -> Optional[HypotheticalAnswer]:
        """Generated and embedded hypothetical answer, or None to fall back to the question."""
        if self.hypothetical_generator is None:
            return None

        try:
            hypothetical = self.hypothetical_generator.generate(question)
        except LanguageModelError as e:
            logger.log_operation("pipeline.hypothetical", "degraded", {"error": str(e)})
            return None

        embedding = self._embed_or_none(hypothetical.text, "hypothetical")
        if embedding is None:
            return None
        return dataclasses.replace(hypothetical, embedding=embedding)

    def _embed_or_none(self, text: str, purpose: str) -> Optional[Embedding]:
        try:
            return self.embedder.embed(text)
        except EmbeddingServiceError as e:
            logger.log_operation(f"pipeline.embed_{purpose}", "degraded", {"error": str(e)})
            return None

    def _scope_description_embedding(self) -> Optional[Embedding]:
        if not self.settings.scope_description:
            return None
        if self._description_embedding is None:
            self._description_embedding = self._embed_or_none(self.settings.scope_description, "scope_description")
        return self._description_embedding

    def _query_collection(self, gating_embedding: Embedding, question_embedding: Optional[Embedding],
                          hypothetical: Optional[HypotheticalAnswer]):
        """
        Query with the gating embedding, and with the question as well when the
        gate used the hypothetical answer.
        """
        limit = max(self.settings.scope_sample_size, self.settings.source_top_k)
        primary_hits = self.collection.query(gating_embedding, limit)

        secondary_hits = []
        if hypothetical is not None and question_embedding is not None:
            secondary_hits = self.collection.query(question_embedding, self.settings.source_top_k)
        return primary_hits, secondary_hits

    def _merge_hits(self, hits: List[SourceHit]) -> List[SourceHit]:
        """Dedupe by passage id keeping the best score, threshold, order and cap."""
        best: Dict[str, SourceHit] = {}
        for hit in hits:
            current = best.get(hit.passage.id)
            if current is None or hit.score > current.score:
                best[hit.passage.id] = hit

        kept = [hit for hit in best.values() if hit.score >= self.settings.passage_threshold]
        kept.sort(key=lambda hit: -hit.score)
        return kept[:self.settings.source_top_k]

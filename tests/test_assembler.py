"""
Tests for context assembly and budget truncation.
"""

import numpy as np
import pytest

from ragcontext.core.assembler import HISTORY_HEADER, SOURCE_HEADER, ContextAssembler
from ragcontext.vector.types import QAPair, SourceHit, SourcePassage, as_embedding

VECTOR = as_embedding([1.0, 0.0])


def hit(passage_id, text, score):
    return SourceHit(passage=SourcePassage(id=passage_id, text=text, embedding=VECTOR), score=score)


def qa(sequence, question, answer):
    return QAPair(question=question, answer=answer, question_embedding=VECTOR, sequence=sequence)


class TestContextAssembler:

    def test_section_order(self):
        assembler = ContextAssembler(max_length=10_000)

        context = assembler.assemble(
            [hit("p1", "PASSAGE-ONE", 0.8)],
            [qa(0, "EARLIER-Q", "EARLIER-A")],
            system_prompt="SYSTEM",
            post_prompt="POST"
        )

        positions = [context.index(marker) for marker in
                     ["SYSTEM", SOURCE_HEADER, "PASSAGE-ONE", HISTORY_HEADER, "EARLIER-Q", "POST"]]
        assert positions == sorted(positions)

    def test_passages_by_descending_relevance(self):
        assembler = ContextAssembler(max_length=10_000)

        context = assembler.assemble(
            [hit("a", "LOW", 0.76), hit("b", "HIGH", 0.95), hit("c", "MID", 0.85)], [], "", ""
        )

        assert context.index("HIGH") < context.index("MID") < context.index("LOW")

    def test_history_stays_chronological(self):
        assembler = ContextAssembler(max_length=10_000)

        context = assembler.assemble(
            [], [qa(0, "FIRST-Q", "a"), qa(3, "SECOND-Q", "b")], "", ""
        )

        assert context.index("FIRST-Q") < context.index("SECOND-Q")

    def test_empty_sections_are_omitted(self):
        context = ContextAssembler().assemble([], [], "SYSTEM", "POST")

        assert context == "SYSTEM\n\nPOST"
        assert SOURCE_HEADER not in context
        assert HISTORY_HEADER not in context

    def test_history_dropped_before_passages(self):
        """Budget 500, about 600 units of content: history goes, passages stay."""
        assembler = ContextAssembler(max_length=500)
        passages = [hit("p1", "P" * 200, 0.9), hit("p2", "Q" * 150, 0.8)]
        history = [qa(0, "H" * 100, "h" * 100)]

        context = assembler.assemble(passages, history, system_prompt="S" * 20, post_prompt="T" * 20)

        assert len(context) <= 500
        assert "H" * 100 not in context
        assert "P" * 200 in context
        assert "Q" * 150 in context

    def test_oldest_history_dropped_first(self):
        history = [qa(0, "OLD" * 10, "x"), qa(1, "NEW" * 10, "y")]
        full = ContextAssembler(max_length=10_000).assemble([], history, "", "")
        budget = len(full) - 5

        context = ContextAssembler(max_length=budget).assemble([], history, "", "")

        assert "OLD" not in context
        assert "NEW" * 10 in context

    def test_least_relevant_passage_dropped_after_history(self):
        passages = [hit("best", "B" * 100, 0.95), hit("worst", "W" * 100, 0.76)]
        history = [qa(0, "H" * 50, "h")]

        context = ContextAssembler(max_length=150).assemble(passages, history, "", "")

        assert "H" * 50 not in context
        assert "W" * 100 not in context
        assert "B" * 100 in context
        assert len(context) <= 150

    def test_prompts_alone_over_budget_are_clipped(self):
        context = ContextAssembler(max_length=50).assemble(
            [hit("p", "passage", 0.9)], [], system_prompt="S" * 80, post_prompt="T" * 10
        )

        assert len(context) == 50
        assert context == "S" * 50

    def test_token_budget_with_custom_length(self):
        assembler = ContextAssembler(max_length=12, length_fn=lambda text: len(text.split()))
        passages = [hit("p", "one two three four", 0.9)]
        history = [qa(0, "five six seven", "eight nine ten")]

        context = assembler.assemble(passages, history, "alpha beta", "omega")

        assert len(context.split()) <= 12
        assert "one two three four" in context
        assert "five six seven" not in context

    def test_qa_text_is_capped(self):
        assembler = ContextAssembler(max_length=10_000, qa_max_chars=20)

        context = assembler.assemble([], [qa(0, "Q" * 50, "A" * 50)], "", "")

        assert "Q" * 21 not in context

    def test_output_is_deterministic(self):
        assembler = ContextAssembler(max_length=300)
        args = ([hit("a", "x" * 120, 0.9), hit("b", "y" * 120, 0.9)], [qa(0, "q" * 80, "a")], "sys", "post")

        assert assembler.assemble(*args) == assembler.assemble(*args)

    def test_inputs_not_mutated(self):
        passages = [hit("a", "x" * 300, 0.8), hit("b", "y" * 300, 0.9)]
        history = [qa(0, "q" * 300, "a")]

        ContextAssembler(max_length=100).assemble(passages, history, "", "")

        assert [h.passage.id for h in passages] == ["a", "b"]
        assert len(history) == 1

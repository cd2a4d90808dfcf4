"""
Context assembler - merges prompts, source passages and history into one
bounded prompt context.

Layout, in order:
    system prompt
    source passages, most relevant first
    history, chronological
    post prompt

Budget enforcement drops whole items, history before passages. History goes
oldest first and passages least relevant first. Only when the two prompts alone
exceed the budget is the text itself clipped.
"""

from typing import Callable, List, Sequence

from .errors import BudgetExceeded
from ..util.logging import logger
from ..vector.types import QAPair, SourceHit

SOURCE_HEADER = "Given the context:"
HISTORY_HEADER = "Relevant earlier conversation:"


class ContextAssembler:
    """Deterministic, budget-bounded prompt context builder."""

    def __init__(self, max_length: int = 8000, length_fn: Callable[[str], int] = len,
                 qa_max_chars: int = 1500):
        """
        Args:
            max_length: Budget in the units of length_fn
            length_fn: Measures rendered text; characters by default, swap in a tokenizer count for tokens
            qa_max_chars: Per-pair character cap when rendering history
        """
        self.max_length = max_length
        self.length_fn = length_fn
        self.qa_max_chars = qa_max_chars

    def render(self, source_hits: Sequence[SourceHit], history: Sequence[QAPair],
               system_prompt: str, post_prompt: str) -> str:
        blocks = []
        if system_prompt:
            blocks.append(system_prompt)
        if source_hits:
            blocks.append(SOURCE_HEADER + "\n" + "\n".join(hit.passage.text for hit in source_hits))
        if history:
            blocks.append(HISTORY_HEADER + "\n" + "\n".join(pair.as_text(self.qa_max_chars) for pair in history))
        if post_prompt:
            blocks.append(post_prompt)
        return "\n\n".join(blocks)

    def check_budget(self, text: str) -> None:
        length = self.length_fn(text)
        if length > self.max_length:
            raise BudgetExceeded(length, self.max_length)

    def assemble(self, source_hits: Sequence[SourceHit], filtered_history: Sequence[QAPair],
                 system_prompt: str = "", post_prompt: str = "") -> str:
        """
        Build the context string.

        Args:
            source_hits: Retrieved passages with scores, any order
            filtered_history: Relevant pairs, chronological
            system_prompt: Leading instructions
            post_prompt: Trailing instructions

        Returns:
            Context no longer than max_length
        """
        passages: List[SourceHit] = sorted(source_hits, key=lambda hit: -hit.score)
        history: List[QAPair] = list(filtered_history)
        dropped = 0

        while True:
            text = self.render(passages, history, system_prompt, post_prompt)
            try:
                self.check_budget(text)
                break
            except BudgetExceeded:
                if history:
                    history.pop(0)
                elif passages:
                    passages.pop()
                else:
                    text = self._clip(text)
                    break
                dropped += 1

        logger.log_assembly(self.length_fn(text), self.max_length, len(passages), len(history), dropped)
        return text

    def _clip(self, text: str) -> str:
        """Longest prefix of text that fits the budget."""
        low, high = 0, len(text)
        while low < high:
            middle = (low + high + 1) // 2
            if self.length_fn(text[:middle]) <= self.max_length:
                low = middle
            else:
                high = middle - 1
        return text[:low]

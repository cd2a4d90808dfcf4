"""
Hypothetical answer generation.

An auxiliary model drafts an answer from its own training knowledge, before
any source material is seen. The draft is embedded and used for retrieval
only, because answer-shaped text matches source passages better than the bare
question does. It is never shown to the user.
"""

from datetime import datetime

import httpx
import ollama

from ..core.errors import LanguageModelError
from ..util.logging import logger
from ..vector.types import HypotheticalAnswer

HYPOTHETICAL_SYSTEM_PROMPT = "You're an assistant bot with expertise in all domains of human knowledge."

HYPOTHETICAL_USER_PROMPT = (
    "You're preparing to answer questions about a specific source material, before ingesting "
    "the source material, you need to answer the question based on the knowledge you're trained "
    "on, here it is: `{question}`, please provide a concise answer in one paragraph, stay "
    "truthful and factual."
)


class HypotheticalAnswerGenerator:
    """Drafts plausible, unverified answers through an Ollama model."""

    def __init__(self, model_name: str, max_tokens: int = 128, temperature: float = 0.2):
        self.model_name = model_name
        self.max_tokens = max_tokens
        self.temperature = temperature

    def build_messages(self, question: str) -> list[dict]:
        return [
            {'role': 'system', 'content': HYPOTHETICAL_SYSTEM_PROMPT},
            {'role': 'user', 'content': HYPOTHETICAL_USER_PROMPT.format(question=question)}
        ]

    def generate(self, question: str) -> HypotheticalAnswer:
        """
        Draft an answer to the question.

        Returns:
            HypotheticalAnswer without an embedding; the pipeline embeds it

        Raises:
            LanguageModelError: model call failed or returned nothing
        """
        start_time = datetime.now()
        try:
            response = ollama.chat(
                model=self.model_name,
                messages=self.build_messages(question),
                options={
                    'temperature': self.temperature,
                    'num_predict': self.max_tokens
                }
            )
        except (ollama.ResponseError, ollama.RequestError, httpx.HTTPError, ConnectionError) as e:
            logger.log_llm_call("hypothetical", self.model_name, status="failed", details={"error": str(e)})
            raise LanguageModelError(f"Hypothetical answer generation failed: {e}") from e

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        content = (response.get('message', {}).get('content') or '').strip()
        if not content:
            logger.log_llm_call("hypothetical", self.model_name, duration_ms, status="failed",
                                details={"error": "empty response"})
            raise LanguageModelError("Hypothetical answer generation returned an empty response")

        logger.log_llm_call("hypothetical", self.model_name, duration_ms,
                            details={"response_length": len(content)})
        return HypotheticalAnswer(text=content)

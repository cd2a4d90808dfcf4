"""
Primary chat completion.

The pipeline hands its assembled context to a ChatCompletion. OllamaChatAgent
is the bundled implementation; any other backend only has to implement
complete().
"""

from abc import ABC, abstractmethod
from datetime import datetime

import httpx
import ollama

from ..core.errors import LanguageModelError
from ..util.logging import logger

USER_PROMPT = (
    "Here is the question you're to reply now: `{question}`. "
    "Please provide a concise answer, stay truthful and factual."
)


class ChatCompletion(ABC):
    """Interface to the primary answering model."""

    @abstractmethod
    def complete(self, context: str, question: str) -> str:
        """
        Answer the question using the assembled context as system prompt.

        Raises:
            LanguageModelError: the model could not produce an answer
        """
        pass


class OllamaChatAgent(ChatCompletion):
    """ChatCompletion backed by a local Ollama model."""

    def __init__(self, model_name: str, temperature: float = 0.7, max_tokens: int = 2048):
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _build_ollama_messages(self, context: str, question: str) -> list[dict]:
        messages = []
        if context:
            messages.append({'role': 'system', 'content': context})
        messages.append({'role': 'user', 'content': USER_PROMPT.format(question=question)})
        return messages

    def complete(self, context: str, question: str) -> str:
        start_time = datetime.now()
        try:
            response = ollama.chat(
                model=self.model_name,
                messages=self._build_ollama_messages(context, question),
                options={
                    'temperature': self.temperature,
                    'num_predict': self.max_tokens
                }
            )
        except (ollama.ResponseError, ollama.RequestError, httpx.HTTPError, ConnectionError) as e:
            logger.log_llm_call("answer", self.model_name, status="failed", details={"error": str(e)})
            raise LanguageModelError(f"Ollama model error: {e}") from e

        duration_ms = (datetime.now() - start_time).total_seconds() * 1000
        content = response.get('message', {}).get('content') or ''
        if not content.strip():
            logger.log_llm_call("answer", self.model_name, duration_ms, status="failed",
                                details={"error": "empty response"})
            raise LanguageModelError("Model returned an empty response")

        logger.log_llm_call("answer", self.model_name, duration_ms, details={"response_length": len(content)})
        return content

"""
Conversation sessions.

A session owns one HistoryProvider and lives for one conversation. Pairs are
recorded only after the primary model answered, so a failed turn leaves no
trace. "/new" discards the session's history and starts over.
"""

import re
from typing import Dict, Optional

from .config import PipelineSettings, get_history_provider
from .errors import LanguageModelError
from .history import HistoryProvider
from .pipeline import ContextPipeline
from ..agents.ollama_agent import ChatCompletion
from ..util.logging import logger

RESTART_COMMAND = "/new"
MAX_CONVERSATION_ID_LENGTH = 48


def conversation_id(name: str) -> str:
    """Derive a storage-safe id from a transport conversation name."""
    return re.sub(r"[^a-zA-Z0-9]", "-", name or "")[:MAX_CONVERSATION_ID_LENGTH]


class ConversationSession:
    """One conversation: history plus the turn counter."""

    def __init__(self, session_id: str, pipeline: ContextPipeline, chat: ChatCompletion,
                 history: HistoryProvider):
        self.session_id = session_id
        self.pipeline = pipeline
        self.chat = chat
        self.history = history
        self.turns = 0

    def handle_message(self, text: str) -> Optional[str]:
        """
        Reply to one user message.

        Returns:
            The answer, the rejection or error message, or None for the restart command
        """
        if text.strip().lower() == RESTART_COMMAND:
            self.restart()
            return None

        result = self.pipeline.build_context(text, self.history)
        if not result.engaged:
            logger.log_session_event(self.session_id, result.status, {"question": text})
            return result.message

        try:
            answer = self.chat.complete(result.context, text)
        except LanguageModelError as e:
            logger.log_operation("session.answer", "failed", {"session_id": self.session_id, "error": str(e)})
            return self.pipeline.settings.error_message

        pair = self.pipeline.make_pair(text, answer, result.question_embedding, sequence=self.turns)
        if pair is not None:
            self.history.record(pair)
        self.turns += 1
        logger.log_session_event(self.session_id, "answered", {
            "turn": self.turns,
            "passages": len(result.source_hits),
            "history": len(result.history)
        })
        return answer

    def restart(self) -> None:
        self.history.reset()
        self.turns = 0
        logger.log_session_event(self.session_id, "restarted")


class SessionRegistry:
    """In-process map of conversation ids to sessions. Nothing outlives the process."""

    def __init__(self, settings: PipelineSettings, pipeline: ContextPipeline, chat: ChatCompletion):
        self.settings = settings
        self.pipeline = pipeline
        self.chat = chat
        self._sessions: Dict[str, ConversationSession] = {}

    def get(self, conversation_name: str) -> ConversationSession:
        session_id = conversation_id(conversation_name)
        session = self._sessions.get(session_id)
        if session is None:
            session = ConversationSession(
                session_id,
                self.pipeline,
                self.chat,
                get_history_provider(self.settings, session_id)
            )
            self._sessions[session_id] = session
            logger.log_session_event(session_id, "created", {"strategy": session.history.strategy})
        return session

    def handle(self, conversation_name: str, text: str) -> Optional[str]:
        return self.get(conversation_name).handle_message(text)

    def close(self, conversation_name: str) -> bool:
        """End a session and discard its history."""
        session = self._sessions.pop(conversation_id(conversation_name), None)
        if session is None:
            return False
        session.history.reset()
        logger.log_session_event(session.session_id, "closed")
        return True

    def __len__(self) -> int:
        return len(self._sessions)

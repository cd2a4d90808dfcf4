"""
Structured operation logging for the context pipeline.
Thin wrapper around the standard logging module; user text is truncated before it is logged.
"""

import logging
import os
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for embedding, gating, history and assembly operations."""

    def __init__(self, name: str = "ragcontext"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status in ("failed", "aborted"):
            self.logger.error(message)
        elif status == "degraded":
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_embedding_call(self, provider: str, text: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a call to the embedding provider."""
        log_details = {"provider": provider, "text": truncate(text, 50)}
        if details:
            log_details.update(details)

        self.log_operation("embedding.create", status, log_details)

    def log_llm_call(self, purpose: str, model: str, duration_ms: float = None,
                     status: str = "success", details: Dict[str, Any] = None):
        """Log an auxiliary or primary language model call."""
        log_details = {"purpose": purpose, "model": model}
        if duration_ms is not None:
            log_details["duration_ms"] = round(duration_ms, 2)
        if details:
            log_details.update(details)

        self.log_operation(f"llm.{purpose}", status, log_details)

    def log_scope_decision(self, score: float, threshold: float, aggregation: str, samples: int):
        """Log a scope gate decision."""
        engaged = score >= threshold
        self.log_operation("scope_gate", "engaged" if engaged else "rejected", {
            "score": round(float(score), 4),
            "threshold": threshold,
            "aggregation": aggregation,
            "samples": samples
        })

    def log_retrieval(self, collection: str, hits: int, kept: int, status: str = "success"):
        """Log a source collection retrieval."""
        self.log_operation("retrieval.source", status, {
            "collection": collection,
            "hits": hits,
            "kept": kept
        })

    def log_history_selection(self, strategy: str, candidates: int, kept: List[int]):
        """Log which history pairs survived relevance filtering."""
        self.log_operation(f"history.{strategy}", "success", {
            "candidates": candidates,
            "kept_sequences": kept
        })

    def log_assembly(self, length: int, budget: int, passages: int, history: int, dropped: int = 0):
        """Log the final context assembly."""
        self.log_operation("context.assemble", "truncated" if dropped else "success", {
            "length": length,
            "budget": budget,
            "passages": passages,
            "history": history,
            "dropped": dropped
        })

    def log_session_event(self, session_id: str, action: str, details: Dict[str, Any] = None):
        """Log a conversation session event."""
        log_details = {"session_id": session_id, "action": action}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation("session", "success", log_details)


def truncate(text: str, limit: int = 100) -> str:
    """Shorten text for log output."""
    if text is None:
        return ""
    return text[:limit] + "..." if len(text) > limit else text


def sanitize_payload(payload: Any, limit: int = 100) -> Any:
    """Truncate long strings anywhere inside a payload before it is logged."""
    if isinstance(payload, dict):
        return {k: sanitize_payload(v, limit) for k, v in payload.items()}
    elif isinstance(payload, str):
        return truncate(payload, limit)
    elif isinstance(payload, list):
        return [sanitize_payload(item, limit) for item in payload]
    else:
        return payload


# Global logger instance
logger = StructuredLogger()

"""Query use cases (RAG state machine)."""

from .answer_query import QueryState, RAGOrchestrator, can_advance

__all__ = ["QueryState", "RAGOrchestrator", "can_advance"]

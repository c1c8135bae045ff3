"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la Capa de Dominio

Responsabilidades:
    - Centralizar exports para imports limpios en application/infrastructure.
    - No importar infraestructura aquí.
===============================================================================
"""

from .cache import EmbeddingCachePort
from .diagram import DiagramType, build_diagram_prompt
from .entities import (
    AnswerOutcome,
    Chunk,
    ConversationTurn,
    Document,
    DocumentStatus,
    QueryMode,
    RAGAnswer,
    RAGQuery,
    ScoredChunk,
)
from .repositories import ChunkStore
from .services import (
    DiagramRenderer,
    DocumentLockManager,
    EmbeddingService,
    LLMService,
    ResilientEmbeddingService,
    TextChunkerService,
)
from .value_objects import (
    ChunkFragment,
    ChunkStatistics,
    DiagramPayload,
    EmbeddingOutcome,
    SourceCitation,
    calculate_answer_confidence,
    calculate_answer_quality,
)

__all__ = [
    # Entities
    "Document",
    "DocumentStatus",
    "Chunk",
    "RAGQuery",
    "QueryMode",
    "ConversationTurn",
    "ScoredChunk",
    "RAGAnswer",
    "AnswerOutcome",
    "DiagramType",
    "build_diagram_prompt",
    # Ports
    "ChunkStore",
    "EmbeddingService",
    "LLMService",
    "DiagramRenderer",
    "DocumentLockManager",
    "ResilientEmbeddingService",
    "TextChunkerService",
    "EmbeddingCachePort",
    # Value Objects
    "SourceCitation",
    "DiagramPayload",
    "ChunkStatistics",
    "ChunkFragment",
    "EmbeddingOutcome",
    "calculate_answer_confidence",
    "calculate_answer_quality",
]

"""
Use Cases Layer (Business Operations)

Structure
---------
usecases/
├── ingestion/      # Ingest + reprocess (chunk, embed, persist)
├── query/          # RAG orchestrator (retrieve, pack, generate)
└── results.py      # Resultados / errores tipados compartidos

Usage
-----
    from ragcore.application.usecases import IngestDocumentUseCase, RAGOrchestrator
"""

from .ingestion import (
    IngestDocumentInput,
    IngestDocumentUseCase,
    ReprocessDocumentUseCase,
)
from .query import QueryState, RAGOrchestrator
from .results import (
    IngestDocumentResult,
    ReprocessDocumentResult,
    UseCaseError,
    UseCaseErrorCode,
)

__all__ = [
    # Ingestion
    "IngestDocumentInput",
    "IngestDocumentUseCase",
    "ReprocessDocumentUseCase",
    "IngestDocumentResult",
    "ReprocessDocumentResult",
    # Query
    "QueryState",
    "RAGOrchestrator",
    # Results
    "UseCaseError",
    "UseCaseErrorCode",
]

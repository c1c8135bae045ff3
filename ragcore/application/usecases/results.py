"""
===============================================================================
USE CASE RESULTS (Shared Result / Error Models)
===============================================================================

Los use cases de ingesta devuelven resultados tipados en lugar de propagar
excepciones; el orquestador de queries devuelve siempre un RAGAnswer y usa
estos mismos códigos en `RAGAnswer.error_code`.

-------------------------------------------------------------------------------
CRC CARD (Module-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Responsibilities:
    - UseCaseErrorCode: conjunto acotado y estable de categorías de error.
    - UseCaseError: contrato mínimo de error (code + message + resource).
    - IngestDocumentResult / ReprocessDocumentResult.

Collaborators:
    - usecases/ingestion/*, usecases/query/answer_query.py
    - application/rag_pipeline.py (mapea errores a excepciones)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from ...domain.entities import DocumentStatus


class UseCaseErrorCode(str, Enum):
    """
    Códigos:
      - VALIDATION_ERROR: input inválido/incompleto.
      - NOT_FOUND: documento/chunk inexistente.
      - CONFLICT: documento ya en proceso (lock tomado / estado inválido).
      - SERVICE_UNAVAILABLE: proveedor externo caído o degradado.
      - REJECTED: pool de ingesta saturado (backpressure).
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class UseCaseError:
    code: UseCaseErrorCode
    message: str
    resource: str | None = None


@dataclass
class IngestDocumentResult:
    """
    Contrato:
      - Éxito: error is None, status COMPLETED, chunks_created >= 0
      - degraded_embeddings: chunks guardados con vector cero (re-procesables)
    """

    document_id: Optional[UUID] = None
    chunks_created: int = 0
    degraded_embeddings: int = 0
    status: Optional[DocumentStatus] = None
    error: UseCaseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class ReprocessDocumentResult:
    document_id: Optional[UUID] = None
    chunks_deleted: int = 0
    chunks_created: int = 0
    degraded_embeddings: int = 0
    status: Optional[DocumentStatus] = None
    error: UseCaseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

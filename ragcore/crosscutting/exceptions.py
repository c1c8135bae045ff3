"""
===============================================================================
MÓDULO: Excepciones tipadas del pipeline
===============================================================================

Objetivo
--------
Excepciones internas coherentes, con:
- error_code estable (taxonomía: validación / no encontrado / proveedor)
- error_id para correlación con logs
- message "humana" (sin filtrar secretos)

Taxonomía
---------
- ValidationError: parámetros inválidos, se rechaza antes de tocar el pipeline.
- NotFoundError: documento/chunk inexistente.
- ProviderError (+ EmbeddingError, LLMError, DiagramError): falla de un
  proveedor externo; se recupera localmente con retry + fallback.
- IngestionRejectedError: backpressure del pool de ingesta (fail-fast).
- DocumentLockedError: otro writer está reprocesando el mismo documento.
- InvalidStateTransitionError: transición ilegal del ciclo de vida.

"Sin resultados" NO es una excepción: es un estado terminal del orquestador.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True)
class ErrorResponse:
    """Estructura mínima para exponer errores de forma consistente."""

    error_code: str
    message: str
    error_id: str

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }


class RAGError(Exception):
    """
    Base para errores internos del pipeline.

    Provee error_code + error_id + message; original_error conserva la causa
    (también disponible vía __cause__ cuando se usa `raise ... from exc`).
    """

    error_code: str = "RAG_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.error_id = error_id or str(uuid4())
        self.original_error = original_error
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error_code=self.error_code, message=self.message, error_id=self.error_id
        )


class ValidationError(RAGError):
    """Parámetros de query/ingesta inválidos."""

    error_code: str = "VALIDATION_ERROR"


class NotFoundError(RAGError):
    """Documento o chunk referenciado inexistente."""

    error_code: str = "NOT_FOUND"


class ProviderError(RAGError):
    """Falla de un proveedor externo (embeddings / generación / diagramas)."""

    error_code: str = "PROVIDER_ERROR"


class EmbeddingError(ProviderError):
    error_code: str = "EMBEDDING_ERROR"


class LLMError(ProviderError):
    error_code: str = "LLM_ERROR"


class DiagramError(ProviderError):
    error_code: str = "DIAGRAM_ERROR"


class IngestionRejectedError(RAGError):
    """La cola de ingesta está llena; el caller debe reintentar con backoff."""

    error_code: str = "INGESTION_REJECTED"


class DocumentLockedError(RAGError):
    """Otro reproceso del mismo documento está en curso."""

    error_code: str = "DOCUMENT_LOCKED"


class InvalidStateTransitionError(RAGError):
    """Transición de estado no permitida por la tabla de ciclo de vida."""

    error_code: str = "INVALID_STATE_TRANSITION"

"""
===============================================================================
TARJETA CRC — domain/entities.py
===============================================================================

Módulo:
    Entidades del Dominio (Document, Chunk, RAGQuery, ScoredChunk, RAGAnswer)

Responsabilidades:
    - Definir estructuras centrales del pipeline (sin infraestructura).
    - Mantener invariantes simples en la propia entidad:
        * ciclo de vida del Document sólo vía transiciones nombradas
        * embedding del Chunk: vacío (ausente) o exactamente D valores
    - Serializar la respuesta (RAGAnswer.to_dict) con el contrato público.

Colaboradores:
    - domain.repositories: persisten/recuperan estas entidades.
    - application/usecases: construyen/consumen estas entidades.
    - domain.value_objects: citas, payload de diagrama.

Principios:
    - Sin dependencias a SDKs/Redis.
    - Datos + comportamiento mínimo.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Literal, Optional
from uuid import UUID, uuid4

from ..crosscutting.exceptions import InvalidStateTransitionError
from .diagram import DiagramType
from .value_objects import DiagramPayload, SourceCitation


def _utcnow() -> datetime:
    """Fecha/hora UTC (helper interno)."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Document lifecycle
# ---------------------------------------------------------------------------


class DocumentStatus(str, Enum):
    """Estado de procesamiento de un documento."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# R: Tabla única de transiciones permitidas (from -> {to}).
_ALLOWED_TRANSITIONS: Dict[DocumentStatus, FrozenSet[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset(
        {DocumentStatus.COMPLETED, DocumentStatus.FAILED}
    ),
    DocumentStatus.COMPLETED: frozenset({DocumentStatus.PENDING}),
    DocumentStatus.FAILED: frozenset({DocumentStatus.PENDING}),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass
class Document:
    """
    Documento ingerido (texto extraído + metadata + estado).

    Importante:
      - `status` sólo cambia vía start_processing / complete_processing /
        fail_processing / reset_to_pending.
      - Los chunks viven en el ChunkStore y se destruyen/recrean con él.
    """

    id: UUID
    text: str = ""
    language: str = "en"
    domain_tags: FrozenSet[str] = field(default_factory=frozenset)
    page_count: Optional[int] = None
    content_type: Optional[str] = None
    status: DocumentStatus = DocumentStatus.PENDING
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: Optional[datetime] = None

    def _transition(self, target: DocumentStatus) -> None:
        if not can_transition(self.status, target):
            raise InvalidStateTransitionError(
                f"Document {self.id}: cannot transition "
                f"{self.status.value} -> {target.value}"
            )
        self.status = target
        self.updated_at = _utcnow()

    def start_processing(self) -> None:
        self._transition(DocumentStatus.PROCESSING)
        self.error_message = None

    def complete_processing(self) -> None:
        self._transition(DocumentStatus.COMPLETED)

    def fail_processing(self, message: str) -> None:
        self._transition(DocumentStatus.FAILED)
        self.error_message = message

    def reset_to_pending(self) -> None:
        """Vuelve a PENDING para reprocesar (desde COMPLETED o FAILED)."""
        self._transition(DocumentStatus.PENDING)
        self.error_message = None

    @property
    def is_processing(self) -> bool:
        return self.status is DocumentStatus.PROCESSING


# ---------------------------------------------------------------------------
# Chunk
# ---------------------------------------------------------------------------


@dataclass
class Chunk:
    """
    Fragmento contiguo del texto normalizado de un documento.

    Nota:
      - start/end: span [start, end) en el texto normalizado.
      - embedding vacío == ausente; embedding_degraded marca el vector cero
        que el adapter devuelve cuando el proveedor falló.
    """

    document_id: UUID
    chunk_index: int
    content: str
    start: int = 0
    end: int = 0
    token_count: int = 0
    embedding: List[float] = field(default_factory=list)
    embedding_degraded: bool = False
    confidence: float = 1.0
    low_confidence: bool = False
    section_title: Optional[str] = None
    page_number: Optional[int] = None
    content_type: Optional[str] = None
    domain_tags: FrozenSet[str] = field(default_factory=frozenset)
    chunk_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding) and not self.embedding_degraded

    def attach_embedding(
        self, vector: List[float], *, dimension: int, degraded: bool = False
    ) -> None:
        """Asigna el embedding validando la invariante de dimensión."""
        if vector and len(vector) != dimension:
            raise ValueError(
                f"embedding length must be 0 or {dimension}, got {len(vector)}"
            )
        self.embedding = list(vector)
        self.embedding_degraded = degraded


# ---------------------------------------------------------------------------
# Query
# ---------------------------------------------------------------------------


class QueryMode(str, Enum):
    GENERAL = "general"
    DOCUMENT = "document"
    CONVERSATIONAL = "conversational"


@dataclass(frozen=True)
class ConversationTurn:
    """Turno previo de la conversación."""

    role: Literal["user", "assistant"]
    content: str


@dataclass(frozen=True)
class RAGQuery:
    """
    Query de entrada al orquestador.

    min_similarity / max_chunks en None => defaults de Settings.
    """

    text: str
    mode: QueryMode = QueryMode.GENERAL
    domain_tags: FrozenSet[str] = frozenset()
    document_id: Optional[UUID] = None
    history: tuple[ConversationTurn, ...] = ()
    max_chunks: Optional[int] = None
    min_similarity: Optional[float] = None
    diagram_type: Optional[DiagramType] = None
    diagram_instructions: Optional[str] = None


@dataclass(frozen=True)
class ScoredChunk:
    """Entrada de un RetrievalResult: chunk + similitud en [-1, 1]."""

    chunk: Chunk
    score: float


# ---------------------------------------------------------------------------
# Answer
# ---------------------------------------------------------------------------


class AnswerOutcome(str, Enum):
    """Distingue "sin contenido" de "degradado" de "rechazado"."""

    ANSWERED = "answered"
    NO_RELEVANT_CONTENT = "no_relevant_content"
    DEGRADED = "degraded"
    VALIDATION_REJECTED = "validation_rejected"
    NOT_FOUND = "not_found"


@dataclass
class RAGAnswer:
    """
    Resultado estructurado del orquestador (nunca una excepción).

    error_message es mutuamente excluyente con una respuesta exitosa.
    """

    answer_text: str
    outcome: AnswerOutcome
    query: str = ""
    confidence: float = 0.0
    quality: float = 0.0
    sources: List[SourceCitation] = field(default_factory=list)
    suggested_followups: List[str] = field(default_factory=list)
    diagram: Optional[DiagramPayload] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.outcome is AnswerOutcome.ANSWERED

    def to_dict(self) -> Dict[str, Any]:
        """Serializa con los nombres del contrato público."""
        payload: Dict[str, Any] = {
            "answerText": self.answer_text,
            "outcome": self.outcome.value,
            "confidence": self.confidence,
            "quality": self.quality,
            "sourceChunks": [s.to_dict() for s in self.sources],
            "suggestedFollowups": list(self.suggested_followups),
            "metadata": dict(self.metadata),
        }
        if self.diagram is not None:
            payload["diagram"] = self.diagram.to_dict()
        if self.error_message is not None:
            payload["errorMessage"] = self.error_message
            payload["errorCode"] = self.error_code
        return payload

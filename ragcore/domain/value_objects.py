"""
===============================================================================
DOMAIN: Value Objects
===============================================================================

Contenido:
    - SourceCitation: referencia estructurada a un chunk usado en la respuesta
    - DiagramPayload: diagrama generado (tipo + código PlantUML)
    - ChunkStatistics: resumen de calidad de los chunks de un documento
    - ChunkFragment: salida del chunker (span exacto + calidad)
    - EmbeddingOutcome: vector + flag de degradación
    - calculate_answer_confidence / calculate_answer_quality: heurísticas

Principios:
    - Inmutabilidad (frozen dataclasses)
    - Validación en constructor
    - Sin side effects
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Final, List, Optional, Sequence
from uuid import UUID

_MIN_SCORE: Final[float] = 0.0
_MAX_SCORE: Final[float] = 1.0

# Heurística de confianza (no aprendida).
_CONFIDENCE_BASE: Final[float] = 0.5
_CONFIDENCE_PER_SOURCE: Final[float] = 0.1
_CONFIDENCE_SOURCES_CAP: Final[float] = 0.3
_CONFIDENCE_LONG_ANSWER_BONUS: Final[float] = 0.2
_LONG_ANSWER_CHARS: Final[int] = 100


def clamp_unit(value: float) -> float:
    return max(_MIN_SCORE, min(_MAX_SCORE, value))


@dataclass(frozen=True, slots=True)
class SourceCitation:
    """
    Cita de una fuente usada en la respuesta.

    Attributes:
        chunk_id / document_id: identidad del chunk citado
        text: contenido del chunk
        similarity: score de similitud contra la query
        chunk_index: posición del chunk en su documento
        page / section: ubicación (si se conoce)
        confidence: confianza de calidad del chunk (chunker)
    """

    chunk_id: UUID
    document_id: UUID
    text: str
    similarity: float
    chunk_index: int = 0
    page: Optional[int] = None
    section: Optional[str] = None
    confidence: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "chunkId": str(self.chunk_id),
            "documentId": str(self.document_id),
            "text": self.text,
            "similarity": self.similarity,
            "chunkIndex": self.chunk_index,
        }
        if self.page is not None:
            payload["page"] = self.page
        if self.section is not None:
            payload["section"] = self.section
        return payload


@dataclass(frozen=True, slots=True)
class DiagramPayload:
    """Diagrama generado a partir de la respuesta."""

    type: str
    code: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"type": self.type, "code": self.code}
        if self.description:
            payload["description"] = self.description
        return payload


@dataclass(frozen=True, slots=True)
class ChunkStatistics:
    """Estadísticas de los chunks de un documento."""

    total_chunks: int
    average_length: float
    min_length: int
    max_length: int
    empty_chunks: int
    average_confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_chunks": self.total_chunks,
            "average_length": self.average_length,
            "min_length": self.min_length,
            "max_length": self.max_length,
            "empty_chunks": self.empty_chunks,
            "average_confidence": self.average_confidence,
        }


@dataclass(frozen=True)
class ChunkFragment:
    """
    Fragmento de texto con metadata de calidad (previo a embeddings).

    Notas:
      - content == normalized_text[start:end] (slice exacto, sin re-joins).
      - Para index > 0, el prefijo de content puede repetir (overlap) el final
        del fragmento anterior.
      - page_number sólo se estima cuando se conoce el total de páginas.
    """

    content: str
    index: int
    start: int
    end: int
    token_count: int
    confidence: float
    low_confidence: bool = False
    section_title: Optional[str] = None
    page_number: Optional[int] = None

    def __len__(self) -> int:
        return len(self.content)


@dataclass(frozen=True, slots=True)
class EmbeddingOutcome:
    """Vector + flag de degradación (vector cero cuando degraded=True)."""

    vector: List[float]
    degraded: bool = False


def calculate_answer_confidence(answer_text: str, source_count: int) -> float:
    """
    Confianza heurística de una respuesta.

    base 0.5 + min(0.3, 0.1 * fuentes) + 0.2 si la respuesta supera 100 chars,
    acotado a [0, 1].
    """
    score = _CONFIDENCE_BASE
    score += min(_CONFIDENCE_SOURCES_CAP, _CONFIDENCE_PER_SOURCE * max(0, source_count))
    if len(answer_text or "") > _LONG_ANSWER_CHARS:
        score += _CONFIDENCE_LONG_ANSWER_BONUS
    return round(clamp_unit(score), 4)


def calculate_answer_quality(
    confidence: float, chunk_confidences: Sequence[float]
) -> float:
    """Promedio entre la confianza de la respuesta y la confianza media de los chunks."""
    if not chunk_confidences:
        return round(clamp_unit(confidence), 4)
    chunk_mean = sum(chunk_confidences) / len(chunk_confidences)
    return round(clamp_unit((confidence + chunk_mean) / 2.0), 4)

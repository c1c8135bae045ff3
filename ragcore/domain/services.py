"""
===============================================================================
TARJETA CRC — domain/services.py
===============================================================================

Módulo:
    Puertos de Servicios Externos (Protocols)

Responsabilidades:
    - Definir contratos para proveedores externos (Embeddings / LLM / Diagramas).
    - Definir los contratos que consume application (chunker y embeddings
      resilientes) sin exponer la implementación.
    - Proteger a application de detalles del proveedor.

Colaboradores:
    - infrastructure/services/*: implementaciones concretas.
    - application/usecases: consumen estos puertos.

Reglas:
    - SOLO interfaces: nada de implementación.
    - Firmas estables y provider-agnostic.
===============================================================================
"""

from __future__ import annotations

from typing import ContextManager, Hashable, Iterable, Optional, Protocol, Sequence

from .diagram import DiagramType
from .value_objects import ChunkFragment, EmbeddingOutcome


class EmbeddingService(Protocol):
    """Contrato para generar embeddings de dimensión fija D."""

    @property
    def model_id(self) -> str: ...

    def embed_one(self, text: str) -> list[float]:
        """Embedding de un fragmento de documento."""
        ...

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """Embeddings batch; mismo largo y orden que el input."""
        ...

    def embed_query(self, query: str) -> list[float]:
        """Embedding de una query (modo búsqueda)."""
        ...


class LLMService(Protocol):
    """Contrato para generación de texto."""

    @property
    def model_id(self) -> str: ...

    def generate(self, prompt: str) -> str: ...


class DiagramRenderer(Protocol):
    """Contrato para generar código de diagrama a partir de texto."""

    def render(
        self,
        text: str,
        diagram_type: DiagramType,
        *,
        instructions: Optional[str] = None,
        domain_tags: Iterable[str] = (),
    ) -> str:
        """Código PlantUML completo (con @startuml/@enduml)."""
        ...


class ResilientEmbeddingService(Protocol):
    """
    Embeddings con degradación (lo que consume application).

    embed_batch nunca falla por un fragmento: devuelve un EmbeddingOutcome
    por texto (vector cero + degraded=True si el proveedor no respondió).
    embed_query sí propaga EmbeddingError.
    """

    @property
    def dimension(self) -> int: ...

    @property
    def model_id(self) -> str: ...

    def embed_batch(self, texts: Sequence[str]) -> list[EmbeddingOutcome]: ...

    def embed_query(self, query: str) -> list[float]: ...


class TextChunkerService(Protocol):
    """Contrato para dividir texto en fragmentos con span + calidad."""

    def chunk(
        self,
        text: str,
        *,
        chunk_size: Optional[int] = None,
        page_count: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> list[ChunkFragment]:
        """chunk_size en None => tamaño óptimo según páginas / tipo."""
        ...


class DocumentLockManager(Protocol):
    """Exclusión mutua por documento para ingesta / reprocess."""

    def hold(self, key: Hashable) -> ContextManager[None]:
        """Context manager sin bloqueo; DocumentLockedError si ya está tomado."""
        ...

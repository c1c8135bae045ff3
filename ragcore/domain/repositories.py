"""
===============================================================================
TARJETA CRC — domain/repositories.py
===============================================================================

Módulo:
    Puerto del almacén de documentos/chunks (vector store externo)

Responsabilidades:
    - Definir el contrato mínimo que el pipeline necesita del store:
        * documentos: get/save
        * chunks: get (orden por índice), save, delete por documento
        * búsqueda top-K por similitud

Colaboradores:
    - infrastructure/repositories/in_memory: implementación de referencia.
    - application/retriever.py, usecases/ingestion: consumidores.

Notas:
    - find_similar_chunks PUEDE ignorar los filtros (stores sin soporte);
      el Retriever los vuelve a aplicar localmente.
===============================================================================
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence
from uuid import UUID

from .entities import Chunk, Document, ScoredChunk


class ChunkStore(Protocol):
    def get_document(self, document_id: UUID) -> Optional[Document]: ...

    def save_document(self, document: Document) -> None: ...

    def get_chunks(self, document_id: UUID) -> list[Chunk]:
        """Chunks del documento ordenados por chunk_index ascendente."""
        ...

    def get_chunk(self, chunk_id: UUID) -> Optional[Chunk]: ...

    def save_chunks(self, chunks: Sequence[Chunk]) -> None: ...

    def delete_chunks(self, document_id: UUID) -> int:
        """Borra todos los chunks del documento; devuelve cuántos borró."""
        ...

    def find_similar_chunks(
        self,
        embedding: Sequence[float],
        top_k: int,
        *,
        document_id: Optional[UUID] = None,
        domain_tags: Optional[Iterable[str]] = None,
    ) -> list[ScoredChunk]: ...

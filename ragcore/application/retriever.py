"""
Name: Retriever (top-K sobre el ChunkStore externo)

Qué es
------
Recupera los chunks más relevantes para un vector de query:

  1) over-fetch 2k candidatos al store
  2) post-filtro local por document_id / domain_tags (el store puede ignorar
     filtros: el scope de documento se garantiza acá igual)
  3) descarta embeddings degradados o cero
  4) umbral min_similarity
  5) orden: score desc; empate => chunk más reciente primero
  6) truncado a k

Un resultado vacío es válido (no es error).

CRC
---
Class: Retriever
Responsibilities:
  - retrieve / find_similar_to_chunk / related_content
Collaborators:
  - domain.repositories.ChunkStore
  - application.similarity.is_zero_vector
Constraints:
  - Read-only: seguro para callers concurrentes
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Sequence
from uuid import UUID

from ..crosscutting.exceptions import NotFoundError, ValidationError
from ..crosscutting.logger import logger
from ..domain.entities import ScoredChunk
from ..domain.repositories import ChunkStore
from .similarity import is_zero_vector

# R: factor de over-fetch para dejar margen al post-filtro
OVERFETCH_FACTOR = 2


@dataclass(frozen=True)
class RetrievalFilters:
    domain_tags: FrozenSet[str] = field(default_factory=frozenset)
    document_id: Optional[UUID] = None


def _rank_key(item: ScoredChunk):
    return (item.score, item.chunk.created_at)


def rank_scored_chunks(items: Iterable[ScoredChunk]) -> list[ScoredChunk]:
    """Score descendente; en empate gana el chunk más reciente."""
    return sorted(items, key=_rank_key, reverse=True)


class Retriever:
    def __init__(self, store: ChunkStore) -> None:
        self._store = store

    def retrieve(
        self,
        query_vector: Sequence[float],
        filters: RetrievalFilters,
        min_similarity: float,
        k: int,
    ) -> list[ScoredChunk]:
        if not 0.0 <= min_similarity <= 1.0:
            raise ValidationError("min_similarity must be within [0, 1]")
        if k <= 0 or is_zero_vector(query_vector):
            return []

        candidates = self._store.find_similar_chunks(
            query_vector,
            k * OVERFETCH_FACTOR,
            document_id=filters.document_id,
            domain_tags=filters.domain_tags or None,
        )

        kept = [
            item
            for item in candidates
            if self._matches(item, filters)
            and item.chunk.has_embedding
            and not is_zero_vector(item.chunk.embedding)
            and item.score >= min_similarity
        ]
        results = rank_scored_chunks(kept)[:k]

        logger.debug(
            "Retriever: candidates filtered",
            extra={
                "requested": k,
                "fetched": len(candidates),
                "kept": len(kept),
                "returned": len(results),
                "min_similarity": min_similarity,
                "document_scoped": filters.document_id is not None,
            },
        )
        return results

    @staticmethod
    def _matches(item: ScoredChunk, filters: RetrievalFilters) -> bool:
        chunk = item.chunk
        if filters.document_id is not None and chunk.document_id != filters.document_id:
            return False
        if filters.domain_tags and not (chunk.domain_tags & filters.domain_tags):
            return False
        return True

    def find_similar_to_chunk(
        self, chunk_id: UUID, k: int, *, min_similarity: float = 0.0
    ) -> list[ScoredChunk]:
        """Chunks parecidos a uno dado (excluye al propio chunk)."""
        source = self._store.get_chunk(chunk_id)
        if source is None:
            raise NotFoundError(f"Chunk {chunk_id} not found")
        if k <= 0 or not source.has_embedding:
            return []

        candidates = self._store.find_similar_chunks(source.embedding, k + 1)
        kept = [
            item
            for item in candidates
            if item.chunk.chunk_id != chunk_id
            and item.chunk.has_embedding
            and item.score >= min_similarity
        ]
        return rank_scored_chunks(kept)[:k]

    def related_content(
        self, document_id: UUID, k: int, *, min_similarity: float
    ) -> list[ScoredChunk]:
        """Chunks de OTROS documentos similares a cualquier chunk del documento."""
        if self._store.get_document(document_id) is None:
            raise NotFoundError(f"Document {document_id} not found")
        if k <= 0:
            return []

        best: dict[UUID, ScoredChunk] = {}
        for chunk in self._store.get_chunks(document_id):
            if not chunk.has_embedding:
                continue
            for item in self._store.find_similar_chunks(
                chunk.embedding, k * OVERFETCH_FACTOR
            ):
                other = item.chunk
                if other.document_id == document_id or not other.has_embedding:
                    continue
                if item.score < min_similarity:
                    continue
                current = best.get(other.chunk_id)
                if current is None or item.score > current.score:
                    best[other.chunk_id] = item
        return rank_scored_chunks(best.values())[:k]

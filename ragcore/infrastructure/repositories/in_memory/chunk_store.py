"""
============================================================
TARJETA CRC — infrastructure/repositories/in_memory/chunk_store.py
============================================================
Class: InMemoryChunkStore

Responsibilities:
  - Implementar ChunkStore en memoria (documentos + chunks + top-K).
  - Búsqueda por coseno brute-force vectorizada con numpy.
  - Aplicar filtros opcionales (document_id / domain_tags) de forma nativa.
  - Thread-safety con Lock; devolver copias (nadie muta el estado interno).

Collaborators:
  - domain.repositories.ChunkStore (contrato)
  - numpy (producto punto / normas)

Notes:
  - Para tests y desarrollo local. NOT FOR PRODUCTION.
  - Chunks sin embedding o degradados no participan de la búsqueda.
============================================================
"""

from __future__ import annotations

import copy
from threading import Lock
from typing import Dict, Iterable, List, Optional, Sequence
from uuid import UUID

import numpy as np

from ....domain.entities import Chunk, Document, ScoredChunk


class InMemoryChunkStore:
    def __init__(self) -> None:
        self._documents: Dict[UUID, Document] = {}
        self._chunks: Dict[UUID, List[Chunk]] = {}
        self._lock = Lock()

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    def get_document(self, document_id: UUID) -> Optional[Document]:
        with self._lock:
            document = self._documents.get(document_id)
            return copy.deepcopy(document) if document is not None else None

    def save_document(self, document: Document) -> None:
        with self._lock:
            self._documents[document.id] = copy.deepcopy(document)

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------
    def get_chunks(self, document_id: UUID) -> list[Chunk]:
        with self._lock:
            chunks = self._chunks.get(document_id, [])
            return copy.deepcopy(sorted(chunks, key=lambda c: c.chunk_index))

    def get_chunk(self, chunk_id: UUID) -> Optional[Chunk]:
        with self._lock:
            for chunks in self._chunks.values():
                for chunk in chunks:
                    if chunk.chunk_id == chunk_id:
                        return copy.deepcopy(chunk)
        return None

    def save_chunks(self, chunks: Sequence[Chunk]) -> None:
        with self._lock:
            for chunk in chunks:
                bucket = self._chunks.setdefault(chunk.document_id, [])
                # R: re-save del mismo índice reemplaza
                bucket[:] = [c for c in bucket if c.chunk_index != chunk.chunk_index]
                bucket.append(copy.deepcopy(chunk))

    def delete_chunks(self, document_id: UUID) -> int:
        with self._lock:
            return len(self._chunks.pop(document_id, []))

    def count_chunks(self) -> int:
        with self._lock:
            return sum(len(chunks) for chunks in self._chunks.values())

    # ------------------------------------------------------------------
    # Similarity search
    # ------------------------------------------------------------------
    def find_similar_chunks(
        self,
        embedding: Sequence[float],
        top_k: int,
        *,
        document_id: Optional[UUID] = None,
        domain_tags: Optional[Iterable[str]] = None,
    ) -> list[ScoredChunk]:
        if top_k <= 0 or not embedding:
            return []

        tags = frozenset(domain_tags or ())
        with self._lock:
            candidates = [
                chunk
                for doc_id, chunks in self._chunks.items()
                if document_id is None or doc_id == document_id
                for chunk in chunks
                if chunk.has_embedding
                and len(chunk.embedding) == len(embedding)
                and (not tags or chunk.domain_tags & tags)
            ]
            if not candidates:
                return []

            matrix = np.asarray([c.embedding for c in candidates], dtype=np.float64)
            query = np.asarray(embedding, dtype=np.float64)

            norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
            with np.errstate(divide="ignore", invalid="ignore"):
                scores = np.where(norms > 0, matrix @ query / norms, 0.0)
            scores = np.clip(scores, -1.0, 1.0)

            order = np.argsort(-scores, kind="stable")[:top_k]
            return [
                ScoredChunk(chunk=copy.deepcopy(candidates[i]), score=float(scores[i]))
                for i in order
            ]

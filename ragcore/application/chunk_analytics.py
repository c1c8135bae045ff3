"""
Name: Chunk Analytics

Helpers de solo lectura sobre los chunks de un documento: estadísticas de
calidad, filtro por página y filtro por confianza.
"""

from __future__ import annotations

from typing import Sequence

from ..domain.entities import Chunk
from ..domain.value_objects import ChunkStatistics


def chunk_statistics(chunks: Sequence[Chunk]) -> ChunkStatistics:
    if not chunks:
        return ChunkStatistics(
            total_chunks=0,
            average_length=0.0,
            min_length=0,
            max_length=0,
            empty_chunks=0,
            average_confidence=0.0,
        )

    lengths = [len(c.content) for c in chunks]
    return ChunkStatistics(
        total_chunks=len(chunks),
        average_length=round(sum(lengths) / len(lengths), 2),
        min_length=min(lengths),
        max_length=max(lengths),
        empty_chunks=sum(1 for c in chunks if not c.content.strip()),
        average_confidence=round(sum(c.confidence for c in chunks) / len(chunks), 4),
    )


def chunks_by_page(chunks: Sequence[Chunk], page: int) -> list[Chunk]:
    return [c for c in chunks if c.page_number == page]


def high_quality_chunks(chunks: Sequence[Chunk], threshold: float) -> list[Chunk]:
    """Chunks con confidence >= threshold que no estén marcados low_confidence."""
    return [c for c in chunks if c.confidence >= threshold and not c.low_confidence]

"""Utilidades de texto (chunking + heurísticas de calidad)."""

from .chunker import (
    AdaptiveTextChunker,
    SectionAwareChunker,
    chunk_text,
    estimate_page_number,
    normalize_text,
)
from .quality import optimal_chunk_size, score_chunk_quality

__all__ = [
    "chunk_text",
    "normalize_text",
    "estimate_page_number",
    "SectionAwareChunker",
    "AdaptiveTextChunker",
    "optimal_chunk_size",
    "score_chunk_quality",
]

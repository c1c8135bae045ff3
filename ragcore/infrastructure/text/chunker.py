"""
===============================================================================
CRC CARD — infrastructure/text/chunker.py
===============================================================================

Componente:
  SectionAwareChunker (chunking por secciones + oraciones con overlap)
  AdaptiveTextChunker (tamaño óptimo + página estimada; implementa
  domain.services.TextChunkerService)

Responsabilidades:
  - Normalizar whitespace (fin de línea unificado, 3+ saltos -> 2).
  - Cortar en secciones por heurísticas de heading (numerados, MAYÚSCULAS,
    CHAPTER/SECTION/BÖLÜM, §).
  - Empaquetar oraciones de secciones grandes hasta max_chunk_size, sembrando
    cada chunk con los últimos overlap_size caracteres del anterior.
  - Mergear chunks chicos; los que no se pueden mergear quedan marcados
    low_confidence (nunca se descartan: se perdería cobertura).
  - Calcular confianza, tokens estimados y título de sección.

Colaboradores:
  - domain/value_objects.py (ChunkFragment)
  - infrastructure/text/quality.py (quality gate / títulos / tokens)

Invariantes:
  - Cada fragmento es un slice exacto [start, end) del texto normalizado:
    concatenar los slices sin el overlap reproduce el texto.
  - len(fragment) <= max_chunk_size.
===============================================================================
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, replace
from typing import Final, Optional

from ...domain.value_objects import ChunkFragment
from .quality import (
    estimate_token_count,
    extract_section_title,
    is_acceptable_chunk,
    optimal_chunk_size,
    score_chunk_quality,
)

_DEFAULT_MAX_CHUNK_SIZE: Final[int] = 1000
_DEFAULT_OVERLAP: Final[int] = 200
_DEFAULT_MIN_CHUNK_SIZE: Final[int] = 100
_MAX_HEADING_CHARS: Final[int] = 100
_SIZE_SAMPLE_CHARS: Final[int] = 2000

_EXCESS_NEWLINES_RE: Final[re.Pattern[str]] = re.compile(r"\n{3,}")

# Heading al inicio de línea: "1. Intro", "2.3. Alcance", "RESUMEN", "Chapter 2", "§ 12".
_SECTION_HEADING_RE: Final[re.Pattern[str]] = re.compile(
    r"^[ \t]*(?:"
    r"\d+(?:\.\d+)*\.[ \t]+\S[^\n]*"
    r"|[A-ZÇĞİÖŞÜ][A-ZÇĞİÖŞÜ0-9 \t]{2,}"
    r"|(?i:chapter|section|bölüm)\b[^\n]*"
    r"|§[^\n]*"
    r")$",
    re.MULTILINE,
)

# Límite de oración: whitespace precedido por . ! ? y seguido de mayúscula.
_SENTENCE_BOUNDARY_RE: Final[re.Pattern[str]] = re.compile(
    r"(?<=[.!?])\s+(?=[A-ZÇĞİÖŞÜ0-9\"'(])"
)


def normalize_text(text: str) -> str:
    """Unifica fines de línea, colapsa 3+ saltos y recorta extremos."""
    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    normalized = _EXCESS_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()


@dataclass(frozen=True)
class _Section:
    start: int
    end: int
    title: Optional[str]


@dataclass
class _Span:
    start: int
    end: int
    section_title: Optional[str]

    @property
    def length(self) -> int:
        return self.end - self.start


def _split_sections(text: str) -> list[_Section]:
    """Secciones contiguas que cubren todo el texto (sin huecos)."""
    boundaries = [
        m.start()
        for m in _SECTION_HEADING_RE.finditer(text)
        if len(m.group(0).strip()) <= _MAX_HEADING_CHARS
    ]
    if not boundaries or boundaries[0] != 0:
        boundaries.insert(0, 0)

    sections: list[_Section] = []
    for i, start in enumerate(boundaries):
        end = boundaries[i + 1] if i + 1 < len(boundaries) else len(text)
        if end <= start:
            continue
        sections.append(
            _Section(start=start, end=end, title=extract_section_title(text[start:end]))
        )
    return sections


def _sentence_ends(text: str, start: int, end: int) -> list[int]:
    """Offsets absolutos donde termina cada oración (incluye el whitespace que la sigue)."""
    ends = [start + m.end() for m in _SENTENCE_BOUNDARY_RE.finditer(text[start:end])]
    ends.append(end)
    return ends


def _char_split_point(text: str, lo: int, hi: int) -> int:
    """
    Corte por longitud para segmentos sin límites de oración.

    Prefiere cortar después del último whitespace de la segunda mitad de la
    ventana; si no hay, corte exacto en `hi`.
    """
    if hi >= len(text):
        return hi
    floor = lo + (hi - lo) // 2
    for pos in range(hi - 1, floor, -1):
        if text[pos].isspace():
            return pos + 1
    return hi


def _pack_section(
    text: str, section: _Section, *, max_chunk_size: int, overlap_size: int
) -> list[_Span]:
    """Empaqueta oraciones de una sección grande con overlap entre chunks."""
    ends = _sentence_ends(text, section.start, section.end)
    spans: list[_Span] = []

    start = section.start  # R: inicio del chunk (incluye overlap)
    cursor = section.start  # R: inicio del contenido nuevo
    i = 0
    while cursor < section.end:
        limit = min(start + max_chunk_size, section.end)
        end = cursor
        while i < len(ends) and ends[i] <= limit:
            end = ends[i]
            i += 1
        if end == cursor:
            # La próxima oración no entra ni sola: empaquetado por caracteres.
            end = _char_split_point(text, cursor, limit)
            while i < len(ends) and ends[i] <= end:
                i += 1

        spans.append(_Span(start=start, end=end, section_title=section.title))
        if end >= section.end:
            break

        overlap = min(overlap_size, end - start)
        start = end - overlap
        cursor = end
    return spans


def _merge_short_spans(
    spans: list[_Span], *, min_chunk_size: int, max_chunk_size: int
) -> list[_Span]:
    """
    Merge hacia adelante de spans cortos; si no entra, se intenta absorber en
    el anterior. Los spans son contiguos/solapados, así que el merge es
    [start_i, end_j) sin pérdida.
    """
    forward: list[_Span] = []
    i = 0
    while i < len(spans):
        current = _Span(spans[i].start, spans[i].end, spans[i].section_title)
        while (
            current.length < min_chunk_size
            and i + 1 < len(spans)
            and spans[i + 1].end - current.start <= max_chunk_size
        ):
            i += 1
            current.end = spans[i].end
        forward.append(current)
        i += 1

    merged: list[_Span] = []
    for idx, span in enumerate(forward):
        is_last = idx == len(forward) - 1
        if (
            merged
            and not is_last
            and span.length < min_chunk_size
            and span.end - merged[-1].start <= max_chunk_size
        ):
            merged[-1].end = span.end
            continue
        merged.append(span)
    return merged


class SectionAwareChunker:
    """
    Chunker determinístico basado en secciones y oraciones.

    Args:
        max_chunk_size: largo máximo de cada chunk (caracteres)
        overlap_size: caracteres del chunk anterior repetidos al inicio
        min_chunk_size: umbral de "chunk corto" para el merge y el quality gate
    """

    def __init__(
        self,
        max_chunk_size: int = _DEFAULT_MAX_CHUNK_SIZE,
        overlap_size: int = _DEFAULT_OVERLAP,
        min_chunk_size: int = _DEFAULT_MIN_CHUNK_SIZE,
    ):
        if max_chunk_size <= 0:
            raise ValueError(f"max_chunk_size must be > 0, got {max_chunk_size}")
        if overlap_size < 0:
            raise ValueError(f"overlap_size must be >= 0, got {overlap_size}")
        if overlap_size >= max_chunk_size:
            raise ValueError("overlap_size must be less than max_chunk_size")
        if min_chunk_size < 0 or min_chunk_size > max_chunk_size:
            raise ValueError("min_chunk_size must be between 0 and max_chunk_size")

        self.max_chunk_size = max_chunk_size
        self.overlap_size = overlap_size
        self.min_chunk_size = min_chunk_size

    def chunk(self, text: str) -> list[ChunkFragment]:
        normalized = normalize_text(text)
        if not normalized:
            return []

        spans: list[_Span] = []
        for section in _split_sections(normalized):
            if section.end - section.start <= self.max_chunk_size:
                spans.append(_Span(section.start, section.end, section.title))
            else:
                spans.extend(
                    _pack_section(
                        normalized,
                        section,
                        max_chunk_size=self.max_chunk_size,
                        overlap_size=self.overlap_size,
                    )
                )

        spans = _merge_short_spans(
            spans,
            min_chunk_size=self.min_chunk_size,
            max_chunk_size=self.max_chunk_size,
        )
        return [self._to_fragment(normalized, span, idx) for idx, span in enumerate(spans)]

    def _to_fragment(self, text: str, span: _Span, index: int) -> ChunkFragment:
        content = text[span.start : span.end]
        confidence = score_chunk_quality(content, min_chunk_size=self.min_chunk_size)
        low_confidence = (
            len(content) < self.min_chunk_size or not is_acceptable_chunk(content)
        )
        return ChunkFragment(
            content=content,
            index=index,
            start=span.start,
            end=span.end,
            token_count=estimate_token_count(content),
            confidence=confidence,
            low_confidence=low_confidence,
            section_title=extract_section_title(content) or span.section_title,
        )


def chunk_text(
    text: str,
    max_chunk_size: int = _DEFAULT_MAX_CHUNK_SIZE,
    overlap_size: int = _DEFAULT_OVERLAP,
    min_chunk_size: int = _DEFAULT_MIN_CHUNK_SIZE,
) -> list[ChunkFragment]:
    """Atajo funcional sobre SectionAwareChunker."""
    return SectionAwareChunker(
        max_chunk_size=max_chunk_size,
        overlap_size=overlap_size,
        min_chunk_size=min_chunk_size,
    ).chunk(text)


def estimate_page_number(
    start: int, text_length: int, page_count: Optional[int]
) -> Optional[int]:
    """floor(start / len * páginas) + 1, acotado a [1, páginas]."""
    if not page_count or page_count <= 0 or text_length <= 0:
        return None
    page = math.floor(start / text_length * page_count) + 1
    return max(1, min(page_count, page))


class AdaptiveTextChunker:
    """
    Chunker configurado por Settings que elige el tamaño por documento.

    chunk_size explícito gana; si no, optimal_chunk_size(páginas, tipo,
    muestra del texto). El overlap se recorta para quedar < tamaño.
    """

    def __init__(
        self,
        *,
        default_chunk_size: int = _DEFAULT_MAX_CHUNK_SIZE,
        chunk_overlap: int = _DEFAULT_OVERLAP,
        min_chunk_size: int = _DEFAULT_MIN_CHUNK_SIZE,
        max_chunk_size: int = 2000,
    ):
        if not (0 < min_chunk_size <= default_chunk_size <= max_chunk_size):
            raise ValueError(
                "chunk sizes must satisfy 0 < min <= default <= max"
            )
        self.default_chunk_size = default_chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chunk_size = min_chunk_size
        self.max_chunk_size = max_chunk_size

    def resolve_chunk_size(
        self,
        text: str,
        *,
        chunk_size: Optional[int] = None,
        page_count: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> int:
        if chunk_size is not None:
            return chunk_size
        return optimal_chunk_size(
            default_size=self.default_chunk_size,
            min_size=self.min_chunk_size,
            max_size=self.max_chunk_size,
            page_count=page_count,
            content_type=content_type,
            sample_text=(text or "")[:_SIZE_SAMPLE_CHARS],
        )

    def chunk(
        self,
        text: str,
        *,
        chunk_size: Optional[int] = None,
        page_count: Optional[int] = None,
        content_type: Optional[str] = None,
    ) -> list[ChunkFragment]:
        size = self.resolve_chunk_size(
            text,
            chunk_size=chunk_size,
            page_count=page_count,
            content_type=content_type,
        )
        fragments = SectionAwareChunker(
            max_chunk_size=size,
            overlap_size=min(self.chunk_overlap, size - 1),
            min_chunk_size=min(self.min_chunk_size, size),
        ).chunk(text)
        if not page_count:
            return fragments

        text_length = len(normalize_text(text))
        return [
            replace(f, page_number=estimate_page_number(f.start, text_length, page_count))
            for f in fragments
        ]

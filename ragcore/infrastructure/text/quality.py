"""
===============================================================================
CRC CARD — infrastructure/text/quality.py
===============================================================================

Componente:
  Heurísticas de calidad y tamaño de chunks

Responsabilidades:
  - Score de confianza por chunk (quality gate).
  - Validación mínima de contenido (no vacío, proporción de letras).
  - Estimación de tokens (len / 4, aproximación agnóstica al idioma).
  - Extracción de títulos de sección desde las primeras líneas.
  - Tamaño de chunk óptimo según páginas / tipo de contenido.

Colaboradores:
  - infrastructure/text/chunker.py
  - application/usecases/ingestion (optimal_chunk_size)
===============================================================================
"""

from __future__ import annotations

import re
from typing import Final, Optional

_CONFIDENCE_START: Final[float] = 1.0
_SHORT_PENALTY: Final[float] = 0.3
_WHITESPACE_PENALTY: Final[float] = 0.2
_WHITESPACE_MAX_FRACTION: Final[float] = 0.5
_SENTENCE_BONUS: Final[float] = 0.1
_MIN_LETTER_RATIO: Final[float] = 0.3

_CHARS_PER_TOKEN: Final[int] = 4

_TITLE_MIN_CHARS: Final[int] = 5
_TITLE_MAX_CHARS: Final[int] = 100
_TITLE_SCAN_LINES: Final[int] = 3

_TERMINAL_PUNCT_RE: Final[re.Pattern[str]] = re.compile(r"[.!?]")
_TITLE_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(r"^\d+(?:\.\d+)*\.\s+\S"),
    re.compile(r"^[A-ZÇĞİÖŞÜ][A-ZÇĞİÖŞÜ0-9\s]{2,}$"),
    re.compile(r"^(?:CHAPTER|SECTION|BÖLÜM)\b", re.IGNORECASE),
    re.compile(r"^§"),
)

_LEGAL_MARKERS: Final[tuple[str, ...]] = ("§", "madde", "article")
_CODE_CHUNK_SIZE: Final[int] = 800
_LEGAL_CHUNK_SIZE: Final[int] = 1200
_LARGE_DOC_PAGES: Final[int] = 100
_SMALL_DOC_PAGES: Final[int] = 10


def estimate_token_count(text: str) -> int:
    """len/4; al menos 1 token para texto no vacío."""
    if not text:
        return 0
    return max(1, len(text) // _CHARS_PER_TOKEN)


def whitespace_fraction(text: str) -> float:
    if not text:
        return 0.0
    return sum(1 for c in text if c.isspace()) / len(text)


def score_chunk_quality(text: str, *, min_chunk_size: int) -> float:
    """
    Quality gate.

    1.0 - 0.3 (corto) - 0.2 (>50% whitespace) + 0.1 (oraciones + varias palabras),
    acotado a [0, 1].
    """
    score = _CONFIDENCE_START
    if len(text) < min_chunk_size:
        score -= _SHORT_PENALTY
    if whitespace_fraction(text) > _WHITESPACE_MAX_FRACTION:
        score -= _WHITESPACE_PENALTY
    if _TERMINAL_PUNCT_RE.search(text) and len(text.split()) > 1:
        score += _SENTENCE_BONUS
    return round(max(0.0, min(1.0, score)), 4)


def is_acceptable_chunk(text: str) -> bool:
    """No vacío y con más de 30% de letras."""
    stripped = (text or "").strip()
    if not stripped:
        return False
    letters = sum(1 for c in stripped if c.isalpha())
    return letters / len(stripped) > _MIN_LETTER_RATIO


def extract_section_title(text: str) -> Optional[str]:
    """Busca un heading en las primeras líneas no vacías del texto."""
    scanned = 0
    for raw_line in (text or "").split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        scanned += 1
        if _TITLE_MIN_CHARS <= len(line) <= _TITLE_MAX_CHARS and any(
            p.search(line) for p in _TITLE_PATTERNS
        ):
            return line
        if scanned >= _TITLE_SCAN_LINES:
            break
    return None


def optimal_chunk_size(
    *,
    default_size: int,
    min_size: int,
    max_size: int,
    page_count: Optional[int] = None,
    content_type: Optional[str] = None,
    sample_text: str = "",
) -> int:
    """
    Ajusta el tamaño de chunk según el documento.

    Orden de reglas:
      - código -> 800
      - texto legal (§ / madde / article) -> 1200
      - > 100 páginas -> min(max, default + 500)
      - < 10 páginas -> max(min, default - 300)
    """
    kind = (content_type or "").lower()
    if kind == "code":
        size = _CODE_CHUNK_SIZE
    elif kind == "legal" or any(m in sample_text.lower() for m in _LEGAL_MARKERS):
        size = _LEGAL_CHUNK_SIZE
    elif page_count is not None and page_count > _LARGE_DOC_PAGES:
        size = min(max_size, default_size + 500)
    elif page_count is not None and page_count < _SMALL_DOC_PAGES:
        size = max(min_size, default_size - 300)
    else:
        size = default_size
    return max(min_size, min(max_size, size))

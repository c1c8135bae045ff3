"""
Name: Fake Embeddings Service (Deterministic Test Double)

Qué es
------
Implementación **determinista** de `EmbeddingService` para tests/CI/offline.
No realiza llamadas externas.

A diferencia de un hash del texto completo, usa *feature hashing* de
palabras: textos que comparten vocabulario producen vectores cercanos, así
que el ranking por coseno se comporta de forma razonable en tests de
retrieval end-to-end.

CRC (Class-Responsibility-Collaboration)
----------------------------------------
Class: FakeEmbeddingService
Responsibilities:
  - Generar vectores L2-normalizados de dimensión D (Settings.embedding_dimension)
  - Misma entrada => mismo vector
  - Exponer `model_id` estable para cache keys
Collaborators:
  - domain.services.EmbeddingService (contrato)
Constraints:
  - Sin IO / sin red
  - Texto vacío => EmbeddingError (igual que los providers reales)
"""

from __future__ import annotations

import hashlib
import math
import re
from typing import Sequence

from ...crosscutting.exceptions import EmbeddingError
from ...crosscutting.logger import logger
from ...domain.services import EmbeddingService

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def _bucket_and_sign(token: str, dimension: int) -> tuple[int, float]:
    """R: (índice, signo) estables para un token."""
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    index = int.from_bytes(digest[:8], "big") % dimension
    sign = 1.0 if digest[8] & 1 else -1.0
    return index, sign


def _build_embedding(text: str, dimension: int) -> list[float]:
    tokens = _TOKEN_RE.findall(text.lower()) or [text.strip()]
    vector = [0.0] * dimension
    for token in tokens:
        index, sign = _bucket_and_sign(token, dimension)
        vector[index] += sign

    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0.0:
        # R: tokens que se cancelan; caemos al hash del texto completo
        index, sign = _bucket_and_sign(text.strip(), dimension)
        vector[index] = sign
        return vector
    return [v / norm for v in vector]


class FakeEmbeddingService(EmbeddingService):
    """R: EmbeddingService determinista para tests/CI."""

    MODEL_ID = "fake-embedding-v1"

    def __init__(self, *, dimension: int) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be > 0")
        self._dimension = dimension
        logger.debug(
            "FakeEmbeddingService initialized",
            extra={"dimension": self._dimension, "model_id": self.MODEL_ID},
        )

    @property
    def model_id(self) -> str:
        return self.MODEL_ID

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed_one(self, text: str) -> list[float]:
        if not (text or "").strip():
            raise EmbeddingError("Text must not be empty")
        return _build_embedding(text, self._dimension)

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        for idx, t in enumerate(texts):
            if not (t or "").strip():
                raise EmbeddingError(f"Batch text at index {idx} must not be empty")
        return [_build_embedding(text, self._dimension) for text in texts]

    def embed_query(self, query: str) -> list[float]:
        if not (query or "").strip():
            raise EmbeddingError("Query must not be empty")
        return _build_embedding(query, self._dimension)

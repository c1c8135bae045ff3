"""
Name: Similarity Scorer (cosine)

Responsibilities:
  - Cosine similarity pura sobre dos vectores (numpy).
  - Casos indefinidos devuelven 0.0: vector vacío, largos distintos o
    magnitud cero (incluye el vector cero de embeddings degradados).

Invariants:
  - Simétrica: cosine(a, b) == cosine(b, a)
  - Reflexiva: cosine(a, a) == 1.0 para a no-cero
  - Resultado acotado a [-1, 1]
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

_PRECISION = 12


def is_zero_vector(vector: Sequence[float]) -> bool:
    """True para vectores vacíos o con todos los componentes en 0."""
    if vector is None or len(vector) == 0:
        return True
    return not np.any(np.asarray(vector, dtype=np.float64))


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    if a is None or b is None or len(a) == 0 or len(a) != len(b):
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    # R: redondeo a 12 decimales: cosine(a, a) da exactamente 1.0
    score = round(float(np.dot(va, vb)) / (norm_a * norm_b), _PRECISION)
    return max(-1.0, min(1.0, score))

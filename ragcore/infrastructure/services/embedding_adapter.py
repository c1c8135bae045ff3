"""
Name: Embedding Adapter (batch → sequential → degraded)

Qué hace
--------
Orquesta las llamadas al EmbeddingService con semántica de degradación:

  1) embed_batch con retry acotado
  2) si el batch falla (error, timeout o respuesta malformada: cantidad o
     dimensión incorrecta) => embed_one secuencial por texto
  3) si un texto sigue fallando => vector cero de largo D, degraded=True

Así un fragmento roto no envenena el batch y la ingesta nunca aborta por
un embedding. Nunca se inventan vectores no-cero: el vector cero es un
centinela que el Retriever excluye del ranking.

CRC
---
Class: EmbeddingAdapter
Responsibilities:
  - Validar forma de la respuesta (count / D)
  - Aplicar retry_with_fallback uniformemente (batch, one, query)
  - Emitir métricas y warnings en cada fallback
Collaborators:
  - domain.services.EmbeddingService (provider o CachingEmbeddingService)
  - infrastructure.services.retry.retry_with_fallback
  - crosscutting.metrics.record_embedding_fallback
"""

from __future__ import annotations

import math
from typing import NoReturn, Optional, Sequence

from ...crosscutting.exceptions import EmbeddingError
from ...crosscutting.logger import logger
from ...crosscutting.metrics import record_embedding_fallback
from ...domain.services import EmbeddingService
from ...domain.value_objects import EmbeddingOutcome
from .retry import retry_with_fallback


class EmbeddingAdapter:
    def __init__(
        self,
        provider: EmbeddingService,
        *,
        dimension: int,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
    ) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be > 0")
        self._provider = provider
        self._dimension = dimension
        self._retry_opts = {
            "max_attempts": max_attempts,
            "base_delay": base_delay,
            "max_delay": max_delay,
        }

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_id(self) -> str:
        return getattr(self._provider, "model_id", "unknown")

    def zero_vector(self) -> list[float]:
        return [0.0] * self._dimension

    # ------------------------------------------------------------------
    # Validación de forma
    # ------------------------------------------------------------------
    def _check_vector(self, vector: Sequence[float], position: int = 0) -> list[float]:
        if vector is None or len(vector) != self._dimension:
            got = 0 if vector is None else len(vector)
            raise EmbeddingError(
                f"Malformed embedding at index {position}: "
                f"expected dimension {self._dimension}, got {got}"
            )
        values = [float(v) for v in vector]
        if not all(math.isfinite(v) for v in values):
            raise EmbeddingError(f"Non-finite values in embedding at index {position}")
        return values

    def _embed_one_outcome(self, text: str) -> EmbeddingOutcome:
        return EmbeddingOutcome(vector=self._check_vector(self._provider.embed_one(text)))

    def _embed_batch_checked(self, texts: list[str]) -> list[list[float]]:
        vectors = self._provider.embed_batch(texts)
        if vectors is None or len(vectors) != len(texts):
            raise EmbeddingError(
                f"Malformed batch response: expected {len(texts)} vectors, "
                f"got {0 if vectors is None else len(vectors)}"
            )
        return [self._check_vector(v, i) for i, v in enumerate(vectors)]

    def _embed_query_checked(self, query: str) -> list[float]:
        return self._check_vector(self._provider.embed_query(query))

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------
    def embed_one(self, text: str) -> EmbeddingOutcome:
        """Nunca lanza: tras agotar reintentos devuelve el vector cero degradado."""

        def degraded(exc: BaseException) -> EmbeddingOutcome:
            record_embedding_fallback("degraded")
            logger.warning(
                "Embedding failed, storing degraded zero vector",
                extra={"error_type": type(exc).__name__, "text_length": len(text or "")},
            )
            return EmbeddingOutcome(vector=self.zero_vector(), degraded=True)

        return retry_with_fallback(
            self._embed_one_outcome,
            text,
            fallback=degraded,
            **self._retry_opts,
        )

    def embed_batch(self, texts: Sequence[str]) -> list[EmbeddingOutcome]:
        """
        Un resultado por texto, mismo orden. Nunca lanza.

        Batch => (falla) secuencial embed_one => (falla) vector cero degradado.
        """
        items = list(texts)
        if not items:
            return []

        vectors: Optional[list[list[float]]] = retry_with_fallback(
            self._embed_batch_checked,
            items,
            fallback=lambda exc: None,
            **self._retry_opts,
        )
        if vectors is not None:
            return [EmbeddingOutcome(vector=v) for v in vectors]

        logger.warning(
            "Batch embedding failed, falling back to sequential embedding",
            extra={"batch_size": len(items)},
        )
        record_embedding_fallback("sequential", count=len(items))
        outcomes = [self.embed_one(text) for text in items]

        degraded_count = sum(1 for o in outcomes if o.degraded)
        if degraded_count:
            logger.warning(
                "Sequential embedding finished with degraded items",
                extra={"batch_size": len(items), "degraded": degraded_count},
            )
        return outcomes

    def embed_query(self, query: str) -> list[float]:
        """Vector de la query; lanza EmbeddingError tras agotar reintentos."""

        def fail(exc: BaseException) -> NoReturn:
            if isinstance(exc, EmbeddingError):
                raise exc
            raise EmbeddingError(
                "Query embedding failed", original_error=exc  # type: ignore[arg-type]
            ) from exc

        return retry_with_fallback(
            self._embed_query_checked,
            query,
            fallback=fail,
            **self._retry_opts,
        )

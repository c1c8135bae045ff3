"""
Name: Google GenAI Embedding Adapter

Qué hace
--------
Implementa `domain.services.EmbeddingService` sobre google-genai. Devuelve
vectores de dimensión D (output_dimensionality = embedding_dimension) y
valida cada respuesta antes de entregarla al EmbeddingAdapter.

CRC
---
Class: GoogleEmbeddingService
Responsibilities:
  - Partir lotes según el límite de la API (10 textos por request)
  - task_type distinto para fragmentos (RETRIEVAL_DOCUMENT) y queries
    (RETRIEVAL_QUERY)
  - Rechazar respuestas con cantidad o dimensión incorrecta (EmbeddingError)
Collaborators:
  - google.genai.Client (timeout por request via HttpOptions, en ms)
  - EmbeddingAdapter: dueño del retry y de la degradación
Constraints:
  - Sin retry propio. Los errores envueltos conservan la causa para que
    is_transient_error pueda clasificarlos.
"""

from __future__ import annotations

from typing import Iterator, Sequence

from google import genai
from google.genai import types

from ...crosscutting.exceptions import EmbeddingError
from ...crosscutting.logger import logger
from ...domain.services import EmbeddingService


def _batched(items: Sequence[str], batch_size: int) -> Iterator[list[str]]:
    """R: lotes consecutivos de tamaño fijo, en orden."""
    if batch_size <= 0:
        raise ValueError("batch_size must be > 0")
    for i in range(0, len(items), batch_size):
        yield list(items[i : i + batch_size])


class GoogleEmbeddingService(EmbeddingService):
    """R: Google implementation of EmbeddingService."""

    MODEL_ID = "text-embedding-004"
    BATCH_LIMIT = 10

    TASK_DOCUMENT = "RETRIEVAL_DOCUMENT"
    TASK_QUERY = "RETRIEVAL_QUERY"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        dimension: int,
        client: genai.Client | None = None,
        model_id: str | None = None,
        batch_limit: int | None = None,
        timeout_seconds: float = 30.0,
    ):
        """
        R: Construye el adapter (normalmente desde container.py).

        Args:
            api_key: GOOGLE_API_KEY (Settings)
            dimension: Expected vector length D
            client: genai.Client ya construido (tests)
            model_id: modelo de embeddings (default MODEL_ID)
            batch_limit: textos por request (default BATCH_LIMIT)
            timeout_seconds: Per-request timeout

        Raises:
            EmbeddingError: sin API key ni client inyectado
        """
        resolved_key = (api_key or "").strip()
        if not resolved_key and client is None:
            logger.error("Embedding provider misconfigured", extra={"missing": "GOOGLE_API_KEY"})
            raise EmbeddingError("GOOGLE_API_KEY not configured")
        if dimension <= 0:
            raise ValueError("dimension must be > 0")

        self._model_id = (model_id or self.MODEL_ID).strip()
        self._batch_limit = batch_limit or self.BATCH_LIMIT
        self._dimension = dimension

        self._client = client or genai.Client(
            api_key=resolved_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )

        logger.info(
            "Embedding provider ready",
            extra={
                "model_id": self._model_id,
                "batch_limit": self._batch_limit,
                "dimension": self._dimension,
            },
        )

    @property
    def model_id(self) -> str:
        return self._model_id

    def embed_one(self, text: str) -> list[float]:
        if not (text or "").strip():
            raise EmbeddingError("Text must not be empty")
        return self._embed(contents=[text], task_type=self.TASK_DOCUMENT)[0]

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """R: Document embeddings in API-sized batches."""
        if not texts:
            return []

        results: list[list[float]] = []
        batch_count = 0
        for batch in _batched(texts, self._batch_limit):
            results.extend(self._embed(contents=batch, task_type=self.TASK_DOCUMENT))
            batch_count += 1

        logger.info(
            "Embedding batch completed",
            extra={
                "model_id": self._model_id,
                "text_count": len(texts),
                "batch_count": batch_count,
            },
        )
        return results

    def embed_query(self, query: str) -> list[float]:
        if not (query or "").strip():
            raise EmbeddingError("Query must not be empty")
        return self._embed(contents=[query], task_type=self.TASK_QUERY)[0]

    def _embed(self, *, contents: Sequence[str], task_type: str) -> list[list[float]]:
        try:
            resp = self._client.models.embed_content(
                model=self._model_id,
                contents=list(contents),
                config=types.EmbedContentConfig(
                    task_type=task_type,
                    output_dimensionality=self._dimension,
                ),
            )
        except Exception as exc:
            logger.warning(
                "Embedding provider call failed",
                extra={
                    "model_id": self._model_id,
                    "task_type": task_type,
                    "batch_size": len(contents),
                    "error_type": type(exc).__name__,
                },
            )
            raise EmbeddingError(
                "Failed to call embedding provider", original_error=exc
            ) from exc

        embeddings = getattr(resp, "embeddings", None) or []
        if len(embeddings) != len(contents):
            raise EmbeddingError(
                f"Embedding response size mismatch: expected {len(contents)}, got {len(embeddings)}"
            )

        vectors: list[list[float]] = []
        for idx, embedding in enumerate(embeddings):
            values = getattr(embedding, "values", None)
            if not values:
                raise EmbeddingError(f"Empty embedding response at index {idx}")
            if len(values) != self._dimension:
                raise EmbeddingError(
                    "Unexpected embedding dimensionality: "
                    f"expected {self._dimension}, got {len(values)}"
                )
            vectors.append([float(v) for v in values])
        return vectors

"""
Name: Cached Embedding Service (Decorator)

Qué hace
--------
Decorator sobre `EmbeddingService` que agrega:
- Cache-aside (get → si miss → provider → set)
- Deduplicación de inputs en batch (mismo texto → 1 embedding)
- Preservación del orden original del batch
- Métricas de hit/miss (Prometheus)

CRC (Class-Responsibility-Collaboration)
----------------------------------------
Class: CachingEmbeddingService
Responsibilities:
  - Resolver embeddings con cache-aside (get/miss/set)
  - Deduplicar batch por clave estable y reconstruir el orden original
  - Emitir métricas de cache hit/miss
Collaborators:
  - EmbeddingService (provider): genera embeddings cuando hay miss
  - EmbeddingCachePort (cache): almacena y recupera vectores (acotada)
  - metrics: record_embedding_cache_hit/miss
Constraints:
  - La cache es best-effort (si falla, NO rompe embeddings)
  - Los errores del provider se propagan como EmbeddingError con su causa,
    para que la política de retry pueda clasificarlos
"""

from __future__ import annotations

import re
from typing import Sequence, cast

from ...crosscutting.exceptions import EmbeddingError
from ...crosscutting.logger import logger
from ...crosscutting.metrics import (
    record_embedding_cache_hit,
    record_embedding_cache_miss,
)
from ...domain.cache import EmbeddingCachePort
from ...domain.services import EmbeddingService

_WHITESPACE_RE = re.compile(r"\s+")
_TEXT_NORMALIZATION_VERSION = "v1"  # R: bump cuando cambie la normalización

_TASK_QUERY = "retrieval_query"
_TASK_DOCUMENT = "retrieval_document"


def normalize_embedding_text(text: str) -> str:
    """R: strip + colapso de whitespace (política v1)."""
    return _WHITESPACE_RE.sub(" ", text.strip())


def build_embedding_cache_key(model_id: str, text: str, task_type: str) -> str:
    """R: model | task | versión de normalización | texto normalizado."""
    normalized = normalize_embedding_text(text)
    return f"{model_id}|{task_type}|{_TEXT_NORMALIZATION_VERSION}|{normalized}"


def _wrap_provider_error(exc: Exception, message: str) -> EmbeddingError:
    if isinstance(exc, EmbeddingError):
        return exc
    return EmbeddingError(message, original_error=exc)


class CachingEmbeddingService(EmbeddingService):
    """R: Decorator de EmbeddingService que agrega cache-aside + métricas."""

    def __init__(
        self,
        provider: EmbeddingService,
        cache: EmbeddingCachePort,
        model_id: str | None = None,
    ):
        self._provider = provider
        self._cache = cache
        self._model_id = model_id or getattr(provider, "model_id", "unknown")

    @property
    def model_id(self) -> str:
        return self._model_id

    def _cache_get(self, key: str, kind: str) -> list[float] | None:
        try:
            return self._cache.get(key)
        except Exception as exc:
            logger.warning(
                "Embedding cache get failed; falling back to provider",
                extra={"kind": kind, "error_type": type(exc).__name__},
            )
            return None

    def _cache_set(self, key: str, embedding: list[float], kind: str) -> None:
        try:
            self._cache.set(key, embedding)
        except Exception as exc:
            logger.warning(
                "Embedding cache set failed; continuing without cache",
                extra={"kind": kind, "error_type": type(exc).__name__},
            )

    def _embed_single(self, text: str, task_type: str, kind: str) -> list[float]:
        if not (text or "").strip():
            raise EmbeddingError("Text must not be empty")

        key = build_embedding_cache_key(self._model_id, text, task_type)
        cached = self._cache_get(key, kind)
        if cached is not None:
            record_embedding_cache_hit(kind=kind)
            return cached

        record_embedding_cache_miss(kind=kind)
        try:
            if task_type == _TASK_QUERY:
                embedding = self._provider.embed_query(text)
            else:
                embedding = self._provider.embed_one(text)
        except Exception as exc:
            raise _wrap_provider_error(exc, "Provider failed to embed text") from exc

        self._cache_set(key, embedding, kind)
        return embedding

    def embed_one(self, text: str) -> list[float]:
        return self._embed_single(text, _TASK_DOCUMENT, "one")

    def embed_query(self, query: str) -> list[float]:
        return self._embed_single(query, _TASK_QUERY, "query")

    def embed_batch(self, texts: Sequence[str]) -> list[list[float]]:
        """
        R: Embeddings para batch con dedupe + cache-aside.

        - Dedupe: textos repetidos se piden una sola vez al provider.
        - Orden: resultado 1:1 con `texts`.
        - Métricas: hits/misses cuentan duplicados.
        """
        if not texts:
            return []

        key_to_indices: dict[str, list[int]] = {}
        key_to_text: dict[str, str] = {}
        for idx, text in enumerate(texts):
            if not (text or "").strip():
                raise EmbeddingError(f"Batch text at index {idx} must not be empty")
            key = build_embedding_cache_key(self._model_id, text, _TASK_DOCUMENT)
            if key not in key_to_indices:
                key_to_indices[key] = []
                key_to_text[key] = text
            key_to_indices[key].append(idx)

        results: list[list[float] | None] = [None] * len(texts)
        misses: list[str] = []

        for key, indices in key_to_indices.items():
            cached = self._cache_get(key, "batch")
            if cached is not None:
                record_embedding_cache_hit(count=len(indices), kind="batch")
                for idx in indices:
                    results[idx] = cached
            else:
                record_embedding_cache_miss(count=len(indices), kind="batch")
                misses.append(key)

        if misses:
            try:
                embeddings = self._provider.embed_batch([key_to_text[k] for k in misses])
            except Exception as exc:
                raise _wrap_provider_error(exc, "Provider failed to embed batch") from exc

            if len(embeddings) != len(misses):
                raise EmbeddingError(
                    "Embedding batch size mismatch in caching service: "
                    f"expected {len(misses)}, got {len(embeddings)}"
                )

            for key, embedding in zip(misses, embeddings):
                self._cache_set(key, embedding, "batch")
                for idx in key_to_indices[key]:
                    results[idx] = embedding

        return cast(list[list[float]], results)

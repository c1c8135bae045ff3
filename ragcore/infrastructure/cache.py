"""
============================================================
TARJETA CRC — infrastructure/cache.py
============================================================
Module: Embedding Cache (Facade + Backends)

Responsibilities:
  - Cachear vectores para no re-embeddear textos repetidos.
  - Acotar memoria: capacidad máxima (LRU) + expiración por TTL.
  - Seleccionar backend desde Settings (memory | redis | auto).
  - Generar claves estables via SHA-256 (no guardamos texto crudo como clave).
  - Exponer una fachada simple: get / set / clear / stats.

Collaborators:
  - infrastructure/services/cached_embedding_service.py (consumidor)
  - crosscutting/config.py (backend, max_size, ttl, redis_url)
  - redis-py (backend compartido entre procesos)

Policy:
  - Cache best-effort: un fallo de Redis cuenta como miss, nunca rompe
    la ingesta ni las queries.
  - Nunca crece sin límite: InMemory evicta LRU; Redis expira por SETEX.
============================================================
"""

from __future__ import annotations

import hashlib
import json
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from threading import Lock
from typing import Optional

import redis

from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger


class CacheBackend(ABC):
    """Contrato mínimo para un backend de caché de vectores."""

    @abstractmethod
    def get(self, key: str) -> Optional[list[float]]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, embedding: list[float]) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """Vector cacheado + instante de inserción (monotonic seconds)."""

    embedding: tuple[float, ...]
    created_at: float

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        return (now - self.created_at) > ttl_seconds


class InMemoryCacheBackend(CacheBackend):
    """
    Caché en memoria con LRU real (OrderedDict) + TTL por entrada.

    Las entradas se guardan como tuplas: un caller que mute la lista
    devuelta no corrompe la caché.
    """

    def __init__(
        self,
        *,
        max_size: int = 1000,
        ttl_seconds: float = 3600,
        clock=time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be > 0")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")

        self._max_size = int(max_size)
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock

        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expired = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get(self, key: str) -> Optional[list[float]]:
        now = self._clock()
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.is_expired(self._ttl_seconds, now):
                del self._cache[key]
                self._expired += 1
                self._misses += 1
                return None

            self._cache.move_to_end(key, last=True)
            self._hits += 1
            return list(entry.embedding)

    def set(self, key: str, embedding: list[float]) -> None:
        entry = CacheEntry(embedding=tuple(embedding), created_at=self._clock())
        with self._lock:
            if key in self._cache:
                self._cache[key] = entry
                self._cache.move_to_end(key, last=True)
                return

            if len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)  # R: LRU
                self._evictions += 1

            self._cache[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def stats(self) -> dict:
        with self._lock:
            total = self._hits + self._misses
            return {
                "backend": "memory",
                "size": len(self._cache),
                "max_size": self._max_size,
                "ttl_seconds": self._ttl_seconds,
                "hits": self._hits,
                "misses": self._misses,
                "expired": self._expired,
                "evictions": self._evictions,
                "hit_rate": (self._hits / total) if total > 0 else 0.0,
            }


class RedisCacheBackend(CacheBackend):
    """
    Caché Redis: compartida entre workers, TTL nativo por clave (SETEX).

    Errores de Redis se cuentan y se tratan como miss.
    """

    CACHE_PREFIX = "rag:embedding:"

    def __init__(
        self,
        *,
        redis_url: str = "",
        ttl_seconds: float = 3600,
        client: Optional[redis.Redis] = None,
    ) -> None:
        if client is None and not redis_url:
            raise ValueError("redis_url is required")

        self._client = client or redis.Redis.from_url(
            redis_url, decode_responses=True
        )
        self._ttl_seconds = max(1, int(ttl_seconds))

        self._hits = 0
        self._misses = 0
        self._errors = 0

    def _k(self, key: str) -> str:
        return f"{self.CACHE_PREFIX}{key}"

    def ping(self) -> bool:
        return bool(self._client.ping())

    def get(self, key: str) -> Optional[list[float]]:
        try:
            data = self._client.get(self._k(key))
        except redis.RedisError as exc:
            self._errors += 1
            self._misses += 1
            logger.warning(
                "Redis cache get failed", extra={"error_type": type(exc).__name__}
            )
            return None

        if data is None:
            self._misses += 1
            return None

        value = json.loads(data)
        if not isinstance(value, list):
            self._misses += 1
            return None
        self._hits += 1
        return [float(v) for v in value]

    def set(self, key: str, embedding: list[float]) -> None:
        try:
            self._client.setex(self._k(key), self._ttl_seconds, json.dumps(embedding))
        except redis.RedisError as exc:
            self._errors += 1
            logger.warning(
                "Redis cache set failed", extra={"error_type": type(exc).__name__}
            )

    def clear(self) -> None:
        try:
            keys = list(self._client.scan_iter(match=f"{self.CACHE_PREFIX}*"))
            if keys:
                self._client.delete(*keys)
        except redis.RedisError:
            self._errors += 1

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "backend": "redis",
            "ttl_seconds": self._ttl_seconds,
            "hits": self._hits,
            "misses": self._misses,
            "errors": self._errors,
            "hit_rate": (self._hits / total) if total > 0 else 0.0,
        }


def _hash_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class EmbeddingCache:
    """
    Fachada de caché de embeddings (implementa EmbeddingCachePort).

    Selección de backend (EMBEDDING_CACHE_BACKEND):
      - memory => in-memory
      - redis  => redis; si no responde, degrada a memoria
      - auto   => redis si REDIS_URL responde, si no memoria
    """

    def __init__(self, backend: CacheBackend) -> None:
        self._backend = backend

    @classmethod
    def from_settings(cls) -> "EmbeddingCache":
        settings = get_settings()
        return cls(
            _create_backend(
                kind=settings.embedding_cache_backend,
                redis_url=settings.redis_url,
                max_size=settings.embedding_cache_max_size,
                ttl_seconds=settings.embedding_cache_ttl_seconds,
            )
        )

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def get(self, key: str) -> Optional[list[float]]:
        return self._backend.get(_hash_key(key))

    def set(self, key: str, embedding: list[float]) -> None:
        self._backend.set(_hash_key(key), embedding)

    def clear(self) -> None:
        self._backend.clear()

    @property
    def stats(self) -> dict:
        return self._backend.stats()


def _create_backend(
    *, kind: str, redis_url: str, max_size: int, ttl_seconds: float
) -> CacheBackend:
    def memory() -> CacheBackend:
        return InMemoryCacheBackend(max_size=max_size, ttl_seconds=ttl_seconds)

    if kind == "memory" or not redis_url:
        return memory()

    try:
        backend = RedisCacheBackend(redis_url=redis_url, ttl_seconds=ttl_seconds)
        backend.ping()
        return backend
    except redis.RedisError as exc:
        logger.warning(
            "Redis cache unavailable, falling back to in-memory cache",
            extra={"requested_backend": kind, "error_type": type(exc).__name__},
        )
        return memory()


_embedding_cache: Optional[EmbeddingCache] = None


def get_embedding_cache() -> EmbeddingCache:
    """Singleton de proceso (evita abrir múltiples clientes Redis)."""
    global _embedding_cache
    if _embedding_cache is None:
        _embedding_cache = EmbeddingCache.from_settings()
    return _embedding_cache


def reset_embedding_cache() -> None:
    """Reset del singleton (tests)."""
    global _embedding_cache
    _embedding_cache = None

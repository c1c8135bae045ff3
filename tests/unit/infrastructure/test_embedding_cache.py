"""
Name: Embedding Cache Unit Tests

Responsibilities:
  - InMemoryCacheBackend: LRU eviction, TTL expiry (injected clock), stats
  - RedisCacheBackend: errors counted and treated as misses
  - Backend selection with fallback to memory when Redis is unreachable

Collaborators:
  - ragcore.infrastructure.cache
  - redis (RedisError types, mocked client)
"""

import json
from unittest.mock import MagicMock

import pytest
import redis

from ragcore.infrastructure import cache as cache_module
from ragcore.infrastructure.cache import (
    EmbeddingCache,
    InMemoryCacheBackend,
    RedisCacheBackend,
)


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.unit
class TestInMemoryCacheBackend:
    def test_get_returns_copy(self):
        backend = InMemoryCacheBackend(max_size=2)
        backend.set("k", [1.0, 2.0])

        value = backend.get("k")
        value.append(99.0)

        assert backend.get("k") == [1.0, 2.0]

    def test_lru_eviction_respects_recent_reads(self):
        backend = InMemoryCacheBackend(max_size=2)
        backend.set("a", [1.0])
        backend.set("b", [2.0])
        backend.get("a")  # R: "a" pasa a ser el más reciente

        backend.set("c", [3.0])

        assert backend.get("b") is None
        assert backend.get("a") == [1.0]
        assert backend.stats()["evictions"] == 1

    def test_ttl_expiry(self):
        clock = _Clock()
        backend = InMemoryCacheBackend(max_size=10, ttl_seconds=60, clock=clock)
        backend.set("k", [1.0])

        clock.now += 61

        assert backend.get("k") is None
        stats = backend.stats()
        assert stats["expired"] == 1
        assert len(backend) == 0

    def test_stats_hit_rate(self):
        backend = InMemoryCacheBackend(max_size=10)
        backend.set("k", [1.0])
        backend.get("k")
        backend.get("missing")

        stats = backend.stats()

        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5
        assert stats["backend"] == "memory"

    @pytest.mark.parametrize("kwargs", [{"max_size": 0}, {"ttl_seconds": 0}])
    def test_invalid_bounds(self, kwargs):
        with pytest.raises(ValueError):
            InMemoryCacheBackend(**kwargs)


@pytest.mark.unit
class TestRedisCacheBackend:
    def test_get_and_set_round_trip_through_client(self):
        client = MagicMock()
        client.get.return_value = json.dumps([0.5, 0.25])
        backend = RedisCacheBackend(client=client, ttl_seconds=120)

        backend.set("k", [0.5, 0.25])
        value = backend.get("k")

        client.setex.assert_called_once_with(
            "rag:embedding:k", 120, json.dumps([0.5, 0.25])
        )
        assert value == [0.5, 0.25]

    def test_redis_errors_are_misses(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.setex.side_effect = redis.ConnectionError("down")
        backend = RedisCacheBackend(client=client)

        backend.set("k", [1.0])

        assert backend.get("k") is None
        stats = backend.stats()
        assert stats["errors"] == 2
        assert stats["misses"] == 1

    def test_requires_url_or_client(self):
        with pytest.raises(ValueError):
            RedisCacheBackend()


@pytest.mark.unit
class TestBackendSelection:
    def test_memory_when_requested(self):
        backend = cache_module._create_backend(
            kind="memory", redis_url="redis://x:6379", max_size=5, ttl_seconds=10
        )
        assert isinstance(backend, InMemoryCacheBackend)

    def test_unreachable_redis_falls_back_to_memory(self, monkeypatch):
        def _ping_fails(self):
            raise redis.ConnectionError("refused")

        monkeypatch.setattr(RedisCacheBackend, "ping", _ping_fails)

        backend = cache_module._create_backend(
            kind="auto", redis_url="redis://localhost:1", max_size=5, ttl_seconds=10
        )

        assert isinstance(backend, InMemoryCacheBackend)

    def test_facade_hashes_keys(self):
        backend = InMemoryCacheBackend(max_size=5)
        cache = EmbeddingCache(backend)

        cache.set("model|task|v1|text", [1.0])

        assert cache.get("model|task|v1|text") == [1.0]
        assert backend.get("model|task|v1|text") is None
        assert cache.stats["size"] == 1

    def test_singleton_reset(self):
        cache_module.reset_embedding_cache()
        first = cache_module.get_embedding_cache()

        assert cache_module.get_embedding_cache() is first
        cache_module.reset_embedding_cache()
        assert cache_module.get_embedding_cache() is not first

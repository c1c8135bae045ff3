"""Unit tests for cached embedding service."""

import pytest

from ragcore.crosscutting.exceptions import EmbeddingError
from ragcore.infrastructure.cache import EmbeddingCache, InMemoryCacheBackend
from ragcore.infrastructure.services.cached_embedding_service import (
    CachingEmbeddingService,
    build_embedding_cache_key,
)


class FakeEmbeddingService:
    """Simple embedding provider stub with call tracking."""

    model_id = "models/test-embed"

    def __init__(self) -> None:
        self.query_calls: list[str] = []
        self.one_calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    def embed_query(self, query: str) -> list[float]:
        self.query_calls.append(query)
        return [float(len(query))]

    def embed_one(self, text: str) -> list[float]:
        self.one_calls.append(text)
        return [float(len(text))]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        return [[float(len(text))] for text in texts]


class _BrokenCache:
    def get(self, key):
        raise RuntimeError("cache down")

    def set(self, key, embedding):
        raise RuntimeError("cache down")


def _cache() -> EmbeddingCache:
    return EmbeddingCache(InMemoryCacheBackend(max_size=100))


class TestCachingEmbeddingService:
    """Test caching wrapper for embedding service."""

    def test_embed_query_cache_hit_avoids_provider(self):
        provider = FakeEmbeddingService()
        service = CachingEmbeddingService(provider=provider, cache=_cache())

        first = service.embed_query("hello")
        second = service.embed_query("  hello ")

        assert first == second
        assert len(provider.query_calls) == 1

    def test_query_and_document_keys_are_separate(self):
        provider = FakeEmbeddingService()
        service = CachingEmbeddingService(provider=provider, cache=_cache())

        service.embed_query("hello")
        service.embed_one("hello")

        assert provider.query_calls == ["hello"]
        assert provider.one_calls == ["hello"]

    def test_embed_batch_mixed_hit_miss_preserves_order(self):
        provider = FakeEmbeddingService()
        cache = _cache()
        service = CachingEmbeddingService(provider=provider, cache=cache)

        cached_key = build_embedding_cache_key(
            provider.model_id, "cached", "retrieval_document"
        )
        cache.set(cached_key, [9.0])

        results = service.embed_batch(["cached", "new", "cached", "other"])

        assert results == [[9.0], [3.0], [9.0], [5.0]]
        assert provider.batch_calls == [["new", "other"]]

    def test_embed_batch_dedupes_repeated_texts(self):
        provider = FakeEmbeddingService()
        service = CachingEmbeddingService(provider=provider, cache=_cache())

        results = service.embed_batch(["same", "same", "diff"])

        assert results == [[4.0], [4.0], [4.0]]
        assert provider.batch_calls == [["same", "diff"]]

    def test_empty_text_raises(self):
        service = CachingEmbeddingService(provider=FakeEmbeddingService(), cache=_cache())

        with pytest.raises(EmbeddingError):
            service.embed_query("   ")
        with pytest.raises(EmbeddingError):
            service.embed_batch(["ok", ""])

    def test_broken_cache_falls_back_to_provider(self):
        provider = FakeEmbeddingService()
        service = CachingEmbeddingService(provider=provider, cache=_BrokenCache())

        assert service.embed_query("abc") == [3.0]
        assert provider.query_calls == ["abc"]

    def test_provider_errors_wrapped(self):
        class _Down(FakeEmbeddingService):
            def embed_query(self, query):
                raise TimeoutError("slow")

        service = CachingEmbeddingService(provider=_Down(), cache=_cache())

        with pytest.raises(EmbeddingError) as exc_info:
            service.embed_query("abc")
        assert isinstance(exc_info.value.original_error, TimeoutError)

    def test_cache_key_normalizes_whitespace(self):
        assert build_embedding_cache_key("m", " a   b ", "retrieval_query") == (
            "m|retrieval_query|v1|a b"
        )

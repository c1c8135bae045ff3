"""
Name: Embedding Cache Port

Responsibilities:
  - Define the minimal cache contract for embeddings (get/set)
  - Keep application/infrastructure decoupled from the cache backend

Collaborators:
  - infrastructure.cache.EmbeddingCache (implementation)
  - infrastructure.services.cached_embedding_service (consumer)
"""

from __future__ import annotations

from typing import Optional, Protocol


class EmbeddingCachePort(Protocol):
    def get(self, key: str) -> Optional[list[float]]: ...

    def set(self, key: str, embedding: list[float]) -> None: ...

"""Store en memoria (tests / desarrollo local / referencia del contrato)."""

from .chunk_store import InMemoryChunkStore

__all__ = ["InMemoryChunkStore"]

"""
Repositorios de infraestructura (implementaciones de domain.repositories).

Policy:
  - Solo re-exporta símbolos; sin side effects.
"""

from .in_memory import InMemoryChunkStore

__all__ = ["InMemoryChunkStore"]

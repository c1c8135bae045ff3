"""
Worker de ingesta: pool acotado con backpressure + locks por documento.

Los jobs corren fuera del path de queries; una query nunca espera a una
ingesta.
"""

from .ingestion_service import IngestionService
from .locks import DocumentLockRegistry
from .pool import BoundedWorkerPool

__all__ = ["BoundedWorkerPool", "DocumentLockRegistry", "IngestionService"]

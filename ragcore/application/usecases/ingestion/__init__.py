"""
===============================================================================
INGESTION USE CASES PACKAGE (Public API / Exports)
===============================================================================

Business Goal:
    Exponer los casos de uso de ingesta (ingest directo y reprocess) con sus
    DTOs de entrada.

Collaborators:
    - ingest_document, reprocess_document
===============================================================================
"""

from .ingest_document import IngestDocumentInput, IngestDocumentUseCase
from .reprocess_document import ReprocessDocumentUseCase

__all__ = [
    "IngestDocumentInput",
    "IngestDocumentUseCase",
    "ReprocessDocumentUseCase",
]

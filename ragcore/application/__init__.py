"""
===============================================================================
APPLICATION LAYER (Public API / Exports)
===============================================================================

Expone los servicios de aplicación compartidos:
  - Retriever: top-K con post-filtro y umbral
  - ContextPacker: packing greedy por presupuesto de tokens
  - cosine / is_zero_vector: scoring de similitud
  - RAGPipeline: facade de ingesta + query

Nota:
  - Los casos de uso se importan desde `usecases/`.
===============================================================================
"""

from .context_packer import ContextPacker
from .rag_pipeline import RAGPipeline
from .retriever import RetrievalFilters, Retriever, rank_scored_chunks
from .similarity import cosine, is_zero_vector

__all__ = [
    "ContextPacker",
    "RAGPipeline",
    "RetrievalFilters",
    "Retriever",
    "rank_scored_chunks",
    "cosine",
    "is_zero_vector",
]

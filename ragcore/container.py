"""
===============================================================================
TARJETA CRC — ragcore/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer dependencias (store, proveedores, adapters, use cases) siguiendo
    DIP: los use cases sólo conocen puertos del dominio.
  - Mantener singletons con caching (lru_cache) para recursos pesados
    (clientes de proveedor, cache, pool de threads).
  - Centralizar decisiones runtime basadas en Settings (fake vs Google).

Colaboradores:
  - ragcore.crosscutting.config.get_settings
  - ragcore.infrastructure.* (implementaciones)
  - ragcore.application.* (use cases + facade)

Notas:
  - Este archivo NO contiene lógica de negocio.
  - reset_container() limpia los singletons (tests).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application import ContextPacker, RAGPipeline, Retriever
from .application.usecases import (
    IngestDocumentUseCase,
    RAGOrchestrator,
    ReprocessDocumentUseCase,
)
from .crosscutting.config import get_settings
from .domain.repositories import ChunkStore
from .domain.services import (
    DiagramRenderer,
    EmbeddingService,
    LLMService,
    TextChunkerService,
)
from .infrastructure.cache import get_embedding_cache, reset_embedding_cache
from .infrastructure.repositories import InMemoryChunkStore
from .infrastructure.services import (
    CachingEmbeddingService,
    EmbeddingAdapter,
    FakeEmbeddingService,
    FakeLLMService,
    GoogleEmbeddingService,
    GoogleLLMService,
    LLMDiagramRenderer,
)
from .infrastructure.services.llm.retrying_llm_service import RetryingLLMService
from .infrastructure.text import AdaptiveTextChunker
from .infrastructure.worker import (
    BoundedWorkerPool,
    DocumentLockRegistry,
    IngestionService,
)

# =============================================================================
# Store
# =============================================================================


@lru_cache(maxsize=1)
def get_chunk_store() -> ChunkStore:
    """Store de referencia en memoria (el vector store real es externo)."""
    return InMemoryChunkStore()


# =============================================================================
# Proveedores
# =============================================================================


@lru_cache(maxsize=1)
def get_embedding_service() -> EmbeddingService:
    """
    Servicio de embeddings con cache (CachingEmbeddingService envuelve proveedor).
    """
    settings = get_settings()

    provider: EmbeddingService
    if settings.fake_embeddings:
        provider = FakeEmbeddingService(dimension=settings.embedding_dimension)
    else:
        provider = GoogleEmbeddingService(
            settings.google_api_key,
            dimension=settings.embedding_dimension,
            model_id=settings.embedding_model_id,
            timeout_seconds=settings.provider_timeout_seconds,
        )

    return CachingEmbeddingService(provider=provider, cache=get_embedding_cache())


@lru_cache(maxsize=1)
def get_embedding_adapter() -> EmbeddingAdapter:
    """Embeddings con retry + degradación (batch → secuencial → vector cero)."""
    settings = get_settings()
    return EmbeddingAdapter(
        get_embedding_service(),
        dimension=settings.embedding_dimension,
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_raw_llm_service() -> LLMService:
    """Servicio LLM sin retry (fake si FAKE_LLM=1)."""
    settings = get_settings()
    if settings.fake_llm:
        return FakeLLMService()
    return GoogleLLMService(
        settings.google_api_key,
        model_id=settings.llm_model_id,
        timeout_seconds=settings.provider_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_llm_service() -> LLMService:
    settings = get_settings()
    return RetryingLLMService(
        get_raw_llm_service(),
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_diagram_renderer() -> DiagramRenderer:
    settings = get_settings()
    return LLMDiagramRenderer(
        get_raw_llm_service(),
        max_attempts=settings.retry_max_attempts,
        base_delay=settings.retry_base_delay_seconds,
        max_delay=settings.retry_max_delay_seconds,
    )


@lru_cache(maxsize=1)
def get_text_chunker() -> TextChunkerService:
    settings = get_settings()
    return AdaptiveTextChunker(
        default_chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        min_chunk_size=settings.chunk_min_size,
        max_chunk_size=settings.chunk_max_size,
    )


# =============================================================================
# Ingesta
# =============================================================================


@lru_cache(maxsize=1)
def get_document_locks() -> DocumentLockRegistry:
    return DocumentLockRegistry()


@lru_cache(maxsize=1)
def get_ingest_document_use_case() -> IngestDocumentUseCase:
    settings = get_settings()
    return IngestDocumentUseCase(
        get_chunk_store(),
        get_text_chunker(),
        get_embedding_adapter(),
        min_chunk_size=settings.chunk_min_size,
        max_chunk_size=settings.chunk_max_size,
        locks=get_document_locks(),
    )


@lru_cache(maxsize=1)
def get_reprocess_document_use_case() -> ReprocessDocumentUseCase:
    return ReprocessDocumentUseCase(
        get_chunk_store(),
        get_ingest_document_use_case(),
        get_document_locks(),
    )


@lru_cache(maxsize=1)
def get_worker_pool() -> BoundedWorkerPool:
    settings = get_settings()
    return BoundedWorkerPool(
        max_workers=settings.ingest_max_workers,
        queue_capacity=settings.ingest_queue_capacity,
    )


@lru_cache(maxsize=1)
def get_ingestion_service() -> IngestionService:
    return IngestionService(
        pool=get_worker_pool(),
        ingest_use_case=get_ingest_document_use_case(),
        reprocess_use_case=get_reprocess_document_use_case(),
    )


# =============================================================================
# Query
# =============================================================================


@lru_cache(maxsize=1)
def get_retriever() -> Retriever:
    return Retriever(get_chunk_store())


@lru_cache(maxsize=1)
def get_rag_orchestrator() -> RAGOrchestrator:
    settings = get_settings()
    return RAGOrchestrator(
        get_chunk_store(),
        get_embedding_adapter(),
        get_llm_service(),
        get_retriever(),
        ContextPacker(settings.rag_max_context_tokens),
        get_diagram_renderer(),
        default_max_chunks=settings.rag_max_chunks,
        max_chunks_limit=settings.rag_max_chunks_limit,
        default_min_similarity=settings.rag_min_similarity,
        history_turns=settings.rag_history_turns,
    )


@lru_cache(maxsize=1)
def get_rag_pipeline() -> RAGPipeline:
    settings = get_settings()
    return RAGPipeline(
        store=get_chunk_store(),
        retriever=get_retriever(),
        ingest_use_case=get_ingest_document_use_case(),
        reprocess_use_case=get_reprocess_document_use_case(),
        orchestrator=get_rag_orchestrator(),
        min_similarity=settings.rag_min_similarity,
        high_quality_threshold=settings.rag_high_quality_threshold,
    )


def reset_container() -> None:
    """Limpia singletons (tests). Apaga el pool si ya estaba creado."""
    if get_worker_pool.cache_info().currsize:
        get_worker_pool().shutdown(wait=False)

    for factory in (
        get_chunk_store,
        get_embedding_service,
        get_embedding_adapter,
        get_raw_llm_service,
        get_llm_service,
        get_diagram_renderer,
        get_text_chunker,
        get_document_locks,
        get_ingest_document_use_case,
        get_reprocess_document_use_case,
        get_worker_pool,
        get_ingestion_service,
        get_retriever,
        get_rag_orchestrator,
        get_rag_pipeline,
    ):
        factory.cache_clear()
    reset_embedding_cache()

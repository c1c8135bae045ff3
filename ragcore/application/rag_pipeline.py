"""
===============================================================================
RAG PIPELINE (Public Facade)
===============================================================================

Qué es
------
Punto de entrada de alto nivel sobre los use cases:

  - ingest / reprocess: traducen el resultado tipado a excepciones del
    dominio (ValidationError, NotFoundError, ProviderError, ...) para
    callers que prefieren try/except.
  - query: arma el RAGQuery y delega en el RAGOrchestrator (nunca lanza;
    devuelve siempre un RAGAnswer).
  - Analytics de chunks y búsquedas auxiliares (similar / related).

Se obtiene armado desde `ragcore.container.get_rag_pipeline()`.
===============================================================================
"""

from __future__ import annotations

from typing import Final, Iterable, Optional, Sequence, Union
from uuid import UUID

from ..crosscutting.exceptions import (
    DocumentLockedError,
    IngestionRejectedError,
    NotFoundError,
    ProviderError,
    RAGError,
    ValidationError,
)
from ..domain.diagram import DiagramType
from ..domain.entities import (
    Chunk,
    ConversationTurn,
    QueryMode,
    RAGAnswer,
    RAGQuery,
    ScoredChunk,
)
from ..domain.repositories import ChunkStore
from ..domain.value_objects import ChunkStatistics
from . import chunk_analytics
from .retriever import RetrievalFilters, Retriever
from .usecases.ingestion.ingest_document import (
    IngestDocumentInput,
    IngestDocumentUseCase,
)
from .usecases.ingestion.reprocess_document import ReprocessDocumentUseCase
from .usecases.query.answer_query import RAGOrchestrator
from .usecases.results import UseCaseError, UseCaseErrorCode

# R: código de error del use case -> excepción del facade
_ERROR_TYPES: Final[dict[UseCaseErrorCode, type[RAGError]]] = {
    UseCaseErrorCode.VALIDATION_ERROR: ValidationError,
    UseCaseErrorCode.NOT_FOUND: NotFoundError,
    UseCaseErrorCode.CONFLICT: DocumentLockedError,
    UseCaseErrorCode.SERVICE_UNAVAILABLE: ProviderError,
    UseCaseErrorCode.REJECTED: IngestionRejectedError,
}


def raise_for_error(error: Optional[UseCaseError]) -> None:
    if error is None:
        return
    raise _ERROR_TYPES.get(error.code, RAGError)(error.message)


class RAGPipeline:
    def __init__(
        self,
        *,
        store: ChunkStore,
        retriever: Retriever,
        ingest_use_case: IngestDocumentUseCase,
        reprocess_use_case: ReprocessDocumentUseCase,
        orchestrator: RAGOrchestrator,
        min_similarity: float = 0.3,
        high_quality_threshold: float = 0.8,
    ) -> None:
        self._store = store
        self._retriever = retriever
        self._ingest = ingest_use_case
        self._reprocess = reprocess_use_case
        self._orchestrator = orchestrator
        self._min_similarity = min_similarity
        self._high_quality_threshold = high_quality_threshold

    # =========================================================================
    # Ingesta
    # =========================================================================

    def ingest(
        self,
        document_id: UUID,
        text: str,
        *,
        language: str = "en",
        domain_tags: Iterable[str] = (),
        page_count: Optional[int] = None,
        content_type: Optional[str] = None,
        chunk_size: Optional[int] = None,
    ) -> int:
        """Ingesta sincrónica; devuelve la cantidad de chunks creados."""
        result = self._ingest.execute(
            IngestDocumentInput(
                document_id=document_id,
                text=text,
                language=language,
                domain_tags=frozenset(domain_tags),
                page_count=page_count,
                content_type=content_type,
                chunk_size=chunk_size,
            )
        )
        raise_for_error(result.error)
        return result.chunks_created

    def reprocess(self, document_id: UUID, *, chunk_size: Optional[int] = None) -> int:
        result = self._reprocess.execute(document_id, chunk_size=chunk_size)
        raise_for_error(result.error)
        return result.chunks_created

    # =========================================================================
    # Query
    # =========================================================================

    def query(
        self,
        text: str,
        filters: Optional[RetrievalFilters] = None,
        max_chunks: Optional[int] = None,
        min_similarity: Optional[float] = None,
        mode: QueryMode = QueryMode.GENERAL,
        history: Optional[Sequence[ConversationTurn]] = None,
        diagram_type: Union[DiagramType, str, None] = None,
        diagram_instructions: Optional[str] = None,
    ) -> RAGAnswer:
        filters = filters or RetrievalFilters()
        if isinstance(diagram_type, str):
            try:
                diagram_type = DiagramType.from_code(diagram_type)
            except ValueError as exc:
                raise ValidationError(str(exc), original_error=exc) from exc

        return self._orchestrator.execute(
            RAGQuery(
                text=text,
                mode=mode,
                domain_tags=frozenset(filters.domain_tags),
                document_id=filters.document_id,
                history=tuple(history or ()),
                max_chunks=max_chunks,
                min_similarity=min_similarity,
                diagram_type=diagram_type,
                diagram_instructions=diagram_instructions,
            )
        )

    def query_document(self, document_id: UUID, text: str, **kwargs) -> RAGAnswer:
        return self.query(
            text,
            filters=RetrievalFilters(document_id=document_id),
            mode=QueryMode.DOCUMENT,
            **kwargs,
        )

    # =========================================================================
    # Búsquedas auxiliares + analytics
    # =========================================================================

    def similar_chunks(self, chunk_id: UUID, k: int = 5) -> list[ScoredChunk]:
        return self._retriever.find_similar_to_chunk(chunk_id, k)

    def related_content(self, document_id: UUID, k: int = 5) -> list[ScoredChunk]:
        return self._retriever.related_content(
            document_id, k, min_similarity=self._min_similarity
        )

    def document_chunks(self, document_id: UUID) -> list[Chunk]:
        if self._store.get_document(document_id) is None:
            raise NotFoundError(f"Document {document_id} not found")
        return self._store.get_chunks(document_id)

    def chunk_statistics(self, document_id: UUID) -> ChunkStatistics:
        return chunk_analytics.chunk_statistics(self.document_chunks(document_id))

    def chunks_by_page(self, document_id: UUID, page: int) -> list[Chunk]:
        return chunk_analytics.chunks_by_page(self.document_chunks(document_id), page)

    def high_quality_chunks(
        self, document_id: UUID, threshold: Optional[float] = None
    ) -> list[Chunk]:
        return chunk_analytics.high_quality_chunks(
            self.document_chunks(document_id),
            self._high_quality_threshold if threshold is None else threshold,
        )

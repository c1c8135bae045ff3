"""
===============================================================================
USE CASE: Ingest Document (Validate → Chunk → Embed → Persist)
===============================================================================

Business Goal:
    Transformar el texto de un documento en chunks con embeddings y
    persistirlos en el ChunkStore, dejando el documento en un estado de
    ciclo de vida explícito (pending → processing → completed | failed).

What this use case guarantees (invariantes):
  1) El embedding de un fragmento nunca aborta la ingesta: los fallos quedan
     como vectores cero degradados (re-procesables) y se reportan.
  2) Texto vacío/blanco => 0 chunks y NO se llama al proveedor.
  3) Las transiciones de estado pasan solo por los métodos nombrados del
     Document (start/complete/fail/reset).
  4) Un error inesperado deja el documento FAILED y devuelve
     SERVICE_UNAVAILABLE (no se propaga la excepción).

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    IngestDocumentUseCase

Responsibilities:
    - Validar input (document_id, chunk_size, page_count).
    - Registrar o reutilizar el Document (PENDING) y marcarlo PROCESSING.
    - Chunking + embeddings vía puertos del dominio.
    - save_chunks + complete_processing.

Collaborators:
    - ChunkStore (get/save document, save_chunks)
    - DocumentLockManager (opcional: exclusión con reprocess)
    - ResilientEmbeddingService (embed_batch → EmbeddingOutcome)
    - TextChunkerService (tamaño óptimo + página estimada)
    - crosscutting.metrics (ingest jobs, chunks created)
===============================================================================
"""

from __future__ import annotations

from contextlib import nullcontext
from dataclasses import dataclass, field, replace
from typing import ContextManager, FrozenSet, Final, Optional, Sequence
from uuid import UUID

from ....crosscutting.exceptions import DocumentLockedError
from ....crosscutting.logger import logger
from ....crosscutting.metrics import record_chunks_created, record_ingest_job
from ....crosscutting.timing import StageTimings
from ....domain.entities import Chunk, Document, DocumentStatus
from ....domain.repositories import ChunkStore
from ....domain.services import (
    DocumentLockManager,
    ResilientEmbeddingService,
    TextChunkerService,
)
from ....domain.value_objects import ChunkFragment, EmbeddingOutcome
from ..results import IngestDocumentResult, UseCaseError, UseCaseErrorCode

_RESOURCE_DOCUMENT: Final[str] = "Document"

_MSG_DOCUMENT_ID_REQUIRED: Final[str] = "document_id is required"
_MSG_ALREADY_INGESTED: Final[str] = (
    "Document already ingested; reprocess it to rebuild its chunks."
)
_MSG_ALREADY_PROCESSING: Final[str] = "Document is already processing."
_MSG_EMBEDDING_UNAVAILABLE: Final[str] = "Ingestion failed; document marked as failed."


@dataclass(frozen=True)
class IngestDocumentInput:
    """
    DTO de entrada para ingesta.

    chunk_size en None => tamaño óptimo según page_count / content_type.
    """

    document_id: UUID
    text: str
    language: str = "en"
    domain_tags: FrozenSet[str] = field(default_factory=frozenset)
    page_count: Optional[int] = None
    content_type: Optional[str] = None
    chunk_size: Optional[int] = None


class IngestDocumentUseCase:
    """
    chunk_size explícito se valida contra [min_chunk_size, max_chunk_size];
    el default lo resuelve el chunker.
    """

    def __init__(
        self,
        store: ChunkStore,
        chunker: TextChunkerService,
        embeddings: ResilientEmbeddingService,
        *,
        min_chunk_size: int = 100,
        max_chunk_size: int = 2000,
        locks: Optional[DocumentLockManager] = None,
    ) -> None:
        self._store = store
        self._chunker = chunker
        self._embeddings = embeddings
        self._min_chunk_size = min_chunk_size
        self._max_chunk_size = max_chunk_size
        self._locks = locks

    def execute(self, input_data: IngestDocumentInput) -> IngestDocumentResult:
        """
        Orden de operaciones:
          1) Validar input (barato, sin tocar servicios).
          2) Tomar el lock del documento (sin bloquear).
          3) Registrar/reutilizar Document y pasar a PROCESSING.
          4) Chunking.
          5) Embeddings (batch → secuencial → degradado).
          6) save_chunks + COMPLETED.
        """
        validation_error = self.validate_input(input_data)
        if validation_error is not None:
            return IngestDocumentResult(
                document_id=input_data.document_id, error=validation_error
            )

        try:
            with self._hold(input_data.document_id):
                return self.execute_locked(input_data)
        except DocumentLockedError:
            return IngestDocumentResult(
                document_id=input_data.document_id,
                error=UseCaseError(
                    code=UseCaseErrorCode.CONFLICT,
                    message=_MSG_ALREADY_PROCESSING,
                    resource=_RESOURCE_DOCUMENT,
                ),
            )

    def execute_locked(self, input_data: IngestDocumentInput) -> IngestDocumentResult:
        """Pasos 3-6; el caller ya tiene el lock (ej: reprocess)."""
        document, conflict = self._prepare_document(input_data)
        if conflict is not None:
            return IngestDocumentResult(document_id=input_data.document_id, error=conflict)

        document.start_processing()
        self._store.save_document(document)

        timings = StageTimings()
        try:
            with timings.measure("chunking"):
                fragments = self._chunker.chunk(
                    input_data.text,
                    chunk_size=input_data.chunk_size,
                    page_count=input_data.page_count,
                    content_type=input_data.content_type,
                )

            with timings.measure("embedding"):
                outcomes = (
                    self._embeddings.embed_batch([f.content for f in fragments])
                    if fragments
                    else []
                )

            chunks = self._build_chunks(document, input_data, fragments, outcomes)
            with timings.measure("persist"):
                self._store.save_chunks(chunks)

            document.complete_processing()
            self._store.save_document(document)
        except Exception as exc:
            logger.exception(
                "Ingestion failed",
                extra={"document_id": str(document.id), "error_type": type(exc).__name__},
            )
            document.fail_processing(f"{type(exc).__name__}: {exc}")
            self._store.save_document(document)
            record_ingest_job("failed")
            return IngestDocumentResult(
                document_id=document.id,
                status=DocumentStatus.FAILED,
                error=UseCaseError(
                    code=UseCaseErrorCode.SERVICE_UNAVAILABLE,
                    message=_MSG_EMBEDDING_UNAVAILABLE,
                    resource=_RESOURCE_DOCUMENT,
                ),
            )

        degraded = sum(1 for c in chunks if c.embedding_degraded)
        record_ingest_job("completed")
        record_chunks_created(len(chunks))
        logger.info(
            "Document ingested",
            extra={
                "document_id": str(document.id),
                "chunks_created": len(chunks),
                "degraded_embeddings": degraded,
                **timings.to_dict(),
            },
        )
        return IngestDocumentResult(
            document_id=document.id,
            chunks_created=len(chunks),
            degraded_embeddings=degraded,
            status=document.status,
        )

    def validate_input(self, input_data: IngestDocumentInput) -> UseCaseError | None:
        if not input_data.document_id:
            return self._validation_error(_MSG_DOCUMENT_ID_REQUIRED)

        size = input_data.chunk_size
        if size is not None and not (
            self._min_chunk_size <= size <= self._max_chunk_size
        ):
            return self._validation_error(
                f"chunk_size must be between {self._min_chunk_size} "
                f"and {self._max_chunk_size}"
            )

        if input_data.page_count is not None and input_data.page_count <= 0:
            return self._validation_error("page_count must be > 0")
        return None

    # =========================================================================
    # Helpers privados
    # =========================================================================

    def _prepare_document(
        self, input_data: IngestDocumentInput
    ) -> tuple[Document, UseCaseError | None]:
        """Documento nuevo, o el existente si está PENDING (reprocess)."""
        existing = self._store.get_document(input_data.document_id)
        if existing is None:
            return (
                Document(
                    id=input_data.document_id,
                    text=input_data.text,
                    language=input_data.language,
                    domain_tags=frozenset(input_data.domain_tags),
                    page_count=input_data.page_count,
                    content_type=input_data.content_type,
                ),
                None,
            )

        if existing.status is not DocumentStatus.PENDING:
            message = (
                _MSG_ALREADY_PROCESSING if existing.is_processing else _MSG_ALREADY_INGESTED
            )
            return existing, UseCaseError(
                code=UseCaseErrorCode.CONFLICT,
                message=message,
                resource=_RESOURCE_DOCUMENT,
            )

        # R: status intacto; solo contenido/metadata
        return (
            replace(
                existing,
                text=input_data.text,
                language=input_data.language,
                domain_tags=frozenset(input_data.domain_tags),
                page_count=input_data.page_count,
                content_type=input_data.content_type,
            ),
            None,
        )

    def _build_chunks(
        self,
        document: Document,
        input_data: IngestDocumentInput,
        fragments: Sequence[ChunkFragment],
        outcomes: Sequence[EmbeddingOutcome],
    ) -> list[Chunk]:
        chunks: list[Chunk] = []
        for fragment, outcome in zip(fragments, outcomes):
            chunk = Chunk(
                document_id=document.id,
                chunk_index=fragment.index,
                content=fragment.content,
                start=fragment.start,
                end=fragment.end,
                token_count=fragment.token_count,
                confidence=fragment.confidence,
                low_confidence=fragment.low_confidence,
                section_title=fragment.section_title,
                page_number=fragment.page_number,
                content_type=input_data.content_type,
                domain_tags=document.domain_tags,
            )
            chunk.attach_embedding(
                outcome.vector,
                dimension=self._embeddings.dimension,
                degraded=outcome.degraded,
            )
            chunks.append(chunk)
        return chunks

    @staticmethod
    def _validation_error(message: str) -> UseCaseError:
        return UseCaseError(
            code=UseCaseErrorCode.VALIDATION_ERROR,
            message=message,
            resource=_RESOURCE_DOCUMENT,
        )

    def _hold(self, document_id: UUID) -> ContextManager[None]:
        if self._locks is None:
            return nullcontext()
        return self._locks.hold(document_id)

"""
===============================================================================
USE CASE: Reprocess Document (Reset → Delete Chunks → Re-Ingest)
===============================================================================

Business Goal:
    Reconstruir los chunks de un documento ya ingerido (ej: cambió el tamaño
    de chunk o hubo embeddings degradados), garantizando:
      - que el documento exista
      - que no esté actualmente en PROCESSING
      - exclusión por documento: dos reprocess concurrentes nunca intercalan
        delete/insert (lock sin bloqueo => CONFLICT inmediato)
      - transición explícita a PENDING antes de borrar

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    ReprocessDocumentUseCase

Responsibilities:
    - Tomar el lock del documento.
    - Validar existencia y estado.
    - reset_to_pending + delete_chunks.
    - Re-ingerir con el texto y metadata persistidos.

Collaborators:
    - ChunkStore
    - DocumentLockManager
    - IngestDocumentUseCase.execute_locked
===============================================================================
"""

from __future__ import annotations

from typing import Final, Optional
from uuid import UUID

from ....crosscutting.exceptions import DocumentLockedError
from ....crosscutting.logger import logger
from ....domain.entities import DocumentStatus
from ....domain.repositories import ChunkStore
from ....domain.services import DocumentLockManager
from ..results import ReprocessDocumentResult, UseCaseError, UseCaseErrorCode
from .ingest_document import IngestDocumentInput, IngestDocumentUseCase

_RESOURCE_DOCUMENT: Final[str] = "Document"


class ReprocessDocumentUseCase:
    def __init__(
        self,
        store: ChunkStore,
        ingest_use_case: IngestDocumentUseCase,
        locks: DocumentLockManager,
    ) -> None:
        self._store = store
        self._ingest = ingest_use_case
        self._locks = locks

    def execute(
        self, document_id: UUID, *, chunk_size: Optional[int] = None
    ) -> ReprocessDocumentResult:
        try:
            with self._locks.hold(document_id):
                return self._reprocess(document_id, chunk_size)
        except DocumentLockedError:
            return self._error(
                document_id,
                UseCaseErrorCode.CONFLICT,
                "Document is already being processed.",
            )

    def _reprocess(
        self, document_id: UUID, chunk_size: Optional[int]
    ) -> ReprocessDocumentResult:
        # 1) Existencia
        document = self._store.get_document(document_id)
        if document is None:
            return self._error(
                document_id, UseCaseErrorCode.NOT_FOUND, "Document not found."
            )

        # 2) Estado
        if document.is_processing:
            return self._error(
                document_id,
                UseCaseErrorCode.CONFLICT,
                "Document is already being processed.",
            )

        ingest_input = IngestDocumentInput(
            document_id=document.id,
            text=document.text,
            language=document.language,
            domain_tags=document.domain_tags,
            page_count=document.page_count,
            content_type=document.content_type,
            chunk_size=chunk_size,
        )
        validation_error = self._ingest.validate_input(ingest_input)
        if validation_error is not None:
            return ReprocessDocumentResult(document_id=document_id, error=validation_error)

        # 3) PENDING + borrar chunks previos
        if document.status is not DocumentStatus.PENDING:
            document.reset_to_pending()
            self._store.save_document(document)
        deleted = self._store.delete_chunks(document_id)

        logger.info(
            "Reprocessing document",
            extra={"document_id": str(document_id), "chunks_deleted": deleted},
        )

        # 4) Re-ingesta con la metadata persistida
        result = self._ingest.execute_locked(ingest_input)
        return ReprocessDocumentResult(
            document_id=document_id,
            chunks_deleted=deleted,
            chunks_created=result.chunks_created,
            degraded_embeddings=result.degraded_embeddings,
            status=result.status,
            error=result.error,
        )

    @staticmethod
    def _error(
        document_id: UUID, code: UseCaseErrorCode, message: str
    ) -> ReprocessDocumentResult:
        return ReprocessDocumentResult(
            document_id=document_id,
            error=UseCaseError(code=code, message=message, resource=_RESOURCE_DOCUMENT),
        )

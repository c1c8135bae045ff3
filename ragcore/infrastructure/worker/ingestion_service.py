"""
===============================================================================
TARJETA CRC — infrastructure/worker/ingestion_service.py
===============================================================================

Clase:
    IngestionService

Responsabilidades:
    - Enviar ingestas y reprocesos al BoundedWorkerPool (fuera del path de
      queries) y devolver un Future con el resultado tipado del use case.
    - Setear el contexto de logging (job_id / document_id) por job y
      limpiarlo al terminar (los threads del pool se reutilizan).
    - Contar rechazos por saturación (backpressure) en métricas.

Colaboradores:
    - BoundedWorkerPool
    - IngestDocumentUseCase / ReprocessDocumentUseCase
    - ragcore.context, crosscutting.metrics
===============================================================================
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Callable, Optional, TypeVar
from uuid import UUID, uuid4

from ...application.usecases.ingestion.ingest_document import (
    IngestDocumentInput,
    IngestDocumentUseCase,
)
from ...application.usecases.ingestion.reprocess_document import (
    ReprocessDocumentUseCase,
)
from ...application.usecases.results import (
    IngestDocumentResult,
    ReprocessDocumentResult,
)
from ...context import clear_context, set_job_context
from ...crosscutting.exceptions import IngestionRejectedError
from ...crosscutting.logger import logger
from ...crosscutting.metrics import record_ingest_job
from .pool import BoundedWorkerPool

R = TypeVar("R")


class IngestionService:
    def __init__(
        self,
        *,
        pool: BoundedWorkerPool,
        ingest_use_case: IngestDocumentUseCase,
        reprocess_use_case: ReprocessDocumentUseCase,
    ) -> None:
        self._pool = pool
        self._ingest = ingest_use_case
        self._reprocess = reprocess_use_case

    def submit_ingest(self, input_data: IngestDocumentInput) -> "Future[IngestDocumentResult]":
        """Encola la ingesta; IngestionRejectedError si el pool está saturado."""
        return self._submit(
            input_data.document_id, lambda: self._ingest.execute(input_data)
        )

    def submit_reprocess(
        self, document_id: UUID, *, chunk_size: Optional[int] = None
    ) -> "Future[ReprocessDocumentResult]":
        return self._submit(
            document_id,
            lambda: self._reprocess.execute(document_id, chunk_size=chunk_size),
        )

    def shutdown(self, *, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)

    def _submit(self, document_id: UUID, job: Callable[[], R]) -> "Future[R]":
        job_id = uuid4().hex

        def run() -> R:
            set_job_context(job_id=job_id, document_id=str(document_id))
            try:
                return job()
            finally:
                clear_context()

        try:
            future = self._pool.submit(run)
        except IngestionRejectedError:
            record_ingest_job("rejected")
            logger.warning(
                "Ingestion job rejected",
                extra={"document_id": str(document_id), "job_id": job_id},
            )
            raise

        logger.info(
            "Ingestion job submitted",
            extra={"document_id": str(document_id), "job_id": job_id},
        )
        return future

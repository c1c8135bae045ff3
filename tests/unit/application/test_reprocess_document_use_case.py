"""
Name: Reprocess Document Use Case Unit Tests

Responsibilities:
  - Reset → delete chunks → re-ingest with persisted metadata
  - Guards: not found, processing, lock held, invalid chunk_size

Collaborators:
  - ragcore.application.usecases.ingestion.reprocess_document
  - conftest: store / adapter / document_factory
"""

from uuid import uuid4

import pytest

from ragcore.application.usecases import (
    IngestDocumentInput,
    IngestDocumentUseCase,
    ReprocessDocumentUseCase,
    UseCaseErrorCode,
)
from ragcore.domain.entities import DocumentStatus
from ragcore.infrastructure.text import AdaptiveTextChunker
from ragcore.infrastructure.worker import DocumentLockRegistry

TEXT = "Plants convert light into energy. " * 100


@pytest.fixture
def locks() -> DocumentLockRegistry:
    return DocumentLockRegistry()


@pytest.fixture
def ingest(store, adapter, locks) -> IngestDocumentUseCase:
    return IngestDocumentUseCase(
        store,
        AdaptiveTextChunker(
            default_chunk_size=1000,
            chunk_overlap=200,
            min_chunk_size=100,
            max_chunk_size=2000,
        ),
        adapter,
        min_chunk_size=100,
        max_chunk_size=2000,
        locks=locks,
    )


@pytest.fixture
def reprocess(store, ingest, locks) -> ReprocessDocumentUseCase:
    return ReprocessDocumentUseCase(store, ingest, locks)


@pytest.mark.unit
class TestReprocessDocumentUseCase:
    def test_rebuilds_chunks_with_new_size(self, store, ingest, reprocess):
        """R: chunk_size menor => más chunks; los anteriores se borran."""
        doc_id = uuid4()
        first = ingest.execute(
            IngestDocumentInput(
                document_id=doc_id, text=TEXT, domain_tags=frozenset({"biology"})
            )
        )

        result = reprocess.execute(doc_id, chunk_size=500)

        assert result.ok
        assert result.chunks_deleted == first.chunks_created
        assert result.chunks_created > first.chunks_created
        assert result.status is DocumentStatus.COMPLETED

        chunks = store.get_chunks(doc_id)
        assert len(chunks) == result.chunks_created
        assert all(len(c.content) <= 500 for c in chunks)
        assert all(c.domain_tags == frozenset({"biology"}) for c in chunks)
        assert store.get_document(doc_id).status is DocumentStatus.COMPLETED

    def test_failed_document_can_be_reprocessed(
        self, store, reprocess, document_factory
    ):
        doc = document_factory.create(text=TEXT, status=DocumentStatus.FAILED)
        store.save_document(doc)

        result = reprocess.execute(doc.id)

        assert result.ok
        assert result.chunks_deleted == 0
        assert result.chunks_created > 0

    def test_unknown_document_not_found(self, reprocess):
        result = reprocess.execute(uuid4())
        assert result.error.code is UseCaseErrorCode.NOT_FOUND

    def test_processing_document_conflicts(self, store, reprocess, document_factory):
        doc = document_factory.create(text=TEXT, status=DocumentStatus.PROCESSING)
        store.save_document(doc)

        result = reprocess.execute(doc.id)

        assert result.error.code is UseCaseErrorCode.CONFLICT

    def test_lock_held_conflicts_without_touching_chunks(
        self, store, ingest, reprocess, locks
    ):
        doc_id = uuid4()
        created = ingest.execute(IngestDocumentInput(document_id=doc_id, text=TEXT))
        assert locks.acquire(doc_id)

        result = reprocess.execute(doc_id)

        assert result.error.code is UseCaseErrorCode.CONFLICT
        assert len(store.get_chunks(doc_id)) == created.chunks_created
        locks.release(doc_id)

    def test_invalid_chunk_size_validated_before_delete(self, store, ingest, reprocess):
        doc_id = uuid4()
        created = ingest.execute(IngestDocumentInput(document_id=doc_id, text=TEXT))

        result = reprocess.execute(doc_id, chunk_size=10)

        assert result.error.code is UseCaseErrorCode.VALIDATION_ERROR
        assert len(store.get_chunks(doc_id)) == created.chunks_created
        assert store.get_document(doc_id).status is DocumentStatus.COMPLETED

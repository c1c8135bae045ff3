"""
Name: Ingest Document Use Case Unit Tests

Responsibilities:
  - Test IngestDocumentUseCase orchestration logic
  - Verify chunking → embedding → storage flow and lifecycle transitions
  - Test edge cases (empty text, degraded embeddings, conflicts, failures)

Collaborators:
  - ragcore.application.usecases.ingestion.ingest_document
  - conftest: store / adapter fixtures

Notes:
  - Real chunker + fake provider behind the EmbeddingAdapter
  - Fast execution (no network, no sleeps)
"""

from uuid import uuid4

import pytest

from ragcore.application.usecases import (
    IngestDocumentInput,
    IngestDocumentUseCase,
    UseCaseErrorCode,
)
from ragcore.crosscutting.exceptions import EmbeddingError
from ragcore.crosscutting.metrics import registry
from ragcore.domain.entities import DocumentStatus
from ragcore.infrastructure.services import EmbeddingAdapter, FakeEmbeddingService
from ragcore.infrastructure.text import AdaptiveTextChunker
from ragcore.infrastructure.worker import DocumentLockRegistry

DIM = 4
FAST_RETRY = {"max_attempts": 2, "base_delay": 0.0, "max_delay": 0.01}

TEXT = "Plants convert light into energy. " * 100

SECTIONED_TEXT = (
    "1. Healthy part\n" + "Plants grow well in light. " * 6 + "\n\n"
    "2. Poison part\n" + "This poison text fails always. " * 6
)


class _PoisonedProvider(FakeEmbeddingService):
    """R: batch siempre falla; embed_one falla para textos con 'poison'."""

    def __init__(self):
        super().__init__(dimension=DIM)
        self.batch_calls = 0

    def embed_batch(self, texts):
        self.batch_calls += 1
        raise EmbeddingError("batch endpoint down")

    def embed_one(self, text):
        if "poison" in text.lower():
            raise EmbeddingError("poisoned fragment")
        return super().embed_one(text)


class _RecordingAdapter:
    """R: ResilientEmbeddingService que registra llamadas."""

    dimension = DIM
    model_id = "recording"

    def __init__(self):
        self.batches: list[list[str]] = []

    def embed_batch(self, texts):
        self.batches.append(list(texts))
        return []

    def embed_query(self, query):
        raise AssertionError("not used by ingestion")


class _BrokenChunker:
    def chunk(self, text, *, chunk_size=None, page_count=None, content_type=None):
        raise RuntimeError("tokenizer crashed")


def _chunker() -> AdaptiveTextChunker:
    return AdaptiveTextChunker(
        default_chunk_size=1000, chunk_overlap=200, min_chunk_size=100, max_chunk_size=2000
    )


def _use_case(store, embeddings, chunker=None, locks=None) -> IngestDocumentUseCase:
    return IngestDocumentUseCase(
        store,
        chunker or _chunker(),
        embeddings,
        min_chunk_size=100,
        max_chunk_size=2000,
        locks=locks,
    )


@pytest.mark.unit
class TestIngestDocumentUseCase:
    """Test suite for IngestDocumentUseCase."""

    def test_execute_with_valid_document(self, store, adapter):
        """R: Should ingest document with chunks successfully."""
        # Arrange
        doc_id = uuid4()
        use_case = _use_case(store, adapter)

        # Act
        result = use_case.execute(
            IngestDocumentInput(
                document_id=doc_id, text=TEXT, domain_tags=frozenset({"biology"})
            )
        )

        # Assert
        assert result.ok
        assert result.status is DocumentStatus.COMPLETED
        assert result.chunks_created >= 2
        assert result.degraded_embeddings == 0

        chunks = store.get_chunks(doc_id)
        assert len(chunks) == result.chunks_created
        assert [c.chunk_index for c in chunks] == list(range(len(chunks)))
        assert all(len(c.embedding) == DIM and c.has_embedding for c in chunks)
        assert all(c.domain_tags == frozenset({"biology"}) for c in chunks)
        assert store.get_document(doc_id).status is DocumentStatus.COMPLETED

    def test_empty_text_creates_no_chunks_and_skips_provider(self, store):
        """R: texto en blanco => 0 chunks sin llamar al proveedor."""
        embeddings = _RecordingAdapter()

        result = _use_case(store, embeddings).execute(
            IngestDocumentInput(document_id=uuid4(), text="   \n  ")
        )

        assert result.ok
        assert result.chunks_created == 0
        assert result.status is DocumentStatus.COMPLETED
        assert embeddings.batches == []

    def test_degraded_fragment_does_not_abort_ingestion(self, store):
        """R: batch caído => secuencial; el fragmento 'poison' queda con vector cero."""
        provider = _PoisonedProvider()
        adapter = EmbeddingAdapter(provider, dimension=DIM, **FAST_RETRY)
        doc_id = uuid4()

        result = _use_case(store, adapter).execute(
            IngestDocumentInput(document_id=doc_id, text=SECTIONED_TEXT)
        )

        assert result.ok
        assert result.chunks_created == 2
        assert result.degraded_embeddings == 1

        healthy, poisoned = store.get_chunks(doc_id)
        assert healthy.has_embedding
        assert poisoned.embedding_degraded
        assert poisoned.embedding == [0.0] * DIM
        assert poisoned.section_title == "2. Poison part"

    def test_page_numbers_estimated_when_page_count_known(self, store, adapter):
        doc_id = uuid4()

        _use_case(store, adapter).execute(
            IngestDocumentInput(document_id=doc_id, text=TEXT, page_count=50)
        )

        pages = [c.page_number for c in store.get_chunks(doc_id)]
        assert pages[0] == 1
        assert all(p is not None and 1 <= p <= 50 for p in pages)
        assert pages == sorted(pages)

    @pytest.mark.parametrize(
        "overrides",
        [{"chunk_size": 50}, {"chunk_size": 5000}, {"page_count": 0}],
    )
    def test_invalid_input_is_rejected(self, store, adapter, overrides):
        doc_id = uuid4()

        result = _use_case(store, adapter).execute(
            IngestDocumentInput(document_id=doc_id, text=TEXT, **overrides)
        )

        assert result.error.code is UseCaseErrorCode.VALIDATION_ERROR
        assert store.get_document(doc_id) is None

    def test_completed_document_conflicts(self, store, adapter):
        """R: re-ingerir un documento completo exige reprocess."""
        doc_id = uuid4()
        use_case = _use_case(store, adapter)
        use_case.execute(IngestDocumentInput(document_id=doc_id, text=TEXT))

        result = use_case.execute(IngestDocumentInput(document_id=doc_id, text="Other."))

        assert result.error.code is UseCaseErrorCode.CONFLICT
        assert "reprocess" in result.error.message
        assert store.get_document(doc_id).text == TEXT

    def test_locked_document_conflicts(self, store, adapter):
        doc_id = uuid4()
        locks = DocumentLockRegistry()
        assert locks.acquire(doc_id)

        result = _use_case(store, adapter, locks=locks).execute(
            IngestDocumentInput(document_id=doc_id, text=TEXT)
        )

        assert result.error.code is UseCaseErrorCode.CONFLICT
        assert result.error.message == "Document is already processing."
        assert store.get_document(doc_id) is None

    def test_lock_released_after_ingestion(self, store, adapter):
        doc_id = uuid4()
        locks = DocumentLockRegistry()

        _use_case(store, adapter, locks=locks).execute(
            IngestDocumentInput(document_id=doc_id, text=TEXT)
        )

        assert not locks.is_locked(doc_id)
        assert len(locks) == 0

    def test_unexpected_failure_marks_document_failed(self, store, adapter):
        doc_id = uuid4()

        result = _use_case(store, adapter, chunker=_BrokenChunker()).execute(
            IngestDocumentInput(document_id=doc_id, text=TEXT)
        )

        assert result.status is DocumentStatus.FAILED
        assert result.error.code is UseCaseErrorCode.SERVICE_UNAVAILABLE
        document = store.get_document(doc_id)
        assert document.status is DocumentStatus.FAILED
        assert document.error_message == "RuntimeError: tokenizer crashed"

    def test_ingest_metrics_recorded(self, store, adapter):
        labels = {"status": "completed"}
        before = registry.get_sample_value("rag_ingest_jobs_total", labels) or 0.0
        chunks_before = registry.get_sample_value("rag_chunks_created_total") or 0.0

        result = _use_case(store, adapter).execute(
            IngestDocumentInput(document_id=uuid4(), text=TEXT)
        )

        assert registry.get_sample_value("rag_ingest_jobs_total", labels) == before + 1
        assert (
            registry.get_sample_value("rag_chunks_created_total")
            == chunks_before + result.chunks_created
        )

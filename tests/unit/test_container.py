"""
Name: Composition Root Unit Tests

Responsibilities:
  - Singletons are cached and reset_container() rebuilds them
  - The wired pipeline works end to end with fake providers
  - The ingestion service shares the store used by queries

Collaborators:
  - ragcore.container
"""

from uuid import uuid4

import pytest

from ragcore import container
from ragcore.application.usecases import IngestDocumentInput
from ragcore.domain.entities import AnswerOutcome, DocumentStatus
from ragcore.infrastructure.services import CachingEmbeddingService, FakeLLMService

TEXT = (
    "Mitochondria generate most of the chemical energy needed to power the "
    "biochemical reactions of the cell. This energy is stored in a small "
    "molecule called adenosine triphosphate, which the cell spends on growth, "
    "movement and repair."
)


@pytest.fixture(autouse=True)
def fresh_container():
    container.reset_container()
    yield
    container.reset_container()


@pytest.mark.unit
class TestContainer:
    def test_singletons_are_cached_and_resettable(self):
        pipeline = container.get_rag_pipeline()

        assert container.get_rag_pipeline() is pipeline
        container.reset_container()
        assert container.get_rag_pipeline() is not pipeline

    def test_fake_providers_selected_from_settings(self):
        assert isinstance(container.get_embedding_service(), CachingEmbeddingService)
        assert isinstance(container.get_raw_llm_service(), FakeLLMService)
        assert container.get_llm_service().model_id == FakeLLMService.MODEL_ID

    def test_pipeline_end_to_end(self):
        pipeline = container.get_rag_pipeline()
        doc_id = uuid4()

        created = pipeline.ingest(doc_id, TEXT, domain_tags=["biology"])
        answer = pipeline.query(TEXT)

        assert created == 1
        assert answer.outcome is AnswerOutcome.ANSWERED
        assert answer.sources[0].document_id == doc_id
        assert answer.answer_text.startswith("Simulated answer")

    def test_ingestion_service_writes_to_shared_store(self):
        service = container.get_ingestion_service()
        doc_id = uuid4()

        result = service.submit_ingest(
            IngestDocumentInput(document_id=doc_id, text=TEXT)
        ).result(timeout=10)

        assert result.error is None
        assert result.status is DocumentStatus.COMPLETED
        assert len(container.get_chunk_store().get_chunks(doc_id)) == result.chunks_created

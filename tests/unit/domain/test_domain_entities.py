"""
Name: Domain Entities Unit Tests

Responsibilities:
  - Document lifecycle transitions (named methods + transition table)
  - Chunk embedding invariant (empty or exactly D values)
  - RAGAnswer serialization contract
  - Answer confidence / quality heuristics

Collaborators:
  - ragcore.domain.entities
  - ragcore.domain.value_objects
"""

from uuid import uuid4

import pytest

from ragcore.crosscutting.exceptions import InvalidStateTransitionError
from ragcore.domain.entities import (
    AnswerOutcome,
    Chunk,
    Document,
    DocumentStatus,
    RAGAnswer,
    can_transition,
)
from ragcore.domain.value_objects import (
    DiagramPayload,
    SourceCitation,
    calculate_answer_confidence,
    calculate_answer_quality,
)


@pytest.mark.unit
class TestDocumentLifecycle:
    def test_happy_path_pending_processing_completed(self):
        """R: pending -> processing -> completed via named transitions."""
        doc = Document(id=uuid4(), text="x")
        assert doc.status is DocumentStatus.PENDING

        doc.start_processing()
        assert doc.is_processing

        doc.complete_processing()
        assert doc.status is DocumentStatus.COMPLETED
        assert doc.updated_at is not None

    def test_fail_records_message_and_reset_clears_it(self):
        doc = Document(id=uuid4())
        doc.start_processing()
        doc.fail_processing("EmbeddingError: boom")

        assert doc.status is DocumentStatus.FAILED
        assert doc.error_message == "EmbeddingError: boom"

        doc.reset_to_pending()
        assert doc.status is DocumentStatus.PENDING
        assert doc.error_message is None

    def test_illegal_transition_raises(self):
        """R: completed -> processing must go through reset_to_pending."""
        doc = Document(id=uuid4(), status=DocumentStatus.COMPLETED)

        with pytest.raises(InvalidStateTransitionError):
            doc.start_processing()
        assert doc.status is DocumentStatus.COMPLETED

    def test_pending_cannot_complete_directly(self):
        doc = Document(id=uuid4())
        with pytest.raises(InvalidStateTransitionError):
            doc.complete_processing()

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            (DocumentStatus.PENDING, DocumentStatus.PROCESSING, True),
            (DocumentStatus.PROCESSING, DocumentStatus.FAILED, True),
            (DocumentStatus.FAILED, DocumentStatus.PENDING, True),
            (DocumentStatus.COMPLETED, DocumentStatus.FAILED, False),
            (DocumentStatus.PROCESSING, DocumentStatus.PENDING, False),
        ],
    )
    def test_transition_table(self, current, target, allowed):
        assert can_transition(current, target) is allowed


@pytest.mark.unit
class TestChunkEmbedding:
    def test_attach_embedding_enforces_dimension(self):
        chunk = Chunk(document_id=uuid4(), chunk_index=0, content="c")

        with pytest.raises(ValueError):
            chunk.attach_embedding([0.1, 0.2], dimension=3)
        assert chunk.embedding == []

    def test_empty_embedding_is_absent(self):
        chunk = Chunk(document_id=uuid4(), chunk_index=0, content="c")
        chunk.attach_embedding([], dimension=3)
        assert not chunk.has_embedding

    def test_degraded_embedding_does_not_count_as_present(self):
        """R: el vector cero degradado no participa del retrieval."""
        chunk = Chunk(document_id=uuid4(), chunk_index=0, content="c")
        chunk.attach_embedding([0.0, 0.0, 0.0], dimension=3, degraded=True)

        assert chunk.embedding_degraded
        assert not chunk.has_embedding


@pytest.mark.unit
class TestRAGAnswer:
    def test_to_dict_uses_public_contract_names(self):
        source = SourceCitation(
            chunk_id=uuid4(),
            document_id=uuid4(),
            text="content",
            similarity=0.91,
            chunk_index=2,
            page=3,
        )
        answer = RAGAnswer(
            answer_text="Answer",
            outcome=AnswerOutcome.ANSWERED,
            confidence=0.7,
            quality=0.8,
            sources=[source],
            suggested_followups=["More?"],
            diagram=DiagramPayload(type="class", code="@startuml\n@enduml"),
        )

        payload = answer.to_dict()

        assert payload["answerText"] == "Answer"
        assert payload["outcome"] == "answered"
        assert payload["sourceChunks"][0]["chunkIndex"] == 2
        assert payload["sourceChunks"][0]["page"] == 3
        assert "section" not in payload["sourceChunks"][0]
        assert payload["diagram"]["type"] == "class"
        assert "errorMessage" not in payload
        assert answer.is_success

    def test_to_dict_includes_error_fields_when_present(self):
        answer = RAGAnswer(
            answer_text="",
            outcome=AnswerOutcome.VALIDATION_REJECTED,
            error_message="Query text is required.",
            error_code="VALIDATION_ERROR",
        )

        payload = answer.to_dict()

        assert payload["errorMessage"] == "Query text is required."
        assert payload["errorCode"] == "VALIDATION_ERROR"
        assert not answer.is_success


@pytest.mark.unit
class TestAnswerScoring:
    def test_confidence_short_answer_two_sources(self):
        assert calculate_answer_confidence("Short.", 2) == 0.7

    def test_confidence_caps_source_bonus_and_adds_length_bonus(self):
        assert calculate_answer_confidence("x" * 101, 10) == 1.0

    def test_confidence_without_sources(self):
        assert calculate_answer_confidence("", 0) == 0.5

    def test_quality_averages_answer_and_chunk_confidence(self):
        assert calculate_answer_quality(0.8, [1.0, 0.6]) == 0.8

    def test_quality_without_chunks_is_confidence(self):
        assert calculate_answer_quality(0.65, []) == 0.65

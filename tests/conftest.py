"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure the test environment (fake providers, no .env, fast retry)
  - Provide reusable fixtures (store, embedding doubles, adapter)
  - Setup test data factories (documents / chunks with explicit vectors)

Collaborators:
  - pytest: Test framework
  - ragcore.domain: Domain entities
  - ragcore.infrastructure: In-memory store + fake providers

Notes:
  - Env vars are set BEFORE importing ragcore: the logger reads Settings
    at import time and get_settings() is cached.
  - Vectors in fixtures are tiny (DIM) so similarities are easy to reason about.
"""

# IMPORTANT: Suppress NumPy reload warning BEFORE any imports that load numpy
import warnings

warnings.filterwarnings(
    "ignore", message=".*NumPy module was reloaded.*", category=UserWarning
)

import os
import sys
from pathlib import Path
from typing import List, Optional
from uuid import UUID, uuid4

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("FAKE_LLM", "1")
os.environ.setdefault("FAKE_EMBEDDINGS", "1")
os.environ.setdefault("EMBEDDING_CACHE_BACKEND", "memory")
os.environ.setdefault("RETRY_BASE_DELAY_SECONDS", "0")
os.environ.setdefault("RETRY_MAX_DELAY_SECONDS", "0.01")
os.environ.setdefault("LOG_JSON", "1")

from ragcore.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None

from ragcore.domain.entities import Chunk, Document, DocumentStatus  # noqa: E402
from ragcore.infrastructure.repositories import InMemoryChunkStore  # noqa: E402
from ragcore.infrastructure.services import (  # noqa: E402
    EmbeddingAdapter,
    FakeEmbeddingService,
)

DIM = 4

# R: retry sin esperas para los caminos de fallback
FAST_RETRY = {"max_attempts": 2, "base_delay": 0.0, "max_delay": 0.01}


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )


# ============================================================================
# Store / Provider Fixtures
# ============================================================================


@pytest.fixture
def store() -> InMemoryChunkStore:
    """R: Fresh in-memory chunk store per test."""
    return InMemoryChunkStore()


@pytest.fixture
def fake_embeddings() -> FakeEmbeddingService:
    """R: Deterministic embedding provider with a tiny dimension."""
    return FakeEmbeddingService(dimension=DIM)


@pytest.fixture
def adapter(fake_embeddings: FakeEmbeddingService) -> EmbeddingAdapter:
    """R: EmbeddingAdapter over the fake provider with no backoff sleeps."""
    return EmbeddingAdapter(fake_embeddings, dimension=DIM, **FAST_RETRY)


# ============================================================================
# Test Data Factories
# ============================================================================


class DocumentFactory:
    """R: Factory for creating test documents with custom attributes."""

    @staticmethod
    def create(
        text: str = "Test document text.",
        status: DocumentStatus = DocumentStatus.COMPLETED,
        domain_tags: frozenset = frozenset(),
        page_count: Optional[int] = None,
        document_id: UUID | None = None,
    ) -> Document:
        return Document(
            id=document_id or uuid4(),
            text=text,
            domain_tags=frozenset(domain_tags),
            page_count=page_count,
            status=status,
        )


class ChunkFactory:
    """R: Factory for creating test chunks with explicit vectors."""

    @staticmethod
    def create(
        document_id: UUID,
        embedding: List[float],
        content: str = "Test chunk content.",
        chunk_index: int = 0,
        token_count: int = 10,
        confidence: float = 1.0,
        section_title: str | None = None,
        page_number: int | None = None,
        domain_tags: frozenset = frozenset(),
        degraded: bool = False,
    ) -> Chunk:
        chunk = Chunk(
            document_id=document_id,
            chunk_index=chunk_index,
            content=content,
            end=len(content),
            token_count=token_count,
            confidence=confidence,
            section_title=section_title,
            page_number=page_number,
            domain_tags=frozenset(domain_tags),
        )
        chunk.attach_embedding(embedding, dimension=len(embedding), degraded=degraded)
        return chunk


@pytest.fixture
def document_factory() -> type[DocumentFactory]:
    """R: Provide DocumentFactory for tests."""
    return DocumentFactory


@pytest.fixture
def chunk_factory() -> type[ChunkFactory]:
    """R: Provide ChunkFactory for tests."""
    return ChunkFactory


@pytest.fixture
def seeded_store(store, document_factory, chunk_factory):
    """
    R: Store con dos documentos y vectores conocidos.

    doc_a: [1,0,0,0] (sección "Photosynthesis") y [0.8,0.6,0,0]
    doc_b: [0,0,1,0] (ortogonal a doc_a)
    """
    doc_a = document_factory.create(domain_tags=frozenset({"biology"}), page_count=2)
    doc_b = document_factory.create(domain_tags=frozenset({"history"}))
    store.save_document(doc_a)
    store.save_document(doc_b)
    store.save_chunks(
        [
            chunk_factory.create(
                doc_a.id,
                [1.0, 0.0, 0.0, 0.0],
                content="Photosynthesis converts light into chemical energy.",
                chunk_index=0,
                section_title="Photosynthesis",
                page_number=1,
                domain_tags=doc_a.domain_tags,
            ),
            chunk_factory.create(
                doc_a.id,
                [0.8, 0.6, 0.0, 0.0],
                content="Chlorophyll absorbs mostly blue and red light.",
                chunk_index=1,
                confidence=0.8,
                page_number=2,
                domain_tags=doc_a.domain_tags,
            ),
            chunk_factory.create(
                doc_b.id,
                [0.0, 0.0, 1.0, 0.0],
                content="The treaty was signed in 1648.",
                chunk_index=0,
                domain_tags=doc_b.domain_tags,
            ),
        ]
    )
    return store, doc_a, doc_b

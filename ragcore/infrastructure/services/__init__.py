"""
Infrastructure Services (Infrastructure Layer)

Qué es este módulo
------------------
Facade/Barrel del paquete `infrastructure.services`: re-exporta los adapters
para que el container importe desde un único lugar.

Patrones presentes
------------------
- Adapter: `GoogleEmbeddingService`, `GoogleLLMService` adaptan google-genai.
- Decorator: `CachingEmbeddingService` agrega cache a un `EmbeddingService`.
- Fallback chain: `EmbeddingAdapter` (batch → secuencial → degradado).
- Fake: `FakeEmbeddingService`, `FakeLLMService` para tests/desarrollo.

Constraints:
  - Sin lógica: solo re-export.
"""

# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------
from .cached_embedding_service import CachingEmbeddingService  # noqa: F401
from .embedding_adapter import EmbeddingAdapter  # noqa: F401
from .fake_embedding_service import FakeEmbeddingService  # noqa: F401
from .google_embedding_service import GoogleEmbeddingService  # noqa: F401

# ---------------------------------------------------------------------------
# LLM / Diagramas
# ---------------------------------------------------------------------------
from .diagram.llm_diagram_renderer import LLMDiagramRenderer  # noqa: F401
from .llm.fake_llm import FakeLLMService  # noqa: F401
from .llm.google_llm_service import GoogleLLMService  # noqa: F401

# ---------------------------------------------------------------------------
# Resilience / Retry
# ---------------------------------------------------------------------------
from .retry import (  # noqa: F401
    PERMANENT_HTTP_CODES,
    TRANSIENT_HTTP_CODES,
    create_retry_decorator,
    is_transient_error,
    retry_with_fallback,
)

__all__ = [
    # Embeddings
    "CachingEmbeddingService",
    "EmbeddingAdapter",
    "FakeEmbeddingService",
    "GoogleEmbeddingService",
    # LLM / Diagramas
    "FakeLLMService",
    "GoogleLLMService",
    "LLMDiagramRenderer",
    # Resilience / Retry
    "is_transient_error",
    "create_retry_decorator",
    "retry_with_fallback",
    "TRANSIENT_HTTP_CODES",
    "PERMANENT_HTTP_CODES",
]

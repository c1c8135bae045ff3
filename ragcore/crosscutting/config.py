"""
Name: Pipeline Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Own every tunable of the retrieval pipeline (chunking, retrieval,
    context budget, retry, ingestion pool, embedding cache)

Collaborators:
  - container.py: reads settings to compose providers, pool and use cases
  - infrastructure/services/retry.py: attempts/delays
  - crosscutting/logger.py: log level and format

Constraints:
  - No business logic, pure configuration
  - Exactly one default for the similarity threshold (rag_min_similarity)
  - Embedding dimension is configuration, never a literal in code

Notes:
  - Singleton via lru_cache
  - Tests disable the .env file and force fake providers via env vars
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Pipeline settings loaded from environment variables.

    Attributes:
        app_env: Environment name (development/test/production)
        log_level: Root log level (default: INFO)
        log_json: Emit JSON log lines (default: True)
        google_api_key: Google GenAI API key
        fake_llm / fake_embeddings: Use deterministic offline providers
        embedding_dimension: Vector size D produced by the provider
        chunk_size / chunk_overlap / chunk_min_size / chunk_max_size: Chunker bounds
        rag_max_chunks: Default maxChunks per query (default: 5)
        rag_max_chunks_limit: Upper bound accepted for maxChunks (default: 20)
        rag_min_similarity: Default similarity threshold (default: 0.3)
        rag_max_context_tokens: Token budget for the packed context
        rag_history_turns: Conversation turns folded into the query
        retry_*: Bounded retry with exponential backoff + jitter
        ingest_max_workers / ingest_queue_capacity: Ingestion pool bounds
        embedding_cache_*: Embedding cache backend and bounds
    """

    # Environment
    app_env: str = "development"
    log_level: str = "INFO"
    log_json: bool = True

    # Providers
    google_api_key: str = ""
    embedding_model_id: str = "text-embedding-004"
    llm_model_id: str = "gemini-1.5-flash"
    embedding_dimension: int = 768
    provider_timeout_seconds: float = 30.0

    # Testing/CI
    fake_llm: bool = False
    fake_embeddings: bool = False

    # Chunking
    chunk_size: int = 1000
    chunk_overlap: int = 200
    chunk_min_size: int = 100
    chunk_max_size: int = 2000

    # Retrieval / generation
    rag_max_chunks: int = 5
    rag_max_chunks_limit: int = 20
    rag_min_similarity: float = 0.3
    rag_max_context_tokens: int = 3000
    rag_history_turns: int = 3
    rag_high_quality_threshold: float = 0.8

    # Retry/Resilience
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0

    # Ingestion pool
    ingest_max_workers: int = 5
    ingest_queue_capacity: int = 100

    # Embedding cache
    embedding_cache_backend: str = "memory"
    embedding_cache_max_size: int = 1000
    embedding_cache_ttl_seconds: float = 3600.0
    redis_url: str = ""

    @field_validator("embedding_dimension", "chunk_size", "chunk_min_size")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("chunk_overlap")
    @classmethod
    def chunk_overlap_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("chunk_overlap must be >= 0")
        return v

    @field_validator("rag_min_similarity", "rag_high_quality_threshold")
    @classmethod
    def must_be_unit_interval(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("value must be between 0 and 1")
        return v

    @field_validator("rag_max_chunks_limit", "rag_max_context_tokens")
    @classmethod
    def limits_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("limit must be greater than 0")
        return v

    @field_validator("ingest_max_workers", "ingest_queue_capacity")
    @classmethod
    def pool_bounds_must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("pool bounds must be greater than 0")
        return v

    @field_validator("embedding_cache_backend")
    @classmethod
    def cache_backend_valid(cls, v: str) -> str:
        backend = (v or "memory").strip().lower()
        if backend not in {"memory", "redis", "auto"}:
            raise ValueError("embedding_cache_backend must be memory, redis, or auto")
        return backend

    def validate_chunk_params(self) -> None:
        """
        Cross-field validation for the chunker bounds.
        Called explicitly after instantiation.
        """
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"chunk_overlap ({self.chunk_overlap}) must be less than "
                f"chunk_size ({self.chunk_size})"
            )
        if self.chunk_min_size > self.chunk_size:
            raise ValueError(
                f"chunk_min_size ({self.chunk_min_size}) must be <= "
                f"chunk_size ({self.chunk_size})"
            )
        if self.chunk_size > self.chunk_max_size:
            raise ValueError(
                f"chunk_size ({self.chunk_size}) must be <= "
                f"chunk_max_size ({self.chunk_max_size})"
            )
        if self.rag_max_chunks > self.rag_max_chunks_limit:
            raise ValueError("rag_max_chunks must be <= rag_max_chunks_limit")

    @model_validator(mode="after")
    def validate_ai_requirements(self):
        if not self.google_api_key and not (self.fake_llm and self.fake_embeddings):
            raise ValueError(
                "GOOGLE_API_KEY is required unless FAKE_LLM=1 and FAKE_EMBEDDINGS=1"
            )
        return self

    def is_test_env(self) -> bool:
        return self.app_env.strip().lower() in {"test", "testing", "ci"}

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If required env vars are missing or invalid
        ValueError: If chunk bounds are inconsistent
    """
    settings = Settings()
    settings.validate_chunk_params()
    return settings

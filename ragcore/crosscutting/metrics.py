"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus) del pipeline RAG

Responsabilidades:
    - Definir métricas Prometheus en un registry propio.
    - Proveer funciones pequeñas y estables para registrar eventos/duraciones.
    - Cuidar cardinalidad (labels acotados: outcome, stage, kind, status).
    - Exponer render_metrics() para un endpoint /metrics externo.

Colaboradores:
    - application/usecases/query: outcome + latencia por estado + fuentes.
    - infrastructure/services/embedding_adapter: fallbacks de embeddings.
    - infrastructure/services/cached_embedding_service: hits/misses.
    - infrastructure/worker: jobs de ingesta (ok/failed/rejected).
===============================================================================
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

registry = CollectorRegistry()

# ------------------------
# Query
# ------------------------
_queries_total = Counter(
    "rag_queries_total",
    "Queries procesadas por outcome",
    ["outcome"],
    registry=registry,
)

_stage_latency = Histogram(
    "rag_stage_latency_seconds",
    "Latencia por estado del orquestador (segundos)",
    ["stage"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=registry,
)

_sources_returned = Histogram(
    "rag_sources_returned_count",
    "Cantidad de fuentes citadas por respuesta",
    buckets=(0, 1, 2, 3, 5, 8, 13, 20),
    registry=registry,
)

# ------------------------
# Embeddings
# ------------------------
_embedding_fallback_total = Counter(
    "rag_embedding_fallback_total",
    "Fallbacks del adapter de embeddings",
    ["kind"],  # sequential | degraded
    registry=registry,
)

_embedding_cache_hits = Counter(
    "rag_embedding_cache_hit_total",
    "Hits del cache de embeddings",
    ["kind"],
    registry=registry,
)

_embedding_cache_misses = Counter(
    "rag_embedding_cache_miss_total",
    "Misses del cache de embeddings",
    ["kind"],
    registry=registry,
)

# ------------------------
# Ingesta
# ------------------------
_ingest_jobs_total = Counter(
    "rag_ingest_jobs_total",
    "Jobs de ingesta por estado final",
    ["status"],  # completed | failed | rejected
    registry=registry,
)

_chunks_created_total = Counter(
    "rag_chunks_created_total",
    "Chunks persistidos por la ingesta",
    registry=registry,
)


def record_query_outcome(outcome: str) -> None:
    _queries_total.labels(outcome=outcome).inc()


def observe_stage_latency(stage: str, seconds: float) -> None:
    _stage_latency.labels(stage=stage).observe(max(0.0, seconds))


def observe_sources_returned_count(count: int) -> None:
    _sources_returned.observe(max(0, count))


def record_embedding_fallback(kind: str, count: int = 1) -> None:
    if count > 0:
        _embedding_fallback_total.labels(kind=kind).inc(count)


def record_embedding_cache_hit(count: int = 1, *, kind: str = "query") -> None:
    if count > 0:
        _embedding_cache_hits.labels(kind=kind).inc(count)


def record_embedding_cache_miss(count: int = 1, *, kind: str = "query") -> None:
    if count > 0:
        _embedding_cache_misses.labels(kind=kind).inc(count)


def record_ingest_job(status: str) -> None:
    _ingest_jobs_total.labels(status=status).inc()


def record_chunks_created(count: int) -> None:
    if count > 0:
        _chunks_created_total.inc(count)


def render_metrics() -> tuple[bytes, str]:
    """Payload de exposición Prometheus + content type."""
    return generate_latest(registry), CONTENT_TYPE_LATEST

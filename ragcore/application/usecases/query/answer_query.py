"""
===============================================================================
USE CASE: Answer Query (RAG state machine: Retrieval + Generation)
===============================================================================

Business Goal:
    Responder una pregunta usando sólo el contenido ingerido:
      1) Validar la query (RECEIVED)
      2) Embed de la query, con historial si es conversacional
      3) Retrieval + re-ranking contra el vector de la query
      4) Packing con presupuesto de tokens + prompt de grounding
      5) Generación (con fallback degradado que conserva las fuentes)
      6) Diagrama opcional a partir de la respuesta

Why (Context / Intención):
    - El caller SIEMPRE recibe un RAGAnswer estructurado, incluso ante fallas
      internas; el outcome distingue "sin contenido relevante" de "sistema
      degradado" de "validación rechazada".
    - Los estados pasan por una única función (_advance) que valida la tabla
      de sucesores, loguea y mide cada etapa.

-------------------------------------------------------------------------------
CRC CARD (Class-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Class:
    RAGOrchestrator

Responsibilities:
    - Validar RAGQuery (texto, min_similarity, max_chunks, scope).
    - Orquestar embedding → retrieval → ranking → packing → prompt → LLM.
    - Degradar sin lanzar: embedding caído => FAILED/DEGRADED; LLM caído =>
      DONE/DEGRADED con fuentes.
    - Sin fragmentos que entren en el presupuesto de contexto => DONE/
      NO_RELEVANT_CONTENT sin invocar al LLM.
    - Scoring heurístico (confidence / quality) y follow-ups.
    - Diagrama opcional (su falla no invalida la respuesta).
    - Observabilidad: timings por etapa, métricas, contexto de logging.

Collaborators:
    - ChunkStore (existencia del documento en modo document-specific)
    - ResilientEmbeddingService.embed_query
    - Retriever, ContextPacker, prompt_builder, similarity.cosine
    - LLMService (ya envuelto con retry por el container)
    - DiagramRenderer (opcional)
===============================================================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Final, List, Optional
from uuid import uuid4

from ....context import clear_context, set_query_context
from ....crosscutting.exceptions import EmbeddingError, RAGError
from ....crosscutting.logger import logger
from ....crosscutting.metrics import (
    observe_sources_returned_count,
    observe_stage_latency,
    record_query_outcome,
)
from ....crosscutting.timing import StageTimings
from ....domain.entities import (
    AnswerOutcome,
    QueryMode,
    RAGAnswer,
    RAGQuery,
    ScoredChunk,
)
from ....domain.repositories import ChunkStore
from ....domain.services import (
    DiagramRenderer,
    LLMService,
    ResilientEmbeddingService,
)
from ....domain.value_objects import (
    DiagramPayload,
    SourceCitation,
    calculate_answer_confidence,
    calculate_answer_quality,
)
from ...context_packer import ContextPacker
from ...prompt_builder import (
    build_conversational_query,
    build_grounded_prompt,
    suggest_followups,
)
from ...retriever import RetrievalFilters, Retriever, rank_scored_chunks
from ...similarity import cosine
from ..results import UseCaseErrorCode

# -----------------------------------------------------------------------------
# Mensajes visibles al usuario.
# -----------------------------------------------------------------------------
_MSG_QUERY_REQUIRED: Final[str] = "Query text is required."
_MSG_DOCUMENT_ID_REQUIRED: Final[str] = "document_id is required in document mode."
_MSG_DOCUMENT_NOT_FOUND: Final[str] = (
    "The requested document was not found or has not been processed."
)
_MSG_NO_RELEVANT_CONTENT: Final[str] = (
    "No relevant documents were found. Please try again with different keywords."
)
_MSG_NO_RELEVANT_CONTENT_IN_DOCUMENT: Final[str] = (
    "No content related to your question was found in this document."
)
_MSG_APOLOGY: Final[str] = (
    "Sorry, I cannot generate an answer right now. Please try again later."
)
_MSG_EMBEDDING_UNAVAILABLE: Final[str] = "Query embedding is temporarily unavailable."
_MSG_GENERATION_UNAVAILABLE: Final[str] = "Answer generation is temporarily unavailable."
_MSG_INTERNAL_ERROR: Final[str] = "The query could not be completed."
_MSG_DIAGRAM_NOT_CONFIGURED: Final[str] = "Diagram rendering is not configured."
_MSG_DIAGRAM_FAILED: Final[str] = "Diagram generation failed."
_MSG_CONTEXT_BUDGET_EXCEEDED: Final[str] = (
    "Relevant content was found but none of it fits in the context budget."
)

# Valores de metadata.query_type
QUERY_TYPE_SIMPLE: Final[str] = "simple"
QUERY_TYPE_CONVERSATIONAL: Final[str] = "conversational"
QUERY_TYPE_DOCUMENT: Final[str] = "document-specific"
QUERY_TYPE_DIAGRAM: Final[str] = "diagram"

_SIMILARITY_DECIMALS: Final[int] = 4


class QueryState(str, Enum):
    RECEIVED = "received"
    EMBEDDING_QUERY = "embedding_query"
    RETRIEVING = "retrieving"
    RANKING = "ranking"
    PACKING = "packing"
    PROMPTING = "prompting"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (QueryState.DONE, QueryState.FAILED)


# R: Tabla única de sucesores permitidos. FAILED es alcanzable desde
# cualquier estado no terminal (error interno inesperado).
_ALLOWED_SUCCESSORS: Dict[QueryState, FrozenSet[QueryState]] = {
    QueryState.RECEIVED: frozenset({QueryState.EMBEDDING_QUERY}),
    QueryState.EMBEDDING_QUERY: frozenset({QueryState.RETRIEVING}),
    QueryState.RETRIEVING: frozenset({QueryState.RANKING, QueryState.DONE}),
    QueryState.RANKING: frozenset({QueryState.PACKING}),
    QueryState.PACKING: frozenset({QueryState.PROMPTING, QueryState.DONE}),
    QueryState.PROMPTING: frozenset({QueryState.GENERATING}),
    QueryState.GENERATING: frozenset({QueryState.DONE}),
    QueryState.DONE: frozenset(),
    QueryState.FAILED: frozenset(),
}


def can_advance(current: QueryState, target: QueryState) -> bool:
    if target is QueryState.FAILED:
        return not current.is_terminal
    return target in _ALLOWED_SUCCESSORS[current]


@dataclass
class _QueryRun:
    """Estado mutable de UNA ejecución (una instancia por query)."""

    query_id: str
    state: QueryState = QueryState.RECEIVED
    states: List[QueryState] = field(default_factory=lambda: [QueryState.RECEIVED])
    timings: StageTimings = field(default_factory=StageTimings)
    stage_started_at: float = field(default_factory=time.perf_counter)
    query_type: str = QUERY_TYPE_SIMPLE
    min_similarity: Optional[float] = None
    max_chunks: Optional[int] = None
    total_chunks_searched: int = 0
    chunks_used_in_context: int = 0


class RAGOrchestrator:
    """
    Use Case (Application Service / Orchestration):
        Máquina de estados RAG. Sin estado compartido entre queries.
    """

    def __init__(
        self,
        store: ChunkStore,
        embeddings: ResilientEmbeddingService,
        llm: LLMService,
        retriever: Retriever,
        packer: ContextPacker,
        diagram_renderer: Optional[DiagramRenderer] = None,
        *,
        default_max_chunks: int = 5,
        max_chunks_limit: int = 20,
        default_min_similarity: float = 0.3,
        history_turns: int = 3,
    ) -> None:
        self._store = store
        self._embeddings = embeddings
        self._llm = llm
        self._retriever = retriever
        self._packer = packer
        self._diagram_renderer = diagram_renderer
        self._default_max_chunks = default_max_chunks
        self._max_chunks_limit = max_chunks_limit
        self._default_min_similarity = default_min_similarity
        self._history_turns = history_turns

    def execute(self, query: RAGQuery) -> RAGAnswer:
        """Nunca lanza: toda falla termina en un RAGAnswer con outcome explícito."""
        run = _QueryRun(query_id=uuid4().hex)
        set_query_context(query_id=run.query_id)
        try:
            try:
                answer = self._run(query, run)
            except Exception as exc:  # noqa: BLE001
                logger.exception(
                    "Query pipeline failed",
                    extra={"state": run.state.value, "error_type": type(exc).__name__},
                )
                if not run.state.is_terminal:
                    self._advance(run, QueryState.FAILED)
                answer = self._degraded(
                    query,
                    message=_MSG_INTERNAL_ERROR,
                    error_code=UseCaseErrorCode.SERVICE_UNAVAILABLE,
                )
            self._finalize(query, run, answer)
            return answer
        finally:
            clear_context()

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _run(self, query: RAGQuery, run: _QueryRun) -> RAGAnswer:
        # ---------------------------------------------------------------------
        # RECEIVED: validación (sin transiciones si falla).
        # ---------------------------------------------------------------------
        run.query_type = self._query_type(query)
        run.min_similarity = (
            self._default_min_similarity
            if query.min_similarity is None
            else query.min_similarity
        )
        run.max_chunks = (
            self._default_max_chunks if query.max_chunks is None else query.max_chunks
        )

        rejection = self._validate(query, run.min_similarity, run.max_chunks)
        if rejection is not None:
            return RAGAnswer(
                answer_text="",
                outcome=AnswerOutcome.VALIDATION_REJECTED,
                query=query.text,
                error_message=rejection,
                error_code=UseCaseErrorCode.VALIDATION_ERROR.value,
            )

        if query.document_id is not None and self._store.get_document(query.document_id) is None:
            return RAGAnswer(
                answer_text="",
                outcome=AnswerOutcome.NOT_FOUND,
                query=query.text,
                error_message=_MSG_DOCUMENT_NOT_FOUND,
                error_code=UseCaseErrorCode.NOT_FOUND.value,
            )

        # ---------------------------------------------------------------------
        # EMBEDDING_QUERY
        # ---------------------------------------------------------------------
        self._advance(run, QueryState.EMBEDDING_QUERY)
        embed_text = query.text
        if query.mode is QueryMode.CONVERSATIONAL:
            embed_text = build_conversational_query(
                query.text, query.history, max_turns=self._history_turns
            )
        try:
            query_vector = self._embeddings.embed_query(embed_text)
        except EmbeddingError:
            self._advance(run, QueryState.FAILED)
            return self._degraded(
                query,
                message=_MSG_EMBEDDING_UNAVAILABLE,
                error_code=UseCaseErrorCode.SERVICE_UNAVAILABLE,
            )

        # ---------------------------------------------------------------------
        # RETRIEVING: cero resultados es terminal esperado (no falla).
        # ---------------------------------------------------------------------
        self._advance(run, QueryState.RETRIEVING)
        retrieved = self._retriever.retrieve(
            query_vector,
            RetrievalFilters(
                domain_tags=frozenset(query.domain_tags),
                document_id=query.document_id,
            ),
            run.min_similarity,
            run.max_chunks,
        )
        run.total_chunks_searched = len(retrieved)
        if not retrieved:
            self._advance(run, QueryState.DONE)
            message = (
                _MSG_NO_RELEVANT_CONTENT_IN_DOCUMENT
                if query.document_id is not None
                else _MSG_NO_RELEVANT_CONTENT
            )
            return RAGAnswer(
                answer_text=message,
                outcome=AnswerOutcome.NO_RELEVANT_CONTENT,
                query=query.text,
                error_message=message,
            )

        # ---------------------------------------------------------------------
        # RANKING: re-score contra el vector de la query (store aproximado).
        # ---------------------------------------------------------------------
        self._advance(run, QueryState.RANKING)
        ranked = rank_scored_chunks(
            ScoredChunk(chunk=item.chunk, score=cosine(query_vector, item.chunk.embedding))
            for item in retrieved
        )

        # ---------------------------------------------------------------------
        # PACKING / PROMPTING
        # ---------------------------------------------------------------------
        self._advance(run, QueryState.PACKING)
        packed = self._packer.pack(ranked)
        run.chunks_used_in_context = len(packed)
        if not packed:
            # R: Sin contexto no hay respuesta fundamentada; el LLM no se invoca.
            self._advance(run, QueryState.DONE)
            return RAGAnswer(
                answer_text=_MSG_CONTEXT_BUDGET_EXCEEDED,
                outcome=AnswerOutcome.NO_RELEVANT_CONTENT,
                query=query.text,
                error_message=_MSG_CONTEXT_BUDGET_EXCEEDED,
            )

        self._advance(run, QueryState.PROMPTING)
        prompt = build_grounded_prompt(query.text, packed)
        sources = [self._to_citation(item) for item in packed]

        # ---------------------------------------------------------------------
        # GENERATING: el LLM ya reintenta; acá sólo se degrada.
        # ---------------------------------------------------------------------
        self._advance(run, QueryState.GENERATING)
        try:
            answer_text = self._llm.generate(prompt).strip()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Generation failed; returning degraded answer with sources",
                extra={"error_type": type(exc).__name__, "sources": len(sources)},
            )
            self._advance(run, QueryState.DONE)
            answer = self._degraded(
                query,
                message=_MSG_GENERATION_UNAVAILABLE,
                error_code=UseCaseErrorCode.SERVICE_UNAVAILABLE,
            )
            answer.sources = sources
            return answer

        self._advance(run, QueryState.DONE)

        confidence = calculate_answer_confidence(answer_text, len(sources))
        answer = RAGAnswer(
            answer_text=answer_text,
            outcome=AnswerOutcome.ANSWERED,
            query=query.text,
            confidence=confidence,
            quality=calculate_answer_quality(
                confidence, [item.chunk.confidence for item in packed]
            ),
            sources=sources,
            suggested_followups=suggest_followups(packed),
        )

        if query.diagram_type is not None:
            self._attach_diagram(query, run, answer)
        return answer

    # =========================================================================
    # Helpers privados
    # =========================================================================

    def _advance(self, run: _QueryRun, target: QueryState) -> None:
        """Única vía de transición: valida, mide la etapa saliente y loguea."""
        if not can_advance(run.state, target):
            raise RuntimeError(
                f"Illegal query transition {run.state.value} -> {target.value}"
            )

        now = time.perf_counter()
        elapsed = now - run.stage_started_at
        run.timings.record(run.state.value, round(elapsed * 1000, 2))
        observe_stage_latency(run.state.value, elapsed)

        logger.debug(
            "Query state transition",
            extra={"from_state": run.state.value, "to_state": target.value},
        )
        run.state = target
        run.states.append(target)
        run.stage_started_at = now

    def _validate(
        self, query: RAGQuery, min_similarity: float, max_chunks: int
    ) -> Optional[str]:
        if not (query.text or "").strip():
            return _MSG_QUERY_REQUIRED
        if not 0.0 <= min_similarity <= 1.0:
            return "min_similarity must be within [0, 1]."
        if not 1 <= max_chunks <= self._max_chunks_limit:
            return f"max_chunks must be within [1, {self._max_chunks_limit}]."
        if query.mode is QueryMode.DOCUMENT and query.document_id is None:
            return _MSG_DOCUMENT_ID_REQUIRED
        return None

    @staticmethod
    def _query_type(query: RAGQuery) -> str:
        if query.diagram_type is not None:
            return QUERY_TYPE_DIAGRAM
        if query.mode is QueryMode.CONVERSATIONAL:
            return QUERY_TYPE_CONVERSATIONAL
        if query.mode is QueryMode.DOCUMENT or query.document_id is not None:
            return QUERY_TYPE_DOCUMENT
        return QUERY_TYPE_SIMPLE

    def _attach_diagram(self, query: RAGQuery, run: _QueryRun, answer: RAGAnswer) -> None:
        diagram_type = query.diagram_type
        if self._diagram_renderer is None:
            answer.metadata["diagram_error"] = _MSG_DIAGRAM_NOT_CONFIGURED
            return
        try:
            with run.timings.measure("diagram"):
                code = self._diagram_renderer.render(
                    answer.answer_text,
                    diagram_type,
                    instructions=query.diagram_instructions,
                    domain_tags=query.domain_tags,
                )
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Diagram generation failed; keeping textual answer",
                extra={"diagram_type": diagram_type.code, "error_type": type(exc).__name__},
            )
            answer.metadata["diagram_error"] = (
                exc.message if isinstance(exc, RAGError) else _MSG_DIAGRAM_FAILED
            )
            return

        answer.diagram = DiagramPayload(
            type=diagram_type.code,
            code=code,
            description=f"Generated {diagram_type.display_name}",
        )

    @staticmethod
    def _to_citation(item: ScoredChunk) -> SourceCitation:
        chunk = item.chunk
        return SourceCitation(
            chunk_id=chunk.chunk_id,
            document_id=chunk.document_id,
            text=chunk.content,
            similarity=round(item.score, _SIMILARITY_DECIMALS),
            chunk_index=chunk.chunk_index,
            page=chunk.page_number,
            section=chunk.section_title,
            confidence=chunk.confidence,
        )

    @staticmethod
    def _degraded(
        query: RAGQuery, *, message: str, error_code: UseCaseErrorCode
    ) -> RAGAnswer:
        return RAGAnswer(
            answer_text=_MSG_APOLOGY,
            outcome=AnswerOutcome.DEGRADED,
            query=query.text,
            error_message=message,
            error_code=error_code.value,
        )

    def _finalize(self, query: RAGQuery, run: _QueryRun, answer: RAGAnswer) -> None:
        metadata: Dict[str, Any] = {
            "query_id": run.query_id,
            "query_type": run.query_type,
            "total_chunks_searched": run.total_chunks_searched,
            "chunks_used_in_context": run.chunks_used_in_context,
            "embedding_model": self._embeddings.model_id,
            "llm_model": self._llm.model_id,
            "min_similarity_threshold": run.min_similarity,
            "max_chunks": run.max_chunks,
            "domain_tags": sorted(query.domain_tags),
            "states": [s.value for s in run.states],
            "timings": run.timings.to_dict(),
            "response_time_ms": run.timings.total_ms,
        }
        # R: diagram_error (u otras claves) ya seteadas por el pipeline
        metadata.update(answer.metadata)
        answer.metadata = metadata

        record_query_outcome(answer.outcome.value)
        if answer.sources:
            observe_sources_returned_count(len(answer.sources))

        logger.info(
            "Query completed",
            extra={
                "outcome": answer.outcome.value,
                "query_type": run.query_type,
                "final_state": run.state.value,
                "sources": len(answer.sources),
                "response_time_ms": metadata["response_time_ms"],
            },
        )

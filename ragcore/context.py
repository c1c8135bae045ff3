"""
===============================================================================
TARJETA CRC — ragcore/context.py (Contexto por query / job)
===============================================================================
Responsabilidades:
  - Mantener contexto de correlación usando ContextVars (thread/async-safe).
  - Permitir correlacionar logs de una query o de un job de ingesta sin pasar
    ids por todo el stack.
  - Helpers mínimos: set_*(), get_context_dict(), clear_context().

Colaboradores:
  - crosscutting/logger.py: enriquece cada log con get_context_dict().
  - application/usecases/query/answer_query.py: setea query_id.
  - infrastructure/worker: setea job_id/document_id por job.

Restricciones:
  - Solo strings; vacío significa "no disponible".
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

query_id_var: ContextVar[str] = ContextVar("query_id", default="")
document_id_var: ContextVar[str] = ContextVar("document_id", default="")
job_id_var: ContextVar[str] = ContextVar("job_id", default="")

_CTX_QUERY_ID: Final[str] = "query_id"
_CTX_DOCUMENT_ID: Final[str] = "document_id"
_CTX_JOB_ID: Final[str] = "job_id"


def set_query_context(*, query_id: str = "") -> None:
    """Setea el id de la query en curso."""
    query_id_var.set(query_id or "")


def set_job_context(*, job_id: str = "", document_id: str = "") -> None:
    """Setea el contexto de un job de ingesta/reproceso."""
    job_id_var.set(job_id or "")
    document_id_var.set(document_id or "")


def get_context_dict() -> dict[str, str]:
    """Devuelve el contexto actual como dict, omitiendo claves vacías."""
    ctx: dict[str, str] = {}
    if val := query_id_var.get():
        ctx[_CTX_QUERY_ID] = val
    if val := document_id_var.get():
        ctx[_CTX_DOCUMENT_ID] = val
    if val := job_id_var.get():
        ctx[_CTX_JOB_ID] = val
    return ctx


def clear_context() -> None:
    """
    Limpia el contexto al terminar la query/job.

    Importante: los threads del pool se reutilizan; sin esto el contexto
    de un job se filtraría al siguiente.
    """
    query_id_var.set("")
    document_id_var.set("")
    job_id_var.set("")

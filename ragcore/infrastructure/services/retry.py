"""ragcore.infrastructure.services.retry

Name: Retry Helper with Exponential Backoff + Jitter (+ fallback combinator)

Qué es
------
Utilidad de **resiliencia** para llamadas a proveedores externos (embeddings,
generación, diagramas). Implementa:
  - Clasificación de errores: **transient** (reintentar) vs **permanent** (fail-fast)
  - Decorator de `tenacity` con **exponential backoff + jitter**
  - `retry_with_fallback`: reintentos acotados y, al agotarse, un valor de
    fallback producido por el caller (sin try/except anidados en los consumidores)

CRC (Component Card)
--------------------
Component: retry helper
Responsibilities:
  - Decidir qué errores son reintentables
  - Proveer un decorator estándar (tenacity) con backoff+jitter
  - Proveer el combinador retry-then-fallback
  - Loguear intentos con contexto útil
Collaborators:
  - tenacity (motor de retry)
  - crosscutting.config.get_settings (attempts/delays)
  - crosscutting.logger (logging estructurado)
Constraints:
  - Reintentar SOLO errores transitorios (429, 5xx, timeouts, conexión)
  - No reintentar errores permanentes (400, 401, 403, 404)
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ...crosscutting.config import get_settings
from ...crosscutting.exceptions import ProviderError
from ...crosscutting.logger import logger

T = TypeVar("T")


# R: HTTP status codes que indican fallas transitorias (reintentables)
TRANSIENT_HTTP_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})

# R: HTTP status codes que indican fallas permanentes (no reintentar)
PERMANENT_HTTP_CODES: frozenset[int] = frozenset({400, 401, 403, 404})

_TRANSIENT_NAME_PATTERNS: tuple[str, ...] = (
    "timeout",
    "timedout",
    "connection",
    "connect",
    "temporary",
    "unavailable",
    "resourceexhausted",
    "deadline",
    "aborted",
)

_TRANSIENT_MESSAGE_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "too many requests",
    "quota exceeded",
    "temporarily unavailable",
    "service unavailable",
    "connection reset",
    "connection refused",
    "timed out",
    "deadline exceeded",
)


def get_http_status_code(exception: BaseException) -> int | None:
    """R: Extrae un status code HTTP desde distintos tipos de exception (best-effort).

    Soporta:
      - google.genai.errors.APIError (atributo `code`)
      - errores con `response.status_code` (httpx)
      - SDKs que exponen `status_code`
    """
    code = getattr(exception, "code", None)
    if isinstance(code, int) and code >= 100:
        return code

    resp = getattr(exception, "response", None)
    status_code = getattr(resp, "status_code", None)
    if isinstance(status_code, int):
        return status_code

    status_code = getattr(exception, "status_code", None)
    if isinstance(status_code, int):
        return status_code

    return None


def is_transient_error(exception: BaseException) -> bool:
    """R: Decide si un error es transitorio (reintentar) o permanente (fail-fast).

    Reglas (en orden):
      1) status code HTTP: permanent -> False, transient -> True
      2) timeouts / errores de conexión built-in -> True
      3) heurística por nombre de clase y por mensaje
      4) default: False (no reintentar lo desconocido)

    Un ProviderError que envuelve otra excepción se clasifica por su causa.
    """
    if isinstance(exception, ProviderError):
        cause = exception.__cause__ or exception.original_error
        return cause is not None and is_transient_error(cause)

    status_code = get_http_status_code(exception)
    if status_code is not None:
        if status_code in PERMANENT_HTTP_CODES:
            return False
        if status_code in TRANSIENT_HTTP_CODES:
            return True

    if isinstance(exception, (TimeoutError, ConnectionError, OSError)):
        return True

    exception_name = type(exception).__name__.lower()
    if any(p in exception_name for p in _TRANSIENT_NAME_PATTERNS):
        return True

    message = str(exception).lower()
    if any(p in message for p in _TRANSIENT_MESSAGE_PATTERNS):
        return True

    return False


def _log_retry(retry_state: RetryCallState) -> None:
    """R: Loguea cada intento antes de dormir (before_sleep)."""
    fn = getattr(retry_state, "fn", None)
    fn_name = getattr(fn, "__name__", None) or getattr(fn, "__qualname__", "call")
    wait_time = (
        retry_state.next_action.sleep if retry_state.next_action is not None else 0
    )

    exc: Optional[BaseException] = None
    if retry_state.outcome is not None:
        exc = retry_state.outcome.exception()

    logger.warning(
        "Retrying external call",
        extra={
            "function": fn_name,
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(float(wait_time), 2),
            "error": str(exc) if exc else None,
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def _resolve_policy(
    max_attempts: int | None,
    base_delay: float | None,
    max_delay: float | None,
) -> tuple[int, float, float]:
    """R: Overrides explícitos > Settings."""
    settings = get_settings()
    _max_attempts = settings.retry_max_attempts if max_attempts is None else max_attempts
    _base_delay = (
        settings.retry_base_delay_seconds if base_delay is None else float(base_delay)
    )
    _max_delay = (
        settings.retry_max_delay_seconds if max_delay is None else float(max_delay)
    )

    if _max_attempts <= 0:
        raise ValueError("max_attempts must be > 0")
    if _base_delay < 0:
        raise ValueError("base_delay must be >= 0")
    if _max_delay <= 0:
        raise ValueError("max_delay must be > 0")
    return _max_attempts, _base_delay, _max_delay


def _retry_kwargs(
    max_attempts: int,
    base_delay: float,
    max_delay: float,
    retry_on: Callable[[BaseException], bool],
) -> dict[str, Any]:
    return {
        "stop": stop_after_attempt(max_attempts),
        "wait": wait_exponential_jitter(
            initial=base_delay, max=max_delay, jitter=base_delay
        ),
        "retry": retry_if_exception(retry_on),
        "before_sleep": _log_retry,
        "reraise": True,
    }


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """R: Crea un decorator `tenacity` con exponential backoff + jitter.

    - stop: stop_after_attempt(max_attempts)
    - wait: wait_exponential_jitter(initial=base_delay, max=max_delay)
    - retry: sólo si is_transient_error(exception)
    - reraise: True (propaga la última excepción)
    """
    policy = _resolve_policy(max_attempts, base_delay, max_delay)
    return retry(**_retry_kwargs(*policy, retry_on=is_transient_error))


def retry_with_fallback(
    fn: Callable[..., T],
    *args: Any,
    fallback: Callable[[BaseException], T],
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    retry_on: Callable[[BaseException], bool] = is_transient_error,
    **kwargs: Any,
) -> T:
    """R: Ejecuta `fn(*args, **kwargs)` con reintentos acotados; si se agotan
    (o el error es permanente) devuelve `fallback(exc)`.

    Es el único punto donde una falla de proveedor se convierte en
    comportamiento degradado; los consumidores no anidan try/except.
    """
    policy = _resolve_policy(max_attempts, base_delay, max_delay)
    retrying = Retrying(**_retry_kwargs(*policy, retry_on=retry_on))
    try:
        return retrying(fn, *args, **kwargs)
    except Exception as exc:  # noqa: BLE001
        logger.warning(
            "External call failed, using fallback",
            extra={
                "function": getattr(fn, "__name__", "call"),
                "error_type": type(exc).__name__,
                "error": str(exc),
            },
        )
        return fallback(exc)

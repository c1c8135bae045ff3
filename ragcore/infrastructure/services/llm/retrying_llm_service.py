"""
Name: Retrying LLM Service (Decorator)

Envuelve un LLMService con retry_with_fallback: reintentos acotados con
backoff + jitter para errores transitorios y, al agotarse, LLMError con la
causa original. El orquestador traduce ese LLMError en una respuesta
DEGRADED que conserva las fuentes.

Nota: el LLMDiagramRenderer recibe el servicio sin envolver (ya reintenta
por su cuenta).
"""

from __future__ import annotations

from typing import NoReturn

from ....crosscutting.exceptions import LLMError
from ....domain.services import LLMService
from ..retry import retry_with_fallback


class RetryingLLMService(LLMService):
    def __init__(
        self,
        inner: LLMService,
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
    ) -> None:
        self._inner = inner
        self._retry_opts = {
            "max_attempts": max_attempts,
            "base_delay": base_delay,
            "max_delay": max_delay,
        }

    @property
    def model_id(self) -> str:
        return self._inner.model_id

    def generate(self, prompt: str) -> str:
        def fail(exc: BaseException) -> NoReturn:
            if isinstance(exc, LLMError):
                raise exc
            raise LLMError(
                "Answer generation failed",
                original_error=exc,  # type: ignore[arg-type]
            ) from exc

        return retry_with_fallback(
            self._inner.generate, prompt, fallback=fail, **self._retry_opts
        )

"""
Name: LLM Diagram Renderer (Adapter)

Qué hace
--------
Implementa el puerto `DiagramRenderer` delegando en un LLMService:

  1) build_diagram_prompt(tipo, texto, instrucciones, tags)
  2) llm.generate con retry_with_fallback
  3) normaliza la salida: extract_content + wrap_content (tolera fences o
     texto alrededor de @startuml/@enduml)

Errores:
  - proveedor caído (tras reintentos) o salida vacía => DiagramError.
    El orquestador lo registra en metadata sin invalidar la respuesta.
"""

from __future__ import annotations

from typing import Iterable, NoReturn, Optional

from ....crosscutting.exceptions import DiagramError
from ....crosscutting.logger import logger
from ....domain.diagram import DiagramType, build_diagram_prompt
from ....domain.services import DiagramRenderer, LLMService
from ..retry import retry_with_fallback


class LLMDiagramRenderer(DiagramRenderer):
    def __init__(
        self,
        llm: LLMService,
        *,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        max_delay: float | None = None,
    ) -> None:
        self._llm = llm
        self._retry_opts = {
            "max_attempts": max_attempts,
            "base_delay": base_delay,
            "max_delay": max_delay,
        }

    def render(
        self,
        text: str,
        diagram_type: DiagramType,
        *,
        instructions: Optional[str] = None,
        domain_tags: Iterable[str] = (),
    ) -> str:
        if not (text or "").strip():
            raise DiagramError("Cannot render a diagram from empty text")

        prompt = build_diagram_prompt(diagram_type, text, instructions, domain_tags)

        def fail(exc: BaseException) -> NoReturn:
            raise DiagramError(
                f"{diagram_type.display_name} generation failed",
                original_error=exc,  # type: ignore[arg-type]
            ) from exc

        raw = retry_with_fallback(
            self._llm.generate, prompt, fallback=fail, **self._retry_opts
        )

        body = diagram_type.extract_content(_strip_code_fence(raw))
        if not body:
            raise DiagramError(f"{diagram_type.display_name} generation returned no content")

        logger.info(
            "Diagram rendered",
            extra={"diagram_type": diagram_type.code, "code_chars": len(body)},
        )
        return diagram_type.wrap_content(body)


def _strip_code_fence(raw: str) -> str:
    """R: quita ```plantuml ... ``` si el modelo envolvió la salida."""
    text = (raw or "").strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        if lines and lines[-1].strip().startswith("```"):
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text

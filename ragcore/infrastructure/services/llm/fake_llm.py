"""
Name: Fake LLM Service (Deterministic Test Double)

Qué es
------
Implementación determinista de `domain.services.LLMService` para tests/CI
y uso offline. No realiza IO.

  - Prompt de grounding => "Simulated answer (<digest>) for: <pregunta>"
  - Prompt de diagrama (menciona @startuml) => diagrama mínimo válido

CRC (Class-Responsibility-Collaboration)
----------------------------------------
Class: FakeLLMService
Responsibilities:
  - Respuestas deterministas (mismo prompt => misma salida)
  - Exponer model_id estable
Collaborators:
  - domain.services.LLMService
  - domain.diagram (tags de inicio/fin)
"""

from __future__ import annotations

import hashlib

from ....crosscutting.exceptions import LLMError
from ....crosscutting.logger import logger
from ....domain.diagram import END_TAG, START_TAG
from ....domain.services import LLMService

_QUESTION_MARKERS = ("Current question:", "Question:")


def _extract_question(prompt: str) -> str:
    """R: Última línea marcada como pregunta; si no hay, la última línea no vacía."""
    lines = [line.strip() for line in prompt.splitlines() if line.strip()]
    for line in reversed(lines):
        for marker in _QUESTION_MARKERS:
            if line.startswith(marker):
                return line[len(marker) :].strip()
    return lines[-1] if lines else ""


class FakeLLMService(LLMService):
    """R: Deterministic LLMService for tests/CI."""

    MODEL_ID = "fake-llm-v1"

    def __init__(self) -> None:
        logger.debug("FakeLLMService initialized", extra={"model_id": self.MODEL_ID})

    @property
    def model_id(self) -> str:
        return self.MODEL_ID

    def generate(self, prompt: str) -> str:
        if not (prompt or "").strip():
            raise LLMError("Prompt must not be empty")

        digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:16]
        if START_TAG in prompt:
            return f'{START_TAG}\nnote "{digest}" as N1\n{END_TAG}'
        return f"Simulated answer ({digest}) for: {_extract_question(prompt)}"

"""
Name: Google Gemini LLM Service Implementation (Adapter)

Qué hace
--------
Implementación concreta de `domain.services.LLMService` usando Google GenAI
(Gemini). Recibe un prompt ya armado (grounding o diagrama) y devuelve texto.

CRC (Class-Responsibility-Collaboration)
----------------------------------------
Class: GoogleLLMService
Responsibilities:
  - Llamar a generate_content con timeout por request
  - Normalizar la respuesta (strip) y rechazar respuestas vacías
  - Envolver errores del SDK en LLMError conservando la causa
Collaborators:
  - google.genai.Client: SDK externo
  - application (orquestador / renderer): aplican retry_with_fallback
Constraints:
  - Sin retry propio: la política vive en un solo lugar (retry_with_fallback)
"""

from __future__ import annotations

from google import genai
from google.genai import types

from ....crosscutting.exceptions import LLMError
from ....crosscutting.logger import logger
from ....domain.services import LLMService


class GoogleLLMService(LLMService):
    """R: Google Gemini implementation of LLMService."""

    DEFAULT_MODEL_ID = "gemini-1.5-flash"

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: genai.Client | None = None,
        model_id: str | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        """
        R: Inicializa el servicio (preferible vía DI).

        Raises:
            LLMError: si no hay API key y no se inyectó `client`.
        """
        resolved_key = (api_key or "").strip()
        if not resolved_key and client is None:
            logger.error("GoogleLLMService: GOOGLE_API_KEY not configured")
            raise LLMError("GOOGLE_API_KEY not configured")

        self._client = client or genai.Client(
            api_key=resolved_key,
            http_options=types.HttpOptions(timeout=int(timeout_seconds * 1000)),
        )
        self._model_id = (model_id or self.DEFAULT_MODEL_ID).strip()

        logger.info("GoogleLLMService initialized", extra={"model_id": self._model_id})

    @property
    def model_id(self) -> str:
        return self._model_id

    def generate(self, prompt: str) -> str:
        if not (prompt or "").strip():
            raise LLMError("Prompt must not be empty")

        try:
            response = self._client.models.generate_content(
                model=self._model_id, contents=prompt
            )
        except Exception as exc:
            logger.warning(
                "GoogleLLMService: Generation failed",
                extra={"model_id": self._model_id, "error_type": type(exc).__name__},
            )
            raise LLMError("Failed to generate response", original_error=exc) from exc

        text = (getattr(response, "text", "") or "").strip()
        if not text:
            raise LLMError("Empty response from generation provider")

        logger.info(
            "GoogleLLMService: Response generated",
            extra={
                "model_id": self._model_id,
                "prompt_chars": len(prompt),
                "answer_chars": len(text),
            },
        )
        return text

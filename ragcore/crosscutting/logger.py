"""
===============================================================================
MÓDULO: Logger estructurado (JSON) con contexto de query/job
===============================================================================

Objetivo
--------
Loguear de forma:
- Parseable (JSON, una línea por evento)
- Correlacionable (query_id / document_id / job_id)
- Segura (redacción de secretos, recorte de textos largos de chunks)

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  JSONFormatter + setup_logger()

Responsabilidades:
  - Formatear LogRecord como JSON
  - Enriquecer con contexto (ragcore.context)
  - Redactar campos sensibles y limitar tamaños

Colaboradores:
  - ragcore/context.py (ContextVars)
  - crosscutting/config.py (nivel y formato)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any

from ..context import get_context_dict

# Campos internos del LogRecord que NO se copian como "extra".
_INTERNAL_LOGRECORD_KEYS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "message",
        "taskName",
    }
)


class _Redactor:
    """
    Sanitiza valores "extra" antes de serializarlos.

    Reglas:
      - claves sensibles -> "***REDACTED***"
      - strings largos (ej: texto de chunks o prompts) -> recortados
      - profundidad máxima para estructuras anidadas
    """

    SENSITIVE_KEYS = frozenset(
        {
            "password",
            "secret",
            "token",
            "authorization",
            "api_key",
            "apikey",
            "google_api_key",
            "credential",
            "redis_url",
        }
    )

    def __init__(self, max_str: int = 2_000, max_depth: int = 4):
        self._max_str = max_str
        self._max_depth = max_depth

    def sanitize(self, value: Any, *, depth: int = 0, key: str | None = None) -> Any:
        if key and key.lower() in self.SENSITIVE_KEYS:
            return "***REDACTED***"

        if depth > self._max_depth:
            return "***TRUNCATED***"

        if isinstance(value, str):
            if len(value) <= self._max_str:
                return value
            return value[: self._max_str] + "…(truncated)"

        if isinstance(value, (bytes, bytearray)):
            return f"<bytes {len(value)}B>"

        if isinstance(value, dict):
            return {
                str(k): self.sanitize(v, depth=depth + 1, key=str(k))
                for k, v in value.items()
            }

        if isinstance(value, (list, tuple, set, frozenset)):
            # R: vectores de embedding no se loguean completos.
            items = list(value)
            if len(items) > 32 and all(isinstance(v, (int, float)) for v in items):
                return f"<vector len={len(items)}>"
            return [self.sanitize(v, depth=depth + 1, key=key) for v in items]

        try:
            json.dumps(value)
            return value
        except (TypeError, ValueError):
            return str(value)


class JSONFormatter(logging.Formatter):
    """LogRecord -> JSON (una línea), con contexto y stacktrace si hay excepción."""

    def __init__(self):
        super().__init__()
        self._redactor = _Redactor()

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "pid": os.getpid(),
        }
        payload.update(get_context_dict())

        for k, v in record.__dict__.items():
            if k in _INTERNAL_LOGRECORD_KEYS:
                continue
            payload[k] = self._redactor.sanitize(v, key=k)

        if record.exc_info:
            exc_type = record.exc_info[0].__name__ if record.exc_info[0] else None
            exc_msg = str(record.exc_info[1]) if record.exc_info[1] else None
            payload["exception"] = {
                "type": exc_type,
                "message": exc_msg,
                "stacktrace": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(
            payload, ensure_ascii=False, default=str, separators=(",", ":")
        )


def setup_logger(name: str = "ragcore") -> logging.Logger:
    """
    Crea y configura el logger del paquete.

    - Evita duplicar handlers en reimport
    - Respeta log_level / log_json desde Settings cuando estén disponibles
    """
    log = logging.getLogger(name)

    level = "INFO"
    use_json = True

    # Settings best-effort: un entorno sin API key no debe romper el import del logger.
    try:
        from .config import get_settings

        s = get_settings()
        level = (s.log_level or "INFO").upper()
        use_json = bool(s.log_json)
    except Exception:  # noqa: BLE001
        pass

    log.setLevel(getattr(logging, level, logging.INFO))

    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            JSONFormatter()
            if use_json
            else logging.Formatter("%(levelname)s %(name)s %(message)s")
        )
        log.addHandler(handler)

    return log


logger = setup_logger()

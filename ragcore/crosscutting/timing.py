"""
===============================================================================
MÓDULO: Timing por etapa (StageTimings)
===============================================================================

Responsabilidades:
  - Medir elapsed time por etapa del pipeline (embedding, retrieving, ...)
  - Medir el total desde la creación (response_time_ms)
  - Exponer resultados en ms para logs/metadata/métricas

Colaboradores:
  - application/usecases/query/answer_query.py (una instancia por query)
  - crosscutting/metrics.py (observe_stage_latency)
===============================================================================
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Iterator


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class StageTimings:
    """
    Acumula tiempos por etapa.

    Si una etapa se mide dos veces se suma (ej: reintentos de una misma etapa).
    """

    def __init__(self) -> None:
        self._started_at = time.perf_counter()
        self._stages: dict[str, float] = {}

    @contextmanager
    def measure(self, stage: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(stage, _elapsed_ms(start))

    def record(self, stage: str, elapsed_ms: float) -> None:
        self._stages[stage] = round(self._stages.get(stage, 0.0) + elapsed_ms, 2)

    def stage_ms(self, stage: str) -> float:
        return self._stages.get(stage, 0.0)

    @property
    def total_ms(self) -> float:
        return _elapsed_ms(self._started_at)

    def to_dict(self) -> dict[str, float]:
        """{stage}_ms por etapa + total_ms."""
        result = {f"{stage}_ms": ms for stage, ms in self._stages.items()}
        result["total_ms"] = self.total_ms
        return result

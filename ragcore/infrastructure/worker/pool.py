"""
===============================================================================
TARJETA CRC — infrastructure/worker/pool.py
===============================================================================

Clase:
    BoundedWorkerPool

Responsabilidades:
    - Ejecutar jobs de ingesta en threads separados del path de queries.
    - Acotar trabajo en vuelo: max_workers ejecutando + queue_capacity en espera.
    - Backpressure fail-fast: si está saturado, rechaza de inmediato
      (IngestionRejectedError); el caller reintenta con backoff.

Colaboradores:
    - concurrent.futures.ThreadPoolExecutor
    - threading.BoundedSemaphore (slots = workers + cola)
    - crosscutting.exceptions.IngestionRejectedError
===============================================================================
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from threading import BoundedSemaphore, Lock
from typing import Any, Callable, TypeVar

from ...crosscutting.exceptions import IngestionRejectedError
from ...crosscutting.logger import logger

T = TypeVar("T")


class BoundedWorkerPool:
    def __init__(
        self,
        *,
        max_workers: int,
        queue_capacity: int,
        name: str = "ingest",
    ) -> None:
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        if queue_capacity < 0:
            raise ValueError("queue_capacity must be >= 0")

        self._max_workers = max_workers
        self._capacity = max_workers + queue_capacity
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=name
        )
        self._slots = BoundedSemaphore(self._capacity)
        self._lock = Lock()
        self._in_flight = 0
        self._closed = False

        logger.info(
            "Worker pool initialized",
            extra={
                "pool": name,
                "max_workers": max_workers,
                "queue_capacity": queue_capacity,
            },
        )

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> int:
        with self._lock:
            return self._in_flight

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Future[T]":
        """Encola `fn`; lanza IngestionRejectedError si no hay slot libre."""
        if self._closed:
            raise IngestionRejectedError("Worker pool is shut down")
        if not self._slots.acquire(blocking=False):
            raise IngestionRejectedError(
                f"Ingestion pool saturated ({self._capacity} jobs in flight); retry later"
            )

        with self._lock:
            self._in_flight += 1
        try:
            future = self._executor.submit(fn, *args, **kwargs)
        except RuntimeError as exc:
            self._release_slot()
            raise IngestionRejectedError(
                "Worker pool is shut down", original_error=exc
            ) from exc

        future.add_done_callback(lambda _f: self._release_slot())
        return future

    def _release_slot(self) -> None:
        with self._lock:
            self._in_flight -= 1
        self._slots.release()

    def shutdown(self, *, wait: bool = True) -> None:
        self._closed = True
        self._executor.shutdown(wait=wait)

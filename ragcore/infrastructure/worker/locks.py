"""
===============================================================================
TARJETA CRC — infrastructure/worker/locks.py
===============================================================================

Clase:
    DocumentLockRegistry

Responsabilidades:
    - Implementar domain.services.DocumentLockManager.
    - Serializar operaciones destructivas por documento (ingest / reprocess):
      dos writers concurrentes nunca intercalan delete/insert.
    - Locks por clave con refcount: la entrada se elimina cuando el último
      holder/waiter la suelta, así la memoria queda acotada por los
      documentos en vuelo (no crece con cada id visto).

Colaboradores:
    - application/usecases/ingestion (ingest_document, reprocess_document)
===============================================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, Hashable, Iterator

from ...crosscutting.exceptions import DocumentLockedError


@dataclass
class _LockEntry:
    lock: Lock = field(default_factory=Lock)
    refs: int = 0


class DocumentLockRegistry:
    def __init__(self) -> None:
        self._guard = Lock()
        self._entries: Dict[Hashable, _LockEntry] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _retain(self, key: Hashable) -> _LockEntry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _LockEntry()
            entry.refs += 1
            return entry

    def _unref(self, key: Hashable, entry: _LockEntry) -> None:
        with self._guard:
            entry.refs -= 1
            if entry.refs == 0:
                self._entries.pop(key, None)

    def acquire(self, key: Hashable, *, blocking: bool = False) -> bool:
        entry = self._retain(key)
        if entry.lock.acquire(blocking=blocking):
            return True
        self._unref(key, entry)
        return False

    def release(self, key: Hashable) -> None:
        with self._guard:
            entry = self._entries.get(key)
        if entry is None:
            raise RuntimeError(f"Lock for {key!r} is not held")
        entry.lock.release()
        self._unref(key, entry)

    def is_locked(self, key: Hashable) -> bool:
        with self._guard:
            entry = self._entries.get(key)
            return entry is not None and entry.lock.locked()

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        """Toma el lock sin bloquear; DocumentLockedError si otro lo tiene."""
        if not self.acquire(key, blocking=False):
            raise DocumentLockedError(f"Document {key} is already being processed")
        try:
            yield
        finally:
            self.release(key)

"""Process-local storage backend."""
from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional
from uuid import UUID

from permgate.storage.base import StorageBackend, WeightMap


class MemoryBackend(StorageBackend):
    """Dict-backed backend. Mappings are copied in and out."""

    name = "memory"

    def __init__(self) -> None:
        self._data: Dict[UUID, WeightMap] = {}
        self._lock = threading.Lock()

    def load(self, entity_id: UUID) -> Optional[WeightMap]:
        with self._lock:
            stored = self._data.get(entity_id)
            return dict(stored) if stored is not None else None

    def save(self, entity_id: UUID, mapping: WeightMap) -> None:
        with self._lock:
            self._data[entity_id] = dict(mapping)

    def identifiers(self) -> Iterator[UUID]:
        with self._lock:
            ids = list(self._data)
        return iter(ids)


__all__ = ["MemoryBackend"]

"""Storage backend contract."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from permgate.utils.errors import BackendLoadFailure

WeightMap = Dict[str, int]


class StorageBackend(ABC):
    """Durable persistence beneath the store's cache.

    Only :meth:`load` and :meth:`save` are required. ``save`` must replace the
    whole mapping for an entity atomically; nothing else is assumed.
    """

    name = "abstract"

    @abstractmethod
    def load(self, entity_id: UUID) -> Optional[WeightMap]:
        """Return the stored mapping, or ``None`` if nothing is stored."""

    @abstractmethod
    def save(self, entity_id: UUID, mapping: WeightMap) -> None:
        """Persist ``mapping`` as the complete state for ``entity_id``."""

    def identifiers(self) -> Iterable[UUID]:
        """Enumerate stored entity ids. Backends that cannot enumerate return nothing."""

        return ()

    def close(self) -> None:
        return None


def validate_mapping(data: Any, entity_id: UUID) -> WeightMap:
    """Check that decoded data is a flat ``str -> int`` object."""

    if not isinstance(data, dict):
        raise BackendLoadFailure(
            f"Stored permissions for {entity_id} must be an object, got {type(data).__name__}",
            entity_id=entity_id,
        )
    mapping: WeightMap = {}
    for key, value in data.items():
        if not isinstance(key, str) or isinstance(value, bool) or not isinstance(value, int):
            raise BackendLoadFailure(
                f"Invalid entry {key!r}: {value!r} for {entity_id}", entity_id=entity_id
            )
        mapping[key] = value
    return mapping


__all__ = ["StorageBackend", "WeightMap", "validate_mapping"]

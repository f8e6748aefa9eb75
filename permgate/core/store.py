"""Permission resolution and caching engine.

:class:`PermissionStore` keeps one weight map per permittable, loaded lazily
from a :class:`~permgate.storage.base.StorageBackend` and kept resident until
evicted. Resolution walks the parent chain one entity at a time:

1. look up the canonical node string in the entity's own map;
2. if it is unset, repeat with the entity's parent group;
3. return ``-1`` when the chain ends without a value.

Weights follow fixed rules: ``-1`` is unset, ``0`` is denied and anything
above zero is granted. Values below ``-1`` read as unset and writing them
removes the entry, so a stored map never holds a negative weight.

Every entity has its own re-entrant lock, kept in the lock table only while
some thread holds or waits for it. The lock covers loading, reading,
mutating and saving that entity's map. No entity lock is held while another
entity's lock is acquired.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Union
from uuid import UUID

from permgate.core.node import NodeLike, as_node
from permgate.core.permittable import Group, Permittable
from permgate.storage.base import StorageBackend, WeightMap
from permgate.utils.errors import BackendLoadFailure, BackendSaveFailure, DuplicateGroupError
from permgate.utils.logging import get_logger

logger = get_logger(__name__)

UNSET = -1
DENIED = 0
GRANTED = 1

LoadFailureHandler = Callable[[BackendLoadFailure], None]


@dataclass
class _LockSlot:
    lock: threading.RLock = field(default_factory=threading.RLock)
    holders: int = 0


def normalize_weight(value: int) -> int:
    """Collapse every value below ``-1`` onto ``-1``."""

    return value if value > UNSET else UNSET


class PermissionStore:
    """Resolve and persist permission weights for registered permittables."""

    def __init__(
        self,
        backend: StorageBackend,
        *,
        on_load_failure: Optional[LoadFailureHandler] = None,
    ) -> None:
        self._backend = backend
        self._on_load_failure = on_load_failure
        self._cache: Dict[UUID, WeightMap] = {}
        self._locks: Dict[UUID, _LockSlot] = {}
        self._permittables: Dict[UUID, Permittable] = {}
        self._groups_by_name: Dict[str, Group] = {}
        # Guards the lock table, the cache dict itself and the registry indexes.
        self._guard = threading.Lock()

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    # -- internals ---------------------------------------------------------------
    @contextmanager
    def _locked(self, entity_id: UUID) -> Iterator[None]:
        """Hold the lock of ``entity_id``; the slot is dropped once nobody uses it."""

        with self._guard:
            slot = self._locks.get(entity_id)
            if slot is None:
                slot = _LockSlot()
                self._locks[entity_id] = slot
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0 and self._locks.get(entity_id) is slot:
                    del self._locks[entity_id]

    def _entry(self, entity_id: UUID) -> WeightMap:
        """Return the cached map for ``entity_id``. Caller holds its lock."""

        with self._guard:
            entry = self._cache.get(entity_id)
        if entry is not None:
            return entry
        entry = self._load(entity_id)
        with self._guard:
            self._cache[entity_id] = entry
        return entry

    def _load(self, entity_id: UUID) -> WeightMap:
        try:
            stored = self._backend.load(entity_id)
        except (BackendLoadFailure, OSError) as exc:
            if isinstance(exc, BackendLoadFailure):
                failure = exc
            else:
                failure = BackendLoadFailure(str(exc), entity_id=entity_id)
                failure.__cause__ = exc
            logger.warning(
                "permission load failed, continuing with an empty map",
                extra={"permittable_id": entity_id, "backend": self._backend.name, "error": failure},
            )
            if self._on_load_failure is not None:
                self._on_load_failure(failure)
            return {}
        logger.debug("permissions loaded", extra={"permittable_id": entity_id})
        return dict(stored) if stored else {}

    def _save(self, entity_id: UUID, mapping: WeightMap) -> None:
        try:
            self._backend.save(entity_id, mapping)
        except BackendSaveFailure:
            logger.error(
                "permission save failed", extra={"permittable_id": entity_id, "backend": self._backend.name}
            )
            raise
        except OSError as exc:
            logger.error(
                "permission save failed", extra={"permittable_id": entity_id, "backend": self._backend.name}
            )
            raise BackendSaveFailure(str(exc), entity_id=entity_id) from exc

    def _direct_weight(self, entity_id: UUID, key: str) -> int:
        with self._locked(entity_id):
            return normalize_weight(self._entry(entity_id).get(key, UNSET))

    # -- resolution --------------------------------------------------------------
    def resolve_weight(self, permittable: Permittable, node: NodeLike) -> int:
        """Return the effective weight of ``node`` for ``permittable``.

        The first defined weight along the parent chain wins, so a direct
        entry (even ``0``) always overrides anything a group grants.
        """

        key = str(as_node(node))
        current: Optional[Permittable] = permittable
        while current is not None:
            weight = self._direct_weight(current.permittable_id, key)
            if weight != UNSET:
                return weight
            current = current.parent()
        return UNSET

    def update_weight(self, permittable: Permittable, node: NodeLike, weight: int) -> None:
        """Set ``node`` to ``weight`` for ``permittable`` and persist the map.

        ``-1`` (or anything lower) removes the entry. The map is saved before
        the call returns. If saving fails, :class:`BackendSaveFailure` is raised
        and the cache keeps the new value until a later save succeeds.
        """

        if isinstance(weight, bool) or not isinstance(weight, int):
            raise TypeError(f"weight must be an int, got {type(weight).__name__}")
        key = str(as_node(node))
        entity_id = permittable.permittable_id
        with self._locked(entity_id):
            entry = self._entry(entity_id)
            if weight <= UNSET:
                entry.pop(key, None)
            else:
                entry[key] = weight
            self._save(entity_id, dict(entry))
        logger.debug(
            "permission updated", extra={"permittable_id": entity_id, "node": key}
        )

    def adjust_weight(self, permittable: Permittable, node: NodeLike, delta: int) -> int:
        """Add ``delta`` to the effective weight of ``node`` and store the result.

        The read, the write and the save happen under the entity's lock, so
        concurrent adjustments of the same entity never lose an update. An
        unset direct entry starts from the weight inherited through the
        parent chain. Returns the normalised new weight.
        """

        if isinstance(delta, bool) or not isinstance(delta, int):
            raise TypeError(f"delta must be an int, got {type(delta).__name__}")
        key = str(as_node(node))
        entity_id = permittable.permittable_id
        parent = permittable.parent()
        inherited = self.resolve_weight(parent, key) if parent is not None else UNSET
        with self._locked(entity_id):
            entry = self._entry(entity_id)
            current = normalize_weight(entry.get(key, UNSET))
            if current == UNSET:
                current = inherited
            updated = current + delta
            if updated <= UNSET:
                entry.pop(key, None)
            else:
                entry[key] = updated
            self._save(entity_id, dict(entry))
        logger.debug(
            "permission adjusted", extra={"permittable_id": entity_id, "node": key}
        )
        return normalize_weight(updated)

    # -- registry ----------------------------------------------------------------
    def register_permittable(self, permittable: Permittable) -> Permittable:
        """Register ``permittable`` and make sure its map is cached.

        Registering the same entity again is a no-op and returns the instance
        that was registered first.
        """

        entity_id = permittable.permittable_id
        with self._guard:
            if isinstance(permittable, Group):
                existing = self._groups_by_name.get(permittable.name)
                if existing is not None and existing.permittable_id != entity_id:
                    raise DuplicateGroupError(
                        f"Group name {permittable.name!r} already belongs to {existing.permittable_id}"
                    )
            registered = self._permittables.setdefault(entity_id, permittable)
            if isinstance(registered, Group):
                self._groups_by_name.setdefault(registered.name, registered)
        with self._locked(entity_id):
            self._entry(entity_id)
        return registered

    def unregister(self, permittable: Permittable) -> None:
        """Drop ``permittable`` from the lookup indexes. Its cache entry stays."""

        entity_id = permittable.permittable_id
        with self._guard:
            registered = self._permittables.pop(entity_id, None)
            if isinstance(registered, Group):
                self._groups_by_name.pop(registered.name, None)

    def group_of(self, key: Union[str, UUID]) -> Optional[Group]:
        """Look a group up by name or UUID. Returns ``None`` when absent."""

        with self._guard:
            if isinstance(key, UUID):
                found = self._permittables.get(key)
                return found if isinstance(found, Group) else None
            if isinstance(key, str):
                return self._groups_by_name.get(key)
        return None

    def permittable_of(self, entity_id: UUID) -> Optional[Permittable]:
        with self._guard:
            return self._permittables.get(entity_id)

    # -- cache lifecycle ---------------------------------------------------------
    def is_cached(self, permittable: Permittable) -> bool:
        with self._guard:
            return permittable.permittable_id in self._cache

    def snapshot(self, permittable: Permittable) -> WeightMap:
        """Return a copy of the cached map, loading it if needed."""

        entity_id = permittable.permittable_id
        with self._locked(entity_id):
            return dict(self._entry(entity_id))

    def evict(self, permittable: Permittable) -> None:
        """Forget the cached map. The next access reloads it from the backend."""

        entity_id = permittable.permittable_id
        with self._locked(entity_id):
            with self._guard:
                self._cache.pop(entity_id, None)

    def preload(self) -> int:
        """Cache every entity the backend can enumerate. Returns the count."""

        try:
            entity_ids = list(self._backend.identifiers())
        except (BackendLoadFailure, OSError) as exc:
            logger.warning(
                "cannot enumerate stored permissions", extra={"backend": self._backend.name, "error": exc}
            )
            return 0
        for entity_id in entity_ids:
            with self._locked(entity_id):
                self._entry(entity_id)
        logger.info("permissions preloaded", extra={"backend": self._backend.name})
        return len(entity_ids)

    def flush(self) -> int:
        """Save every cached map.

        All entities are attempted. If any save fails, one
        :class:`BackendSaveFailure` listing the failed ids is raised afterwards.
        """

        with self._guard:
            entity_ids = list(self._cache)
        failed: List[UUID] = []
        saved = 0
        for entity_id in entity_ids:
            with self._locked(entity_id):
                with self._guard:
                    entry = self._cache.get(entity_id)
                if entry is None:
                    continue
                try:
                    self._save(entity_id, dict(entry))
                except BackendSaveFailure:
                    failed.append(entity_id)
                    continue
                saved += 1
        if failed:
            raise BackendSaveFailure(
                f"Failed to flush permissions for {len(failed)} entities", failed_ids=failed
            )
        return saved

    def close(self) -> None:
        self._backend.close()


__all__ = [
    "PermissionStore",
    "normalize_weight",
    "UNSET",
    "DENIED",
    "GRANTED",
]

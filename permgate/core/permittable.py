"""Identity model for entities that can hold permissions.

Two variants exist: :class:`Individual` for a single connected actor and
:class:`Group` for a shared role. Both satisfy the :class:`Permittable`
protocol. Neither owns its weights; those live in
:class:`~permgate.core.store.PermissionStore`.

A permittable points at its parent group through a weak reference. The
registered group is kept alive by the store, never by its children.
"""
from __future__ import annotations

import threading
import uuid
import weakref
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Protocol, Union, runtime_checkable
from uuid import UUID

from permgate.utils.errors import ParentCycleError

# Held for every parent relink; the cycle check and the write happen under it.
_PARENT_LOCK = threading.Lock()

GROUP_NAMESPACE = uuid.UUID("6f1f1f4e-2b8e-5d0a-9a51-7d3c6c0e9b41")


class PermittableKind(str, Enum):
    INDIVIDUAL = "individual"
    GROUP = "group"


@runtime_checkable
class Permittable(Protocol):
    """Capability set shared by every permission holder."""

    kind: ClassVar[PermittableKind]

    @property
    def permittable_id(self) -> UUID:
        ...

    def parent(self) -> Optional["Group"]:
        ...

    def set_parent(self, group: Optional["Group"]) -> None:
        ...


def _resolve_ref(ref: Optional["weakref.ReferenceType[Group]"]) -> Optional["Group"]:
    return ref() if ref is not None else None


def _coerce_uuid(value: object) -> UUID:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        return UUID(value)
    raise TypeError(f"uuid must be a UUID or a UUID string, got {type(value).__name__}")


def _link_parent(child: Union["Individual", "Group"], group: Optional["Group"]) -> None:
    if group is None:
        with _PARENT_LOCK:
            child._parent_ref = None
        return
    if not isinstance(group, Group):
        raise TypeError(f"Parent must be a Group, got {type(group).__name__}")
    with _PARENT_LOCK:
        cursor: Optional[Group] = group
        while cursor is not None:
            if cursor == child:
                raise ParentCycleError(
                    f"Setting {group.name!r} as parent of {child.permittable_id} creates a cycle"
                )
            cursor = _resolve_ref(cursor._parent_ref)
        child._parent_ref = weakref.ref(group)


@dataclass(eq=False)
class Individual:
    """A single actor, alive for one session."""

    kind: ClassVar[PermittableKind] = PermittableKind.INDIVIDUAL

    uuid: UUID
    name: Optional[str] = None
    _parent_ref: Optional["weakref.ReferenceType[Group]"] = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.uuid = _coerce_uuid(self.uuid)

    @property
    def permittable_id(self) -> UUID:
        return self.uuid

    def parent(self) -> Optional["Group"]:
        return _resolve_ref(self._parent_ref)

    def set_parent(self, group: Optional["Group"]) -> None:
        _link_parent(self, group)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Individual):
            return NotImplemented
        return self.uuid == other.uuid

    def __hash__(self) -> int:
        return hash((self.kind, self.uuid))


@dataclass(eq=False)
class Group:
    """A shared role that individuals and other groups inherit from.

    ``uuid`` defaults to a UUID5 derived from ``name`` so the identifier, and
    therefore the stored weights, stay stable across restarts. A UUID string
    is accepted in place of a :class:`~uuid.UUID`.
    """

    kind: ClassVar[PermittableKind] = PermittableKind.GROUP

    name: str
    uuid: Optional[UUID] = None
    _parent_ref: Optional["weakref.ReferenceType[Group]"] = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Group name cannot be empty")
        if self.uuid is None:
            self.uuid = uuid.uuid5(GROUP_NAMESPACE, self.name)
        else:
            self.uuid = _coerce_uuid(self.uuid)

    @property
    def permittable_id(self) -> UUID:
        return self.uuid

    def parent(self) -> Optional["Group"]:
        return _resolve_ref(self._parent_ref)

    def set_parent(self, group: Optional["Group"]) -> None:
        _link_parent(self, group)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Group):
            return NotImplemented
        return self.uuid == other.uuid

    def __hash__(self) -> int:
        return hash((self.kind, self.uuid))


__all__ = ["Permittable", "PermittableKind", "Individual", "Group", "GROUP_NAMESPACE"]

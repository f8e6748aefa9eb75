"""Convenience operations over :class:`~permgate.core.permittable.Permittable`.

Every helper takes the store explicitly and accepts either a
:class:`~permgate.core.node.PermissionNode` or a raw dotted string::

    grant(store, player, "chat.color.red")
    has(store, player, "chat.color.red")      # True
    revoke(store, player, "chat.color.red")
    has(store, player, "chat.color.red")      # False
"""
from __future__ import annotations

from typing import Callable

from permgate.core.node import NodeLike, as_node
from permgate.core.permittable import Permittable
from permgate.core.store import GRANTED, UNSET, PermissionStore


def weight(store: PermissionStore, permittable: Permittable, node: NodeLike) -> int:
    return store.resolve_weight(permittable, node)


def is_permitted(
    store: PermissionStore,
    permittable: Permittable,
    node: NodeLike,
    predicate: Callable[[int], bool],
) -> bool:
    """Apply ``predicate`` to the resolved weight."""

    return predicate(store.resolve_weight(permittable, node))


def has(store: PermissionStore, permittable: Permittable, node: NodeLike) -> bool:
    """True when the resolved weight is positive."""

    return is_permitted(store, permittable, node, lambda value: value > 0)


def set_weight(store: PermissionStore, permittable: Permittable, node: NodeLike, value: int) -> None:
    store.update_weight(permittable, node, value)


def grant(store: PermissionStore, permittable: Permittable, node: NodeLike) -> None:
    store.update_weight(permittable, node, GRANTED)


def revoke(store: PermissionStore, permittable: Permittable, node: NodeLike) -> None:
    """Remove the entry entirely.

    This does not deny (``0``). The node falls back to whatever the parent
    chain defines, or to unset.
    """

    store.update_weight(permittable, node, UNSET)


def promote(store: PermissionStore, permittable: Permittable, node: NodeLike, delta: int) -> int:
    """Add ``delta`` to the resolved weight and store the result directly.

    The starting point includes inherited weights, so promoting an unset node
    by one yields ``0``. A result of ``-1`` or lower removes the entry.
    Returns the resulting weight, with removals reported as ``-1``.
    Concurrent promotions of the same permittable are applied one at a time.
    """

    return store.adjust_weight(permittable, as_node(node), delta)


__all__ = ["weight", "is_permitted", "has", "set_weight", "grant", "revoke", "promote"]

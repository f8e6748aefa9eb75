"""Parsed permission nodes.

A permission such as ``"chat.color.red"`` is stored as the segments
``("chat", "color", "red")``. Segments are never empty and never contain
``.``, so the canonical dotted form always splits back into the same node.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple, Union

from permgate.utils.errors import InvalidPermissionNode

CANONICAL_DELIMITER = "."


@dataclass(frozen=True)
class PermissionNode:
    """Immutable, validated permission path."""

    parts: Tuple[str, ...]

    def __post_init__(self) -> None:
        if isinstance(self.parts, str):
            raise InvalidPermissionNode("Use PermissionNode.parse() for raw permission strings")
        parts = tuple(self.parts)
        object.__setattr__(self, "parts", parts)
        if not parts:
            raise InvalidPermissionNode("Permission node cannot be empty")
        for part in parts:
            if not isinstance(part, str):
                raise InvalidPermissionNode(f"Permission parts must be strings, got {part!r}")
            if not part:
                raise InvalidPermissionNode(f"Permission parts cannot be empty: {list(parts)!r}")
            if CANONICAL_DELIMITER in part:
                raise InvalidPermissionNode(
                    f"Permission parts cannot contain dots {part!r} in permission {list(parts)!r}"
                )

    @classmethod
    def parse(cls, raw: str, delimiter: str = CANONICAL_DELIMITER) -> "PermissionNode":
        """Split ``raw`` on the literal ``delimiter`` and validate the parts."""

        if not delimiter:
            raise InvalidPermissionNode("Delimiter cannot be empty")
        if not raw:
            raise InvalidPermissionNode("Permission node cannot be empty")
        return cls(tuple(raw.split(delimiter)))

    @classmethod
    def of(cls, *segments: str) -> "PermissionNode":
        return cls(segments)

    @property
    def segments(self) -> Tuple[str, ...]:
        return self.parts

    def format(self, delimiter: str = CANONICAL_DELIMITER) -> str:
        return delimiter.join(self.parts)

    def __str__(self) -> str:
        return self.format(CANONICAL_DELIMITER)

    def __iter__(self) -> Iterator[str]:
        return iter(self.parts)

    def __len__(self) -> int:
        return len(self.parts)


NodeLike = Union[PermissionNode, str]


def as_node(value: NodeLike) -> PermissionNode:
    """Return ``value`` as a :class:`PermissionNode`, parsing strings."""

    if isinstance(value, PermissionNode):
        return value
    if isinstance(value, str):
        return PermissionNode.parse(value)
    raise TypeError(f"Expected PermissionNode or str, got {type(value).__name__}")


__all__ = ["PermissionNode", "NodeLike", "as_node", "CANONICAL_DELIMITER"]

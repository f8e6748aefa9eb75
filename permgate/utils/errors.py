"""Custom exceptions used across permgate."""
from __future__ import annotations

from typing import Iterable, Optional
from uuid import UUID


class PermgateError(Exception):
    """Base exception for all permgate errors."""


class ConfigurationError(PermgateError):
    """Raised when configuration loading or validation fails."""


class InvalidPermissionNode(PermgateError, ValueError):
    """Raised when a raw permission string cannot be parsed into a node."""


class ParentCycleError(PermgateError, ValueError):
    """Raised when a parent link would make the group chain cyclic."""


class DuplicateGroupError(PermgateError):
    """Raised when two different groups are registered under one name."""


class BackendError(PermgateError):
    """Raised when a storage backend cannot complete an operation."""

    def __init__(self, message: str, *, entity_id: Optional[UUID] = None) -> None:
        super().__init__(message)
        self.entity_id = entity_id


class BackendLoadFailure(BackendError):
    """Stored permissions for an entity could not be read."""


class BackendSaveFailure(BackendError):
    """Permissions for one or more entities could not be persisted."""

    def __init__(
        self,
        message: str,
        *,
        entity_id: Optional[UUID] = None,
        failed_ids: Iterable[UUID] = (),
    ) -> None:
        super().__init__(message, entity_id=entity_id)
        self.failed_ids = list(failed_ids)
        if entity_id is not None and entity_id not in self.failed_ids:
            self.failed_ids.insert(0, entity_id)


__all__ = [
    "PermgateError",
    "ConfigurationError",
    "InvalidPermissionNode",
    "ParentCycleError",
    "DuplicateGroupError",
    "BackendError",
    "BackendLoadFailure",
    "BackendSaveFailure",
]

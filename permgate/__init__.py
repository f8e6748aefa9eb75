"""Hierarchical permission weights with group inheritance and pluggable storage."""
from __future__ import annotations

from permgate.core.checks import grant, has, is_permitted, promote, revoke, set_weight, weight
from permgate.core.config import ConfigManager, PermgateSettings
from permgate.core.node import PermissionNode, as_node
from permgate.core.permittable import Group, Individual, Permittable, PermittableKind
from permgate.core.store import DENIED, GRANTED, UNSET, PermissionStore
from permgate.service import PermissionService
from permgate.storage import FileBackend, MemoryBackend, RedisBackend, StorageBackend, build_backend
from permgate.utils.errors import (
    BackendLoadFailure,
    BackendSaveFailure,
    ConfigurationError,
    DuplicateGroupError,
    InvalidPermissionNode,
    ParentCycleError,
    PermgateError,
)

__version__ = "0.1.0"

__all__ = [
    "PermissionNode",
    "as_node",
    "Permittable",
    "PermittableKind",
    "Individual",
    "Group",
    "PermissionStore",
    "PermissionService",
    "UNSET",
    "DENIED",
    "GRANTED",
    "weight",
    "is_permitted",
    "has",
    "set_weight",
    "grant",
    "revoke",
    "promote",
    "StorageBackend",
    "FileBackend",
    "RedisBackend",
    "MemoryBackend",
    "build_backend",
    "ConfigManager",
    "PermgateSettings",
    "PermgateError",
    "ConfigurationError",
    "InvalidPermissionNode",
    "ParentCycleError",
    "DuplicateGroupError",
    "BackendLoadFailure",
    "BackendSaveFailure",
]

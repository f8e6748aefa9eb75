"""Persistence backends for permission weight maps."""
from __future__ import annotations

from permgate.core.config import StorageSettings
from permgate.storage.base import StorageBackend, WeightMap, validate_mapping
from permgate.storage.file import FileBackend
from permgate.storage.memory import MemoryBackend
from permgate.storage.remote import RedisBackend


def build_backend(settings: StorageSettings) -> StorageBackend:
    """Construct the backend selected by ``settings.backend``."""

    if settings.backend == "file":
        return FileBackend(settings.directory)
    if settings.backend == "redis":
        return RedisBackend.from_url(
            settings.redis_url, key_prefix=settings.key_prefix, timeout=settings.timeout
        )
    return MemoryBackend()


__all__ = [
    "StorageBackend",
    "WeightMap",
    "validate_mapping",
    "FileBackend",
    "MemoryBackend",
    "RedisBackend",
    "build_backend",
]

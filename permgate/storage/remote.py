"""Redis storage backend.

Each entity maps to one key, ``<prefix><uuid>``, whose value is the JSON
encoded weight map. ``SET`` replaces the value atomically.
"""

from __future__ import annotations

import json
from typing import Any, Iterator, Optional
from uuid import UUID

import redis

from permgate.storage.base import StorageBackend, WeightMap, validate_mapping
from permgate.utils.errors import BackendLoadFailure, BackendSaveFailure
from permgate.utils.logging import get_logger

logger = get_logger(__name__)


class RedisBackend(StorageBackend):
    """Persist weight maps in a Redis instance.

    Usage:
        backend = RedisBackend.from_url("redis://localhost:6379/0", timeout=2.0)
        backend.save(entity_id, {"chat.color.red": 1})
        backend.load(entity_id)
    """

    name = "redis"

    def __init__(self, client: Any, *, key_prefix: str = "permgate:") -> None:
        """
        Args:
            client: A ``redis.Redis`` (or compatible) client. Both str and
                bytes responses are accepted
            key_prefix: Prefix for every entity key
        """
        self._client = client
        self.key_prefix = key_prefix

    @classmethod
    def from_url(
        cls,
        url: str = "redis://localhost:6379/0",
        *,
        key_prefix: str = "permgate:",
        timeout: float = 5.0,
    ) -> "RedisBackend":
        client = redis.Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        logger.info("redis backend configured", extra={"backend": url})
        return cls(client, key_prefix=key_prefix)

    def _make_key(self, entity_id: UUID) -> str:
        return f"{self.key_prefix}{entity_id}"

    def load(self, entity_id: UUID) -> Optional[WeightMap]:
        key = self._make_key(entity_id)
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise BackendLoadFailure(f"Redis get failed for {key}: {exc}", entity_id=entity_id) from exc
        if value is None:
            return None
        try:
            data = json.loads(value)
        except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as exc:
            raise BackendLoadFailure(f"Corrupt value at {key}: {exc}", entity_id=entity_id) from exc
        return validate_mapping(data, entity_id)

    def save(self, entity_id: UUID, mapping: WeightMap) -> None:
        key = self._make_key(entity_id)
        try:
            self._client.set(key, json.dumps(mapping, sort_keys=True))
        except redis.RedisError as exc:
            raise BackendSaveFailure(f"Redis set failed for {key}: {exc}", entity_id=entity_id) from exc

    def identifiers(self) -> Iterator[UUID]:
        try:
            keys = list(self._client.scan_iter(match=f"{self.key_prefix}*"))
        except redis.RedisError as exc:
            logger.warning("redis scan failed", extra={"backend": self.name, "error": exc})
            return
        for key in keys:
            # Clients built without decode_responses hand back bytes.
            if isinstance(key, bytes):
                key = key.decode("utf-8", errors="replace")
            try:
                yield UUID(key[len(self.key_prefix):])
            except (ValueError, TypeError):
                logger.warning("skipping unrecognised redis key", extra={"path": key})

    def close(self) -> None:
        self._client.close()
        logger.info("closed redis connection")


__all__ = ["RedisBackend"]

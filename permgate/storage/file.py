"""JSON-file-per-entity storage backend."""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Iterator, Optional
from uuid import UUID

from permgate.storage.base import StorageBackend, WeightMap, validate_mapping
from permgate.utils.errors import BackendLoadFailure, BackendSaveFailure
from permgate.utils.logging import get_logger

logger = get_logger(__name__)


class FileBackend(StorageBackend):
    """Store each entity as ``<uuid>.json`` holding a flat node -> weight object."""

    name = "file"

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, entity_id: UUID) -> Path:
        return self.directory / f"{entity_id}.json"

    def load(self, entity_id: UUID) -> Optional[WeightMap]:
        path = self.path_for(entity_id)
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BackendLoadFailure(f"Cannot read {path}: {exc}", entity_id=entity_id) from exc
        return validate_mapping(data, entity_id)

    def save(self, entity_id: UUID, mapping: WeightMap) -> None:
        path = self.path_for(entity_id)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=f".{entity_id}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                json.dump(mapping, handle, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise BackendSaveFailure(f"Cannot write {path}: {exc}", entity_id=entity_id) from exc
        logger.debug("permissions saved", extra={"permittable_id": entity_id, "path": path})

    def identifiers(self) -> Iterator[UUID]:
        for path in sorted(self.directory.glob("*.json")):
            try:
                yield UUID(path.stem)
            except ValueError:
                logger.warning("skipping unrecognised permission file", extra={"path": path})


__all__ = ["FileBackend"]

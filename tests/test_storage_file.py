import json
import shutil
import uuid
from pathlib import Path

import pytest

from permgate.core.permittable import Individual
from permgate.core.store import PermissionStore
from permgate.storage.file import FileBackend
from permgate.utils.errors import BackendLoadFailure, BackendSaveFailure


def test_save_then_load_roundtrip(tmp_path: Path) -> None:
    backend = FileBackend(tmp_path / "perms")
    entity_id = uuid.uuid4()
    mapping = {"chat.color.red": 1, "world.build": 0, "rank.level": 7}

    backend.save(entity_id, mapping)
    assert backend.load(entity_id) == mapping

    stored = json.loads((tmp_path / "perms" / f"{entity_id}.json").read_text(encoding="utf-8"))
    assert stored == mapping
    assert list((tmp_path / "perms").glob("*.tmp")) == []


def test_missing_file_is_not_found(tmp_path: Path) -> None:
    assert FileBackend(tmp_path).load(uuid.uuid4()) is None


@pytest.mark.parametrize(
    "content",
    [
        b"{not json",
        b"[1, 2]",
        b'{"chat": "yes"}',
        b'{"chat": true}',
        b'{"chat": 1.5}',
        b'{"chat": \xff\xfe}',
        b"\x80\x81\x82",
    ],
)
def test_malformed_files_fail_to_load(tmp_path: Path, content: bytes) -> None:
    backend = FileBackend(tmp_path)
    entity_id = uuid.uuid4()
    backend.path_for(entity_id).write_bytes(content)
    with pytest.raises(BackendLoadFailure):
        backend.load(entity_id)


def test_save_into_missing_directory_fails(tmp_path: Path) -> None:
    backend = FileBackend(tmp_path / "perms")
    shutil.rmtree(tmp_path / "perms")
    with pytest.raises(BackendSaveFailure):
        backend.save(uuid.uuid4(), {"chat": 1})


def test_identifiers_skip_unrelated_files(tmp_path: Path) -> None:
    backend = FileBackend(tmp_path)
    ids = sorted([uuid.uuid4(), uuid.uuid4()], key=str)
    for entity_id in ids:
        backend.save(entity_id, {})
    (tmp_path / "notes.json").write_text("{}", encoding="utf-8")
    (tmp_path / "readme.txt").write_text("hello", encoding="utf-8")

    assert sorted(backend.identifiers(), key=str) == ids


@pytest.mark.parametrize("content", [b"{oops", b'{"chat.color.red": \xff}'])
def test_store_recovers_from_corrupt_file(tmp_path: Path, content: bytes) -> None:
    backend = FileBackend(tmp_path)
    failures = []
    store = PermissionStore(backend, on_load_failure=failures.append)
    player = Individual(uuid.uuid4())
    backend.path_for(player.uuid).write_bytes(content)

    assert store.resolve_weight(player, "chat.color.red") == -1
    assert failures and failures[0].entity_id == player.uuid

    store.update_weight(player, "chat.color.red", 2)
    assert backend.load(player.uuid) == {"chat.color.red": 2}


def test_store_survives_restart(tmp_path: Path) -> None:
    player = Individual(uuid.uuid4())
    first = PermissionStore(FileBackend(tmp_path))
    first.update_weight(player, "chat.color.red", 5)

    second = PermissionStore(FileBackend(tmp_path))
    assert second.preload() == 1
    assert second.resolve_weight(player, "chat.color.red") == 5

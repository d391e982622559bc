# tests/test_kv_storage.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.errors import StorageReadError
from taskflow.storage.kv import JsonFileKVStorage, MemoryKVStorage, SQLiteKVStorage, open_storage
from taskflow.tasks.task_store import TaskStore

from .fakes import make_task


def test_sqlite_read_write_overwrite(tmp_path: Path) -> None:
    kv = SQLiteKVStorage(tmp_path / "nested" / "kv.sqlite3")
    assert kv.read("tasks") is None

    kv.write("tasks", "[]")
    kv.write("tasks", '[{"id": "x"}]')
    kv.write("other", "{}")

    assert kv.read("tasks") == '[{"id": "x"}]'
    assert SQLiteKVStorage(tmp_path / "nested" / "kv.sqlite3").read("other") == "{}"


def test_sqlite_unreadable_file_raises_storage_read_error(tmp_path: Path) -> None:
    db = tmp_path / "kv.sqlite3"
    kv = SQLiteKVStorage(db)
    db.write_bytes(b"this is not a sqlite database" * 100)
    with pytest.raises(StorageReadError):
        kv.read("tasks")


def test_json_files_are_written_atomically(tmp_path: Path) -> None:
    kv = JsonFileKVStorage(tmp_path / "kv")
    assert kv.read("tasks") is None

    kv.write("tasks", "[1]")
    kv.write("tasks", "[2]")

    assert kv.read("tasks") == "[2]"
    assert kv.path_for("tasks").name == "tasks.json"
    assert not list((tmp_path / "kv").glob("*.tmp"))


def test_json_keys_are_sanitized(tmp_path: Path) -> None:
    kv = JsonFileKVStorage(tmp_path)
    kv.write("../escape", "x")
    assert kv.path_for("../escape").parent == tmp_path
    assert kv.read("../escape") == "x"


def test_json_undecodable_file_raises_storage_read_error(tmp_path: Path) -> None:
    kv = JsonFileKVStorage(tmp_path)
    kv.path_for("tasks").write_bytes(b"\xff\xfe\xfa")
    with pytest.raises(StorageReadError):
        kv.read("tasks")


@pytest.mark.parametrize(
    ("backend", "expected"),
    [("sqlite", SQLiteKVStorage), ("json", JsonFileKVStorage), ("memory", MemoryKVStorage), ("bogus", SQLiteKVStorage)],
)
def test_open_storage_picks_backend(tmp_path: Path, backend: str, expected: type) -> None:
    settings = SimpleNamespace(storage_backend=backend, storage_path=tmp_path / "store")
    assert isinstance(open_storage(settings), expected)


@pytest.mark.parametrize("backend", ["sqlite", "json"])
def test_store_survives_restart(tmp_path: Path, backend: str) -> None:
    settings = SimpleNamespace(storage_backend=backend, storage_path=tmp_path / "store")

    store = TaskStore(open_storage(settings), default=[make_task("task-1")])
    store.add_task(make_task("task-2", dependencies=["task-1"], priority=1, ai_reason="now"))
    store.delete_task("task-1")
    store.close()

    reopened = TaskStore(open_storage(settings), default=[make_task("task-default")])
    (task,) = reopened.get()
    assert task.id == "task-2"
    assert task.dependencies == []
    assert (task.priority, task.ai_reason) == (1, "now")

# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.ai.prioritizer import TaskPrioritizer
from taskflow.core.state import AppState
from taskflow.storage.kv import MemoryKVStorage
from taskflow.tasks.task_store import TaskStore

from .fakes import FakeLLMClient, FakeSuggester, make_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        storage_backend="sqlite",
        storage_path=tmp_path / "taskflow.sqlite3",
        storage_key="tasks",
        seed_demo_tasks=False,
        openrouter_api_key=None,
        openrouter_base_url="https://openrouter.ai/api/v1",
        llm_models=["test/model"],
        extra_headers={},
        llm_connect_timeout=1.0,
        llm_read_timeout=1.0,
        llm_first_token_timeout=1.0,
    )


@pytest.fixture()
def storage() -> MemoryKVStorage:
    return MemoryKVStorage()


@pytest.fixture()
def store(storage: MemoryKVStorage) -> TaskStore:
    return TaskStore(
        storage,
        default=[
            make_task("task-1", deadline="2030-01-02T00:00:00.000Z"),
            make_task("task-2", deadline="2030-01-01T00:00:00.000Z", dependencies=["task-1"]),
        ],
    )


@pytest.fixture()
def suggester() -> FakeSuggester:
    return FakeSuggester()


@pytest.fixture()
def state(settings: SimpleNamespace, storage: MemoryKVStorage, store: TaskStore, suggester: FakeSuggester) -> AppState:
    """AppState wired with in-memory storage and a fake suggester."""
    return AppState(
        settings=settings,
        llm=FakeLLMClient(),
        storage=storage,
        task_store=store,
        prioritizer=TaskPrioritizer(store, suggester),
    )

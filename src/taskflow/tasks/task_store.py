# src/taskflow/tasks/task_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from typing import TYPE_CHECKING

from ..core.ports import KeyValueStorage
from ..errors import StorageReadError, ValidationError
from .task_models import Task, TaskStatus, set_status

if TYPE_CHECKING:
    from ..ai.prioritizer import Patch

logger = logging.getLogger(__name__)

TaskUpdater = list[Task] | Callable[[list[Task]], list[Task]]


def encode_tasks(tasks: Iterable[Task]) -> str:
    return json.dumps([t.to_dict() for t in tasks], ensure_ascii=False)


def decode_tasks(raw: str) -> list[Task]:
    """
    Decode a JSON array of tasks.

    Raises StorageReadError when the slot is not a JSON array. Records that do
    not decode to a Task are skipped (logged) so one bad record does not cost
    the rest of the collection.
    """
    try:
        data = json.loads(raw)
    except (ValueError, RecursionError) as e:
        raise StorageReadError(f"Stored tasks are not valid JSON: {e.__class__.__name__}: {e}") from e
    if not isinstance(data, list):
        raise StorageReadError(f"Stored tasks must be a JSON array, got {type(data).__name__}")

    tasks: list[Task] = []
    for i, item in enumerate(data):
        try:
            tasks.append(Task.from_dict(item))
        except ValidationError as e:
            logger.warning("Skipping stored task #%d: %s", i, e)
    return tasks


class TaskStore:
    """
    Canonical in-memory task collection mirrored to one durable key-value slot.

    - The slot is read once, on first access. A missing or corrupt slot falls back
      to the default collection (logged, never raised).
    - set() writes the new collection to storage before swapping it in, so once it
      returns the durable copy is the one readers see.
    - Each mutation helper is a single set() call, so combined effects (delete +
      dependency cleanup) are never observable separately.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        key: str = "tasks",
        default: Iterable[Task] = (),
    ) -> None:
        self._storage = storage
        self._key = key
        self._default = [replace(t) for t in default]
        self._tasks: list[Task] = []
        self._loaded = False

    @property
    def key(self) -> str:
        return self._key

    def close(self) -> None:
        self._storage.close()

    # ---- loading ----

    def load(self) -> list[Task]:
        if self._loaded:
            return self.get()

        try:
            raw = self._storage.read(self._key)
            if raw is None:
                logger.info("No stored tasks under key=%s; using %d default task(s)", self._key, len(self._default))
                tasks = [replace(t) for t in self._default]
            else:
                tasks = decode_tasks(raw)
                logger.info("Loaded %d task(s) from key=%s", len(tasks), self._key)
        except StorageReadError:
            logger.exception("Error reading stored tasks key=%s; falling back to defaults", self._key)
            tasks = [replace(t) for t in self._default]

        self._tasks = tasks
        self._loaded = True
        return self.get()

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    # ---- get / set contract ----

    def get(self) -> list[Task]:
        self._ensure_loaded()
        return [replace(t) for t in self._tasks]

    def set(self, value: TaskUpdater) -> list[Task]:
        self._ensure_loaded()
        new_tasks = value(self.get()) if callable(value) else value
        new_tasks = [replace(t) for t in new_tasks]

        try:
            self._storage.write(self._key, encode_tasks(new_tasks))
        except Exception:
            logger.exception("Error writing tasks key=%s", self._key)

        self._tasks = new_tasks
        return self.get()

    # ---- queries ----

    def find(self, task_id: str) -> Task | None:
        self._ensure_loaded()
        for t in self._tasks:
            if t.id == task_id:
                return replace(t)
        return None

    def ids(self) -> list[str]:
        self._ensure_loaded()
        return [t.id for t in self._tasks]

    def count(self) -> int:
        self._ensure_loaded()
        return len(self._tasks)

    # ---- mutations ----

    def add_task(self, task: Task) -> Task:
        if self.find(task.id) is not None:
            raise ValidationError(f"Task id already exists: {task.id}", field="id")
        self.set(lambda prev: [*prev, task])
        logger.debug("Task added id=%s status=%s deadline=%s", task.id, task.status.value, task.deadline)
        return task

    def update_task(self, task: Task) -> Task:
        if self.find(task.id) is None:
            raise KeyError(task.id)
        self.set(lambda prev: [task if t.id == task.id else t for t in prev])
        logger.debug("Task updated id=%s", task.id)
        return task

    def set_task_status(self, task_id: str, status: TaskStatus | str) -> Task:
        task = self.find(task_id)
        if task is None:
            raise KeyError(task_id)
        return self.update_task(set_status(task, status))

    def delete_task(self, task_id: str) -> bool:
        """Remove a task and strip its id from every remaining task's dependencies."""
        if self.find(task_id) is None:
            return False

        def _delete(prev: list[Task]) -> list[Task]:
            return [
                replace(t, dependencies=[d for d in t.dependencies if d != task_id])
                for t in prev
                if t.id != task_id
            ]

        self.set(_delete)
        logger.debug("Task deleted id=%s", task_id)
        return True

    def apply_patches(self, patches: Iterable[Patch]) -> list[Task]:
        from ..ai.prioritizer import merge_patches

        patch_list = list(patches)
        return self.set(lambda prev: merge_patches(prev, patch_list))

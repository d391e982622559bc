# src/taskflow/core/state.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from ..ai.prioritizer import TaskPrioritizer
from ..tasks.task_models import ALL_STATUSES, StatusFilter, Task
from ..tasks.task_store import TaskStore
from ..tasks.task_view import view
from .ports import KeyValueStorage, LLMClient


@dataclass
class AppState:
    """
    Everything a session needs, built once by the composition root and passed
    explicitly to connectors and command handlers.
    """

    settings: Any
    llm: LLMClient
    storage: KeyValueStorage
    task_store: TaskStore
    prioritizer: TaskPrioritizer

    # current list view
    status_filter: StatusFilter = ALL_STATUSES
    search_term: str = ""

    # background jobs (AI prioritization) kept alive until they finish
    background: set[asyncio.Task[Any]] = field(default_factory=set)

    def visible_tasks(self) -> list[Task]:
        return view(self.task_store.get(), self.status_filter, self.search_term)

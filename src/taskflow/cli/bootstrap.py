# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/tasks/LLM/prioritizer).
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from ..ai.prioritizer import TaskPrioritizer
from ..config import get_settings
from ..core.ports import LLMClient
from ..core.state import AppState
from ..errors import LLMConfigError
from ..llm.client import OpenRouterLLMClient
from ..llm.offline import OfflineLLMClient
from ..llm.suggester import LLMPrioritySuggester
from ..storage.kv import open_storage
from ..tasks.task_models import Task, TaskStatus, format_deadline
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def demo_tasks(now: datetime | None = None) -> list[Task]:
    """Sample tasks shown on first start, deadlines relative to now."""
    if now is None:
        now = datetime.now(UTC)

    def in_days(n: int) -> str:
        return format_deadline(now + timedelta(days=n))

    return [
        Task(
            id="task-1",
            description="Setup project structure",
            deadline=in_days(2),
            status=TaskStatus.DONE,
            priority=1,
            ai_reason="Completed task, lowest priority.",
        ),
        Task(
            id="task-2",
            description="Implement UI components based on Figma designs",
            deadline=in_days(5),
            dependencies=["task-1"],
            status=TaskStatus.IN_PROGRESS,
            priority=2,
            ai_reason="In progress, moderate priority.",
        ),
        Task(
            id="task-3",
            description="Connect frontend to backend user authentication API endpoints",
            deadline=in_days(7),
            dependencies=["task-2"],
            status=TaskStatus.TODO,
            priority=3,
            ai_reason="Upcoming task, standard priority.",
        ),
        Task(
            id="task-4",
            description="Write unit tests for core task logic functions",
            deadline=in_days(10),
            dependencies=["task-3"],
            status=TaskStatus.TODO,
        ),
        Task(
            id="task-5",
            description="Configure CI/CD pipeline for automated deployment to staging",
            deadline=in_days(14),
            dependencies=["task-4"],
            status=TaskStatus.BACKLOG,
        ),
    ]


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_llm_client(settings) -> LLMClient:
    try:
        return OpenRouterLLMClient(settings)
    except LLMConfigError as e:
        # Fallback for demos / local runs without external services.
        logger.info("Using offline LLM client: %s", e)
        return OfflineLLMClient()


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    storage = open_storage(settings)
    defaults = demo_tasks() if getattr(settings, "seed_demo_tasks", True) else []
    task_store = TaskStore(storage, key=getattr(settings, "storage_key", "tasks"), default=defaults)
    task_store.load()

    llm_client = create_llm_client(settings)
    prioritizer = TaskPrioritizer(task_store, LLMPrioritySuggester(llm_client))

    return AppState(
        settings=settings,
        llm=llm_client,
        storage=storage,
        task_store=task_store,
        prioritizer=prioritizer,
    )

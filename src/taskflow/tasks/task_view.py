# src/taskflow/tasks/task_view.py

"""
Filter/sort pipeline.

view(tasks, status_filter, search_term) is pure: it never touches the store and
returns a new list. Ordering is ascending by
  1. priority (missing priority sorts after every prioritized task),
  2. deadline (unparsable deadlines last),
  3. creation order, read from the numeric segment of the id ("task-<n>-...").
Python's sort is stable, so full ties keep their input order.
"""

from __future__ import annotations

import math
import string
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .task_models import ALL_STATUSES, StatusFilter, Task, TaskStatus, is_overdue, parse_deadline


def parse_status_filter(raw: str | None) -> StatusFilter:
    s = str(raw or "").strip().lower()
    if not s or s == ALL_STATUSES:
        return ALL_STATUSES
    return TaskStatus.parse(s)


def creation_order(task_id: str) -> int:
    """Best-effort creation order: integer after the first '-', 0 when missing."""
    parts = str(task_id).split("-")
    if len(parts) < 2:
        return 0
    digits = ""
    for ch in parts[1].strip():
        if ch not in string.digits:
            break
        digits += ch
    return int(digits) if digits else 0


def _deadline_ts(task: Task) -> float:
    dt = parse_deadline(task.deadline)
    if dt is None:
        return math.inf
    try:
        return dt.timestamp()
    except (OverflowError, ValueError):
        return math.inf


def sort_key(task: Task) -> tuple[bool, int | float, float, int]:
    # ints and floats compare exactly, so priorities are never converted
    priority = 0 if task.priority is None else task.priority
    return (task.priority is None, priority, _deadline_ts(task), creation_order(task.id))


def view(
    tasks: Iterable[Task],
    status_filter: StatusFilter | str = ALL_STATUSES,
    search_term: str = "",
) -> list[Task]:
    result = list(tasks)

    if status_filter != ALL_STATUSES:
        wanted = TaskStatus.parse(status_filter)
        result = [t for t in result if t.status == wanted]

    if search_term:
        needle = search_term.lower()
        result = [t for t in result if needle in t.description.lower()]

    result.sort(key=sort_key)
    return result


@dataclass(slots=True, frozen=True)
class TaskSummary:
    total: int
    by_status: dict[TaskStatus, int]
    overdue: int
    prioritized: int


def summarize(tasks: Iterable[Task], now: datetime | None = None) -> TaskSummary:
    items = list(tasks)
    counts = Counter(t.status for t in items)
    return TaskSummary(
        total=len(items),
        by_status={s: counts.get(s, 0) for s in TaskStatus},
        overdue=sum(1 for t in items if is_overdue(t, now)),
        prioritized=sum(1 for t in items if t.priority is not None),
    )


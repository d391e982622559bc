# src/taskflow/tasks/task_models.py

from __future__ import annotations

import math
import random
import string
import time
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Final, Literal

from ..errors import ValidationError

MAX_DESCRIPTION_LENGTH: Final = 100

ALL_STATUSES: Final = "all"


class TaskStatus(StrEnum):
    """Task lifecycle status. Any status can be reached from any other."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"
    BACKLOG = "backlog"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        if isinstance(raw, TaskStatus):
            return raw
        s = str(raw or "").strip().lower()
        if s == "in_progress":
            s = cls.IN_PROGRESS.value
        try:
            return cls(s)
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            raise ValidationError(f"Unknown status {raw!r} (expected one of: {allowed})", field="status") from None


StatusFilter = TaskStatus | Literal["all"]


def is_valid_priority(value: Any) -> bool:
    """A real number (not bool) that is finite and fits in a float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


@dataclass(slots=True)
class Task:
    id: str
    description: str
    deadline: str  # ISO-8601
    status: TaskStatus = TaskStatus.TODO
    dependencies: list[str] = field(default_factory=list)

    # lower = more urgent; None sorts after every prioritized task
    priority: int | float | None = None
    # only present when priority was last set by the AI adapter
    ai_reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "deadline": self.deadline,
            "dependencies": list(self.dependencies),
            "status": self.status.value,
        }
        if self.priority is not None:
            out["priority"] = self.priority
        if self.ai_reason is not None:
            out["aiReason"] = self.ai_reason
        return out

    @classmethod
    def from_dict(cls, data: Any) -> Task:
        if not isinstance(data, dict):
            raise ValidationError(f"Task must be an object, got {type(data).__name__}")

        task_id = data.get("id")
        if not isinstance(task_id, str) or not task_id:
            raise ValidationError("Task id is required", field="id")

        description = data.get("description")
        if not isinstance(description, str):
            raise ValidationError(f"Task {task_id}: description is required", field="description")

        deadline = data.get("deadline")
        if not isinstance(deadline, str) or not deadline:
            raise ValidationError(f"Task {task_id}: deadline is required", field="deadline")

        deps_raw = data.get("dependencies") or []
        if not isinstance(deps_raw, list):
            raise ValidationError(f"Task {task_id}: dependencies must be a list", field="dependencies")

        priority = data.get("priority")
        if priority is not None and not is_valid_priority(priority):
            raise ValidationError(f"Task {task_id}: priority must be a finite number", field="priority")

        ai_reason = data.get("aiReason")
        if ai_reason is not None and not isinstance(ai_reason, str):
            ai_reason = str(ai_reason)

        return cls(
            id=task_id,
            description=description,
            deadline=deadline,
            status=TaskStatus.parse(data.get("status")),
            dependencies=[str(d) for d in deps_raw if str(d) != task_id],
            priority=priority,
            ai_reason=ai_reason,
        )


def new_task_id(now_ms: int | None = None) -> str:
    """
    Fresh id of the form "task-<epoch ms>-<5 base36 chars>".

    The millisecond segment doubles as a creation-order hint for sorting.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    alphabet = string.digits + string.ascii_lowercase
    suffix = "".join(random.choices(alphabet, k=5))
    return f"task-{now_ms}-{suffix}"


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_deadline(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp. Naive values are treated as UTC."""
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value or "").strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def format_deadline(dt: datetime) -> str:
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_overdue(task: Task, now: datetime | None = None) -> bool:
    if task.status == TaskStatus.DONE:
        return False
    dt = parse_deadline(task.deadline)
    if dt is None:
        return False
    if now is None:
        now = datetime.now(UTC)
    try:
        return dt < now
    except OverflowError:
        return False


def _normalize_dependencies(dependencies: Iterable[str] | None, task_id: str | None) -> list[str]:
    out: list[str] = []
    for dep in dependencies or []:
        d = str(dep).strip()
        if not d or d == task_id or d in out:
            continue
        out.append(d)
    return out


def validate_task_input(
    *,
    description: Any,
    deadline: Any,
    dependencies: Iterable[str] | None = None,
    status: Any = TaskStatus.TODO,
    task_id: str | None = None,
) -> tuple[str, str, list[str], TaskStatus]:
    """
    Validate user-provided task fields.

    Returns normalized (description, deadline, dependencies, status) or raises
    ValidationError. A task never lists itself as a dependency; other ids are
    kept even if they do not currently exist.
    """
    desc = str(description or "").strip()
    if not desc:
        raise ValidationError("Description is required.", field="description")
    if len(desc) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less.",
            field="description",
        )

    dt = parse_deadline(deadline)
    if dt is None:
        raise ValidationError("Deadline is required (ISO-8601 date or timestamp).", field="deadline")
    try:
        dl = format_deadline(dt)
    except OverflowError:
        raise ValidationError("Deadline is out of range.", field="deadline") from None

    return desc, dl, _normalize_dependencies(dependencies, task_id), TaskStatus.parse(status)


def create_task(
    *,
    description: Any,
    deadline: Any,
    dependencies: Iterable[str] | None = None,
    status: Any = TaskStatus.TODO,
    task_id: str | None = None,
) -> Task:
    task_id = task_id or new_task_id()
    desc, dl, deps, st = validate_task_input(
        description=description,
        deadline=deadline,
        dependencies=dependencies,
        status=status,
        task_id=task_id,
    )
    return Task(id=task_id, description=desc, deadline=dl, status=st, dependencies=deps)


def edit_task(
    task: Task,
    *,
    description: Any = None,
    deadline: Any = None,
    dependencies: Iterable[str] | None = None,
    status: Any = None,
) -> Task:
    """Return a copy with user-editable fields replaced. Priority and AI reason are kept."""
    desc, dl, deps, st = validate_task_input(
        description=task.description if description is None else description,
        deadline=task.deadline if deadline is None else deadline,
        dependencies=task.dependencies if dependencies is None else dependencies,
        status=task.status if status is None else status,
        task_id=task.id,
    )
    return replace(task, description=desc, deadline=dl, dependencies=deps, status=st)


def set_status(task: Task, new_status: TaskStatus | str) -> Task:
    return replace(task, status=TaskStatus.parse(new_status))


def with_patch(task: Task, priority: int | float, reason: str) -> Task:
    """Copy with the AI-owned fields replaced; everything else is untouched."""
    return replace(task, priority=priority, ai_reason=reason)

# tests/test_task_view.py

from __future__ import annotations

import random
from datetime import UTC, datetime

import pytest

from taskflow.errors import ValidationError
from taskflow.tasks.task_models import TaskStatus
from taskflow.tasks.task_view import creation_order, parse_status_filter, summarize, view

from .fakes import make_task


def _ids(tasks) -> list[str]:
    return [t.id for t in tasks]


def _sample():
    return [
        make_task("task-5", deadline="2030-01-05T00:00:00Z", status=TaskStatus.BACKLOG),
        make_task("task-1", deadline="2030-01-09T00:00:00Z", priority=2, description="Write REPORT"),
        make_task("task-3", deadline="2030-01-01T00:00:00Z", status=TaskStatus.DONE),
        make_task("task-2", deadline="2030-01-20T00:00:00Z", priority=1, description="Review report"),
        make_task("task-4", deadline="2030-01-05T00:00:00Z"),
    ]


def test_empty_input_gives_empty_output() -> None:
    assert view([], "all", "") == []


def test_sort_priority_then_deadline_then_creation_order() -> None:
    assert _ids(view(_sample())) == ["task-2", "task-1", "task-3", "task-4", "task-5"]


def test_priority_wins_over_deadline() -> None:
    a = make_task("task-1", priority=1, deadline="2031-01-01T00:00:00Z")
    b = make_task("task-2", priority=2, deadline="2029-01-01T00:00:00Z")
    assert _ids(view([b, a])) == ["task-1", "task-2"]


def test_without_priority_earlier_deadline_first() -> None:
    a = make_task("task-9", deadline="2030-01-01T00:00:00Z")
    b = make_task("task-1", deadline="2030-02-01T00:00:00Z")
    assert _ids(view([b, a])) == ["task-9", "task-1"]


def test_status_filter_and_case_insensitive_search() -> None:
    tasks = _sample()
    assert _ids(view(tasks, TaskStatus.BACKLOG, "")) == ["task-5"]
    assert _ids(view(tasks, "done", "")) == ["task-3"]
    assert _ids(view(tasks, "all", "report")) == ["task-2", "task-1"]
    assert _ids(view(tasks, "todo", "rEpOrT")) == ["task-2", "task-1"]
    assert view(tasks, "in-progress", "") == []


def test_view_is_a_permutation_and_idempotent() -> None:
    rng = random.Random(7)
    tasks = []
    for i in range(40):
        tasks.append(
            make_task(
                f"task-{i}-x",
                deadline=f"2030-01-{rng.randint(1, 5):02d}T00:00:00Z",
                priority=rng.choice([None, 1, 2, 3]),
                status=rng.choice(list(TaskStatus)),
            )
        )
    once = view(tasks, "all", "")
    assert sorted(_ids(once)) == sorted(_ids(tasks))
    assert view(once, "all", "") == once

    filtered = view(tasks, "todo", "task")
    assert view(filtered, "todo", "task") == filtered


def test_full_ties_keep_input_order() -> None:
    a = make_task("alpha", description="a")
    b = make_task("beta", description="b")
    assert _ids(view([a, b])) == ["alpha", "beta"]
    assert _ids(view([b, a])) == ["beta", "alpha"]


def test_view_does_not_mutate_input() -> None:
    tasks = _sample()
    before = _ids(tasks)
    view(tasks, "all", "")
    assert _ids(tasks) == before


def test_unparsable_deadline_sorts_last() -> None:
    bad = make_task("task-1", deadline="not a date")
    good = make_task("task-2", deadline="2030-01-01T00:00:00Z")
    assert _ids(view([bad, good])) == ["task-2", "task-1"]


@pytest.mark.parametrize(
    ("task_id", "expected"),
    [
        ("task-1712345678901-ab3cd", 1712345678901),
        ("task-7", 7),
        ("task-12abc", 12),
        ("task", 0),
        ("task-abc", 0),
        ("custom", 0),
        ("task-\u00b2", 0),
        ("task-3\u00b2-x", 3),
        ("task-\u0663", 0),
    ],
)
def test_creation_order(task_id: str, expected: int) -> None:
    assert creation_order(task_id) == expected


def test_view_never_raises_on_odd_stored_values() -> None:
    tasks = [
        make_task("task-\u00b2"),
        make_task("task-1", priority=10**400),
        make_task("task-2", priority=0.5),
        make_task("task-3", deadline="0001-01-01T00:00:00+01:00"),
    ]
    assert _ids(view(tasks)) == ["task-2", "task-1", "task-3", "task-\u00b2"]


def test_parse_status_filter() -> None:
    assert parse_status_filter("") == "all"
    assert parse_status_filter("ALL") == "all"
    assert parse_status_filter("backlog") is TaskStatus.BACKLOG
    with pytest.raises(ValidationError):
        parse_status_filter("someday")


def test_summarize_counts_overdue_and_prioritized() -> None:
    now = datetime(2030, 1, 10, tzinfo=UTC)
    s = summarize(_sample(), now)
    assert s.total == 5
    assert s.by_status[TaskStatus.TODO] == 3
    assert s.by_status[TaskStatus.IN_PROGRESS] == 0
    # task-3 is past its deadline but done
    assert s.overdue == 3
    assert s.prioritized == 2

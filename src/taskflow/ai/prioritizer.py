# src/taskflow/ai/prioritizer.py

"""
AI prioritization adapter.

Flow for one trigger:
- refuse to start while another call is in flight (single boolean guard),
- refuse to call out when there are no tasks (NothingToPrioritizeError),
- send {id, description, deadline, dependencies} per task to the suggester,
- validate the whole response before touching the store,
- merge priority + reason into existing tasks in one store update.

Unknown ids in the response are ignored; tasks missing from the response keep
their current values. Nothing is retried and no timeout is enforced here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from ..core.ports import PrioritySuggester, SuggestionRequest
from ..errors import AIRequestError, NothingToPrioritizeError
from ..tasks.task_models import Task, is_valid_priority, utc_now_iso, with_patch
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Patch:
    id: str
    priority: int | float
    reason: str


def build_request(tasks: Iterable[Task]) -> SuggestionRequest:
    now_iso = utc_now_iso()
    return [
        {
            "id": t.id,
            "description": t.description,
            "deadline": t.deadline or now_iso,
            "dependencies": list(t.dependencies or []),
        }
        for t in tasks
    ]


def validate_response(raw: Any) -> list[Patch]:
    """
    Accept only a list of {"id": str, "priority": number, "reason": str}.

    Any deviation raises AIRequestError; nothing is returned for partial input.
    """
    if not isinstance(raw, list):
        raise AIRequestError(f"Expected a JSON array of suggestions, got {type(raw).__name__}")

    patches: list[Patch] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            raise AIRequestError(f"Suggestion #{i} is not an object")
        task_id = item.get("id")
        priority = item.get("priority")
        reason = item.get("reason")
        if not isinstance(task_id, str):
            raise AIRequestError(f"Suggestion #{i}: id must be a string")
        if not is_valid_priority(priority):
            raise AIRequestError(f"Suggestion #{i} ({task_id}): priority must be a finite number")
        if not isinstance(reason, str):
            raise AIRequestError(f"Suggestion #{i} ({task_id}): reason must be a string")
        if isinstance(priority, float) and priority.is_integer():
            priority = int(priority)
        patches.append(Patch(id=task_id, priority=priority, reason=reason))
    return patches


def merge_patches(tasks: Iterable[Task], patches: Iterable[Patch]) -> list[Task]:
    by_id: dict[str, Patch] = {}
    for p in patches:
        by_id[p.id] = p

    out: list[Task] = []
    for t in tasks:
        p = by_id.get(t.id)
        out.append(t if p is None else with_patch(t, p.priority, p.reason))
    return out


class TaskPrioritizer:
    def __init__(self, store: TaskStore, suggester: PrioritySuggester) -> None:
        self._store = store
        self._suggester = suggester
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def prioritize(self) -> list[Patch] | None:
        """
        Run one prioritization round.

        Returns the applied patches, or None when a round was already running
        (the trigger is dropped). Raises AIRequestError on failure, with the
        store left unchanged.
        """
        if self._in_flight:
            logger.info("Prioritization already in flight; ignoring trigger")
            return None

        tasks = self._store.get()
        if not tasks:
            raise NothingToPrioritizeError()

        self._in_flight = True
        try:
            request = build_request(tasks)
            logger.info("Requesting AI priorities for %d task(s)", len(request))
            try:
                raw = await self._suggester.suggest(request)
            except AIRequestError:
                raise
            except Exception as e:
                raise AIRequestError(str(e) or e.__class__.__name__) from e

            patches = validate_response(raw)
            known = set(self._store.ids())
            unknown = [p.id for p in patches if p.id not in known]
            if unknown:
                logger.info("Ignoring suggestions for unknown task ids: %s", ", ".join(unknown))

            self._store.apply_patches(patches)
            logger.info("Applied AI priorities to %d task(s)", len({p.id for p in patches} & known))
            return patches
        except AIRequestError:
            logger.warning("AI prioritization failed", exc_info=True)
            raise
        finally:
            self._in_flight = False

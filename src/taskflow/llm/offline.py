# src/taskflow/llm/offline.py

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from datetime import UTC, datetime

from ..core.ports import ChatMessage

_TASK_LINE = re.compile(r"^\s*-\s*ID:\s*(?P<id>\S+)\s*$")
_FIELD_LINE = re.compile(r"^\s*(?P<name>Description|Deadline|Dependencies):\s*(?P<value>.*)$")


def _parse_tasks(prompt: str) -> list[dict[str, object]]:
    tasks: list[dict[str, object]] = []
    current: dict[str, object] | None = None
    for line in prompt.splitlines():
        m = _TASK_LINE.match(line)
        if m:
            current = {"id": m.group("id"), "deadline": "", "dependencies": []}
            tasks.append(current)
            continue
        f = _FIELD_LINE.match(line)
        if f and current is not None:
            name, value = f.group("name"), f.group("value").strip()
            if name == "Deadline":
                current["deadline"] = value
            elif name == "Dependencies":
                current["dependencies"] = [] if value == "none" else [d.strip() for d in value.split(",") if d.strip()]
    return tasks


def _deadline_key(value: object) -> float:
    try:
        dt = datetime.fromisoformat(str(value))
    except ValueError:
        return float("inf")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.timestamp()


class OfflineLLMClient:
    """
    Offline deterministic LLM client used for demos when no external API is configured.

    Behavior:
    - Prioritization prompts -> JSON array ranking tasks by deadline, then by
      number of dependencies (more first)
    - Anything else -> a short notice
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        sp = (system_prompt or "").lower()
        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        if "prioritization" not in sp:
            yield "Offline demo mode: no external LLM is configured."
            return

        tasks = _parse_tasks(user_text)
        ranked = sorted(tasks, key=lambda t: (_deadline_key(t["deadline"]), -len(t["dependencies"])))  # type: ignore[arg-type]
        out = [
            {
                "id": t["id"],
                "priority": i,
                "reason": (
                    f"Offline heuristic: deadline rank {i} of {len(ranked)}"
                    + (f", depends on {len(t['dependencies'])} task(s)." if t["dependencies"] else ".")  # type: ignore[arg-type]
                ),
            }
            for i, t in enumerate(ranked, start=1)
        ]
        yield json.dumps(out, ensure_ascii=False)

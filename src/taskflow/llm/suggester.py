# src/taskflow/llm/suggester.py

"""
LLM-backed priority suggester.

Renders the task list into a prompt, collects the streamed answer and decodes
the JSON array it contains. Shape validation is left to the prioritizer.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from ..core.ports import LLMClient, SuggestionRequest
from ..errors import AIRequestError

logger = logging.getLogger(__name__)

PRIORITIZER_SYSTEM_PROMPT = (
    "You are an AI task prioritization expert. Given a list of tasks, you suggest a "
    "priority for each task based on its deadline and dependencies. "
    "Answer with JSON only."
)

_INSTRUCTIONS = """\
Prioritize the tasks such that tasks with earlier deadlines and more dependencies are given higher priority (lower number).
Explain your reasoning for each task's priority.

Return a JSON array of tasks with their suggested priorities and reasons.
Each object in the array should include the task's ID ("id"), suggested priority ("priority", number), and reasoning ("reason", string)."""


def render_prompt(request: SuggestionRequest) -> str:
    lines = ["Tasks:"]
    for item in request:
        deps = item.get("dependencies") or []
        lines.extend(
            [
                f"  - ID: {item.get('id')}",
                f"    Description: {item.get('description')}",
                f"    Deadline: {item.get('deadline')}",
                f"    Dependencies: {', '.join(str(d) for d in deps) if deps else 'none'}",
            ]
        )
    lines.extend(["", _INSTRUCTIONS])
    return "\n".join(lines)


def extract_json_array(raw: str) -> str:
    """Cut the outermost [...] out of a model answer (code fences, chatter around it)."""
    raw = raw.strip()
    if raw.startswith("[") and raw.endswith("]"):
        return raw
    first = raw.find("[")
    last = raw.rfind("]")
    if first != -1 and last != -1 and last > first:
        return raw[first : last + 1]
    return raw


class LLMPrioritySuggester:
    def __init__(self, llm: LLMClient) -> None:
        self._llm = llm

    def _collect(self, prompt: str) -> str:
        parts: list[str] = []
        for piece in self._llm.stream_chat([{"role": "user", "content": prompt}], PRIORITIZER_SYSTEM_PROMPT):
            parts.append(piece)
        return "".join(parts)

    async def suggest(self, request: SuggestionRequest) -> Any:
        prompt = render_prompt(request)
        # The LLM client streams synchronously; keep the event loop free meanwhile.
        raw = await asyncio.to_thread(self._collect, prompt)

        raw = (raw or "").strip()
        if not raw:
            raise AIRequestError("The model returned an empty answer.")

        try:
            return json.loads(extract_json_array(raw))
        except json.JSONDecodeError as e:
            logger.warning("Prioritizer JSON parse failed. Raw=%r", raw[:2000])
            raise AIRequestError("The model answer is not valid JSON.") from e

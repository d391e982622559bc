# tests/test_llm.py

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from taskflow.ai.prioritizer import build_request, validate_response
from taskflow.errors import AIRequestError, LLMConfigError
from taskflow.llm.client import OpenRouterLLMClient
from taskflow.llm.offline import OfflineLLMClient
from taskflow.llm.suggester import (
    PRIORITIZER_SYSTEM_PROMPT,
    LLMPrioritySuggester,
    extract_json_array,
    render_prompt,
)

from .fakes import FakeLLMClient, make_task


def _chunk(text: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def _status_error(cls: type[openai.APIStatusError], code: int) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://llm.test/chat/completions")
    return cls("boom", response=httpx.Response(code, request=request), body=None)


class FakeCompletions:
    def __init__(self, outcomes: dict[str, object]) -> None:
        self.outcomes = outcomes
        self.models: list[str] = []

    def create(self, *, model: str, **kwargs):
        self.models.append(model)
        outcome = self.outcomes[model]
        if isinstance(outcome, Exception):
            raise outcome
        return iter([_chunk(t) for t in outcome])  # type: ignore[union-attr]


def _client(settings, outcomes: dict[str, object]) -> tuple[OpenRouterLLMClient, FakeCompletions]:
    client = OpenRouterLLMClient(settings)
    completions = FakeCompletions(outcomes)
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))  # type: ignore[assignment]
    return client, completions


def test_render_prompt_lists_every_task() -> None:
    request = build_request(
        [make_task("task-1"), make_task("task-2", dependencies=["task-1"], description="Ship it")]
    )
    prompt = render_prompt(request)
    assert "- ID: task-1" in prompt
    assert "Description: Ship it" in prompt
    assert "Dependencies: task-1" in prompt
    assert "Dependencies: none" in prompt
    assert "lower number" in prompt


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('[{"id": "a"}]', '[{"id": "a"}]'),
        ('```json\n[{"id": "a"}]\n```', '[{"id": "a"}]'),
        ('Sure! Here you go: [1, 2] hope it helps', "[1, 2]"),
        ("no json here", "no json here"),
    ],
)
def test_extract_json_array(raw: str, expected: str) -> None:
    assert extract_json_array(raw) == expected


@pytest.mark.asyncio
async def test_suggester_decodes_model_answer() -> None:
    llm = FakeLLMClient('```json\n[{"id": "task-1", "priority": 1, "reason": "soon"}]\n```')
    result = await LLMPrioritySuggester(llm).suggest(build_request([make_task("task-1")]))

    assert result == [{"id": "task-1", "priority": 1, "reason": "soon"}]
    (messages, system_prompt), = llm.calls
    assert system_prompt == PRIORITIZER_SYSTEM_PROMPT
    assert "task-1" in messages[0]["content"]


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["", "I cannot help with that.", "[{broken"])
async def test_suggester_rejects_unparsable_answer(answer: str) -> None:
    with pytest.raises(AIRequestError):
        await LLMPrioritySuggester(FakeLLMClient(answer)).suggest([])


@pytest.mark.asyncio
async def test_offline_client_ranks_by_deadline_then_dependencies() -> None:
    tasks = [
        make_task("task-late", deadline="2030-03-01T00:00:00Z"),
        make_task("task-a", deadline="2030-01-01T00:00:00Z"),
        make_task("task-b", deadline="2030-01-01T00:00:00Z", dependencies=["task-a", "task-late"]),
    ]
    raw = await LLMPrioritySuggester(OfflineLLMClient()).suggest(build_request(tasks))
    patches = validate_response(raw)
    assert [(p.id, p.priority) for p in patches] == [("task-b", 1), ("task-a", 2), ("task-late", 3)]
    assert all(p.reason for p in patches)


def test_offline_client_non_prioritization_prompt() -> None:
    text = "".join(OfflineLLMClient().stream_chat([{"role": "user", "content": "hi"}], "You are helpful."))
    assert "Offline" in text
    with pytest.raises(json.JSONDecodeError):
        json.loads(text)


def test_client_requires_configuration(settings) -> None:
    with pytest.raises(LLMConfigError):
        OpenRouterLLMClient(settings)

    settings.openrouter_api_key = "sk-test"
    settings.llm_models = []
    with pytest.raises(LLMConfigError):
        OpenRouterLLMClient(settings)


def test_client_falls_back_across_models(settings) -> None:
    settings.openrouter_api_key = "sk-test"
    settings.llm_models = ["m/missing", "m/limited", "m/good"]
    client, completions = _client(
        settings,
        {
            "m/missing": _status_error(openai.NotFoundError, 404),
            "m/limited": _status_error(openai.RateLimitError, 429),
            "m/good": ["[", "]"],
        },
    )

    assert "".join(client.stream_chat([], "sys")) == "[]"
    assert completions.models == ["m/missing", "m/limited", "m/good"]

    # the 404 model is skipped on the next call
    assert "".join(client.stream_chat([], "sys")) == "[]"
    assert completions.models[3:] == ["m/limited", "m/good"]


def test_client_fails_fast_on_auth_error(settings) -> None:
    settings.openrouter_api_key = "sk-test"
    settings.llm_models = ["m/a", "m/b"]
    client, completions = _client(settings, {"m/a": _status_error(openai.AuthenticationError, 401), "m/b": ["x"]})

    with pytest.raises(LLMConfigError):
        list(client.stream_chat([], "sys"))
    assert completions.models == ["m/a"]


def test_client_reports_when_every_model_fails(settings) -> None:
    settings.openrouter_api_key = "sk-test"
    settings.llm_models = ["m/a", "m/b"]
    client, _ = _client(settings, {"m/a": [], "m/b": _status_error(openai.BadRequestError, 400)})

    with pytest.raises(AIRequestError, match="All LLM models failed"):
        list(client.stream_chat([], "sys"))

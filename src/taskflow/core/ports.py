# src/taskflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage backends and LLM providers swappable and makes testing easier.
"""

from typing import Any, Iterable, Protocol

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.

SuggestionRequest = list[dict[str, Any]]
# [{"id", "description", "deadline", "dependencies"}, ...]


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class KeyValueStorage(Protocol):
    """
    Durable key-value slot.

    read() returns None when the key was never written and raises
    StorageReadError when the backend cannot be read.
    """

    def read(self, key: str) -> str | None: ...
    def write(self, key: str, value: str) -> None: ...
    def close(self) -> None: ...


class PrioritySuggester(Protocol):
    """
    External suggestion service.

    Returns the decoded response as-is; the caller validates its shape
    ([{"id", "priority", "reason"}, ...]) before using it.
    """

    async def suggest(self, request: SuggestionRequest) -> Any: ...

# src/taskflow/errors.py

"""
Error taxonomy.

- ValidationError: malformed task input, rejected before it reaches the store.
- StorageReadError: the durable slot could not be read or decoded.
- AIRequestError: the prioritization call failed or could not be made.

None of these are meant to terminate the process: callers catch them where the
collaborator is invoked and turn them into a user-facing notification.
"""

from __future__ import annotations


class TaskflowError(Exception):
    """Base class for all taskflow errors."""


class ValidationError(TaskflowError):
    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class StorageReadError(TaskflowError):
    pass


class AIRequestError(TaskflowError):
    pass


class NothingToPrioritizeError(AIRequestError):
    """Raised instead of calling the suggestion service when there are no tasks."""

    def __init__(self, message: str = "There are no tasks to prioritize.") -> None:
        super().__init__(message)


class LLMConfigError(AIRequestError):
    pass


def friendly_error_message(err: Exception) -> str:
    msg = str(err).strip()
    if isinstance(err, NothingToPrioritizeError):
        return "Please add some tasks before using AI prioritization."
    if isinstance(err, LLMConfigError):
        return f"AI prioritization is not configured: {msg or 'see .env.example'}."
    if isinstance(err, AIRequestError):
        return f"An error occurred while getting AI suggestions: {msg or 'unknown error'}."
    if isinstance(err, ValidationError):
        return msg or "Invalid task."
    return msg or err.__class__.__name__

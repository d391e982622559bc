# src/taskflow/core/notify.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol


class Variant(StrEnum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


@dataclass(slots=True, frozen=True)
class Notification:
    """User-visible toast: a short title plus one line of detail."""

    title: str
    description: str = ""
    variant: Variant = Variant.DEFAULT

    def render(self) -> str:
        prefix = "[!] " if self.variant == Variant.DESTRUCTIVE else ""
        if self.description:
            return f"{prefix}{self.title}: {self.description}"
        return f"{prefix}{self.title}"


class Notifier(Protocol):
    def __call__(self, notification: Notification) -> None: ...

"""Data models derived from an OpenSpec task-tracking directory."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

# "review" is accepted everywhere but no classification rule produces it yet.
ChangeStatus = Literal["proposed", "in_progress", "review", "done"]


@dataclass(slots=True, frozen=True)
class TaskCounts:
    total: int = 0
    complete: int = 0


@dataclass(slots=True)
class OpenSpecChange:
    id: str
    tasks_total: int
    tasks_complete: int
    status: ChangeStatus


@dataclass(slots=True)
class OpenSpecResult:
    found: bool
    changes: list[OpenSpecChange] = field(default_factory=list)
    active_change: OpenSpecChange | None = None


__all__ = ["ChangeStatus", "OpenSpecChange", "OpenSpecResult", "TaskCounts"]

"""OpenSpec task-tracking parser exports."""

from .models import ChangeStatus, OpenSpecChange, OpenSpecResult, TaskCounts
from .parser import (
    classify,
    get_openspec_progress,
    has_task_structure,
    parse_all_changes,
    parse_openspec,
    parse_tasks_file,
    select_active,
)

__all__ = [
    "ChangeStatus",
    "OpenSpecChange",
    "OpenSpecResult",
    "TaskCounts",
    "classify",
    "get_openspec_progress",
    "has_task_structure",
    "parse_all_changes",
    "parse_openspec",
    "parse_tasks_file",
    "select_active",
]

"""Progress extraction from an OpenSpec ``changes`` directory.

Each subdirectory of ``openspec/changes`` (except ``archive``) is one change.
Its ``tasks.md`` checklist is counted, the change is classified, and one
change is picked as the active focus.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Sequence

from ..ledger.models import ProgressSnapshot
from .models import ChangeStatus, OpenSpecChange, OpenSpecResult, TaskCounts

logger = logging.getLogger(__name__)

OPENSPEC_DIR = "openspec"
CHANGES_DIR = "changes"
ARCHIVE_DIR = "archive"
TASKS_FILE = "tasks.md"

_UNCHECKED = re.compile(r"^\s*-\s*\[\s*\]\s")
_CHECKED = re.compile(r"^\s*-\s*\[x\]\s", re.IGNORECASE)


def changes_dir(project_root: Path) -> Path:
    return Path(project_root) / OPENSPEC_DIR / CHANGES_DIR


def has_task_structure(project_root: Path) -> bool:
    """Return True when ``openspec/`` and ``openspec/changes/`` are both directories."""

    root = Path(project_root) / OPENSPEC_DIR
    return root.is_dir() and (root / CHANGES_DIR).is_dir()


def parse_tasks_file(path: Path) -> TaskCounts:
    """Count checklist items in a tasks document.

    A missing file counts as an empty checklist.
    """

    path = Path(path)
    if not path.exists():
        return TaskCounts()

    total = 0
    complete = 0
    content = path.read_text(encoding="utf-8", errors="replace")
    for line in content.split("\n"):
        if _UNCHECKED.match(line):
            total += 1
        elif _CHECKED.match(line):
            total += 1
            complete += 1
    return TaskCounts(total=total, complete=complete)


def classify(total: int, complete: int) -> ChangeStatus:
    if total == 0:
        return "proposed"
    if complete == 0:
        return "proposed"
    if complete == total:
        return "done"
    return "in_progress"


def parse_change(change_path: Path) -> OpenSpecChange | None:
    change_path = Path(change_path)
    if change_path.name == ARCHIVE_DIR:
        return None

    counts = parse_tasks_file(change_path / TASKS_FILE)
    return OpenSpecChange(
        id=change_path.name,
        tasks_total=counts.total,
        tasks_complete=counts.complete,
        status=classify(counts.total, counts.complete),
    )


def parse_all_changes(project_root: Path) -> list[OpenSpecChange]:
    """Return one change per change directory, in directory-listing order."""

    changes: list[OpenSpecChange] = []
    for entry in changes_dir(project_root).iterdir():
        if not entry.is_dir():
            continue
        change = parse_change(entry)
        if change is not None:
            changes.append(change)
    return changes


def select_active(changes: Sequence[OpenSpecChange]) -> OpenSpecChange | None:
    """Pick the change that represents current focus.

    In-progress work wins, then changes in review, then the first proposed
    change that already has tasks. A proposed change without tasks is never
    active.
    """

    for change in changes:
        if change.status == "in_progress":
            return change
    for change in changes:
        if change.status == "review":
            return change
    for change in changes:
        if change.status == "proposed" and change.tasks_total > 0:
            return change
    return None


def parse_openspec(project_root: Path) -> OpenSpecResult:
    if not has_task_structure(project_root):
        return OpenSpecResult(found=False)

    changes = parse_all_changes(project_root)
    active = select_active(changes)
    logger.debug(
        "Parsed OpenSpec changes",
        extra={
            "project_root": str(project_root),
            "change_count": len(changes),
            "active_change": active.id if active else None,
        },
    )
    return OpenSpecResult(found=True, changes=changes, active_change=active)


def get_openspec_progress(project_root: Path) -> ProgressSnapshot:
    """Reduce the active change to a progress snapshot.

    Without a task structure or an active change the snapshot is ``manual``
    with zero counts.
    """

    result = parse_openspec(project_root)
    active = result.active_change
    if not result.found or active is None:
        return ProgressSnapshot(source="manual", tasks_done=0, tasks_total=0)

    return ProgressSnapshot(
        source="openspec",
        change=active.id,
        tasks_done=active.tasks_complete,
        tasks_total=active.tasks_total,
    )


__all__ = [
    "classify",
    "get_openspec_progress",
    "has_task_structure",
    "parse_all_changes",
    "parse_change",
    "parse_openspec",
    "parse_tasks_file",
    "select_active",
]

"""Consolidated project context: local progress plus shared ledger activity."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .ledger import UpdateLedger, latest_by_machine, latest_of
from .openspec import get_openspec_progress


class ContextProgress(BaseModel):
    source: Literal["openspec", "manual"]
    change: str | None = None
    tasks_done: int = 0
    tasks_total: int = 0
    percentage: int = 0


class LastUpdate(BaseModel):
    timestamp: str
    machine: str
    status: str
    notes: list[str] = Field(default_factory=list)
    next: list[str] = Field(default_factory=list)


class TeamMember(BaseModel):
    machine: str
    timestamp: str
    status: str


class ContextOutput(BaseModel):
    """Programmatic context contract consumed by downstream tooling."""

    model_config = ConfigDict(populate_by_name=True)

    project: str
    connected: bool
    progress: ContextProgress
    last_update: LastUpdate | None = Field(default=None, alias="lastUpdate")
    team: list[TeamMember] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


def percentage(done: int, total: int) -> int:
    """Return ``round(100 * done / total)`` with halves rounded up, 0 for no tasks."""

    if total <= 0:
        return 0
    return math.floor(100 * done / total + 0.5)


def build_context(
    project_name: str,
    project_root: Path,
    connected: bool,
    ledger: UpdateLedger | None = None,
) -> ContextOutput:
    """Combine local task progress with the project's ledger view.

    Ledger data is only included when the project is connected.
    """

    progress = get_openspec_progress(project_root)
    output = ContextOutput(
        project=project_name,
        connected=connected,
        progress=ContextProgress(
            **progress.model_dump(),
            percentage=percentage(progress.tasks_done, progress.tasks_total),
        ),
    )

    if not connected or ledger is None:
        return output

    records = ledger.read_all()
    latest = latest_of(records)
    if latest is not None:
        output.last_update = LastUpdate(
            timestamp=latest.timestamp,
            machine=latest.machine,
            status=latest.context.status,
            notes=list(latest.context.notes),
            next=list(latest.context.next),
        )

    for record in latest_by_machine(records).values():
        output.team.append(
            TeamMember(machine=record.machine, timestamp=record.timestamp, status=record.context.status)
        )
    return output


def render_json(output: ContextOutput) -> str:
    return json.dumps(output.to_dict(), indent=2)


def render_text(output: ContextOutput) -> str:
    """Render the context as the line-oriented summary shown in a terminal."""

    lines = [
        f"Project: {output.project}",
        f"Connected: {'Yes' if output.connected else 'No'}",
        "",
    ]

    progress = output.progress
    if progress.source == "openspec" and progress.change:
        lines.append(f"Change: {progress.change}")
        lines.append(f"Progress: {progress.tasks_done}/{progress.tasks_total} ({progress.percentage}%)")
    else:
        lines.append("Progress: No active change")

    update = output.last_update
    if update is not None:
        lines.extend(
            [
                "",
                f"Last Update: {update.timestamp}",
                f"  Machine: {update.machine}",
                f"  Status: {update.status}",
            ]
        )
        if update.notes:
            lines.append(f"  Notes: {', '.join(update.notes)}")
        if update.next:
            lines.append(f"  Next: {', '.join(update.next)}")

    if output.team:
        lines.extend(["", "Team Activity:"])
        for member in output.team:
            lines.append(f"  {member.machine}: {member.status} ({member.timestamp})")

    return "\n".join(lines)


__all__ = [
    "ContextOutput",
    "ContextProgress",
    "LastUpdate",
    "TeamMember",
    "build_context",
    "percentage",
    "render_json",
    "render_text",
]

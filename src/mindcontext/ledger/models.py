"""Update record models persisted in the shared ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..identity import MachineIdentity, record_timestamp


class ProgressSnapshot(BaseModel):
    """Normalized progress signal for one project."""

    source: Literal["openspec", "manual"] = Field(
        ..., description="Where the counts came from; manual means no trackable change."
    )
    change: str | None = Field(default=None, description="Id of the active change, if any.")
    tasks_done: int = Field(default=0, ge=0)
    tasks_total: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_counts(self) -> "ProgressSnapshot":
        if self.tasks_done > self.tasks_total:
            raise ValueError("tasks_done must not exceed tasks_total")
        return self


class UpdateContext(BaseModel):
    """Self-reported status, notes and next steps."""

    status: str = ""
    notes: list[str] = Field(default_factory=list)
    next: list[str] = Field(default_factory=list)

    @field_validator("notes", "next", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):  # type: ignore[override]
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple)):
            return list(value)
        raise TypeError("notes and next must be sequences of strings")


class UpdateRecord(BaseModel):
    """One machine's timestamped snapshot, stored as a single immutable file."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: str = Field(..., description="ISO-8601 UTC creation time.")
    machine: str = Field(..., description="Name of the authoring machine.")
    machine_id: str = Field(..., alias="machineId", description="Id of the authoring machine.")
    context: UpdateContext = Field(default_factory=UpdateContext)
    progress: ProgressSnapshot

    @classmethod
    def create(
        cls,
        identity: MachineIdentity,
        progress: ProgressSnapshot,
        *,
        status: str = "",
        notes: list[str] | None = None,
        next: list[str] | None = None,
        now: datetime | None = None,
    ) -> "UpdateRecord":
        return cls(
            timestamp=record_timestamp(now),
            machine=identity.name,
            machine_id=identity.id,
            context=UpdateContext(status=status, notes=notes or [], next=next or []),
            progress=progress,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)


__all__ = ["ProgressSnapshot", "UpdateContext", "UpdateRecord"]

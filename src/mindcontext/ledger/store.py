"""File-backed append-only ledger of update records for one project."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable

from pydantic import ValidationError

from ..identity import MachineIdentity, update_filename
from .models import UpdateRecord

logger = logging.getLogger(__name__)

# Upper bound on same-second retries before giving up on a unique name.
MAX_SEQUENCE = 1000


class LedgerError(RuntimeError):
    """Raised when a record cannot be appended to the ledger."""


def timestamp_key(record: UpdateRecord) -> tuple[int, Any]:
    """Sort key ordering records by creation time.

    Parsable ISO-8601 timestamps compare as datetimes; anything else sorts
    before them and compares as a plain string.
    """

    try:
        return (1, datetime.fromisoformat(record.timestamp.replace("Z", "+00:00")))
    except ValueError:
        return (0, record.timestamp)


def _newer(candidate: UpdateRecord, current: UpdateRecord) -> bool:
    left, right = timestamp_key(candidate), timestamp_key(current)
    if left[0] != right[0]:
        return left[0] > right[0]
    try:
        return left[1] > right[1]
    except TypeError:
        # Naive and aware datetimes do not compare; fall back to the raw text.
        return candidate.timestamp > current.timestamp


def latest_of(records: Iterable[UpdateRecord]) -> UpdateRecord | None:
    best: UpdateRecord | None = None
    for record in records:
        if best is None or _newer(record, best):
            best = record
    return best


def latest_by_machine(records: Iterable[UpdateRecord]) -> dict[str, UpdateRecord]:
    """Keep the most recent record per machine id in one pass."""

    best: dict[str, UpdateRecord] = {}
    for record in records:
        current = best.get(record.machine_id)
        if current is None or _newer(record, current):
            best[record.machine_id] = record
    return best


class UpdateLedger:
    """Manage the update files of one project's ``updates`` directory."""

    def __init__(
        self,
        updates_dir: Path,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._dir = Path(updates_dir)
        self._clock = clock
        self._skipped: list[Path] = []

    @property
    def path(self) -> Path:
        return self._dir

    @property
    def skipped(self) -> list[Path]:
        """Files the last ``read_all`` could not parse."""

        return list(self._skipped)

    def append(self, record: UpdateRecord, identity: MachineIdentity) -> Path:
        """Write ``record`` to a new file and return its path.

        The directory must already exist. Existing files are never
        overwritten; a name collision retries with a sequence suffix.
        The filename carries the record timestamp, or the clock when that
        timestamp cannot be parsed.
        """

        if not self._dir.is_dir():
            raise LedgerError(f"Update directory does not exist: {self._dir}")

        now = self._filename_time(record)
        payload = record.to_json()
        for sequence in range(MAX_SEQUENCE):
            target = self._dir / update_filename(identity, now, sequence=sequence)
            try:
                with target.open("x", encoding="utf-8") as handle:
                    handle.write(payload)
            except FileExistsError:
                continue
            logger.info(
                "Appended update record",
                extra={"path": str(target), "machine": record.machine, "sequence": sequence},
            )
            return target

        raise LedgerError(f"Could not find a free update filename in {self._dir}")

    def _filename_time(self, record: UpdateRecord) -> datetime | None:
        kind, value = timestamp_key(record)
        if kind == 1:
            return value
        return self._clock() if self._clock else None

    def read_all(self) -> list[UpdateRecord]:
        """Return every parsable record in directory-listing order."""

        self._skipped = []
        if not self._dir.is_dir():
            return []

        records: list[UpdateRecord] = []
        for path in self._dir.iterdir():
            if path.suffix != ".json" or not path.is_file():
                continue
            try:
                records.append(UpdateRecord.model_validate_json(path.read_text(encoding="utf-8")))
            except (OSError, UnicodeDecodeError, ValidationError) as exc:
                self._skipped.append(path)
                logger.debug("Skipping unparsable update file", extra={"path": str(path), "error": str(exc)})

        if self._skipped:
            logger.warning(
                "Skipped unparsable update files",
                extra={"updates_dir": str(self._dir), "skipped_count": len(self._skipped)},
            )
        return records

    def latest(self) -> UpdateRecord | None:
        return latest_of(self.read_all())

    def latest_per_machine(self) -> dict[str, UpdateRecord]:
        return latest_by_machine(self.read_all())


__all__ = [
    "LedgerError",
    "UpdateLedger",
    "latest_by_machine",
    "latest_of",
    "timestamp_key",
]

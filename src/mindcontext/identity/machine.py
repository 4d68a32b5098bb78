"""Machine identity derivation and ledger file naming."""

from __future__ import annotations

import getpass
import hashlib
import logging
import re
import shutil
import socket
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Protocol

from pydantic import BaseModel, ConfigDict, Field

from ..git.utils import sanitize_environment

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_TIMEOUT = 5.0

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9-]")


class MachineIdentity(BaseModel):
    """Stable (name, id) pair identifying the machine that authors updates."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Lowercased, filename-safe user-host label.")
    id: str = Field(..., description="Short hash over host, user and git email.")


class EmailLookup(Protocol):
    """Best-effort source of the version-control identity email."""

    def __call__(self) -> str | None:
        ...


class GitEmailLookup:
    """Query ``git config user.email`` with a bounded wait."""

    def __init__(self, executable: Path | None = None, *, timeout: float = DEFAULT_LOOKUP_TIMEOUT) -> None:
        self._executable = executable
        self._timeout = timeout

    def __call__(self) -> str | None:
        binary = str(self._executable) if self._executable else shutil.which("git")
        if binary is None:
            logger.debug("git not found; machine identity will omit email")
            return None
        try:
            completed = subprocess.run(
                [binary, "config", "user.email"],
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=sanitize_environment(),
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            logger.debug("git email lookup failed", extra={"error": str(exc)})
            return None
        if completed.returncode != 0:
            return None
        return completed.stdout.strip() or None


def derive_identity(
    *,
    host: str | None = None,
    user: str | None = None,
    email_lookup: EmailLookup | Callable[[], str | None] | None = None,
) -> MachineIdentity:
    """Derive the identity of the current machine.

    ``id`` is the first eight hex characters of a SHA-256 digest over
    ``"{host}-{user}-{email}"``; ``name`` is ``"{user}-{host}"`` lowercased with
    every character outside ``[a-z0-9-]`` replaced by ``-``. A missing or
    failing email lookup contributes an empty string.
    """

    host = socket.gethostname() if host is None else host
    user = getpass.getuser() if user is None else user
    lookup = email_lookup if email_lookup is not None else GitEmailLookup()
    email = lookup() or ""

    digest = hashlib.sha256(f"{host}-{user}-{email}".encode("utf-8")).hexdigest()[:8]
    name = _UNSAFE_NAME_CHARS.sub("-", f"{user}-{host}".lower())
    return MachineIdentity(name=name, id=digest)


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def timestamp_for_filename(now: datetime | None = None) -> str:
    """Return a second-resolution UTC timestamp with colons replaced by hyphens."""

    return _utc(now).strftime("%Y-%m-%dT%H-%M-%S")


def record_timestamp(now: datetime | None = None) -> str:
    """Return the ISO-8601 UTC timestamp stored inside an update record."""

    return _utc(now).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def update_filename(identity: MachineIdentity, now: datetime | None = None, *, sequence: int = 0) -> str:
    """Return ``{timestamp}_{name}_{id}.json``.

    A positive ``sequence`` is appended to the id so a machine writing twice in
    the same second still produces distinct files.
    """

    suffix = f"-{sequence}" if sequence > 0 else ""
    return f"{timestamp_for_filename(now)}_{identity.name}_{identity.id}{suffix}.json"


__all__ = [
    "DEFAULT_LOOKUP_TIMEOUT",
    "EmailLookup",
    "GitEmailLookup",
    "MachineIdentity",
    "derive_identity",
    "record_timestamp",
    "timestamp_for_filename",
    "update_filename",
]

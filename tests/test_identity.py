from __future__ import annotations

import hashlib
import subprocess
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mindcontext.identity import (
    GitEmailLookup,
    MachineIdentity,
    derive_identity,
    record_timestamp,
    timestamp_for_filename,
    update_filename,
)


def test_identity_hashes_host_user_and_email() -> None:
    identity = derive_identity(host="Laptop.local", user="Ada", email_lookup=lambda: "ada@example.com")

    expected = hashlib.sha256(b"Laptop.local-Ada-ada@example.com").hexdigest()[:8]
    assert identity.id == expected
    assert identity.name == "ada-laptop-local"


def test_identity_is_deterministic() -> None:
    first = derive_identity(host="box", user="dev", email_lookup=lambda: "dev@example.com")
    second = derive_identity(host="box", user="dev", email_lookup=lambda: "dev@example.com")
    assert first == second


def test_missing_email_hashes_empty_string() -> None:
    identity = derive_identity(host="box", user="dev", email_lookup=lambda: None)
    assert identity.id == hashlib.sha256(b"box-dev-").hexdigest()[:8]


def test_name_replaces_unsafe_characters() -> None:
    identity = derive_identity(host="My_Host (2)", user="Jo Ann", email_lookup=lambda: "")
    assert identity.name == "jo-ann-my-host--2-"


def test_identity_is_immutable() -> None:
    identity = MachineIdentity(name="dev-box", id="abcd1234")
    with pytest.raises(Exception):
        identity.name = "other"  # type: ignore[misc]


def test_git_email_lookup_reads_stdout(tmp_path: Path) -> None:
    script = tmp_path / "git"
    script.write_text("#!/bin/sh\necho 'dev@example.com'\n", encoding="utf-8")
    script.chmod(0o755)

    assert GitEmailLookup(script)() == "dev@example.com"


def test_git_email_lookup_swallows_failures(tmp_path: Path) -> None:
    script = tmp_path / "git"
    script.write_text("#!/bin/sh\nexit 1\n", encoding="utf-8")
    script.chmod(0o755)

    assert GitEmailLookup(script)() is None
    assert GitEmailLookup(tmp_path / "missing-git")() is None


def test_git_email_lookup_times_out(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fake_run(*args, **kwargs):
        raise subprocess.TimeoutExpired(cmd=args[0], timeout=kwargs.get("timeout"))

    monkeypatch.setattr(subprocess, "run", fake_run)
    assert GitEmailLookup(tmp_path / "git", timeout=0.1)() is None


def test_timestamp_for_filename_has_no_colons_or_fraction() -> None:
    now = datetime(2025, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)
    assert timestamp_for_filename(now) == "2025-03-04T05-06-07"


def test_record_timestamp_is_utc_iso() -> None:
    now = datetime(2025, 3, 4, 5, 6, 7, 891000, tzinfo=timezone.utc)
    assert record_timestamp(now) == "2025-03-04T05:06:07.891Z"


def test_update_filename_format() -> None:
    identity = MachineIdentity(name="dev-box", id="abcd1234")
    now = datetime(2025, 1, 2, 10, 0, 0, tzinfo=timezone.utc)

    assert update_filename(identity, now) == "2025-01-02T10-00-00_dev-box_abcd1234.json"
    assert update_filename(identity, now, sequence=2) == "2025-01-02T10-00-00_dev-box_abcd1234-2.json"

from __future__ import annotations

from pathlib import Path

import pytest

from mindcontext.git import (
    FakeGitRepository,
    GitCommandError,
    GitNotFoundError,
    GitRepository,
    GitResult,
)
from mindcontext.git.utils import sanitize_environment


def make_script(tmp_path: Path, body: str) -> Path:
    script = tmp_path / "git"
    script.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    script.chmod(0o755)
    return script


def test_run_passes_arguments(tmp_path: Path) -> None:
    script = make_script(tmp_path, 'echo "$@"')
    repo = GitRepository(tmp_path, script)

    result = repo.commit("update: demo")

    assert result.ok
    assert result.stdout.strip() == "commit -m update: demo"


def test_pull_uses_rebase(tmp_path: Path) -> None:
    repo = GitRepository(tmp_path, make_script(tmp_path, 'echo "$@"'))
    assert repo.pull().stdout.strip() == "pull --rebase"


def test_failed_command_check_raises(tmp_path: Path) -> None:
    repo = GitRepository(tmp_path, make_script(tmp_path, "echo 'rejected' >&2; exit 1"))

    result = repo.push()
    assert not result.ok
    with pytest.raises(GitCommandError) as excinfo:
        result.check()
    assert "rejected" in str(excinfo.value)


def test_timeout_returns_failed_result(tmp_path: Path) -> None:
    repo = GitRepository(tmp_path, make_script(tmp_path, "exec sleep 5"), timeout=0.2)

    result = repo.push()

    assert result.returncode == 124
    assert not result.ok


def test_missing_executable(tmp_path: Path) -> None:
    with pytest.raises(GitNotFoundError):
        GitRepository(tmp_path, tmp_path / "missing")


def test_fake_repository_records_invocations(tmp_path: Path) -> None:
    fake = FakeGitRepository(
        tmp_path,
        {"push": GitResult(args=("git", "push"), returncode=1, stdout="", stderr="offline")},
    )

    assert fake.add(["a.json"]).ok
    assert not fake.push().ok
    assert fake.invocations == [("add", "--", "a.json"), ("push",)]


def test_sanitize_environment_strips_hook_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_DIR", "/elsewhere/.git")
    env = sanitize_environment({"EXTRA": "1"})

    assert "GIT_DIR" not in env
    assert env["GIT_TERMINAL_PROMPT"] == "0"
    assert env["EXTRA"] == "1"

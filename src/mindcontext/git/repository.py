"""Thin wrapper around the git CLI for the shared update repository."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

from .utils import sanitize_environment

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class GitError(RuntimeError):
    """Base class for git wrapper errors."""


class GitNotFoundError(GitError):
    """Raised when the git executable cannot be located."""


class GitCommandError(GitError):
    """Raised when a git command that must succeed exits non-zero."""

    def __init__(self, result: "GitResult") -> None:
        detail = result.stderr.strip() or result.stdout.strip() or f"exit code {result.returncode}"
        super().__init__(f"git {' '.join(result.args[1:])} failed: {detail}")
        self.result = result


@dataclass(slots=True)
class GitResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self) -> "GitResult":
        if not self.ok:
            raise GitCommandError(self)
        return self


class GitRepository:
    """Run git commands against one working tree."""

    def __init__(
        self,
        path: Path,
        executable: Path | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._path = Path(path)
        self._executable_path = self._resolve_executable(executable)
        self._timeout = timeout

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def executable(self) -> Path:
        return self._executable_path

    def init(self) -> GitResult:
        self._path.mkdir(parents=True, exist_ok=True)
        return self.run("init")

    def clone(self, url: str) -> GitResult:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        return self._invoke(("clone", url, str(self._path)), cwd=self._path.parent)

    def add(self, paths: Iterable[Path | str]) -> GitResult:
        return self.run("add", "--", *(str(path) for path in paths))

    def commit(self, message: str) -> GitResult:
        return self.run("commit", "-m", message)

    def push(self) -> GitResult:
        return self.run("push")

    def pull(self) -> GitResult:
        return self.run("pull", "--rebase")

    def run(self, *args: str) -> GitResult:
        return self._invoke(args, cwd=self._path)

    def _invoke(self, args: Sequence[str], *, cwd: Path) -> GitResult:
        cmd = [str(self._executable_path), *args]
        try:
            completed = subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                timeout=self._timeout,
                env=sanitize_environment(),
            )
        except subprocess.TimeoutExpired:
            logger.warning("git command timed out", extra={"command": cmd, "timeout": self._timeout})
            return GitResult(args=tuple(cmd), returncode=124, stdout="", stderr="timed out")

        result = GitResult(
            args=tuple(cmd),
            returncode=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
        )
        if not result.ok:
            logger.debug(
                "git command failed",
                extra={"command": cmd, "returncode": result.returncode, "stderr": result.stderr[:400]},
            )
        return result


class FakeGitRepository(GitRepository):
    """Test double that records git invocations instead of running them."""

    def __init__(  # type: ignore[override]
        self,
        path: Path,
        responses: dict[str, GitResult] | None = None,
    ) -> None:
        self._path = Path(path)
        self._executable_path = Path("/tmp/fake-git")
        self._timeout = DEFAULT_TIMEOUT
        self._responses = dict(responses or {})
        self._invocations: list[tuple[str, ...]] = []

    def _invoke(self, args: Sequence[str], *, cwd: Path) -> GitResult:  # type: ignore[override]
        self._invocations.append(tuple(args))
        response = self._responses.get(args[0]) if args else None
        if response is not None:
            return response
        return GitResult(args=("git", *args), returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations


__all__ = [
    "FakeGitRepository",
    "GitCommandError",
    "GitError",
    "GitNotFoundError",
    "GitRepository",
    "GitResult",
]

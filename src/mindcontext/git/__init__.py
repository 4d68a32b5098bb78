"""Version-control plumbing for the shared update repository."""

from .repository import (
    FakeGitRepository,
    GitCommandError,
    GitError,
    GitNotFoundError,
    GitRepository,
    GitResult,
)

__all__ = [
    "FakeGitRepository",
    "GitCommandError",
    "GitError",
    "GitNotFoundError",
    "GitRepository",
    "GitResult",
]

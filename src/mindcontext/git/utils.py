"""Environment helpers for git subprocesses."""

from __future__ import annotations

import os
from typing import Mapping

# Set by git when running hooks; they would redirect commands away from our repo.
_SANITIZED_VARS = {
    "GIT_DIR",
    "GIT_WORK_TREE",
    "GIT_INDEX_FILE",
    "GIT_PREFIX",
}

_NON_INTERACTIVE = {
    "GIT_TERMINAL_PROMPT": "0",
}


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return an environment suitable for running git non-interactively."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    env.update(_NON_INTERACTIVE)
    if additional:
        env.update(additional)
    return env

"""Path resolution helpers for project-scoped config files."""

from __future__ import annotations

import os
from pathlib import Path

from proctor.lib.config.settings import CONFIG_DIRNAME


def resolve_project_root(explicit: Path | None = None) -> Path:
    """Resolve the directory that owns `.proctor/config.toml`.

    Precedence:
    1. Explicit function argument.
    2. `PROCTOR_PROJECT_ROOT` environment variable.
    3. Current directory / ancestors containing `.proctor/`.
    4. Current working directory.
    """

    if explicit is not None:
        return explicit.expanduser().resolve()

    env_root = os.getenv("PROCTOR_PROJECT_ROOT")
    if env_root:
        return Path(env_root).expanduser().resolve()

    cwd = Path.cwd().resolve()
    candidate = cwd
    while True:
        if (candidate / CONFIG_DIRNAME).is_dir():
            return candidate

        # A .git entry marks a repo boundary.
        if (candidate / ".git").exists():
            return candidate

        parent = candidate.parent
        if parent == candidate:
            break
        candidate = parent

    return cwd

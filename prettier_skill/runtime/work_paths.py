"""Local working paths.

Every pipeline invocation clones into its own directory below the work root;
the directory is removed once the invocation finishes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from uuid import uuid4


@dataclass(frozen=True)
class WorkPaths:
    """Resolved paths used by the worker."""

    work_root: Path
    projects_dir: Path

    def new_project_dir(self, *, owner: str, repo: str, sha: str, pipeline: str) -> Path:
        """Returns a fresh, not yet existing directory for one clone."""

        return self.projects_dir / f"{owner}-{repo}-{sha[:7]}-{pipeline}-{uuid4().hex[:8]}"


def get_work_paths(*, work_root: str | Path) -> WorkPaths:
    """Returns work paths for a given root."""

    root = Path(work_root).expanduser()
    if not root.is_absolute():
        root = (Path.cwd() / root).resolve()
    return WorkPaths(work_root=root, projects_dir=root / "projects")


def get_default_work_paths() -> WorkPaths:
    """Returns work paths under the detected default root."""

    return get_work_paths(work_root=detect_default_work_root())


def detect_default_work_root() -> Path:
    """Detects a sensible default work root.

    - In containers, use `/work`.
    - On local machines, use `./work` under current working directory.
    """

    if Path("/.dockerenv").exists() or os.environ.get("CI") == "true":
        return Path("/work")
    return (Path.cwd() / "work").resolve()

"""Cloned working copy of a repository."""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from wcmatch import glob as wcglob

from prettier_skill.domain.push_event import Repository
from prettier_skill.integrations.process.subprocess_utils import CommandResult, CommandRunner

DEFAULT_GLOB_IGNORES: tuple[str, ...] = (".git", "node_modules")
GLOB_FLAGS = wcglob.GLOBSTAR | wcglob.BRACE | wcglob.DOTGLOB


@dataclass(frozen=True)
class Project:
    """A repository checked out under ``base_dir``.

    The directory is exclusive to one pipeline invocation. Processes are
    spawned with ``base_dir`` as working directory.
    """

    base_dir: Path
    repo: Repository
    runner: CommandRunner = field(default_factory=CommandRunner)

    def path(self, *parts: str) -> Path:
        return self.base_dir.joinpath(*parts)

    def exists(self, *parts: str) -> bool:
        return self.path(*parts).exists()

    def spawn(self, args: list[str], *, env: dict[str, str] | None = None) -> CommandResult:
        """Runs a command in the project and returns its captured result."""

        return self.runner.run(args=args, cwd=self.base_dir, env=env)

    def spawn_or_raise(
        self, args: list[str], *, env: dict[str, str] | None = None
    ) -> CommandResult:
        """Runs a command in the project, raising ``CommandFailedError`` on non-zero exit."""

        return self.runner.run_or_raise(args=args, cwd=self.base_dir, env=env)

    def glob_files(
        self,
        pattern: str,
        *,
        ignore: Iterable[str] = DEFAULT_GLOB_IGNORES,
    ) -> list[Path]:
        """Returns files matching ``pattern`` relative to the project root.

        Patterns support globstar and brace expansion (``src/**/*.{js,ts}``).
        ``.`` or a directory name selects every file below that directory.
        Patterns reaching outside the project match nothing. Files inside any
        ``ignore`` directory are skipped.
        """

        ignored = set(ignore)
        relative_pattern = Path(pattern)
        if relative_pattern.is_absolute() or ".." in relative_pattern.parts:
            return []
        if pattern in {".", "./"}:
            pattern = "**"
        elif self.path(pattern).is_dir():
            pattern = f"{pattern.rstrip('/')}/**"

        matches: list[Path] = []
        for candidate in wcglob.glob(pattern, flags=GLOB_FLAGS, root_dir=str(self.base_dir)):
            relative = Path(candidate)
            if ignored.intersection(relative.parts) or not self.path(candidate).is_file():
                continue
            matches.append(relative)
        return sorted(matches)

    def read_package_json(self) -> dict[str, Any] | None:
        """Returns the parsed ``package.json`` or None if the project has none."""

        manifest = self.path("package.json")
        if not manifest.exists():
            return None
        return json.loads(manifest.read_text(encoding="utf-8"))

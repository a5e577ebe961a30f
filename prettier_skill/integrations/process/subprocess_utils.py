"""Utilities for running subprocesses safely.

Commands are executed without a shell and their output is captured in memory,
never streamed. Callers decide whether a non-zero exit code is an error.
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CommandResult:
    """Result of running a command."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """Returns stdout and stderr as one trimmed log."""

        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class CommandFailedError(RuntimeError):
    """Raised when a command that must succeed exits non-zero."""

    def __init__(self, *, command_display: str, result: CommandResult) -> None:
        output = result.output
        if len(output) > 2000:
            output = output[-2000:]
        message = f"Command failed: command={command_display} | exit_code={result.exit_code}"
        if output:
            message = f"{message} | output={output}"
        super().__init__(message)
        self.command_display = command_display
        self.result = result


class CommandRunner:
    """Runs OS commands with controlled environment and output capturing."""

    def run(
        self,
        *,
        args: list[str],
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        timeout_seconds: int | None = None,
    ) -> CommandResult:
        """Runs a command and captures stdout/stderr.

        Args:
            args: Command arguments (no shell).
            cwd: Working directory.
            env: Environment variables to merge with current environment.
            timeout_seconds: Optional timeout.

        Returns:
            Captured result.

        Raises:
            subprocess.TimeoutExpired: If timeout is exceeded.
            OSError: If process cannot be started.
        """

        merged_env = os.environ.copy()
        if env is not None:
            merged_env.update(env)

        completed = subprocess.run(
            args,
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
            check=False,
            text=True,
            capture_output=True,
            timeout=timeout_seconds,
        )
        return CommandResult(
            exit_code=int(completed.returncode),
            stdout=completed.stdout,
            stderr=completed.stderr,
        )

    def run_or_raise(
        self,
        *,
        args: list[str],
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Runs a command and raises ``CommandFailedError`` on non-zero exit."""

        result = self.run(args=args, cwd=cwd, env=env)
        if result.exit_code != 0:
            raise CommandFailedError(command_display=" ".join(args), result=result)
        return result

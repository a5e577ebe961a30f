"""Git operations for the skill.

Security requirements:
  - Do not embed tokens into persisted remote URLs.
  - Avoid printing tokens into logs.

This module authenticates to GitHub using a temporary HTTP extra header passed
via ``git -c`` options.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from pathlib import Path

from prettier_skill.integrations.process.subprocess_utils import CommandResult, CommandRunner


class GitCommandError(RuntimeError):
    """Raised when a git command fails."""

    def __init__(
        self,
        *,
        message: str,
        command_display: str | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        parts: list[str] = [message]
        if command_display:
            parts.append(f"command={command_display}")
        if exit_code is not None:
            parts.append(f"exit_code={exit_code}")
        if stderr:
            stderr_text = stderr.strip()
            if len(stderr_text) > 2000:
                stderr_text = stderr_text[-2000:]
            parts.append(f"stderr={stderr_text}")
        super().__init__(" | ".join(parts))
        self.stderr = stderr


@dataclass(frozen=True)
class GitOpsConfig:
    """Configuration for Git operations."""

    author_name: str
    author_email: str
    server_url: str = "https://github.com"


@dataclass(frozen=True)
class GitStatus:
    """Working tree status."""

    porcelain: str

    @property
    def is_clean(self) -> bool:
        return not self.porcelain.strip()


class GitOps:
    """Performs clone/status/reset/commit/push on a working copy."""

    _logger = logging.getLogger(__name__)

    def __init__(self, *, config: GitOpsConfig, runner: CommandRunner | None = None) -> None:
        self._config = config
        self._runner = runner or CommandRunner()

    def clone_shallow(
        self,
        *,
        repo: str,
        dest_dir: str,
        branch: str,
        sha: str,
        github_token: str,
    ) -> None:
        """Clones ``branch`` with depth 1 and pins the working tree to ``sha``.

        The branch stays checked out (no detached HEAD) so fixes can be
        committed on top of it.
        """

        dest = Path(dest_dir)
        dest.parent.mkdir(parents=True, exist_ok=True)
        repo_url = self._repo_https_url(repo)
        extraheader = self._github_extraheader_value(github_token)
        clone_args = [
            "clone",
            "--depth",
            "1",
            "--branch",
            branch,
            "--single-branch",
            repo_url,
            str(dest),
        ]
        result = self._runner.run(
            args=["git", "-c", f"{self._extraheader_key()}={extraheader}", *clone_args],
        )
        if result.exit_code != 0:
            error_msg = "git clone failed"
            if "403" in result.stderr or "Permission" in result.stderr or "denied" in result.stderr:
                error_msg = (
                    "git clone failed: Authentication or permission error. "
                    "Please verify that the GitHub token has read access to the repository."
                )
            raise GitCommandError(
                message=error_msg,
                command_display=self._format_command_for_display(
                    ["git", "-c", f"{self._extraheader_key()}=<REDACTED>", *clone_args]
                ),
                exit_code=result.exit_code,
                stderr=result.stderr,
            )

        if self.get_head_sha(repo_dir=str(dest)) != sha:
            # The branch moved on since the push; pin the tree to the pushed commit.
            self._logger.info("pinning clone to pushed sha: repo=%s sha=%s", repo, sha[:7])
            self._run_git(
                str(dest),
                args=["fetch", "--depth", "1", "origin", sha],
                extraheader=extraheader,
            )
            self._run_git(str(dest), args=["reset", "--hard", sha])

    def get_head_sha(self, *, repo_dir: str) -> str:
        """Returns HEAD SHA."""

        result = self._run_git(repo_dir, args=["rev-parse", "HEAD"])
        sha = result.stdout.strip()
        if not sha:
            raise GitCommandError(message="Failed to read HEAD sha.")
        return sha

    def status(self, *, repo_dir: str) -> GitStatus:
        """Returns `git status --porcelain` of the working tree."""

        result = self._run_git(repo_dir, args=["status", "--porcelain"])
        return GitStatus(porcelain=result.stdout)

    def reset_hard(self, *, repo_dir: str) -> None:
        """Discards working tree changes to tracked files."""

        self._run_git(repo_dir, args=["reset", "--hard"])

    def checkout_branch(self, *, repo_dir: str, branch: str) -> None:
        """Creates or resets ``branch`` at HEAD and checks it out, keeping changes."""

        self._run_git(repo_dir, args=["checkout", "-B", branch])

    def commit_all(
        self,
        *,
        repo_dir: str,
        message: str,
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> str:
        """Commits all changes and returns the new HEAD SHA."""

        self._run_git(repo_dir, args=["config", "user.name", self._config.author_name])
        self._run_git(repo_dir, args=["config", "user.email", self._config.author_email])
        self._run_git(repo_dir, args=["add", "-A"])
        commit_args = ["commit", "-m", message]
        if author_name and author_email:
            commit_args.extend(["--author", f"{author_name} <{author_email}>"])
        self._run_git(repo_dir, args=commit_args)
        return self.get_head_sha(repo_dir=repo_dir)

    def push_branch(
        self,
        *,
        repo_dir: str,
        branch: str,
        github_token: str,
        force: bool = False,
    ) -> None:
        """Pushes HEAD to ``branch`` on origin without persisting the token."""

        extraheader = self._github_extraheader_value(github_token)
        args = ["push", "origin", f"HEAD:refs/heads/{branch}"]
        if force:
            args.insert(1, "--force")
        result = self._run_git(repo_dir, args=args, extraheader=extraheader, allow_failure=True)
        if result.exit_code != 0:
            error_msg = "git push failed"
            if "403" in result.stderr or "Permission" in result.stderr or "denied" in result.stderr:
                error_msg = (
                    "git push failed: Authentication or permission error. "
                    "Please verify that the GitHub token has write access to the repository."
                )
            raise GitCommandError(
                message=error_msg,
                command_display=self._format_command_for_display(
                    ["git", "-C", repo_dir, *args]
                ),
                exit_code=result.exit_code,
                stderr=result.stderr,
            )

    def _run_git(
        self,
        repo_dir: str,
        *,
        args: list[str],
        extraheader: str | None = None,
        allow_failure: bool = False,
    ) -> CommandResult:
        cmd = ["git", "-C", repo_dir]
        if extraheader is not None:
            cmd.extend(["-c", f"{self._extraheader_key()}={extraheader}"])
        cmd.extend(args)
        result = self._runner.run(args=cmd)
        if (not allow_failure) and result.exit_code != 0:
            raise GitCommandError(
                message="git command failed",
                command_display=self._format_command_for_display(
                    self._redact_command_args_for_display(cmd)
                ),
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result

    def _repo_https_url(self, repo: str) -> str:
        return f"{self._config.server_url.rstrip('/')}/{repo}.git"

    def _extraheader_key(self) -> str:
        return f"http.{self._config.server_url.rstrip('/')}/.extraheader"

    @staticmethod
    def _github_extraheader_value(token: str) -> str:
        """Builds `http.*.extraHeader` value for GitHub HTTPS auth.

        GitHub recommends basic auth with username `x-access-token` and the token as password.
        """
        raw = f"x-access-token:{token}".encode()
        b64 = base64.b64encode(raw).decode("ascii")
        return f"Authorization: Basic {b64}"

    def _redact_command_args_for_display(self, args: list[str]) -> list[str]:
        key = self._extraheader_key()
        return [f"{key}=<REDACTED>" if arg.startswith(f"{key}=") else arg for arg in args]

    @staticmethod
    def _format_command_for_display(args: list[str]) -> str:
        return " ".join(args)

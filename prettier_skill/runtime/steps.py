"""Sequential step runner.

A pipeline is an ordered list of named steps sharing one mutable parameters
object. Each step may declare a ``run_when`` guard; a step whose guard
returns False is skipped without failing the pipeline.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

from prettier_skill.domain.configuration import LintConfiguration
from prettier_skill.domain.push_event import PushEvent
from prettier_skill.integrations.git.git_ops import GitOps
from prettier_skill.integrations.github.credentials import CredentialResolver, GitHubCredential
from prettier_skill.integrations.github.github_client import GitHubClient
from prettier_skill.integrations.process.subprocess_utils import CommandRunner
from prettier_skill.runtime import status
from prettier_skill.runtime.status import Status

_logger = logging.getLogger(__name__)

P = TypeVar("P")


@dataclass(frozen=True)
class SkillContext:
    """Immutable per-invocation inputs and collaborators."""

    push: PushEvent
    configuration: LintConfiguration
    credential_resolver: CredentialResolver
    github_client_factory: Callable[[GitHubCredential], GitHubClient]
    git_ops: GitOps
    runner: CommandRunner
    project_dir: Path
    generated_branch_prefix: str = "atomist/"


@dataclass(frozen=True)
class Step(Generic[P]):
    """A named, optionally guarded unit of work."""

    name: str
    run: Callable[[SkillContext, P], Status]
    run_when: Callable[[SkillContext, P], bool] | None = None


def run_steps(*, context: SkillContext, steps: Sequence[Step[P]], parameters: P) -> Status:
    """Runs ``steps`` in order and returns the final pipeline status.

    The pipeline stops at the first failure or at the first aborting status,
    which then becomes the final status. Exceptions escaping a step are
    converted into a failure naming the step.
    """

    repo = context.push.repo.slug
    final = status.success()
    for step in steps:
        try:
            if step.run_when is not None and not step.run_when(context, parameters):
                _logger.info("step skipped: repo=%s step=%s", repo, step.name)
                continue
            _logger.info("step started: repo=%s step=%s", repo, step.name)
            result = step.run(context, parameters)
        except Exception as exc:  # noqa: BLE001
            _logger.exception("step errored: repo=%s step=%s error=%s", repo, step.name, exc)
            return status.failure(f"Failed to run step {step.name}: {exc}")

        _logger.info(
            "step finished: repo=%s step=%s code=%s hidden=%s abort=%s reason=%s",
            repo,
            step.name,
            result.code,
            result.is_hidden,
            result.is_aborting,
            result.reason,
        )
        if result.failed or result.is_aborting:
            return result
        if result.reason:
            final = result
    return final

"""Skill loop handling a single push event.

This module is intentionally synchronous (blocking) and is expected to be run
in a background thread by the HTTP server. Both pipelines run one after the
other, each in its own fresh clone that is removed afterwards.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass

from prettier_skill.domain.configuration import LintConfiguration
from prettier_skill.domain.lint_on_push import handle_lint_on_push
from prettier_skill.domain.push_event import PushEvent
from prettier_skill.domain.repository_filter import RepositoryFilter
from prettier_skill.domain.update_tools_on_push import handle_update_tools_on_push
from prettier_skill.integrations.git.git_ops import GitOps
from prettier_skill.integrations.github.credentials import CredentialResolver, GitHubCredential
from prettier_skill.integrations.github.github_client import GitHubClient
from prettier_skill.integrations.process.subprocess_utils import CommandRunner
from prettier_skill.runtime import status
from prettier_skill.runtime.status import Status
from prettier_skill.runtime.steps import SkillContext
from prettier_skill.runtime.work_paths import WorkPaths

PipelineHandler = Callable[[SkillContext], Status]


@dataclass(frozen=True)
class SkillRunResult:
    """Final status of each pipeline for one push."""

    lint: Status
    update_tools: Status


class SkillLoop:
    """Runs the lint and configuration-update pipelines for push events."""

    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        credential_resolver: CredentialResolver,
        github_client_factory: Callable[[GitHubCredential], GitHubClient],
        git_ops: GitOps,
        work_paths: WorkPaths,
        runner: CommandRunner | None = None,
        generated_branch_prefix: str = "atomist/",
        repository_filter: RepositoryFilter | None = None,
    ) -> None:
        self._credential_resolver = credential_resolver
        self._github_client_factory = github_client_factory
        self._git_ops = git_ops
        self._work_paths = work_paths
        self._runner = runner or CommandRunner()
        self._generated_branch_prefix = generated_branch_prefix
        self._repository_filter = repository_filter or RepositoryFilter()

    def run(self, *, event: PushEvent, configuration: LintConfiguration) -> SkillRunResult:
        """Runs both pipelines for ``event``."""

        self._logger.info(
            "push received: repo=%s branch=%s sha=%s",
            event.repo.slug,
            event.branch,
            event.after.short_sha,
        )
        if not self._repository_filter.matches(event.repo):
            self._logger.info("repository not selected: repo=%s", event.repo.slug)
            skipped = status.success("Ignore push to repository not selected by the skill").hidden()
            return SkillRunResult(lint=skipped, update_tools=skipped)
        lint = self._run_pipeline(
            name="lint", handler=handle_lint_on_push, event=event, configuration=configuration
        )
        update_tools = self._run_pipeline(
            name="update-tools",
            handler=handle_update_tools_on_push,
            event=event,
            configuration=configuration,
        )
        return SkillRunResult(lint=lint, update_tools=update_tools)

    def _run_pipeline(
        self,
        *,
        name: str,
        handler: PipelineHandler,
        event: PushEvent,
        configuration: LintConfiguration,
    ) -> Status:
        project_dir = self._work_paths.new_project_dir(
            owner=event.repo.owner, repo=event.repo.name, sha=event.after.sha, pipeline=name
        )
        context = SkillContext(
            push=event,
            configuration=configuration,
            credential_resolver=self._credential_resolver,
            github_client_factory=self._github_client_factory,
            git_ops=self._git_ops,
            runner=self._runner,
            project_dir=project_dir,
            generated_branch_prefix=self._generated_branch_prefix,
        )
        self._logger.info("pipeline started: pipeline=%s repo=%s", name, event.repo.slug)
        try:
            result = handler(context)
        finally:
            shutil.rmtree(project_dir, ignore_errors=True)

        log = self._logger.warning if result.failed and not result.is_hidden else self._logger.info
        log(
            "pipeline finished: pipeline=%s repo=%s code=%s hidden=%s reason=%s",
            name,
            event.repo.slug,
            result.code,
            result.is_hidden,
            result.reason,
        )
        return result

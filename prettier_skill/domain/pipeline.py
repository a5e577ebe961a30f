"""Parameters and step helpers shared by both pipelines."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prettier_skill.domain.configuration import PushStrategy
from prettier_skill.integrations.github.credentials import GitHubCredential
from prettier_skill.integrations.github.github_client import GitHubClient
from prettier_skill.integrations.github.persistence import ChangePersister
from prettier_skill.runtime.project import Project
from prettier_skill.runtime.steps import SkillContext

_logger = logging.getLogger(__name__)

NPM_ENV = {"NODE_ENV": "development"}


@dataclass
class PipelineParameters:
    """Mutable state shared by the steps of one pipeline run."""

    credential: GitHubCredential | None = None
    github: GitHubClient | None = None
    project: Project | None = None

    def require_project(self) -> Project:
        if self.project is None:
            raise RuntimeError("Repository has not been cloned.")
        return self.project

    def require_github(self) -> GitHubClient:
        if self.github is None:
            raise RuntimeError("GitHub credential has not been resolved.")
        return self.github

    def close(self) -> None:
        if self.github is not None:
            self.github.close()


def clone_project(ctx: SkillContext, params: PipelineParameters) -> Project:
    """Resolves the credential and clones the pushed commit into the context's project dir."""

    push = ctx.push
    repo = push.repo
    params.credential = ctx.credential_resolver.resolve(owner=repo.owner, repo=repo.name)
    params.github = ctx.github_client_factory(params.credential)
    ctx.git_ops.clone_shallow(
        repo=repo.slug,
        dest_dir=str(ctx.project_dir),
        branch=push.branch,
        sha=push.after.sha,
        github_token=params.credential.token,
    )
    params.project = Project(base_dir=ctx.project_dir, repo=repo, runner=ctx.runner)
    _logger.info("cloned repository: repo=%s sha=%s", repo.slug, push.after.short_sha)
    return params.project


def persister(ctx: SkillContext, params: PipelineParameters) -> ChangePersister:
    if params.github is None or params.credential is None:
        raise RuntimeError("GitHub credential has not been resolved.")
    return ChangePersister(
        github_client=params.github, git_ops=ctx.git_ops, github_token=params.credential.token
    )


def is_clean(ctx: SkillContext, params: PipelineParameters) -> bool:
    project = params.require_project()
    return ctx.git_ops.status(repo_dir=str(project.base_dir)).is_clean


def should_push(ctx: SkillContext, params: PipelineParameters) -> bool:
    return ctx.configuration.push is not PushStrategy.NONE and not is_clean(ctx, params)

"""Lint-on-push pipeline.

Clones the pushed commit, runs Prettier, reports a check run and optionally
pushes the fixes Prettier made.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prettier_skill.domain.configuration import NPM_DEV_INSTALL_ARGS, NPM_INSTALL_ARGS, SKILL_NAME
from prettier_skill.domain.pipeline import (
    NPM_ENV,
    PipelineParameters,
    clone_project,
    is_clean,
    persister,
    should_push,
)
from prettier_skill.domain.prettier import (
    PRETTIER_BINARY,
    display_arguments,
    interpret_exit_code,
    prettier_arguments,
    run_prettier,
)
from prettier_skill.integrations.github.checks import Check, create_check
from prettier_skill.integrations.github.persistence import (
    CommitMetadata,
    PullRequestMetadata,
    PushMetadata,
)
from prettier_skill.rendering.check_body import CheckBodyInput, CheckBodyRenderer
from prettier_skill.runtime import status
from prettier_skill.runtime.status import Status
from prettier_skill.runtime.steps import SkillContext, Step, run_steps

_logger = logging.getLogger(__name__)


@dataclass
class LintParameters(PipelineParameters):
    check: Check | None = None


def fix_branch_name(branch: str) -> str:
    return f"atomist/prettier-{branch}"


def _setup(ctx: SkillContext, params: LintParameters) -> Status:
    push = ctx.push

    if push.branch.startswith(ctx.generated_branch_prefix):
        return status.success("Ignore generated branch").hidden().abort()

    _logger.info("starting prettier: repo=%s", push.repo.slug)
    project = clone_project(ctx, params)

    if not project.glob_files(ctx.configuration.glob):
        return status.success("Project does not contain any matching files").hidden().abort()

    params.check = create_check(
        params.require_github(),
        repo=push.repo.slug,
        sha=push.after.sha,
        name=SKILL_NAME,
        title="Prettier",
        body=CheckBodyRenderer().render(data=CheckBodyInput(outcome="running")),
    )
    return status.success()


def _has_package_json(ctx: SkillContext, params: LintParameters) -> bool:
    return params.require_project().exists("package.json")


def _npm_install(ctx: SkillContext, params: LintParameters) -> Status:
    project = params.require_project()
    verb = "ci" if project.exists("package-lock.json") else "install"
    project.spawn_or_raise(["npm", verb, *NPM_INSTALL_ARGS], env=NPM_ENV)

    modules = ctx.configuration.modules
    if modules:
        _logger.info("installing configured npm packages: modules=%s", " ".join(modules))
        project.spawn_or_raise(["npm", "install", *modules, *NPM_DEV_INSTALL_ARGS], env=NPM_ENV)
        ctx.git_ops.reset_hard(repo_dir=str(project.base_dir))
    return status.success()


def _validate(ctx: SkillContext, params: LintParameters) -> Status:
    if not params.require_project().exists(*PRETTIER_BINARY):
        return status.failure(f"No Prettier installed in {ctx.push.repo.markdown_link}")
    return status.success()


def _run_prettier(ctx: SkillContext, params: LintParameters) -> Status:
    project = params.require_project()
    push = ctx.push

    with prettier_arguments(
        project=project, configuration=ctx.configuration, sha=push.after.sha
    ) as args:
        command = display_arguments(project, args)
        _logger.info("running prettier: repo=%s command=prettier %s", push.repo.slug, command)
        run = run_prettier(project=project, configuration=ctx.configuration, args=args)

    outcome = interpret_exit_code(run=run, command=command, repo=push.repo)
    if outcome.errored:
        _logger.error("running prettier errored: repo=%s log=%s", push.repo.slug, run.log)
    if params.check is not None:
        params.check.update(conclusion=outcome.conclusion, body=outcome.check_body)
    return outcome.status


def _close_pull_requests(ctx: SkillContext, params: LintParameters) -> Status:
    persister(ctx, params).close_pull_requests(
        project=params.require_project(),
        base=ctx.push.branch,
        head=fix_branch_name(ctx.push.branch),
        comment="Closing pull request because code has been properly formatted in base branch",
    )
    return status.success()


def _push(ctx: SkillContext, params: LintParameters) -> Status:
    push = ctx.push
    cfg = ctx.configuration
    return persister(ctx, params).persist_changes(
        project=params.require_project(),
        strategy=cfg.push,
        push=PushMetadata(
            branch=push.branch,
            default_branch=push.repo.default_branch,
            author=push.after.author,
        ),
        pull_request=PullRequestMetadata(
            branch=fix_branch_name(push.branch),
            title="Prettier fixes",
            body="Prettier format fixes",
            labels=list(cfg.labels),
        ),
        commit=CommitMetadata(message=cfg.commit_msg),
    )


LINT_STEPS: tuple[Step[LintParameters], ...] = (
    Step(name="clone repository", run=_setup),
    Step(name="npm install", run=_npm_install, run_when=_has_package_json),
    Step(name="validate", run=_validate, run_when=_has_package_json),
    Step(name="run prettier", run=_run_prettier),
    Step(name="close pr", run=_close_pull_requests, run_when=is_clean),
    Step(name="push", run=_push, run_when=should_push),
)


def handle_lint_on_push(ctx: SkillContext) -> Status:
    """Runs the lint pipeline for one push."""

    params = LintParameters()
    try:
        return run_steps(context=ctx, steps=LINT_STEPS, parameters=params)
    finally:
        params.close()

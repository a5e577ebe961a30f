"""Update-tools-on-push pipeline.

Keeps a project's Prettier configuration, and optionally a husky +
lint-staged pre-commit hook running Prettier, in line with the skill
configuration. Runs on pushes to the default branch only.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from prettier_skill.domain.configuration import (
    GENERATED_COMMIT_TRAILER,
    NPM_DEV_INSTALL_ARGS,
    ConfigureMode,
    LintConfiguration,
    PushStrategy,
)
from prettier_skill.domain.pipeline import (
    NPM_ENV,
    PipelineParameters,
    clone_project,
    is_clean,
    persister,
    should_push,
)
from prettier_skill.integrations.github.persistence import (
    CommitMetadata,
    PullRequestMetadata,
    PushMetadata,
)
from prettier_skill.runtime import status
from prettier_skill.runtime.status import Status
from prettier_skill.runtime.steps import SkillContext, Step, run_steps

_logger = logging.getLogger(__name__)

LINT_SCRIPT_NAME = "atm:lint:prettier"
LINT_SCRIPT_COMMAND = f"npm run {LINT_SCRIPT_NAME}"
HOOK_DEV_DEPENDENCIES: tuple[str, ...] = ("prettier", "husky", "lint-staged")


def config_branch_name(branch: str) -> str:
    return f"atomist/prettier-config-{branch}"


def merge_lint_configuration(
    package_json: dict[str, Any], configuration: LintConfiguration
) -> dict[str, Any]:
    """Adds the Prettier script, pre-commit hook and lint-staged entry.

    Merging is idempotent: applying it twice yields the same manifest. At most
    one lint-staged glob maps to the Prettier script afterwards.
    """

    scripts = package_json.setdefault("scripts", {})
    script_args = list(dict.fromkeys(["--write", *configuration.args]))
    scripts[LINT_SCRIPT_NAME] = " ".join(["prettier", *script_args])

    husky = package_json.get("husky")
    if not isinstance(husky, dict):
        husky = {}
    hooks = husky.get("hooks")
    if not isinstance(hooks, dict):
        hooks = {}
    pre_commit = hooks.get("pre-commit")
    if not pre_commit:
        hooks["pre-commit"] = "lint-staged"
    elif "lint-staged" not in pre_commit:
        hooks["pre-commit"] = f"{pre_commit} && lint-staged"
    husky["hooks"] = hooks
    package_json["husky"] = husky

    glob = "**/*" if configuration.glob in {"", "."} else configuration.glob
    lint_staged = package_json.get("lint-staged")
    if not isinstance(lint_staged, dict):
        lint_staged = {}
    for key, value in list(lint_staged.items()):
        if key == glob:
            continue
        if value == LINT_SCRIPT_COMMAND:
            del lint_staged[key]
        elif isinstance(value, list) and LINT_SCRIPT_COMMAND in value:
            remaining = [v for v in value if v != LINT_SCRIPT_COMMAND]
            if remaining:
                lint_staged[key] = remaining
            else:
                del lint_staged[key]
    lint_staged[glob] = LINT_SCRIPT_COMMAND
    package_json["lint-staged"] = lint_staged
    return package_json


def update_lint_configuration(*, package_json_path: Path, configuration: LintConfiguration) -> None:
    """Merges the hook configuration into the ``package.json`` at ``package_json_path``."""

    package_json = json.loads(package_json_path.read_text(encoding="utf-8"))
    merge_lint_configuration(package_json, configuration)
    package_json_path.write_text(
        json.dumps(package_json, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
    )


def _setup(ctx: SkillContext, params: PipelineParameters) -> Status:
    push = ctx.push
    repo = push.repo

    if not push.is_default_branch:
        return status.success("Ignore push to non-default branch").hidden().abort()
    if ctx.configuration.configure is ConfigureMode.NONE:
        return status.success("Prettier configuration updates are disabled").hidden().abort()

    _logger.info("updating prettier configuration: repo=%s", repo.slug)
    project = clone_project(ctx, params)

    if not project.exists("package.json"):
        return status.failure(f"{repo.markdown_link} is not an npm project")
    return status.success()


def _has_modules(ctx: SkillContext, params: PipelineParameters) -> bool:
    return bool(ctx.configuration.modules)


def _npm_install(ctx: SkillContext, params: PipelineParameters) -> Status:
    project = params.require_project()
    modules = ctx.configuration.modules
    _logger.info("installing configured npm packages: modules=%s", " ".join(modules))
    project.spawn_or_raise(["npm", "install", *modules, *NPM_DEV_INSTALL_ARGS], env=NPM_ENV)
    return status.success()


def _configure_prettier(ctx: SkillContext, params: PipelineParameters) -> Status:
    project = params.require_project()
    cfg = ctx.configuration
    if cfg.ignores:
        project.path(".prettierignore").write_text("\n".join(cfg.ignores), encoding="utf-8")
    if cfg.config:
        project.path(".prettierrc.json").write_text(cfg.config, encoding="utf-8")
    return status.success()


def _wants_hook(ctx: SkillContext, params: PipelineParameters) -> bool:
    return ctx.configuration.configure is ConfigureMode.PRETTIER_AND_HOOK


def _configure_hooks(ctx: SkillContext, params: PipelineParameters) -> Status:
    project = params.require_project()
    package_json = project.read_package_json() or {}
    installed = {
        **(package_json.get("dependencies") or {}),
        **(package_json.get("devDependencies") or {}),
    }
    missing = [name for name in HOOK_DEV_DEPENDENCIES if name not in installed]
    if missing:
        _logger.info("installing hook dependencies: modules=%s", " ".join(missing))
        project.spawn_or_raise(["npm", "install", *missing, *NPM_DEV_INSTALL_ARGS], env=NPM_ENV)

    # npm install rewrites package.json, so merge into the fresh manifest.
    update_lint_configuration(
        package_json_path=project.path("package.json"), configuration=ctx.configuration
    )
    return status.success()


def _close_pull_requests(ctx: SkillContext, params: PipelineParameters) -> Status:
    persister(ctx, params).close_pull_requests(
        project=params.require_project(),
        base=ctx.push.branch,
        head=config_branch_name(ctx.push.branch),
        comment="Closing pull request because configuration has been updated in base branch",
    )
    return status.success()


def _push(ctx: SkillContext, params: PipelineParameters) -> Status:
    push = ctx.push
    return persister(ctx, params).persist_changes(
        project=params.require_project(),
        strategy=PushStrategy.PR_DEFAULT,
        push=PushMetadata(
            branch=push.branch,
            default_branch=push.repo.default_branch,
            author=push.after.author,
        ),
        pull_request=PullRequestMetadata(
            branch=config_branch_name(push.branch),
            title="Update prettier configuration",
            body="Update project's prettier configuration to skill configuration",
            labels=list(ctx.configuration.labels),
        ),
        commit=CommitMetadata(
            message=f"Update prettier project configuration\n\n{GENERATED_COMMIT_TRAILER}"
        ),
    )


UPDATE_STEPS: tuple[Step[PipelineParameters], ...] = (
    Step(name="clone repository", run=_setup),
    Step(name="npm install", run=_npm_install, run_when=_has_modules),
    Step(name="configure prettier", run=_configure_prettier),
    Step(name="configure hooks", run=_configure_hooks, run_when=_wants_hook),
    Step(name="close pr", run=_close_pull_requests, run_when=is_clean),
    Step(name="push", run=_push, run_when=should_push),
)


def handle_update_tools_on_push(ctx: SkillContext) -> Status:
    """Runs the configuration-update pipeline for one push."""

    params = PipelineParameters()
    try:
        return run_steps(context=ctx, steps=UPDATE_STEPS, parameters=params)
    finally:
        params.close()

"""Running Prettier against a project and interpreting its exit code.

Prettier exits with:
  - 0 when every file is formatted properly,
  - 1 when some files are not (or were rewritten with ``--write``),
  - 2 when Prettier itself failed, e.g. on invalid configuration.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from prettier_skill.domain.configuration import LintConfiguration
from prettier_skill.domain.push_event import Repository
from prettier_skill.integrations.github.github_client import CheckConclusion
from prettier_skill.rendering.check_body import CheckBodyInput, CheckBodyRenderer
from prettier_skill.runtime import status
from prettier_skill.runtime.project import Project
from prettier_skill.runtime.status import Status

PRETTIER_BINARY: tuple[str, ...] = ("node_modules", ".bin", "prettier")
CONFIG_FILE_PATTERNS: tuple[str, ...] = (".prettierrc*", "prettier.config.*")


@dataclass(frozen=True)
class PrettierRun:
    """Exit code and captured output of one Prettier invocation."""

    exit_code: int
    log: str


@dataclass(frozen=True)
class PrettierOutcome:
    """What a Prettier exit code means for the check run and the pipeline."""

    conclusion: CheckConclusion
    check_body: str
    status: Status
    errored: bool = False


def has_prettier_config(project: Project) -> bool:
    """True if the project configures Prettier itself."""

    for pattern in CONFIG_FILE_PATTERNS:
        if project.glob_files(pattern):
            return True
    package_json = project.read_package_json() or {}
    return bool(package_json.get("prettier"))


@contextmanager
def prettier_arguments(
    *,
    project: Project,
    configuration: LintConfiguration,
    sha: str,
) -> Iterator[list[str]]:
    """Yields Prettier CLI arguments for ``project``.

    Ignore and config files are only written when the project does not ship
    its own. Written files are removed when the context exits, whatever
    happened inside it.
    """

    args: list[str] = list(configuration.args)
    temporary_files: list[Path] = []
    try:
        if not project.exists(".prettierignore") and configuration.ignores:
            ignore_file = project.path(f".prettierignore-{sha[:7]}")
            ignore_file.write_text("\n".join(configuration.ignores) + "\n", encoding="utf-8")
            temporary_files.append(ignore_file)
            args.extend(["--ignore-path", str(ignore_file)])

        if not has_prettier_config(project) and configuration.config:
            config_file = project.path(f"prettierrc-{sha[:7]}.json")
            config_file.write_text(configuration.config, encoding="utf-8")
            temporary_files.append(config_file)
            args.extend(["--config", str(config_file)])

        if configuration.applies_fixes:
            args.append("--write")
        args.append(configuration.glob)
        yield args
    finally:
        for file in temporary_files:
            file.unlink(missing_ok=True)


def display_arguments(project: Project, args: list[str]) -> str:
    """Joins ``args`` for display with project-absolute paths made relative."""

    return " ".join(args).replace(f"{project.base_dir}/", "")


def run_prettier(
    *,
    project: Project,
    configuration: LintConfiguration,
    args: list[str],
) -> PrettierRun:
    """Runs Prettier with ``args`` in ``project``.

    npm projects must bring their own Prettier in ``node_modules``. Other
    projects get Prettier, plus any configured plugin modules, through npx.
    """

    if project.exists("package.json"):
        command = [str(project.path(*PRETTIER_BINARY)), *args]
    else:
        modules = list(configuration.modules)
        if not any(m == "prettier" or m.startswith("prettier@") for m in modules):
            modules.append("prettier")
        command = ["npx", *[f"--package={m}" for m in modules], "--quiet", "prettier", *args]
    result = project.spawn(command)
    return PrettierRun(exit_code=result.exit_code, log=result.output)


def interpret_exit_code(
    *,
    run: PrettierRun,
    command: str,
    repo: Repository,
    renderer: CheckBodyRenderer | None = None,
) -> PrettierOutcome:
    """Maps a Prettier exit code onto a check conclusion and pipeline status.

    Unformatted code (exit code 1) is a successful run whose check asks for
    action.
    """

    renderer = renderer or CheckBodyRenderer()
    if run.exit_code == 0:
        return PrettierOutcome(
            conclusion="success",
            check_body=renderer.render(data=CheckBodyInput(outcome="formatted", command=command)),
            status=status.success(
                f"Prettier found {repo.markdown_link} to be formatted properly"
            ),
        )
    if run.exit_code == 1:
        return PrettierOutcome(
            conclusion="action_required",
            check_body=renderer.render(
                data=CheckBodyInput(outcome="unformatted", command=command)
            ),
            status=status.success(
                f"Prettier found {repo.markdown_link} not to be formatted properly"
            ),
        )
    if run.exit_code == 2:
        return PrettierOutcome(
            conclusion="action_required",
            check_body=renderer.render(
                data=CheckBodyInput(outcome="errored", command=command, log=run.log)
            ),
            status=status.failure("Running Prettier errored"),
            errored=True,
        )
    return PrettierOutcome(
        conclusion="action_required",
        check_body=renderer.render(data=CheckBodyInput(outcome="unknown", exit_code=run.exit_code)),
        status=status.failure("Unknown Prettier exit code").hidden(),
    )


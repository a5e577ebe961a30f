from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from prettier_skill.domain.configuration import (
    NPM_DEV_INSTALL_ARGS,
    NPM_INSTALL_ARGS,
    LintConfiguration,
    PushStrategy,
)
from prettier_skill.domain.lint_on_push import handle_lint_on_push
from prettier_skill.domain.push_event import Commit, CommitAuthor, PushEvent, Repository
from prettier_skill.integrations.git.git_ops import GitStatus
from prettier_skill.integrations.github.credentials import CredentialResolver
from prettier_skill.integrations.github.github_client import CheckRun, PullRequest
from prettier_skill.integrations.process.subprocess_utils import CommandResult, CommandRunner
from prettier_skill.runtime.steps import SkillContext


@dataclass
class _FakeGitOps:
    files: dict[str, str]
    dirty: bool = False
    cloned: list[str] = field(default_factory=list)
    resets: int = 0
    checked_out: list[str] = field(default_factory=list)
    commits: list[str] = field(default_factory=list)
    pushed_branches: list[str] = field(default_factory=list)

    def clone_shallow(
        self, *, repo: str, dest_dir: str, branch: str, sha: str, github_token: str
    ) -> None:
        self.cloned.append(repo)
        for name, content in self.files.items():
            path = Path(dest_dir) / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

    def status(self, *, repo_dir: str) -> GitStatus:
        return GitStatus(porcelain=" M index.js\n" if self.dirty else "")

    def reset_hard(self, *, repo_dir: str) -> None:
        self.resets += 1

    def checkout_branch(self, *, repo_dir: str, branch: str) -> None:
        self.checked_out.append(branch)

    def commit_all(
        self,
        *,
        repo_dir: str,
        message: str,
        author_name: str | None = None,
        author_email: str | None = None,
    ) -> str:
        self.commits.append(message)
        return "c0ffee"

    def push_branch(
        self, *, repo_dir: str, branch: str, github_token: str, force: bool = False
    ) -> None:
        self.pushed_branches.append(branch)


@dataclass
class _FakeGitHubClient:
    open_pull_requests: list[PullRequest] = field(default_factory=list)
    created_checks: list[str] = field(default_factory=list)
    check_updates: list[tuple[str, str]] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    closed_prs: list[int] = field(default_factory=list)
    created_prs: list[tuple[str, str, str]] = field(default_factory=list)
    labels: list[list[str]] = field(default_factory=list)
    deleted_branches: list[str] = field(default_factory=list)
    is_closed: bool = False

    def create_check_run(
        self, *, repo: str, name: str, head_sha: str, title: str, summary: str
    ) -> CheckRun:
        self.created_checks.append(summary)
        return CheckRun(id=7)

    def update_check_run(
        self, *, repo: str, check_run_id: int, conclusion: str, title: str, summary: str
    ) -> None:
        self.check_updates.append((conclusion, summary))

    def list_pull_requests(
        self, *, repo: str, head_branch: str, base_branch: str | None = None, state: str = "open"
    ) -> list[PullRequest]:
        return list(self.open_pull_requests)

    def create_issue_comment(self, *, repo: str, issue_number: int, body: str) -> None:
        self.comments.append(body)

    def update_pull_request(
        self,
        *,
        repo: str,
        pr_number: int,
        title: str | None = None,
        body: str | None = None,
        state: str | None = None,
    ) -> None:
        if state == "closed":
            self.closed_prs.append(pr_number)

    def create_pull_request(
        self, *, repo: str, title: str, head: str, base: str, body: str
    ) -> PullRequest:
        self.created_prs.append((title, head, base))
        return PullRequest(number=5, html_url="https://example/pr/5")

    def add_labels(self, *, repo: str, issue_number: int, labels: list[str]) -> None:
        self.labels.append(labels)

    def delete_branch(self, *, repo: str, branch: str) -> None:
        self.deleted_branches.append(branch)

    def close(self) -> None:
        self.is_closed = True


class _FakeRunner(CommandRunner):
    def __init__(
        self,
        *,
        prettier_exit_code: int = 0,
        prettier_log: str = "",
        npm_exit_code: int = 0,
        installs_prettier: bool = False,
    ) -> None:
        self.calls: list[list[str]] = []
        self.files_during_prettier: list[str] = []
        self._prettier_exit_code = prettier_exit_code
        self._prettier_log = prettier_log
        self._npm_exit_code = npm_exit_code
        self._installs_prettier = installs_prettier

    def run(self, *, args, cwd=None, env=None, timeout_seconds=None) -> CommandResult:
        self.calls.append(list(args))
        if args[0] == "npx" or args[0].endswith("prettier"):
            self.files_during_prettier = sorted(p.name for p in Path(cwd).iterdir())
            return CommandResult(
                exit_code=self._prettier_exit_code, stdout="", stderr=self._prettier_log
            )
        if args[0] == "npm" and self._installs_prettier:
            binary = Path(cwd) / "node_modules" / ".bin" / "prettier"
            binary.parent.mkdir(parents=True, exist_ok=True)
            binary.write_text("#!/bin/sh\n", encoding="utf-8")
        return CommandResult(exit_code=self._npm_exit_code, stdout="", stderr="npm ERR! boom")

    def prettier_calls(self) -> list[list[str]]:
        return [c for c in self.calls if c[0] == "npx" or c[0].endswith("prettier")]


def _push_event(*, branch: str = "main") -> PushEvent:
    return PushEvent(
        repo=Repository(
            owner="owner",
            name="repo",
            url="https://github.com/owner/repo",
            default_branch="main",
        ),
        branch=branch,
        after=Commit(
            sha="abcdef1234567890",
            author=CommitAuthor(login="dev", name="Dev", email="dev@example.com"),
        ),
    )


def _context(
    tmp_path: Path,
    *,
    git_ops: _FakeGitOps,
    github: _FakeGitHubClient,
    runner: _FakeRunner,
    push: PushEvent | None = None,
    configuration: LintConfiguration | None = None,
) -> SkillContext:
    return SkillContext(
        push=push or _push_event(),
        configuration=configuration or LintConfiguration(),
        credential_resolver=CredentialResolver(token="token"),
        github_client_factory=lambda credential: github,  # type: ignore[arg-type,return-value]
        git_ops=git_ops,  # type: ignore[arg-type]
        runner=runner,
        project_dir=tmp_path / "clone",
    )


def test_generated_branch_aborts_before_clone(tmp_path: Path) -> None:
    git_ops = _FakeGitOps(files={"index.js": "x"})
    runner = _FakeRunner()
    ctx = _context(
        tmp_path,
        git_ops=git_ops,
        github=_FakeGitHubClient(),
        runner=runner,
        push=_push_event(branch="atomist/prettier-config-main"),
    )

    result = handle_lint_on_push(ctx)

    assert result.ok
    assert result.is_hidden
    assert result.is_aborting
    assert result.reason == "Ignore generated branch"
    assert git_ops.cloned == []
    assert runner.calls == []


def test_project_without_matching_files_aborts_without_check(tmp_path: Path) -> None:
    github = _FakeGitHubClient()
    ctx = _context(
        tmp_path,
        git_ops=_FakeGitOps(files={"README.md": "# readme"}),
        github=github,
        runner=_FakeRunner(),
        configuration=LintConfiguration(glob="src/**/*.ts"),
    )

    result = handle_lint_on_push(ctx)

    assert result.ok and result.is_hidden and result.is_aborting
    assert result.reason == "Project does not contain any matching files"
    assert github.created_checks == []
    assert github.is_closed


def test_formatted_project_reports_success_and_closes_stale_pull_request(tmp_path: Path) -> None:
    git_ops = _FakeGitOps(files={"index.js": "const a = 1;\n"}, dirty=False)
    github = _FakeGitHubClient(
        open_pull_requests=[PullRequest(number=3, html_url="https://example/pr/3")]
    )
    runner = _FakeRunner(prettier_exit_code=0)
    ctx = _context(tmp_path, git_ops=git_ops, github=github, runner=runner)

    result = handle_lint_on_push(ctx)

    assert result.ok
    assert result.reason == (
        "Prettier found [owner/repo](https://github.com/owner/repo) to be formatted properly"
    )
    assert github.created_checks == ["Running `prettier`"]
    assert github.check_updates[0][0] == "success"
    assert runner.prettier_calls() == [
        ["npx", "--package=prettier", "--quiet", "prettier", "--write", "."]
    ]
    assert github.closed_prs == [3]
    assert github.deleted_branches == ["atomist/prettier-main"]
    assert git_ops.pushed_branches == []


def test_unformatted_project_raises_pull_request_on_default_branch(tmp_path: Path) -> None:
    git_ops = _FakeGitOps(files={"index.js": "const a=1"}, dirty=True)
    github = _FakeGitHubClient()
    ctx = _context(
        tmp_path,
        git_ops=git_ops,
        github=github,
        runner=_FakeRunner(prettier_exit_code=1),
        configuration=LintConfiguration(labels=["auto-merge:on-approve"]),
    )

    result = handle_lint_on_push(ctx)

    assert result.ok
    assert result.reason.startswith("Pushed changes to")
    assert github.check_updates[0][0] == "action_required"
    assert "not to be formatted properly" in github.check_updates[0][1]
    assert git_ops.checked_out == ["atomist/prettier-main"]
    assert git_ops.pushed_branches == ["atomist/prettier-main"]
    assert github.created_prs == [("Prettier fixes", "owner:atomist/prettier-main", "main")]
    assert github.labels == [["auto-merge:on-approve"]]
    assert github.closed_prs == []


def test_unformatted_project_commits_directly_on_feature_branch(tmp_path: Path) -> None:
    git_ops = _FakeGitOps(files={"index.js": "const a=1"}, dirty=True)
    github = _FakeGitHubClient()
    ctx = _context(
        tmp_path,
        git_ops=git_ops,
        github=github,
        runner=_FakeRunner(prettier_exit_code=1),
        push=_push_event(branch="feature"),
    )

    result = handle_lint_on_push(ctx)

    assert result.ok
    assert git_ops.pushed_branches == ["feature"]
    assert git_ops.commits and git_ops.commits[0].startswith("Prettier fixes")
    assert github.created_prs == []


def test_unformatted_project_without_push_strategy_runs_without_write(tmp_path: Path) -> None:
    git_ops = _FakeGitOps(files={"index.js": "const a=1"}, dirty=False)
    runner = _FakeRunner(prettier_exit_code=1)
    github = _FakeGitHubClient()
    ctx = _context(
        tmp_path,
        git_ops=git_ops,
        github=github,
        runner=runner,
        configuration=LintConfiguration(push=PushStrategy.NONE),
    )

    result = handle_lint_on_push(ctx)

    assert result.ok
    assert "--write" not in runner.prettier_calls()[0]
    assert git_ops.pushed_branches == []


def test_prettier_error_fails_with_captured_log(tmp_path: Path) -> None:
    github = _FakeGitHubClient()
    git_ops = _FakeGitOps(files={"index.js": "const a=1"})
    ctx = _context(
        tmp_path,
        git_ops=git_ops,
        github=github,
        runner=_FakeRunner(prettier_exit_code=2, prettier_log="[error] Invalid configuration"),
    )

    result = handle_lint_on_push(ctx)

    assert result.failed
    assert not result.is_hidden
    assert result.reason == "Running Prettier errored"
    conclusion, body = github.check_updates[0]
    assert conclusion == "action_required"
    assert "[error] Invalid configuration" in body
    assert github.closed_prs == []


def test_unknown_exit_code_is_hidden_failure(tmp_path: Path) -> None:
    github = _FakeGitHubClient()
    ctx = _context(
        tmp_path,
        git_ops=_FakeGitOps(files={"index.js": "const a=1"}),
        github=github,
        runner=_FakeRunner(prettier_exit_code=127),
    )

    result = handle_lint_on_push(ctx)

    assert result.failed
    assert result.is_hidden
    assert result.reason == "Unknown Prettier exit code"
    assert github.check_updates == [("action_required", "Unknown Prettier exit code: `127`")]


def test_temporary_config_and_ignore_files_are_removed_after_run(tmp_path: Path) -> None:
    runner = _FakeRunner(prettier_exit_code=2)
    ctx = _context(
        tmp_path,
        git_ops=_FakeGitOps(files={"index.js": "const a=1"}),
        github=_FakeGitHubClient(),
        runner=runner,
        configuration=LintConfiguration(ignores=["dist"], config='{"tabWidth": 4}'),
    )

    handle_lint_on_push(ctx)

    assert ".prettierignore-abcdef1" in runner.files_during_prettier
    assert "prettierrc-abcdef1.json" in runner.files_during_prettier
    assert not (tmp_path / "clone" / ".prettierignore-abcdef1").exists()
    assert not (tmp_path / "clone" / "prettierrc-abcdef1.json").exists()


def test_npm_project_without_prettier_fails_validation(tmp_path: Path) -> None:
    runner = _FakeRunner(installs_prettier=False)
    ctx = _context(
        tmp_path,
        git_ops=_FakeGitOps(files={"package.json": "{}", "index.js": "x"}),
        github=_FakeGitHubClient(),
        runner=runner,
    )

    result = handle_lint_on_push(ctx)

    assert result.failed
    assert not result.is_hidden
    assert result.reason == "No Prettier installed in [owner/repo](https://github.com/owner/repo)"
    assert runner.calls == [["npm", "install", *NPM_INSTALL_ARGS]]


def test_npm_project_with_lockfile_uses_ci_and_installs_modules(tmp_path: Path) -> None:
    git_ops = _FakeGitOps(
        files={"package.json": "{}", "package-lock.json": "{}", "index.js": "x"}
    )
    runner = _FakeRunner(installs_prettier=True)
    ctx = _context(
        tmp_path,
        git_ops=git_ops,
        github=_FakeGitHubClient(),
        runner=runner,
        configuration=LintConfiguration(modules=["prettier-plugin-organize-imports"]),
    )

    result = handle_lint_on_push(ctx)

    assert result.ok
    assert runner.calls[0] == ["npm", "ci", *NPM_INSTALL_ARGS]
    assert runner.calls[1] == [
        "npm",
        "install",
        "prettier-plugin-organize-imports",
        *NPM_DEV_INSTALL_ARGS,
    ]
    assert git_ops.resets == 1
    prettier_call = runner.prettier_calls()[0]
    assert prettier_call[0] == str(tmp_path / "clone" / "node_modules" / ".bin" / "prettier")


def test_failed_npm_install_fails_pipeline(tmp_path: Path) -> None:
    runner = _FakeRunner(npm_exit_code=1)
    github = _FakeGitHubClient()
    ctx = _context(
        tmp_path,
        git_ops=_FakeGitOps(files={"package.json": "{}", "index.js": "x"}),
        github=github,
        runner=runner,
    )

    result = handle_lint_on_push(ctx)

    assert result.failed
    assert result.reason.startswith("Failed to run step npm install")
    assert runner.prettier_calls() == []
    assert github.is_closed


def test_brace_glob_reaches_prettier(tmp_path: Path) -> None:
    runner = _FakeRunner(prettier_exit_code=0)
    github = _FakeGitHubClient()
    ctx = _context(
        tmp_path,
        git_ops=_FakeGitOps(files={"src/a.js": "x", "src/b.ts": "y", "README.md": "# readme"}),
        github=github,
        runner=runner,
        configuration=LintConfiguration(glob="**/*.{js,ts}", push=PushStrategy.NONE),
    )

    result = handle_lint_on_push(ctx)

    assert result.ok
    assert not result.is_aborting
    assert github.created_checks == ["Running `prettier`"]
    assert runner.prettier_calls() == [
        ["npx", "--package=prettier", "--quiet", "prettier", "**/*.{js,ts}"]
    ]

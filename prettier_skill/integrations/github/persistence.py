"""Persisting working tree changes back to GitHub.

Depending on the push strategy, changes are committed directly onto the
pushed branch or onto a fix branch for which a pull request is raised (or
updated when one is already open).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from prettier_skill.domain.configuration import PushStrategy
from prettier_skill.domain.push_event import CommitAuthor
from prettier_skill.integrations.git.git_ops import GitOps
from prettier_skill.integrations.github.github_client import GitHubClient
from prettier_skill.runtime import status
from prettier_skill.runtime.project import Project
from prettier_skill.runtime.status import Status


@dataclass(frozen=True)
class PushMetadata:
    """The push the changes are based on."""

    branch: str
    default_branch: str
    author: CommitAuthor | None = None


@dataclass(frozen=True)
class PullRequestMetadata:
    """Fix branch and PR details."""

    branch: str
    title: str
    body: str
    labels: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CommitMetadata:
    message: str


class ChangePersister:
    """Commits, pushes and raises pull requests for a project."""

    _logger = logging.getLogger(__name__)

    def __init__(self, *, github_client: GitHubClient, git_ops: GitOps, github_token: str) -> None:
        self._github_client = github_client
        self._git_ops = git_ops
        self._github_token = github_token

    def persist_changes(
        self,
        *,
        project: Project,
        strategy: PushStrategy,
        push: PushMetadata,
        pull_request: PullRequestMetadata,
        commit: CommitMetadata,
    ) -> Status:
        """Persists all working tree changes according to ``strategy``."""

        on_default_branch = push.branch == push.default_branch
        if strategy is PushStrategy.PR or (
            on_default_branch
            and strategy in {PushStrategy.PR_DEFAULT, PushStrategy.PR_DEFAULT_COMMIT}
        ):
            return self._raise_pull_request(
                project=project, push=push, pull_request=pull_request, commit=commit
            )
        if (
            strategy is PushStrategy.COMMIT
            or (on_default_branch and strategy is PushStrategy.COMMIT_DEFAULT)
            or (not on_default_branch and strategy is PushStrategy.PR_DEFAULT_COMMIT)
        ):
            return self._commit_to_branch(project=project, push=push, commit=commit)
        self._logger.info(
            "changes not persisted: repo=%s branch=%s strategy=%s",
            project.repo.slug,
            push.branch,
            strategy,
        )
        return status.success(
            f"Changes not persisted to branch `{push.branch}` because of push strategy `{strategy}`"
        ).hidden()

    def close_pull_requests(
        self,
        *,
        project: Project,
        base: str,
        head: str,
        comment: str,
    ) -> int:
        """Closes open PRs from ``head`` into ``base`` and deletes ``head``.

        Returns:
            Number of closed pull requests.
        """

        repo = project.repo.slug
        pull_requests = self._github_client.list_pull_requests(
            repo=repo, head_branch=head, base_branch=base
        )
        for pr in pull_requests:
            self._logger.info("closing pull request: repo=%s pr_number=%s", repo, pr.number)
            self._github_client.create_issue_comment(
                repo=repo, issue_number=pr.number, body=comment
            )
            self._github_client.update_pull_request(repo=repo, pr_number=pr.number, state="closed")
        if pull_requests:
            self._github_client.delete_branch(repo=repo, branch=head)
        return len(pull_requests)

    def _raise_pull_request(
        self,
        *,
        project: Project,
        push: PushMetadata,
        pull_request: PullRequestMetadata,
        commit: CommitMetadata,
    ) -> Status:
        repo = project.repo.slug
        repo_dir = str(project.base_dir)
        self._git_ops.checkout_branch(repo_dir=repo_dir, branch=pull_request.branch)
        self._commit(repo_dir=repo_dir, push=push, commit=commit)
        self._git_ops.push_branch(
            repo_dir=repo_dir,
            branch=pull_request.branch,
            github_token=self._github_token,
            force=True,
        )

        existing = self._github_client.list_pull_requests(
            repo=repo, head_branch=pull_request.branch, base_branch=push.branch
        )
        if existing:
            pr = existing[0]
            self._logger.info("updating pull request: repo=%s pr_number=%s", repo, pr.number)
            self._github_client.update_pull_request(
                repo=repo, pr_number=pr.number, title=pull_request.title, body=pull_request.body
            )
            verb = "updated"
        else:
            self._logger.info(
                "creating pull request: repo=%s base=%s head=%s",
                repo,
                push.branch,
                pull_request.branch,
            )
            pr = self._github_client.create_pull_request(
                repo=repo,
                title=pull_request.title,
                head=f"{project.repo.owner}:{pull_request.branch}",
                base=push.branch,
                body=pull_request.body,
            )
            verb = "raised"
        self._github_client.add_labels(
            repo=repo, issue_number=pr.number, labels=pull_request.labels
        )
        return status.success(
            f"Pushed changes to {project.repo.markdown_link} and {verb} "
            f"[#{pr.number}]({pr.html_url})"
        )

    def _commit_to_branch(
        self, *, project: Project, push: PushMetadata, commit: CommitMetadata
    ) -> Status:
        repo_dir = str(project.base_dir)
        self._commit(repo_dir=repo_dir, push=push, commit=commit)
        self._logger.info("pushing commit: repo=%s branch=%s", project.repo.slug, push.branch)
        self._git_ops.push_branch(
            repo_dir=repo_dir, branch=push.branch, github_token=self._github_token
        )
        return status.success(
            f"Pushed changes to {project.repo.markdown_link} on branch `{push.branch}`"
        )

    def _commit(self, *, repo_dir: str, push: PushMetadata, commit: CommitMetadata) -> None:
        author = push.author or CommitAuthor()
        self._git_ops.commit_all(
            repo_dir=repo_dir,
            message=commit.message,
            author_name=author.name,
            author_email=author.email,
        )

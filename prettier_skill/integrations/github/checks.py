"""GitHub check runs bound to one commit."""

from __future__ import annotations

from dataclasses import dataclass

from prettier_skill.integrations.github.github_client import CheckConclusion, GitHubClient


@dataclass(frozen=True)
class Check:
    """An open check run that can be completed once."""

    client: GitHubClient
    repo: str
    check_run_id: int
    title: str

    def update(self, *, conclusion: CheckConclusion, body: str) -> None:
        self.client.update_check_run(
            repo=self.repo,
            check_run_id=self.check_run_id,
            conclusion=conclusion,
            title=self.title,
            summary=body,
        )


def create_check(
    client: GitHubClient,
    *,
    repo: str,
    sha: str,
    name: str,
    title: str,
    body: str,
) -> Check:
    """Creates an in-progress check run on ``sha``."""

    check_run = client.create_check_run(
        repo=repo, name=name, head_sha=sha, title=title, summary=body
    )
    return Check(client=client, repo=repo, check_run_id=check_run.id, title=title)

"""GitHub REST API wrapper.

This module uses GitHub REST v3 endpoints. Authentication is performed via
``Authorization: Bearer <token>`` header.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

import httpx
from pydantic import BaseModel, Field

CheckConclusion = Literal["success", "action_required", "failure", "neutral"]


class GitHubApiError(RuntimeError):
    """Raised when GitHub API returns a non-success response."""

    def __init__(self, *, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error: status={status_code}, message={message}")
        self.status_code = status_code
        self.message = message


class CheckRun(BaseModel):
    """Subset of GitHub check run fields used by the skill."""

    id: int = Field(..., ge=1)
    html_url: str | None = None


class PullRequestRef(BaseModel):
    """Head or base of a PR."""

    ref: str


class PullRequest(BaseModel):
    """Subset of PR fields used by the skill."""

    number: int = Field(..., ge=1)
    html_url: str
    title: str | None = None
    body: str | None = None
    state: str = "open"
    head: PullRequestRef | None = None
    base: PullRequestRef | None = None


@dataclass(frozen=True)
class GitHubClientConfig:
    """GitHub client configuration."""

    api_base_url: str
    token: str


class GitHubClient:
    """Thin wrapper around GitHub REST API."""

    def __init__(
        self,
        *,
        config: GitHubClientConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=self._config.api_base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self._config.token}",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "prettier-skill",
            },
            timeout=httpx.Timeout(30.0),
            transport=transport,
        )

    def close(self) -> None:
        """Closes underlying HTTP client."""

        self._client.close()

    def verify_authentication(self) -> None:
        """Performs a cheap authenticated call that works for user and app tokens."""

        resp = self._client.get("/rate_limit")
        self._raise_for_error(resp)

    def create_check_run(
        self,
        *,
        repo: str,
        name: str,
        head_sha: str,
        title: str,
        summary: str,
    ) -> CheckRun:
        """Creates an in-progress check run on ``head_sha``."""

        resp = self._client.post(
            f"/repos/{repo}/check-runs",
            json={
                "name": name,
                "head_sha": head_sha,
                "status": "in_progress",
                "started_at": self._now(),
                "output": {"title": title, "summary": summary},
            },
        )
        self._raise_for_error(resp)
        return CheckRun.model_validate(resp.json())

    def update_check_run(
        self,
        *,
        repo: str,
        check_run_id: int,
        conclusion: CheckConclusion,
        title: str,
        summary: str,
    ) -> None:
        """Completes a check run with ``conclusion``."""

        resp = self._client.patch(
            f"/repos/{repo}/check-runs/{check_run_id}",
            json={
                "status": "completed",
                "conclusion": conclusion,
                "completed_at": self._now(),
                "output": {"title": title, "summary": summary},
            },
        )
        self._raise_for_error(resp)

    def list_pull_requests(
        self,
        *,
        repo: str,
        head_branch: str,
        base_branch: str | None = None,
        state: str = "open",
    ) -> list[PullRequest]:
        """Lists PRs whose head is ``owner:head_branch`` in the same repository."""

        owner = repo.split("/")[0]
        params = {"state": state, "head": f"{owner}:{head_branch}", "per_page": "100"}
        if base_branch is not None:
            params["base"] = base_branch
        return [
            PullRequest.model_validate(item)
            for item in self._paginate(f"/repos/{repo}/pulls", params=params)
        ]

    def create_pull_request(
        self,
        *,
        repo: str,
        title: str,
        head: str,
        base: str,
        body: str,
    ) -> PullRequest:
        """Creates a Ready PR (draft is disabled)."""

        resp = self._client.post(
            f"/repos/{repo}/pulls",
            json={
                "title": title,
                "head": head,
                "base": base,
                "body": body,
                "draft": False,
            },
        )
        self._raise_for_error(resp)
        return PullRequest.model_validate(resp.json())

    def update_pull_request(
        self,
        *,
        repo: str,
        pr_number: int,
        title: str | None = None,
        body: str | None = None,
        state: str | None = None,
    ) -> None:
        """Updates PR title, body and/or state."""

        payload: dict[str, str] = {}
        if title is not None:
            payload["title"] = title
        if body is not None:
            payload["body"] = body
        if state is not None:
            payload["state"] = state
        resp = self._client.patch(f"/repos/{repo}/pulls/{pr_number}", json=payload)
        self._raise_for_error(resp)

    def create_issue_comment(self, *, repo: str, issue_number: int, body: str) -> None:
        """Creates a timeline comment on an issue or PR."""

        resp = self._client.post(
            f"/repos/{repo}/issues/{issue_number}/comments",
            json={"body": body},
        )
        self._raise_for_error(resp)

    def add_labels(self, *, repo: str, issue_number: int, labels: list[str]) -> None:
        """Adds labels to an issue or PR."""

        if not labels:
            return
        resp = self._client.post(
            f"/repos/{repo}/issues/{issue_number}/labels",
            json={"labels": labels},
        )
        self._raise_for_error(resp)

    def delete_branch(self, *, repo: str, branch: str) -> None:
        """Deletes ``refs/heads/<branch>``. A missing branch is not an error."""

        resp = self._client.delete(f"/repos/{repo}/git/refs/heads/{branch}")
        if resp.status_code in {404, 422}:
            return
        self._raise_for_error(resp)

    def _paginate(self, path: str, *, params: dict[str, str]) -> Iterable[dict[str, object]]:
        next_url: str | None = str(self._client.base_url.join(path))
        current_params = dict(params)
        while next_url is not None:
            resp = self._client.get(next_url, params=current_params)
            self._raise_for_error(resp)
            payload = resp.json()
            if not isinstance(payload, list):
                raise GitHubApiError(
                    status_code=resp.status_code,
                    message="Unexpected payload type for pagination.",
                )
            for item in payload:
                if isinstance(item, dict):
                    yield item
            next_url = self._parse_next_link(resp.headers.get("Link"))
            current_params = {}

    @staticmethod
    def _now() -> str:
        return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")

    @staticmethod
    def _parse_next_link(link_header: str | None) -> str | None:
        if not link_header:
            return None
        # Example: <https://api.github.com/...page=2>; rel="next", <...>; rel="last"
        parts = [p.strip() for p in link_header.split(",")]
        for part in parts:
            if 'rel="next"' in part:
                left = part.find("<")
                right = part.find(">")
                if left >= 0 and right > left:
                    return part[left + 1 : right]
        return None

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> None:
        if 200 <= resp.status_code < 300:
            return
        message = resp.text
        raise GitHubApiError(status_code=resp.status_code, message=message)

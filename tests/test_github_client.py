from __future__ import annotations

import json

import httpx
import pytest

from prettier_skill.integrations.github.github_client import (
    GitHubApiError,
    GitHubClient,
    GitHubClientConfig,
)


def _client(handler) -> GitHubClient:
    return GitHubClient(
        config=GitHubClientConfig(api_base_url="https://api.github.test", token="token"),
        transport=httpx.MockTransport(handler),
    )


def test_check_run_is_created_in_progress_and_completed() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"id": 11, "html_url": "https://example/check/11"})

    client = _client(handler)
    check_run = client.create_check_run(
        repo="owner/repo", name="prettier-skill", head_sha="abc1234", title="Prettier", summary="s"
    )
    client.update_check_run(
        repo="owner/repo",
        check_run_id=check_run.id,
        conclusion="action_required",
        title="Prettier",
        summary="done",
    )

    assert check_run.id == 11
    created = json.loads(requests[0].content)
    assert requests[0].headers["Authorization"] == "Bearer token"
    assert created["status"] == "in_progress"
    assert created["output"] == {"title": "Prettier", "summary": "s"}
    assert requests[1].method == "PATCH"
    assert requests[1].url.path == "/repos/owner/repo/check-runs/11"
    completed = json.loads(requests[1].content)
    assert completed["status"] == "completed"
    assert completed["conclusion"] == "action_required"


def test_list_pull_requests_follows_pagination() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("page") == "2":
            return httpx.Response(200, json=[{"number": 2, "html_url": "https://example/pr/2"}])
        assert request.url.params["head"] == "owner:atomist/prettier-main"
        assert request.url.params["base"] == "main"
        return httpx.Response(
            200,
            json=[{"number": 1, "html_url": "https://example/pr/1"}],
            headers={
                "Link": '<https://api.github.test/repos/owner/repo/pulls?page=2>; rel="next"'
            },
        )

    pull_requests = _client(handler).list_pull_requests(
        repo="owner/repo", head_branch="atomist/prettier-main", base_branch="main"
    )

    assert [pr.number for pr in pull_requests] == [1, 2]


def test_add_labels_skips_request_without_labels() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    _client(handler).add_labels(repo="owner/repo", issue_number=1, labels=[])


def test_delete_missing_branch_is_not_an_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/repos/owner/repo/git/refs/heads/atomist/prettier-main"
        return httpx.Response(422, json={"message": "Reference does not exist"})

    _client(handler).delete_branch(repo="owner/repo", branch="atomist/prettier-main")


def test_error_response_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Bad credentials"})

    with pytest.raises(GitHubApiError) as exc_info:
        _client(handler).verify_authentication()

    assert exc_info.value.status_code == 401

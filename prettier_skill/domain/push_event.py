"""Push event model.

The event is read-only input to both pipelines. It can be posted directly or
derived from a GitHub ``push`` webhook payload.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_BRANCH_REF_PREFIX = "refs/heads/"
_NULL_SHA = "0" * 40


class Repository(BaseModel):
    """Repository the push happened on."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    url: str | None = None
    default_branch: str = "main"

    @property
    def slug(self) -> str:
        """Returns ``owner/name``."""

        return f"{self.owner}/{self.name}"

    @property
    def html_url(self) -> str:
        return self.url or f"https://github.com/{self.slug}"

    @property
    def markdown_link(self) -> str:
        return f"[{self.slug}]({self.html_url})"


class CommitAuthor(BaseModel):
    """Author identity of a commit."""

    model_config = ConfigDict(frozen=True)

    login: str | None = None
    name: str | None = None
    email: str | None = None


class Commit(BaseModel):
    """A commit referenced by the push."""

    model_config = ConfigDict(frozen=True)

    sha: str = Field(..., min_length=7)
    author: CommitAuthor | None = None

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


class PushEvent(BaseModel):
    """A push of ``before..after`` onto ``branch`` of ``repo``."""

    model_config = ConfigDict(frozen=True)

    repo: Repository
    branch: str
    before: Commit | None = None
    after: Commit

    @property
    def is_default_branch(self) -> bool:
        return self.branch == self.repo.default_branch

    @classmethod
    def from_github_webhook(cls, payload: dict[str, Any]) -> PushEvent | None:
        """Builds an event from a GitHub ``push`` webhook payload.

        Returns None for pushes that cannot be linted: tag pushes and
        branch deletions.
        """

        ref = str(payload.get("ref") or "")
        after_sha = str(payload.get("after") or "")
        if not ref.startswith(_BRANCH_REF_PREFIX):
            return None
        if payload.get("deleted") or not after_sha or after_sha == _NULL_SHA:
            return None

        repository = payload.get("repository") or {}
        owner_block = repository.get("owner") or {}
        if isinstance(owner_block, dict):
            owner = owner_block.get("login") or owner_block.get("name") or ""
        else:
            owner = str(owner_block)

        head_commit = payload.get("head_commit") or {}
        author_block = head_commit.get("author") or {}
        author = CommitAuthor(
            login=author_block.get("username"),
            name=author_block.get("name"),
            email=author_block.get("email"),
        )

        before_sha = str(payload.get("before") or "")
        before = (
            Commit(sha=before_sha) if before_sha and before_sha != _NULL_SHA else None
        )
        return cls(
            repo=Repository(
                owner=owner,
                name=repository.get("name") or "",
                url=repository.get("html_url"),
                default_branch=repository.get("default_branch") or "main",
            ),
            branch=ref[len(_BRANCH_REF_PREFIX) :],
            before=before,
            after=Commit(sha=after_sha, author=author),
        )

"""GitHub credential resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass


class CredentialError(RuntimeError):
    """Raised when no credential is available for a repository."""


@dataclass(frozen=True)
class GitHubCredential:
    """Token scoped to a repository."""

    token: str

    def __repr__(self) -> str:
        return "GitHubCredential(token=<REDACTED>)"


class CredentialResolver:
    """Resolves a GitHub credential for ``owner/repo``.

    A single configured token is used for every repository.
    """

    _logger = logging.getLogger(__name__)

    def __init__(self, *, token: str | None) -> None:
        self._token = token

    def resolve(self, *, owner: str, repo: str) -> GitHubCredential:
        if not self._token:
            raise CredentialError(
                f"No GitHub token configured for {owner}/{repo} (set GITHUB_TOKEN)."
            )
        self._logger.info("resolved github credential: repo=%s/%s", owner, repo)
        return GitHubCredential(token=self._token)

"""Selects the repositories the skill acts on."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from wcmatch import fnmatch

from prettier_skill.domain.push_event import Repository

_MATCH_FLAGS = fnmatch.IGNORECASE | fnmatch.BRACE


class RepositoryFilter(BaseModel):
    """Include and exclude patterns over ``owner/name`` slugs.

    Patterns are globs such as ``owner/*`` or ``owner/{api,web}``. An empty
    include list selects every repository; excludes win over includes.
    """

    model_config = ConfigDict(frozen=True)

    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)

    def matches(self, repo: Repository) -> bool:
        if self.include and not fnmatch.fnmatch(repo.slug, self.include, flags=_MATCH_FLAGS):
            return False
        if self.exclude and fnmatch.fnmatch(repo.slug, self.exclude, flags=_MATCH_FLAGS):
            return False
        return True

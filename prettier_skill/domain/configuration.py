"""Skill configuration parameters and their defaults."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

SKILL_NAME = "prettier-skill"
GENERATED_COMMIT_TRAILER = "[atomist:generated]\n[atomist-skill:atomist/prettier-skill]"

NPM_INSTALL_ARGS: tuple[str, ...] = ("--ignore-scripts", "--no-audit", "--no-fund")
NPM_DEV_INSTALL_ARGS: tuple[str, ...] = ("--save-dev", *NPM_INSTALL_ARGS)


class PushStrategy(StrEnum):
    """How fixes are committed back into the repository."""

    NONE = "none"
    PR_DEFAULT_COMMIT = "pr_default_commit"
    PR_DEFAULT = "pr_default"
    PR = "pr"
    COMMIT_DEFAULT = "commit_default"
    COMMIT = "commit"


class ConfigureMode(StrEnum):
    """Which project files the configuration-update pipeline maintains."""

    NONE = "none"
    PRETTIER_ONLY = "prettier_only"
    PRETTIER_AND_HOOK = "prettier_and_hook"


class LintConfiguration(BaseModel):
    """User-set skill parameters.

    Accepts the camelCase names used in skill configuration payloads
    (``commitMsg``) as well as the Python field names.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    glob: str = "."
    config: str | None = None
    ignores: list[str] = Field(default_factory=list)
    args: list[str] = Field(default_factory=list)
    modules: list[str] = Field(default_factory=list)
    push: PushStrategy = PushStrategy.PR_DEFAULT_COMMIT
    commit_msg: str = Field(
        default=f"Prettier fixes\n\n{GENERATED_COMMIT_TRAILER}",
        alias="commitMsg",
    )
    labels: list[str] = Field(default_factory=list)
    configure: ConfigureMode = ConfigureMode.NONE

    @field_validator("glob", mode="before")
    @classmethod
    def _default_empty_glob(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return "."
        return value

    @field_validator("config", mode="before")
    @classmethod
    def _blank_config_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def applies_fixes(self) -> bool:
        """True when Prettier should run with ``--write``."""

        return self.push is not PushStrategy.NONE


DEFAULT_LINT_CONFIGURATION = LintConfiguration()


def merge_configuration(
    parameters: Mapping[str, Any] | LintConfiguration | None,
    *,
    defaults: LintConfiguration = DEFAULT_LINT_CONFIGURATION,
) -> LintConfiguration:
    """Merges user ``parameters`` over ``defaults``.

    Keys that are missing or explicitly null keep their default value.
    """

    if isinstance(parameters, LintConfiguration):
        return parameters
    merged: dict[str, Any] = defaults.model_dump(by_alias=True)
    for key, value in (parameters or {}).items():
        if value is None:
            continue
        merged[_ALIASES.get(key, key)] = value
    return LintConfiguration.model_validate(merged)


_ALIASES = {"commit_msg": "commitMsg"}

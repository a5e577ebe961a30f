"""Application configuration.

All secrets must be supplied via environment variables. This module intentionally
avoids printing secret values.
"""

from __future__ import annotations

from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from prettier_skill.domain.configuration import LintConfiguration
from prettier_skill.domain.repository_filter import RepositoryFilter


class AppSettings(BaseSettings):
    """Settings for the skill worker process."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # GitHub auth
    github_token: str | None = None
    github_api_base_url: str = "https://api.github.com"
    github_server_url: str = "https://github.com"
    github_webhook_secret: str | None = None

    # Work root for per-event clones. If unset, a default is detected.
    work_root: str | None = None

    # Git committer identity used for fix commits
    git_author_name: str = "prettier-skill-bot"
    git_author_email: str = "prettier-skill-bot@example.com"

    # Pushes to branches with this prefix were made by the skill itself
    generated_branch_prefix: str = "atomist/"

    # Skill parameters used when an event does not carry its own (JSON)
    skill_configuration: LintConfiguration = LintConfiguration()

    # Repositories the skill acts on (JSON), e.g. {"include": ["owner/*"]}
    repos: RepositoryFilter = RepositoryFilter()

    # Server
    listen_host: str = "0.0.0.0"
    listen_port: int = 8000

    @field_validator("github_token", "github_webhook_secret", mode="before")
    @classmethod
    def _normalize_env_string(cls, value: Any) -> Any:
        """Normalizes env var strings.

        Docker's `--env-file` does not strip quotes. To avoid subtle auth failures
        like 401 caused by surrounding quotes, we trim whitespace and strip a
        single pair of surrounding quotes.
        """

        if value is None or not isinstance(value, str):
            return value
        text = value.strip()
        if len(text) >= 2 and ((text[0] == text[-1] == '"') or (text[0] == text[-1] == "'")):
            text = text[1:-1].strip()
        return text or None

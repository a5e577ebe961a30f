"""Startup validation for required credentials and tools.

This module validates that the GitHub token works and that the command line
tools the pipelines shell out to are installed before events are processed.
"""

from __future__ import annotations

from prettier_skill.core.config import AppSettings
from prettier_skill.integrations.github.github_client import (
    GitHubApiError,
    GitHubClient,
    GitHubClientConfig,
)
from prettier_skill.integrations.process.subprocess_utils import CommandRunner

REQUIRED_TOOLS: tuple[str, ...] = ("git", "npm", "npx")


class ValidationError(RuntimeError):
    """Raised when validation fails."""


def validate_github_token(*, token: str, api_base_url: str) -> None:
    """Validates GitHub token by making an API call.

    Args:
        token: GitHub token to validate.
        api_base_url: GitHub API base URL.

    Raises:
        ValidationError: If token is invalid.
    """
    client = GitHubClient(config=GitHubClientConfig(api_base_url=api_base_url, token=token))
    try:
        client.verify_authentication()
    except GitHubApiError as exc:
        if exc.status_code == 401:
            raise ValidationError(
                "GitHub token is invalid or expired. Please verify that GITHUB_TOKEN is correct."
            ) from exc
        raise ValidationError(
            f"GitHub API error: status={exc.status_code}, message={exc.message}"
        ) from exc
    finally:
        client.close()


def validate_tool(*, name: str, runner: CommandRunner | None = None) -> None:
    """Validates that ``name --version`` runs.

    Raises:
        ValidationError: If the tool is missing or not runnable.
    """
    runner = runner or CommandRunner()
    try:
        result = runner.run(args=[name, "--version"])
    except OSError as exc:
        raise ValidationError(f"{name} is not installed or not in PATH.") from exc
    if result.exit_code != 0:
        raise ValidationError(f"{name} is not runnable: exit_code={result.exit_code}")


def validate_all(*, settings: AppSettings, runner: CommandRunner | None = None) -> None:
    """Validates all required credentials and tools.

    Args:
        settings: Application settings.
        runner: Command runner used for tool checks.

    Raises:
        ValidationError: If any validation fails.
    """
    errors: list[str] = []

    if not settings.github_token:
        errors.append("GITHUB_TOKEN is required but not set.")
    else:
        try:
            validate_github_token(
                token=settings.github_token, api_base_url=settings.github_api_base_url
            )
        except ValidationError as exc:
            errors.append(f"GitHub token validation failed: {exc}")

    for tool in REQUIRED_TOOLS:
        try:
            validate_tool(name=tool, runner=runner)
        except ValidationError as exc:
            errors.append(f"Tool validation failed: {exc}")

    if errors:
        error_message = "Startup validation failed:\n\n" + "\n".join(f"  - {err}" for err in errors)
        raise ValidationError(error_message)

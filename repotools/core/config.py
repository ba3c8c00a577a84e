"""Settings for the git engine, the GitHub client and the CLI.

Values come from ``REPOTOOLS_*`` environment variables or a ``.env`` file.
Tokens are never included in error messages raised from here.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from repotools.integrations.git.credentials import Authentication
from repotools.integrations.git.git_ops import GitOpsConfig
from repotools.integrations.github.github_client import GitHubClientConfig


class AppSettings(BaseSettings):
    """Settings for the toolkit."""

    model_config = SettingsConfigDict(
        env_prefix="REPOTOOLS_",
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # git
    git_executable: str = "git"
    execution_folder_path: str | None = None
    # Either a bare token, or a JSON object mapping "org" / "org/repo" to tokens.
    git_authentication: str | None = None
    show_command: bool = False
    show_result: bool = False

    # GitHub REST API
    github_token: str | None = None
    github_api_base_url: str = "https://api.github.com"

    log_level: str = "INFO"

    @field_validator("git_authentication", "github_token", mode="before")
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

    def parsed_git_authentication(self) -> Authentication:
        """Returns the git authentication as a token or a scope mapping.

        Raises:
            ValueError: If the value looks like JSON but is not an object of strings.
        """

        raw = self.git_authentication
        if raw is None or not raw.startswith("{"):
            return raw
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError("REPOTOOLS_GIT_AUTHENTICATION is not valid JSON.") from exc
        if not isinstance(payload, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in payload.items()
        ):
            raise ValueError("REPOTOOLS_GIT_AUTHENTICATION must map scope names to token strings.")
        return payload

    def to_git_ops_config(self) -> GitOpsConfig:
        """Builds the git engine configuration from these settings."""

        return GitOpsConfig(
            executable=self.git_executable,
            execution_folder_path=self.execution_folder_path,
            authentication=self.parsed_git_authentication(),
            show_command=self.show_command,
            show_result=self.show_result,
            capture_output=self.show_result,
            capture_error=self.show_result,
        )

    def to_github_client_config(self) -> GitHubClientConfig:
        """Builds the GitHub client configuration.

        Raises:
            ValueError: If no GitHub token is configured.
        """

        if not self.github_token:
            raise ValueError("REPOTOOLS_GITHUB_TOKEN is required for GitHub API access.")
        return GitHubClientConfig(api_base_url=self.github_api_base_url, token=self.github_token)

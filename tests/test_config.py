from __future__ import annotations

from pathlib import Path

import pytest

from repotools.core.config import AppSettings


def test_app_settings_can_load_from_dotenv(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "\n".join(
            [
                "REPOTOOLS_GIT_EXECUTABLE=/usr/local/bin/git",
                "REPOTOOLS_GIT_AUTHENTICATION=token_from_env_file",
                "REPOTOOLS_GITHUB_TOKEN=gh_from_env_file",
                "REPOTOOLS_SHOW_COMMAND=true",
            ]
        )
        + "\n",
        encoding="utf-8",
    )

    settings = AppSettings(_env_file=str(env_file))
    assert settings.git_executable == "/usr/local/bin/git"
    assert settings.git_authentication == "token_from_env_file"
    assert settings.github_token == "gh_from_env_file"
    assert settings.show_command is True
    assert settings.show_result is False


def test_app_settings_strips_surrounding_quotes_from_env(monkeypatch) -> None:
    monkeypatch.setenv("REPOTOOLS_GIT_AUTHENTICATION", '"quoted_token"')
    monkeypatch.setenv("REPOTOOLS_GITHUB_TOKEN", "'quoted_github'")
    settings = AppSettings()
    assert settings.git_authentication == "quoted_token"
    assert settings.github_token == "quoted_github"


def test_blank_quoted_token_becomes_none(monkeypatch) -> None:
    monkeypatch.setenv("REPOTOOLS_GITHUB_TOKEN", '""')
    assert AppSettings().github_token is None


def test_git_authentication_json_is_parsed_into_a_scope_mapping() -> None:
    settings = AppSettings(
        git_authentication='{"ts-common": "org-token", "ts-common/azure-js-dev": "repo-token"}'
    )
    assert settings.parsed_git_authentication() == {
        "ts-common": "org-token",
        "ts-common/azure-js-dev": "repo-token",
    }


def test_git_authentication_plain_token_is_returned_as_is() -> None:
    assert AppSettings(git_authentication="abc").parsed_git_authentication() == "abc"
    assert AppSettings(git_authentication=None).parsed_git_authentication() is None


@pytest.mark.parametrize("raw", ['{"not json', '{"org": 1}'])
def test_invalid_git_authentication_json_is_rejected(raw: str) -> None:
    with pytest.raises(ValueError):
        AppSettings(git_authentication=raw).parsed_git_authentication()


def test_to_git_ops_config_carries_settings() -> None:
    settings = AppSettings(
        git_executable="git2",
        execution_folder_path="/work",
        git_authentication="tok",
        show_command=True,
        show_result=True,
    )
    config = settings.to_git_ops_config()
    assert config.executable == "git2"
    assert config.execution_folder_path == "/work"
    assert config.authentication == "tok"
    assert config.show_command is True
    assert config.show_result is True
    assert config.capture_output is True
    assert config.capture_error is True


def test_to_github_client_config_requires_token() -> None:
    with pytest.raises(ValueError):
        AppSettings(github_token=None).to_github_client_config()
    settings = AppSettings(github_token="gh", github_api_base_url="https://ghe.example/api/v3")
    config = settings.to_github_client_config()
    assert config.token == "gh"
    assert config.api_base_url == "https://ghe.example/api/v3"

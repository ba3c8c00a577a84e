from __future__ import annotations

import pytest

from repotools.integrations.git.credentials import (
    REDACTED,
    Redactor,
    authenticate_url,
    configured_tokens,
    inject_credential,
    redact,
    resolve_token,
)

URL = "https://github.com/ts-common/azure-js-dev-tools.git"


def test_plain_token_applies_to_every_url() -> None:
    assert resolve_token(URL, "abc") == "abc"
    assert resolve_token("https://example.com/x/y", "abc") == "abc"


def test_no_authentication_resolves_nothing() -> None:
    assert resolve_token(URL, None) is None
    assert resolve_token(URL, "") is None
    assert resolve_token(URL, {}) is None


def test_repository_key_wins_over_organization_key() -> None:
    authentication = {"ts-common": "org-token", "ts-common/azure-js-dev-tools": "repo-token"}
    assert resolve_token(URL, authentication) == "repo-token"


def test_organization_key_applies_to_any_repository_in_it() -> None:
    assert resolve_token(URL, {"ts-common": "org-token"}) == "org-token"


def test_organization_key_matches_regardless_of_case() -> None:
    assert resolve_token(URL, {"TS-COMMON": "org-token"}) == "org-token"


def test_repository_key_must_match_exactly() -> None:
    assert resolve_token(URL, {"ts-common/azure-js-dev": "repo-token"}) is None


def test_other_organization_does_not_match() -> None:
    assert resolve_token(URL, {"azure": "token"}) is None


def test_inject_credential_places_token_in_user_info() -> None:
    assert inject_credential(URL, "abc") == "https://abc@github.com/ts-common/azure-js-dev-tools.git"


def test_inject_credential_replaces_existing_user_info() -> None:
    assert inject_credential("https://old@github.com/a/b", "new") == "https://new@github.com/a/b"


@pytest.mark.parametrize("url", ["/local/path/repo", "git@github.com:ts-common/repo.git"])
def test_inject_credential_leaves_urls_without_host_unchanged(url: str) -> None:
    assert inject_credential(url, "abc") == url


def test_authenticate_url_without_matching_scope_is_unchanged() -> None:
    assert authenticate_url(URL, {"other": "t"}) == URL
    assert authenticate_url(URL, {"ts-common": "t"}) == (
        "https://t@github.com/ts-common/azure-js-dev-tools.git"
    )


def test_configured_tokens() -> None:
    assert configured_tokens(None) == []
    assert configured_tokens("abc") == ["abc"]
    assert sorted(configured_tokens({"a": "1", "b": "2", "c": ""})) == ["1", "2"]


@pytest.mark.parametrize(
    "authentication",
    ["s3cr3t", {"ts-common": "s3cr3t"}, {"ts-common/azure-js-dev-tools": "s3cr3t", "x": "other"}],
)
def test_injected_url_is_fully_redacted(authentication) -> None:
    injected = authenticate_url(URL, authentication)
    assert "s3cr3t" in injected
    redacted = redact(injected, authentication)
    assert "s3cr3t" not in redacted
    assert REDACTED in redacted


def test_redactor_replaces_longer_secret_first() -> None:
    redactor = Redactor(["abc", "abcdef"])
    assert redactor.redact("x abcdef y abc") == f"x {REDACTED} y {REDACTED}"


def test_redactor_without_secrets_is_identity() -> None:
    assert Redactor().redact("nothing to hide") == "nothing to hide"

"""Token scoping, URL credential injection and log redaction for git.

Authentication is either a single token that applies to every remote URL, or
a mapping whose keys are an organization (``"ts-common"``) or a full
repository name (``"ts-common/azure-js-dev-tools"``). The full repository name
always wins over the organization key.

Security requirements:
  - Tokens never reach a log sink; every logged line goes through ``Redactor``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from urllib.parse import urlsplit, urlunsplit

REDACTED = "<redacted>"

Authentication = str | Mapping[str, str] | None


def _repository_path_segments(url: str) -> tuple[str, str]:
    path = urlsplit(url).path
    segments = [segment for segment in path.split("/") if segment]
    organization = segments[0] if segments else ""
    repository = segments[1] if len(segments) > 1 else ""
    if repository.endswith(".git"):
        repository = repository[: -len(".git")]
    return organization, repository


def resolve_token(url: str, authentication: Authentication) -> str | None:
    """Returns the token that applies to ``url``, or None.

    Repository keys are matched exactly. Organization keys are matched without
    regard to case, since hosting services treat organization names that way.
    """

    if authentication is None:
        return None
    if isinstance(authentication, str):
        return authentication or None

    organization, repository = _repository_path_segments(url)
    if not organization:
        return None

    if repository:
        token = authentication.get(f"{organization}/{repository}")
        if token:
            return token

    lowered_organization = organization.lower()
    for key, token in authentication.items():
        if "/" not in key and key.lower() == lowered_organization and token:
            return token
    return None


def inject_credential(url: str, token: str) -> str:
    """Places ``token`` in the user-info segment of ``url``.

    Existing user-info is replaced. URLs without a network location (local
    paths, scp-style ``git@host:org/repo``) are returned unchanged.
    """

    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[-1]
    return urlunsplit((parts.scheme, f"{token}@{host}", parts.path, parts.query, parts.fragment))


def authenticate_url(url: str, authentication: Authentication) -> str:
    """Injects the resolved token into ``url`` when one applies."""

    token = resolve_token(url, authentication)
    if token is None:
        return url
    return inject_credential(url, token)


def configured_tokens(authentication: Authentication) -> list[str]:
    """Returns every token value held by ``authentication``."""

    if authentication is None:
        return []
    if isinstance(authentication, str):
        return [authentication] if authentication else []
    return [token for token in authentication.values() if token]


class Redactor:
    """Replaces known secret values with a fixed placeholder."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        # Longest first so a token that contains another is replaced whole.
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    @classmethod
    def for_authentication(cls, authentication: Authentication) -> Redactor:
        return cls(configured_tokens(authentication))

    def redact(self, text: str) -> str:
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text


def redact(text: str, authentication: Authentication) -> str:
    """Redacts every token configured in ``authentication`` from ``text``."""

    return Redactor.for_authentication(authentication).redact(text)

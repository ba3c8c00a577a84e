"""GitHub REST API wrapper.

This module uses GitHub REST v3 endpoints. Authentication is performed via
``Authorization: Bearer <token>`` header.

Repositories are identified by ``"owner/name"``; a backslash is accepted as
the separator too. Identifiers without an owner are rejected before any
request is sent.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, Field


class GitHubApiError(RuntimeError):
    """Raised when GitHub API returns a non-success response."""

    def __init__(self, *, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error: status={status_code}, message={message}")
        self.status_code = status_code
        self.message = message


class GitHubUser(BaseModel):
    """Subset of GitHub user fields."""

    id: int
    login: str
    node_id: str | None = None
    name: str | None = None
    url: str | None = None
    site_admin: bool = False


class GitHubLabel(BaseModel):
    """Subset of GitHub label fields."""

    id: int
    name: str
    color: str
    default: bool = False
    node_id: str | None = None
    url: str | None = None


class GitHubSprintLabel(BaseModel):
    """A label named ``Sprint-<n>`` (or ``Sprint <n>``)."""

    sprint_number: int
    name: str
    color: str


class GitHubMilestone(BaseModel):
    """Subset of GitHub milestone fields."""

    number: int = Field(..., ge=1)
    title: str
    state: str = "open"
    due_on: str | None = None
    open_issues: int = 0
    closed_issues: int = 0


class GitHubCommit(BaseModel):
    """Head or base of a pull request."""

    label: str
    ref: str
    sha: str


class GitHubPullRequest(BaseModel):
    """Subset of GitHub pull request fields."""

    id: int
    number: int = Field(..., ge=1)
    title: str
    state: str
    url: str
    html_url: str
    diff_url: str | None = None
    body: str | None = None
    base: GitHubCommit
    head: GitHubCommit
    labels: list[GitHubLabel] = Field(default_factory=list)
    merge_commit_sha: str | None = None
    assignees: list[GitHubUser] | None = None
    milestone: GitHubMilestone | None = None


class GitHubComment(BaseModel):
    """Subset of GitHub issue comment fields."""

    id: int = Field(..., ge=1)
    body: str | None = None
    user: GitHubUser | None = None
    html_url: str | None = None


@dataclass(frozen=True)
class GitHubRepository:
    """Owner and name of a repository."""

    organization: str
    name: str


def get_github_repository(repository: str | GitHubRepository) -> GitHubRepository:
    """Splits ``"owner/name"`` (or ``"owner\\name"``) into its parts."""

    if isinstance(repository, GitHubRepository):
        return repository
    match = re.match(r"^(?P<organization>[^/\\]*)[/\\](?P<name>.*)$", repository)
    if match is None:
        return GitHubRepository(organization="", name=repository)
    return GitHubRepository(organization=match.group("organization"), name=match.group("name"))


def get_repository_full_name(repository: str | GitHubRepository | None) -> str:
    if not repository:
        return ""
    if isinstance(repository, str):
        return repository
    if not repository.organization:
        return repository.name
    return f"{repository.organization}/{repository.name}"


def pull_request_get_label(pull_request: GitHubPullRequest, label_name: str) -> GitHubLabel | None:
    if not label_name:
        return None
    for label in pull_request.labels:
        if label.name == label_name:
            return label
    return None


def pull_request_get_labels(
    pull_request: GitHubPullRequest, label_names: str | Sequence[str]
) -> list[GitHubLabel]:
    names = [label_names] if isinstance(label_names, str) else list(label_names)
    return [label for label in pull_request.labels if label.name in names]


def pull_request_get_assignee(
    pull_request: GitHubPullRequest, assignee: int | str | GitHubUser | None
) -> GitHubUser | None:
    """Finds an assignee by id, login, or user object."""

    if assignee is None or not pull_request.assignees:
        return None
    for user in pull_request.assignees:
        if isinstance(assignee, GitHubUser):
            if user.id == assignee.id and user.login == assignee.login:
                return user
        elif isinstance(assignee, int):
            if user.id == assignee:
                return user
        elif user.login == assignee:
            return user
    return None


_SPRINT_LABEL = re.compile(r"^sprint[- ]?(?P<number>\d+)$", re.IGNORECASE)


def get_sprint_label(label: GitHubLabel) -> GitHubSprintLabel | None:
    match = _SPRINT_LABEL.match(label.name.strip())
    if match is None:
        return None
    return GitHubSprintLabel(
        sprint_number=int(match.group("number")), name=label.name, color=label.color
    )


@dataclass(frozen=True)
class GitHubClientConfig:
    """GitHub client configuration."""

    api_base_url: str
    token: str


class GitHubClient:
    """Thin wrapper around GitHub REST API."""

    def __init__(
        self,
        *,
        config: GitHubClientConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.Client(
            base_url=self._config.api_base_url,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self._config.token}",
                "X-GitHub-Api-Version": "2022-11-28",
                "User-Agent": "repotools",
            },
            timeout=httpx.Timeout(30.0),
            transport=transport,
        )

    def close(self) -> None:
        """Closes underlying HTTP client."""

        self._client.close()

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_current_user(self) -> GitHubUser:
        resp = self._client.get("/user")
        self._raise_for_error(resp)
        return GitHubUser.model_validate(resp.json())

    def get_labels(self, repo: str | GitHubRepository) -> list[GitHubLabel]:
        path = f"/repos/{self._repository_path(repo)}/labels"
        return [GitHubLabel.model_validate(item) for item in self._paginate(path)]

    def get_sprint_labels(self, repo: str | GitHubRepository) -> list[GitHubSprintLabel]:
        """Returns sprint labels ordered by sprint number."""

        sprint_labels = [
            sprint_label
            for sprint_label in (get_sprint_label(label) for label in self.get_labels(repo))
            if sprint_label is not None
        ]
        sprint_labels.sort(key=lambda label: label.sprint_number)
        return sprint_labels

    def create_label(self, repo: str | GitHubRepository, *, name: str, color: str) -> GitHubLabel:
        if not name:
            raise ValueError("name must not be empty.")
        if not color:
            raise ValueError("color must not be empty.")
        resp = self._client.post(
            f"/repos/{self._repository_path(repo)}/labels",
            json={"name": name, "color": color},
        )
        self._raise_for_error(resp)
        return GitHubLabel.model_validate(resp.json())

    def delete_label(self, repo: str | GitHubRepository, *, name: str) -> None:
        resp = self._client.delete(f"/repos/{self._repository_path(repo)}/labels/{name}")
        self._raise_for_error(resp)

    def add_pull_request_labels(
        self, repo: str | GitHubRepository, *, pr_number: int, label_names: Sequence[str]
    ) -> list[GitHubLabel]:
        resp = self._client.post(
            f"/repos/{self._repository_path(repo)}/issues/{pr_number}/labels",
            json={"labels": list(label_names)},
        )
        self._raise_for_error(resp)
        return [GitHubLabel.model_validate(item) for item in resp.json()]

    def remove_pull_request_label(
        self, repo: str | GitHubRepository, *, pr_number: int, label_name: str
    ) -> None:
        resp = self._client.delete(
            f"/repos/{self._repository_path(repo)}/issues/{pr_number}/labels/{label_name}"
        )
        self._raise_for_error(resp)

    def get_milestones(
        self, repo: str | GitHubRepository, *, state: str = "open"
    ) -> list[GitHubMilestone]:
        path = f"/repos/{self._repository_path(repo)}/milestones"
        return [
            GitHubMilestone.model_validate(item)
            for item in self._paginate(path, params={"per_page": "100", "state": state})
        ]

    def create_milestone(
        self, repo: str | GitHubRepository, *, title: str, due_on: str | None = None
    ) -> GitHubMilestone:
        payload: dict[str, str] = {"title": title}
        if due_on is not None:
            payload["due_on"] = due_on
        resp = self._client.post(f"/repos/{self._repository_path(repo)}/milestones", json=payload)
        self._raise_for_error(resp)
        return GitHubMilestone.model_validate(resp.json())

    def close_milestone(self, repo: str | GitHubRepository, *, milestone_number: int) -> GitHubMilestone:
        resp = self._client.patch(
            f"/repos/{self._repository_path(repo)}/milestones/{milestone_number}",
            json={"state": "closed"},
        )
        self._raise_for_error(resp)
        return GitHubMilestone.model_validate(resp.json())

    def get_pull_request(self, repo: str | GitHubRepository, *, pr_number: int) -> GitHubPullRequest:
        resp = self._client.get(f"/repos/{self._repository_path(repo)}/pulls/{pr_number}")
        self._raise_for_error(resp)
        return GitHubPullRequest.model_validate(resp.json())

    def get_pull_requests(
        self, repo: str | GitHubRepository, *, state: str = "open"
    ) -> list[GitHubPullRequest]:
        path = f"/repos/{self._repository_path(repo)}/pulls"
        return [
            GitHubPullRequest.model_validate(item)
            for item in self._paginate(path, params={"per_page": "100", "state": state})
        ]

    def create_pull_request(
        self,
        repo: str | GitHubRepository,
        *,
        title: str,
        head: str,
        base: str,
        body: str = "",
        draft: bool = False,
    ) -> GitHubPullRequest:
        resp = self._client.post(
            f"/repos/{self._repository_path(repo)}/pulls",
            json={"title": title, "head": head, "base": base, "body": body, "draft": draft},
        )
        self._raise_for_error(resp)
        return GitHubPullRequest.model_validate(resp.json())

    def close_pull_request(self, repo: str | GitHubRepository, *, pr_number: int) -> GitHubPullRequest:
        resp = self._client.patch(
            f"/repos/{self._repository_path(repo)}/pulls/{pr_number}",
            json={"state": "closed"},
        )
        self._raise_for_error(resp)
        return GitHubPullRequest.model_validate(resp.json())

    def merge_pull_request(
        self,
        repo: str | GitHubRepository,
        *,
        pr_number: int,
        merge_method: str = "merge",
    ) -> str:
        """Merges a PR and returns the merge commit SHA."""

        resp = self._client.put(
            f"/repos/{self._repository_path(repo)}/pulls/{pr_number}/merge",
            json={"merge_method": merge_method},
        )
        self._raise_for_error(resp)
        return str(resp.json().get("sha", ""))

    def set_pull_request_milestone(
        self, repo: str | GitHubRepository, *, pr_number: int, milestone_number: int | None
    ) -> None:
        # Pull requests share the issues endpoint for milestones.
        resp = self._client.patch(
            f"/repos/{self._repository_path(repo)}/issues/{pr_number}",
            json={"milestone": milestone_number},
        )
        self._raise_for_error(resp)

    def get_pull_request_comments(
        self, repo: str | GitHubRepository, *, pr_number: int
    ) -> list[GitHubComment]:
        path = f"/repos/{self._repository_path(repo)}/issues/{pr_number}/comments"
        return [GitHubComment.model_validate(item) for item in self._paginate(path)]

    def create_pull_request_comment(
        self, repo: str | GitHubRepository, *, pr_number: int, body: str
    ) -> GitHubComment:
        """Creates an issue-comment on a PR (timeline comment)."""

        resp = self._client.post(
            f"/repos/{self._repository_path(repo)}/issues/{pr_number}/comments",
            json={"body": body},
        )
        self._raise_for_error(resp)
        return GitHubComment.model_validate(resp.json())

    def update_pull_request_comment(
        self, repo: str | GitHubRepository, *, comment_id: int, body: str
    ) -> GitHubComment:
        resp = self._client.patch(
            f"/repos/{self._repository_path(repo)}/issues/comments/{comment_id}",
            json={"body": body},
        )
        self._raise_for_error(resp)
        return GitHubComment.model_validate(resp.json())

    def delete_pull_request_comment(self, repo: str | GitHubRepository, *, comment_id: int) -> None:
        resp = self._client.delete(
            f"/repos/{self._repository_path(repo)}/issues/comments/{comment_id}"
        )
        self._raise_for_error(resp)

    @staticmethod
    def _repository_path(repo: str | GitHubRepository) -> str:
        repository = get_github_repository(repo)
        if not repository.organization or not repository.name:
            raise ValueError(f"Repository must be in 'owner/name' format: {repo!r}")
        return f"{repository.organization}/{repository.name}"

    def _paginate(
        self, path: str, *, params: dict[str, str] | None = None
    ) -> Iterable[dict[str, object]]:
        next_url: str | None = str(self._client.base_url.join(path))
        current_params = dict(params) if params is not None else {"per_page": "100"}
        while next_url is not None:
            resp = self._client.get(next_url, params=current_params)
            self._raise_for_error(resp)
            payload = resp.json()
            if not isinstance(payload, list):
                raise GitHubApiError(
                    status_code=resp.status_code,
                    message="Unexpected payload type for pagination.",
                )
            for item in payload:
                if isinstance(item, dict):
                    yield item
            next_url = self._parse_next_link(resp.headers.get("Link"))
            current_params = {}

    @staticmethod
    def _parse_next_link(link_header: str | None) -> str | None:
        if not link_header:
            return None
        # Example: <https://api.github.com/...page=2>; rel="next", <...>; rel="last"
        parts = [p.strip() for p in link_header.split(",")]
        for part in parts:
            if 'rel="next"' in part:
                left = part.find("<")
                right = part.find(">")
                if left >= 0 and right > left:
                    return part[left + 1 : right]
        return None

    @staticmethod
    def _raise_for_error(resp: httpx.Response) -> None:
        if 200 <= resp.status_code < 300:
            return
        message = resp.text
        raise GitHubApiError(status_code=resp.status_code, message=message)

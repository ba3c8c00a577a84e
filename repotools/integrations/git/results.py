"""Typed results of git operations.

Every result keeps the raw ``exit_code``/``stdout``/``stderr``/``process_id``/
``error`` fields exactly as the runner returned them, so callers can always
fall back to the text git produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Self

from repotools.integrations.git.credentials import Redactor
from repotools.integrations.process.subprocess_utils import CommandResult


class GitCommandError(RuntimeError):
    """Raised when a git command fails and the caller asked for an exception."""

    def __init__(
        self,
        *,
        message: str,
        command_display: str | None = None,
        exit_code: int | None = None,
        stderr: str | None = None,
    ) -> None:
        parts: list[str] = [message]
        if command_display:
            parts.append(f"command={command_display}")
        if exit_code is not None:
            parts.append(f"exit_code={exit_code}")
        if stderr:
            stderr_text = stderr.strip()
            if len(stderr_text) > 2000:
                stderr_text = stderr_text[-2000:]
            parts.append(f"stderr={stderr_text}")
        super().__init__(" | ".join(parts))
        self.command_display = command_display
        self.exit_code = exit_code
        self.stderr = stderr


@dataclass(frozen=True)
class GitRemoteBranch:
    """A branch on a remote, e.g. ``origin`` + ``master``."""

    repository_tracking_name: str
    branch_name: str


@dataclass(frozen=True)
class GitResult:
    """Raw outcome of a single git invocation."""

    exit_code: int | None = None
    stdout: str | None = None
    stderr: str | None = None
    process_id: int | None = None
    error: Exception | None = None

    @classmethod
    def compose(cls, raw: CommandResult, **parsed: Any) -> Self:
        """Merges a raw runner result with parsed fields into ``cls``."""

        return cls(
            exit_code=raw.exit_code,
            stdout=raw.stdout,
            stderr=raw.stderr,
            process_id=raw.process_id,
            error=raw.error,
            **parsed,
        )

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.exit_code == 0

    def raise_for_exit_code(
        self, *, command_display: str | None = None, redactor: Redactor | None = None
    ) -> None:
        """Raises ``GitCommandError`` unless the command ran and exited 0.

        With a ``redactor`` the command display, the error text and stderr are
        redacted before they reach the exception.
        """

        redact = redactor.redact if redactor is not None else str
        display = redact(command_display) if command_display else command_display
        if self.error is not None:
            raise GitCommandError(
                message=f"git could not be started: {redact(str(self.error))}",
                command_display=display,
            ) from self.error
        if self.exit_code != 0:
            raise GitCommandError(
                message="git command failed",
                command_display=display,
                exit_code=self.exit_code,
                stderr=redact(self.stderr) if self.stderr else self.stderr,
            )


@dataclass(frozen=True)
class GitCurrentCommitShaResult(GitResult):
    current_commit_sha: str | None = None


@dataclass(frozen=True)
class GitCheckoutResult(GitResult):
    files_that_would_be_overwritten: tuple[str, ...] | None = None


@dataclass(frozen=True)
class GitDiffResult(GitResult):
    files_changed: tuple[str, ...] = ()


@dataclass(frozen=True)
class GitLocalBranchesResult(GitResult):
    current_branch: str = ""
    local_branches: tuple[str, ...] = ()


@dataclass(frozen=True)
class GitRemoteBranchesResult(GitResult):
    remote_branches: tuple[GitRemoteBranch, ...] = ()


@dataclass(frozen=True)
class GitStatusResult(GitResult):
    local_branch: str | None = None
    remote_branch: str | None = None
    has_uncommitted_changes: bool = False
    modified_files: tuple[str, ...] = ()
    not_staged_modified_files: tuple[str, ...] = ()
    not_staged_deleted_files: tuple[str, ...] = ()
    staged_modified_files: tuple[str, ...] = ()
    staged_deleted_files: tuple[str, ...] = ()
    untracked_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class GitConfigurationValueResult(GitResult):
    configuration_value: str | None = None


@dataclass(frozen=True)
class GitListRemotesResult(GitResult):
    remotes: dict[str, str] = field(default_factory=dict)

"""Structured git operations over the git command-line tool.

Each operation builds an argument vector, runs ``git`` once through a runner,
and parses git's text output into a typed result. A non-zero exit code is not
an exception: callers inspect ``exit_code`` (or call
``GitResult.raise_for_exit_code``).

Security requirements:
  - Tokens are injected into remote URLs only for clone and remote add/set-url.
  - Every logged command line and captured output passes through ``Redactor``.
"""

from __future__ import annotations

import enum
import logging
import os
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any, TypeVar

from repotools.integrations.git import arguments, parsers
from repotools.integrations.git.arguments import (
    CloneOptions,
    DiffOptions,
    FetchOptions,
    IgnoreSpace,
    MergeOptions,
    RebaseOptions,
)
from repotools.integrations.git.credentials import Authentication, Redactor, authenticate_url
from repotools.integrations.git.results import (
    GitCheckoutResult,
    GitConfigurationValueResult,
    GitCurrentCommitShaResult,
    GitDiffResult,
    GitListRemotesResult,
    GitLocalBranchesResult,
    GitRemoteBranchesResult,
    GitResult,
    GitStatusResult,
)
from repotools.integrations.process.subprocess_utils import CommandResult, CommandRunner, Runner

_logger = logging.getLogger("repotools.git")

GitResultT = TypeVar("GitResultT", bound=GitResult)


def _default_log(text: str) -> None:
    _logger.info("%s", text)


@dataclass(frozen=True)
class GitOpsConfig:
    """Configuration for git operations.

    Every field can be overridden for a single call by passing it as a keyword
    argument to a ``GitOps`` method, or for a group of calls with
    ``GitOps.scope``.
    """

    executable: str = "git"
    execution_folder_path: str | None = None
    authentication: Authentication = None
    runner: Runner | None = None
    log: Callable[[str], None] | None = None
    show_command: bool = False
    show_result: bool = False
    capture_output: bool = False
    capture_error: bool = False


@dataclass(frozen=True)
class Invocation:
    """A ready-to-run git command line."""

    executable: str
    args: tuple[str, ...]
    cwd: str | None = None

    @property
    def argv(self) -> list[str]:
        return [self.executable, *self.args]

    def display(self) -> str:
        command = " ".join(self.argv)
        if self.cwd:
            return f"{self.cwd}: {command}"
        return command


class PushState(enum.Enum):
    PLAIN = "plain"
    NEEDS_BRANCH = "needs_branch"
    READY = "ready"


@dataclass(frozen=True)
class PushPlan:
    """What ``git push`` needs before its argument vector can be built.

    Requesting an upstream without a branch name leaves the plan in
    ``NEEDS_BRANCH``; the current branch has to be queried and supplied through
    ``with_branch_name`` before the push runs.
    """

    upstream_remote: str | None = None
    branch_name: str | None = None
    force: bool | None = None
    branch_queried: bool = False

    @classmethod
    def create(
        cls,
        *,
        set_upstream: bool | str | None,
        branch_name: str | None,
        force: bool | None,
    ) -> PushPlan:
        if set_upstream is True:
            upstream_remote: str | None = "origin"
        elif isinstance(set_upstream, str) and set_upstream:
            upstream_remote = set_upstream
        else:
            upstream_remote = None
        return cls(upstream_remote=upstream_remote, branch_name=branch_name or None, force=force)

    @property
    def state(self) -> PushState:
        if self.upstream_remote is None:
            return PushState.PLAIN
        if self.branch_name is None and not self.branch_queried:
            return PushState.NEEDS_BRANCH
        return PushState.READY

    def with_branch_name(self, branch_name: str) -> PushPlan:
        return replace(self, branch_name=branch_name or None, branch_queried=True)

    def args(self) -> list[str]:
        if self.state is PushState.NEEDS_BRANCH:
            raise ValueError("The current branch must be resolved before pushing with an upstream.")
        return arguments.build_push_args(
            upstream_remote=self.upstream_remote,
            branch_name=self.branch_name,
            force=self.force,
        )


class GitOps:
    """Runs git operations and parses their output."""

    def __init__(self, *, config: GitOpsConfig | None = None, **overrides: Any) -> None:
        base = config or GitOpsConfig()
        self._config = replace(base, **overrides) if overrides else base

    @property
    def config(self) -> GitOpsConfig:
        return self._config

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GitOps):
            return NotImplemented
        return self._config == other._config

    __hash__ = None  # type: ignore[assignment]

    def scope(self, **overrides: Any) -> GitOps:
        """Returns a new ``GitOps`` whose configuration is this one plus ``overrides``."""

        return GitOps(config=replace(self._config, **overrides))

    def check(self, result: GitResultT, **overrides: Any) -> GitResultT:
        """Returns ``result`` unchanged, or raises ``GitCommandError`` with tokens redacted."""

        config = self._resolve(overrides)
        result.raise_for_exit_code(redactor=Redactor.for_authentication(config.authentication))
        return result

    def run(self, args: Sequence[str], **overrides: Any) -> GitResult:
        """Runs ``git args...`` and returns the raw result."""

        return GitResult.compose(self._execute(list(args), self._resolve(overrides)))

    def current_commit_sha(self, **overrides: Any) -> GitCurrentCommitShaResult:
        raw = self._execute(["rev-parse", "HEAD"], self._resolve(overrides))
        return GitCurrentCommitShaResult.compose(
            raw, current_commit_sha=parsers.parse_current_commit_sha(raw.stdout)
        )

    def fetch(
        self, *, prune: bool | None = None, all: bool | None = None, **overrides: Any
    ) -> GitResult:
        args = arguments.build_fetch_args(FetchOptions(prune=prune, all=all))
        return GitResult.compose(self._execute(args, self._resolve(overrides)))

    def merge(
        self,
        *,
        refs_to_merge: str | Sequence[str] | None = None,
        squash: bool | None = None,
        edit: bool | None = None,
        strategy_options: str | Sequence[str] | None = None,
        quiet: bool | None = None,
        messages: str | Sequence[str] | None = None,
        **overrides: Any,
    ) -> GitResult:
        args = arguments.build_merge_args(
            MergeOptions(
                refs_to_merge=refs_to_merge,
                squash=squash,
                edit=edit,
                strategy_options=strategy_options,
                quiet=quiet,
                messages=messages,
            )
        )
        return GitResult.compose(self._execute(args, self._resolve(overrides)))

    def rebase(
        self,
        *,
        branch: str | None = None,
        upstream: str | None = None,
        newbase: str | None = None,
        strategy: str | None = None,
        strategy_option: str | None = None,
        quiet: bool | None = None,
        verbose: bool | None = None,
        **overrides: Any,
    ) -> GitResult:
        args = arguments.build_rebase_args(
            RebaseOptions(
                branch=branch,
                upstream=upstream,
                newbase=newbase,
                strategy=strategy,
                strategy_option=strategy_option,
                quiet=quiet,
                verbose=verbose,
            )
        )
        return GitResult.compose(self._execute(args, self._resolve(overrides)))

    def clone(
        self,
        url: str,
        *,
        quiet: bool | None = None,
        verbose: bool | None = None,
        origin: str | None = None,
        branch: str | None = None,
        depth: int | None = None,
        directory: str | None = None,
        **overrides: Any,
    ) -> GitResult:
        """Clones ``url``, injecting the token that applies to it."""

        config = self._resolve(overrides)
        args = arguments.build_clone_args(
            authenticate_url(url, config.authentication),
            CloneOptions(
                quiet=quiet,
                verbose=verbose,
                origin=origin,
                branch=branch,
                depth=depth,
                directory=directory,
            ),
        )
        return GitResult.compose(self._execute(args, config))

    def checkout(self, ref_id: str, *, remote: str | None = None, **overrides: Any) -> GitCheckoutResult:
        """Checks out ``ref_id``; with ``remote``, creates a tracking branch."""

        config = self._resolve(overrides)
        raw = self._execute(arguments.build_checkout_args(ref_id, remote=remote), config)
        overwritten = parsers.parse_files_that_would_be_overwritten(
            raw.stderr, self._execution_directory(config)
        )
        return GitCheckoutResult.compose(
            raw,
            files_that_would_be_overwritten=tuple(overwritten) if overwritten is not None else None,
        )

    def pull(self, **overrides: Any) -> GitResult:
        return GitResult.compose(self._execute(["pull"], self._resolve(overrides)))

    def push(
        self,
        *,
        set_upstream: bool | str | None = None,
        branch_name: str | None = None,
        force: bool | None = None,
        **overrides: Any,
    ) -> GitResult:
        """Pushes the current branch.

        Args:
            set_upstream: ``True`` sets ``origin`` as upstream, a string names
                the upstream remote, ``None``/``False`` pushes plainly.
            branch_name: Branch to set upstream for. When omitted and an
                upstream is requested, the current branch is queried first.
            force: Adds ``--force``.
        """

        config = self._resolve(overrides)
        plan = PushPlan.create(set_upstream=set_upstream, branch_name=branch_name, force=force)
        if plan.state is PushState.NEEDS_BRANCH:
            plan = plan.with_branch_name(self._local_branches(config).current_branch)
        return GitResult.compose(self._execute(plan.args(), config))

    def add_all(self, **overrides: Any) -> GitResult:
        return GitResult.compose(self._execute(["add", "*"], self._resolve(overrides)))

    def commit(self, messages: str | Sequence[str], **overrides: Any) -> GitResult:
        args = arguments.build_commit_args(messages)
        return GitResult.compose(self._execute(args, self._resolve(overrides)))

    def delete_local_branch(self, branch_name: str, **overrides: Any) -> GitResult:
        args = ["branch", "-D", branch_name]
        return GitResult.compose(self._execute(args, self._resolve(overrides)))

    def create_local_branch(self, branch_name: str, **overrides: Any) -> GitResult:
        args = ["checkout", "-b", branch_name]
        return GitResult.compose(self._execute(args, self._resolve(overrides)))

    def delete_remote_branch(
        self, branch_name: str, *, remote_name: str = "origin", **overrides: Any
    ) -> GitResult:
        args = arguments.build_delete_remote_branch_args(branch_name, remote_name=remote_name)
        return GitResult.compose(self._execute(args, self._resolve(overrides)))

    def diff(
        self,
        *,
        commit1: str | None = None,
        commit2: str | None = None,
        name_only: bool | None = None,
        staged: bool | None = None,
        ignore_space: IgnoreSpace | None = None,
        use_pager: bool | None = None,
        **overrides: Any,
    ) -> GitDiffResult:
        config = self._resolve(overrides)
        args = arguments.build_diff_args(
            DiffOptions(
                commit1=commit1,
                commit2=commit2,
                name_only=name_only,
                staged=staged,
                ignore_space=ignore_space,
                use_pager=use_pager,
            )
        )
        raw = self._execute(args, config)
        files = parsers.parse_diff_files(
            raw.stdout, self._execution_directory(config), name_only=name_only
        )
        return GitDiffResult.compose(raw, files_changed=tuple(files))

    def local_branches(self, *, use_pager: bool | None = None, **overrides: Any) -> GitLocalBranchesResult:
        return self._local_branches(self._resolve(overrides), use_pager=use_pager)

    def current_branch(self, **overrides: Any) -> str:
        """Returns the checked out branch name, or ``""`` when none is marked."""

        return self._local_branches(self._resolve(overrides)).current_branch

    def remote_branches(
        self, *, use_pager: bool | None = None, **overrides: Any
    ) -> GitRemoteBranchesResult:
        args = arguments.build_branch_list_args(remotes=True, use_pager=use_pager)
        raw = self._execute(args, self._resolve(overrides))
        return GitRemoteBranchesResult.compose(
            raw, remote_branches=tuple(parsers.parse_remote_branches(raw.stdout))
        )

    def status(self, **overrides: Any) -> GitStatusResult:
        config = self._resolve(overrides)
        raw = self._execute(["status"], config)
        snapshot = parsers.parse_status(raw.stdout, self._execution_directory(config))
        return GitStatusResult.compose(
            raw,
            local_branch=snapshot.local_branch,
            remote_branch=snapshot.remote_branch,
            has_uncommitted_changes=snapshot.has_uncommitted_changes,
            modified_files=tuple(snapshot.modified_files),
            not_staged_modified_files=tuple(snapshot.not_staged_modified_files),
            not_staged_deleted_files=tuple(snapshot.not_staged_deleted_files),
            staged_modified_files=tuple(snapshot.staged_modified_files),
            staged_deleted_files=tuple(snapshot.staged_deleted_files),
            untracked_files=tuple(snapshot.untracked_files),
        )

    def get_configuration_value(self, name: str, **overrides: Any) -> GitConfigurationValueResult:
        raw = self._execute(arguments.build_config_get_args(name), self._resolve(overrides))
        return GitConfigurationValueResult.compose(
            raw, configuration_value=parsers.parse_configuration_value(raw)
        )

    def get_repository_url(self, **overrides: Any) -> str | None:
        """Returns the URL of the ``origin`` remote, or None outside a repository."""

        return self.get_configuration_value("remote.origin.url", **overrides).configuration_value

    def reset_all(self, **overrides: Any) -> GitResult:
        return GitResult.compose(self._execute(["reset", "*"], self._resolve(overrides)))

    def add_remote(self, name: str, url: str, **overrides: Any) -> GitResult:
        config = self._resolve(overrides)
        args = arguments.build_remote_add_args(name, authenticate_url(url, config.authentication))
        return GitResult.compose(self._execute(args, config))

    def get_remote_url(self, name: str, **overrides: Any) -> str | None:
        """Returns the URL configured for remote ``name``, or None."""

        if not name:
            return None
        raw = self._execute(arguments.build_remote_get_url_args(name), self._resolve(overrides))
        if raw.exit_code != 0 or not raw.stdout:
            return None
        return raw.stdout.strip() or None

    def set_remote_url(self, name: str, url: str, **overrides: Any) -> GitResult:
        config = self._resolve(overrides)
        args = arguments.build_remote_set_url_args(name, authenticate_url(url, config.authentication))
        return GitResult.compose(self._execute(args, config))

    def list_remotes(self, **overrides: Any) -> GitListRemotesResult:
        raw = self._execute(arguments.build_list_remotes_args(), self._resolve(overrides))
        return GitListRemotesResult.compose(raw, remotes=parsers.parse_remotes(raw.stdout))

    def _resolve(self, overrides: dict[str, Any]) -> GitOpsConfig:
        if not overrides:
            return self._config
        return replace(self._config, **overrides)

    def _local_branches(
        self, config: GitOpsConfig, *, use_pager: bool | None = None
    ) -> GitLocalBranchesResult:
        args = arguments.build_branch_list_args(use_pager=use_pager)
        raw = self._execute(args, config)
        listing = parsers.parse_local_branches(raw.stdout)
        return GitLocalBranchesResult.compose(
            raw,
            current_branch=listing.current_branch,
            local_branches=tuple(listing.local_branches),
        )

    @staticmethod
    def _execution_directory(config: GitOpsConfig) -> str:
        return config.execution_folder_path or os.getcwd()

    def _execute(self, args: list[str], config: GitOpsConfig) -> CommandResult:
        runner = config.runner or CommandRunner()
        log = config.log or _default_log
        redactor = Redactor.for_authentication(config.authentication)

        invocation = Invocation(
            executable=config.executable, args=tuple(args), cwd=config.execution_folder_path
        )
        if config.show_command:
            log(redactor.redact(invocation.display()))

        result = runner.run(args=invocation.argv, cwd=invocation.cwd)

        if config.show_result:
            if result.error is not None:
                log("Error:")
                log(redactor.redact(str(result.error)))
            else:
                log(f"Exit Code: {result.exit_code}")
                if config.capture_error and result.stderr:
                    log("Error:")
                    log(redactor.redact(result.stderr))
                if config.capture_output and result.stdout:
                    log("Output:")
                    log(redactor.redact(result.stdout))
        return result

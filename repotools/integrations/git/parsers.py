"""Parsers for git's human-oriented text output.

git does not version the text it prints for people, so each parser is a set of
independent line matchers. A line that matches nothing is skipped; a parser
never raises on unexpected text and degrades to empty or partial fields.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from repotools.integrations.git.results import GitRemoteBranch
from repotools.integrations.process.subprocess_utils import CommandResult

_ON_BRANCH = re.compile(r"^On branch (?P<name>\S.*)$")
_HEAD_DETACHED = re.compile(r"^HEAD detached (?:at|from) (?P<name>\S.*)$")
_TRACKING = re.compile(r"^Your branch (?:is|and) .*?'(?P<name>[^']+)'")
_LABELLED_PATH = re.compile(r"^(?P<label>[a-z][a-z ]*):\s+(?P<path>\S.*)$")
_DIFF_HEADER = re.compile(r"^diff --git a/(?P<a>.+) b/(?P<b>.+)$")
_LIST_MARKER = re.compile(r"^(?P<marker>[*+]) +(?P<name>\S.*)$")
_DETACHED_LISTING = re.compile(r"^\((?:HEAD )?detached (?:at|from) (?P<name>[^)]+)\)$")

_NOT_STAGED = "not_staged"
_STAGED = "staged"
_UNTRACKED = "untracked"
_SECTION_HEADERS: tuple[tuple[str, str | None], ...] = (
    ("Changes not staged for commit", _NOT_STAGED),
    ("Changes to be committed", _STAGED),
    ("Untracked files", _UNTRACKED),
    ("Unmerged paths", None),
    ("Ignored files", None),
)
_SECTION_TERMINATORS = ("no changes added to commit", "nothing to commit", "nothing added to commit")


def _lines(text: str | None) -> list[str]:
    if not text:
        return []
    return [line.strip() for line in text.splitlines()]


def _unquote(path: str) -> str:
    if len(path) >= 2 and path[0] == path[-1] == '"':
        return path[1:-1]
    return path


def resolve_path(cwd: str, relative_path: str) -> str:
    """Resolves a path printed by git against the execution directory."""

    return os.path.normpath(os.path.join(cwd, _unquote(relative_path)))


def get_git_remote_branch(value: str | GitRemoteBranch | None) -> GitRemoteBranch | None:
    """Parses ``"tracking:branch"`` into a ``GitRemoteBranch``.

    A string without a colon is a branch name with an empty tracking name.
    """

    if value is None or isinstance(value, GitRemoteBranch):
        return value
    tracking_name, separator, branch_name = value.partition(":")
    if not separator:
        return GitRemoteBranch(repository_tracking_name="", branch_name=value)
    return GitRemoteBranch(repository_tracking_name=tracking_name, branch_name=branch_name)


def get_remote_branch_full_name(value: str | GitRemoteBranch | None) -> str | None:
    """Inverse of ``get_git_remote_branch``."""

    if value is None or isinstance(value, str):
        return value
    return f"{value.repository_tracking_name}:{value.branch_name}"


@dataclass
class StatusSnapshot:
    """Mutable accumulator used while reading ``git status`` output."""

    local_branch: str | None = None
    remote_branch: str | None = None
    not_staged_modified_files: list[str] = field(default_factory=list)
    not_staged_deleted_files: list[str] = field(default_factory=list)
    staged_modified_files: list[str] = field(default_factory=list)
    staged_deleted_files: list[str] = field(default_factory=list)
    untracked_files: list[str] = field(default_factory=list)
    # Modified, staged and untracked paths in the order git printed them.
    modified_files: list[str] = field(default_factory=list)

    @property
    def has_uncommitted_changes(self) -> bool:
        return any(
            (
                self.not_staged_modified_files,
                self.not_staged_deleted_files,
                self.staged_modified_files,
                self.staged_deleted_files,
                self.untracked_files,
            )
        )


def _section_for(line: str) -> tuple[bool, str | None]:
    for header, section in _SECTION_HEADERS:
        if line.startswith(header):
            return True, section
    return False, None


def _add_labelled_path(snapshot: StatusSnapshot, section: str, label: str, path: str, cwd: str) -> None:
    if label == "renamed" or label == "copied":
        path = path.split(" -> ", 1)[-1]
    absolute = resolve_path(cwd, path)
    if section == _NOT_STAGED:
        if label == "deleted":
            snapshot.not_staged_deleted_files.append(absolute)
        elif label in ("modified", "typechange"):
            snapshot.not_staged_modified_files.append(absolute)
            snapshot.modified_files.append(absolute)
    elif section == _STAGED:
        if label == "deleted":
            snapshot.staged_deleted_files.append(absolute)
        elif label in ("modified", "new file", "renamed", "copied", "typechange"):
            snapshot.staged_modified_files.append(absolute)
            snapshot.modified_files.append(absolute)


def parse_status(stdout: str | None, cwd: str) -> StatusSnapshot:
    """Parses long-format ``git status`` output."""

    snapshot = StatusSnapshot()
    section: str | None = None
    for line in _lines(stdout):
        if not line or line.startswith("("):
            continue

        if snapshot.local_branch is None:
            match = _ON_BRANCH.match(line) or _HEAD_DETACHED.match(line)
            if match:
                snapshot.local_branch = match.group("name")
                continue

        if snapshot.remote_branch is None:
            match = _TRACKING.match(line)
            if match:
                snapshot.remote_branch = match.group("name")
                continue

        is_header, new_section = _section_for(line)
        if is_header:
            section = new_section
            continue
        if line.startswith(_SECTION_TERMINATORS):
            section = None
            continue

        if section in (_NOT_STAGED, _STAGED):
            match = _LABELLED_PATH.match(line)
            if match:
                _add_labelled_path(snapshot, section, match.group("label"), match.group("path"), cwd)
        elif section == _UNTRACKED:
            absolute = resolve_path(cwd, line)
            snapshot.untracked_files.append(absolute)
            snapshot.modified_files.append(absolute)
    return snapshot


def parse_diff_files(stdout: str | None, cwd: str, *, name_only: bool | None = None) -> list[str]:
    """Returns the absolute paths of files named in ``git diff`` output.

    With ``--name-only`` every non-empty line is a path. Otherwise only the
    ``b/`` side of ``diff --git`` headers counts.
    """

    files: list[str] = []
    for line in _lines(stdout):
        if not line:
            continue
        if name_only:
            files.append(resolve_path(cwd, line))
            continue
        match = _DIFF_HEADER.match(line)
        if match:
            files.append(resolve_path(cwd, match.group("b")))
    return files


@dataclass(frozen=True)
class LocalBranchListing:
    current_branch: str
    local_branches: list[str]


def parse_local_branches(stdout: str | None) -> LocalBranchListing:
    """Parses ``git branch`` output; ``*`` marks the current branch.

    A detached HEAD entry names the checked out commit as the current branch
    but is not itself listed as a local branch.
    """

    current_branch = ""
    local_branches: list[str] = []
    for line in _lines(stdout):
        if not line:
            continue
        match = _LIST_MARKER.match(line)
        if match is None:
            local_branches.append(line)
            continue
        name = match.group("name")
        if match.group("marker") != "*":
            local_branches.append(name)
            continue
        detached = _DETACHED_LISTING.match(name)
        if detached:
            current_branch = detached.group("name")
            continue
        current_branch = name
        local_branches.append(name)
    return LocalBranchListing(current_branch=current_branch, local_branches=local_branches)


def parse_remote_branch_line(line: str) -> GitRemoteBranch:
    tracking_name, separator, branch_name = line.partition("/")
    if not separator:
        return GitRemoteBranch(repository_tracking_name="", branch_name=line)
    return GitRemoteBranch(repository_tracking_name=tracking_name, branch_name=branch_name)


def parse_remote_branches(stdout: str | None) -> list[GitRemoteBranch]:
    """Parses ``git branch --remotes`` output, skipping ``HEAD -> x`` aliases."""

    return [parse_remote_branch_line(line) for line in _lines(stdout) if line and "->" not in line]


def parse_configuration_value(result: CommandResult) -> str | None:
    if result.exit_code != 0 or not result.stdout:
        return None
    return result.stdout.strip() or None


def parse_current_commit_sha(stdout: str | None) -> str | None:
    if not stdout:
        return None
    return stdout.strip() or None


def parse_remotes(stdout: str | None) -> dict[str, str]:
    """Parses ``git remote --verbose`` output into ``{name: url}``.

    The fetch and push lines of one remote collapse into a single entry; the
    last line read for a name wins.
    """

    remotes: dict[str, str] = {}
    for line in _lines(stdout):
        parts = line.split(None, 1)
        if len(parts) != 2:
            continue
        name, rest = parts
        url = re.sub(r"\s+\((?:fetch|push)\)$", "", rest).strip()
        if url:
            remotes[name] = url
    return remotes


def _indented_block_after(lines: Iterable[str], marker: str) -> list[str] | None:
    collected: list[str] | None = None
    for line in lines:
        if collected is None:
            if marker in line:
                collected = []
            continue
        stripped = line.strip()
        if not stripped or stripped.startswith(("Please commit", "Please move", "Aborting")):
            break
        collected.append(stripped)
    return collected


def parse_files_that_would_be_overwritten(stderr: str | None, cwd: str) -> list[str] | None:
    """Returns the files a refused checkout would have overwritten, or None."""

    if not stderr:
        return None
    block = _indented_block_after(stderr.splitlines(), "would be overwritten by checkout:")
    if block is None:
        return None
    return [resolve_path(cwd, path) for path in block]

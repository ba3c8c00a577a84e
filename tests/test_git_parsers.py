from __future__ import annotations

import os

import pytest

from repotools.integrations.git.parsers import (
    get_git_remote_branch,
    get_remote_branch_full_name,
    parse_configuration_value,
    parse_current_commit_sha,
    parse_diff_files,
    parse_files_that_would_be_overwritten,
    parse_local_branches,
    parse_remote_branches,
    parse_remotes,
    parse_status,
    resolve_path,
)
from repotools.integrations.git.results import GitRemoteBranch
from repotools.integrations.process.subprocess_utils import CommandResult

CWD = "/mock/folder/"

NOT_STAGED_STATUS = """On branch daschult/ci
Your branch is up to date with 'origin/daschult/ci'.

Changes not staged for commit:
(use "git add <file>..." to update what will be committed)
(use "git checkout -- <file>..." to discard changes in working directory)

      modified:   gulpfile.ts

no changes added to commit (use "git add" and/or "git commit -a")"""

UNTRACKED_STATUS = """On branch master
Your branch is up to date with 'origin/master'.

Changes not staged for commit:
  (use "git add <file>..." to update what will be committed)
  (use "git checkout -- <file>..." to discard changes in working directory)

  modified:   a/b.xml
  modified:   a/b/c.txt

Untracked files:
  (use "git add <file>..." to include in what will be committed)

  a.html
  a/b.txt

no changes added to commit (use "git add" and/or "git commit -a")"""

STAGED_STATUS = """On branch feature
Your branch is ahead of 'origin/feature' by 2 commits.
  (use "git push" to publish your local commits)

Changes to be committed:
  (use "git restore --staged <file>..." to unstage)
\tnew file:   src/new.py
\tdeleted:    src/old.py
\trenamed:    docs/a.md -> docs/b.md

Changes not staged for commit:
\tdeleted:    README.md
"""


def test_resolve_path_joins_and_normalizes() -> None:
    assert resolve_path(CWD, "a/../b.txt") == "/mock/folder/b.txt"
    assert resolve_path(CWD, '"with space.txt"') == "/mock/folder/with space.txt"


def test_status_with_not_staged_modified_file() -> None:
    snapshot = parse_status(NOT_STAGED_STATUS, CWD)
    assert snapshot.local_branch == "daschult/ci"
    assert snapshot.remote_branch == "origin/daschult/ci"
    assert snapshot.has_uncommitted_changes is True
    assert snapshot.modified_files == ["/mock/folder/gulpfile.ts"]
    assert snapshot.not_staged_modified_files == ["/mock/folder/gulpfile.ts"]
    assert snapshot.not_staged_deleted_files == []
    assert snapshot.staged_modified_files == []
    assert snapshot.staged_deleted_files == []
    assert snapshot.untracked_files == []


def test_status_with_detached_head_and_no_changes() -> None:
    snapshot = parse_status("HEAD detached at pull/818/merge\n  nothing to commit, working tree clean", CWD)
    assert snapshot.local_branch == "pull/818/merge"
    assert snapshot.remote_branch is None
    assert snapshot.has_uncommitted_changes is False
    assert snapshot.modified_files == []


def test_status_with_untracked_files() -> None:
    snapshot = parse_status(UNTRACKED_STATUS, CWD)
    assert snapshot.local_branch == "master"
    assert snapshot.remote_branch == "origin/master"
    assert snapshot.not_staged_modified_files == ["/mock/folder/a/b.xml", "/mock/folder/a/b/c.txt"]
    assert snapshot.untracked_files == ["/mock/folder/a.html", "/mock/folder/a/b.txt"]
    assert snapshot.modified_files == [
        "/mock/folder/a/b.xml",
        "/mock/folder/a/b/c.txt",
        "/mock/folder/a.html",
        "/mock/folder/a/b.txt",
    ]


def test_status_with_staged_changes() -> None:
    snapshot = parse_status(STAGED_STATUS, CWD)
    assert snapshot.local_branch == "feature"
    assert snapshot.remote_branch == "origin/feature"
    assert snapshot.staged_modified_files == ["/mock/folder/src/new.py", "/mock/folder/docs/b.md"]
    assert snapshot.staged_deleted_files == ["/mock/folder/src/old.py"]
    assert snapshot.not_staged_deleted_files == ["/mock/folder/README.md"]
    assert snapshot.has_uncommitted_changes is True


def test_status_modified_files_follow_output_order() -> None:
    stdout = (
        "On branch main\n"
        "Changes to be committed:\n"
        "\tmodified:   staged.py\n"
        "\n"
        "Changes not staged for commit:\n"
        "\tmodified:   unstaged.py\n"
        "\n"
        "Untracked files:\n"
        "\tnew.txt\n"
    )
    snapshot = parse_status(stdout, "/r")
    assert snapshot.modified_files == ["/r/staged.py", "/r/unstaged.py", "/r/new.txt"]
    assert snapshot.staged_modified_files == ["/r/staged.py"]
    assert snapshot.not_staged_modified_files == ["/r/unstaged.py"]

def test_status_tolerates_empty_and_unknown_output() -> None:
    assert parse_status(None, CWD).local_branch is None
    snapshot = parse_status("fatal: something odd\nmore noise", CWD)
    assert snapshot.local_branch is None
    assert snapshot.has_uncommitted_changes is False


def test_diff_name_only() -> None:
    assert parse_diff_files("c", CWD, name_only=True) == [os.path.join("/mock/folder", "c")]


def test_diff_headers_use_destination_path() -> None:
    stdout = "\n".join(
        [
            "diff --git a/src/x.py b/src/x.py",
            "index 1..2 100644",
            "--- a/src/x.py",
            "+++ b/src/x.py",
            "@@ -1 +1 @@",
            "diff --git a/old.txt b/new.txt",
        ]
    )
    assert parse_diff_files(stdout, CWD) == ["/mock/folder/src/x.py", "/mock/folder/new.txt"]


def test_local_branch_listing() -> None:
    listing = parse_local_branches("* myFakeBranch\n  master\n")
    assert listing.current_branch == "myFakeBranch"
    assert listing.local_branches == ["myFakeBranch", "master"]


def test_local_branch_listing_with_detached_head_and_worktree_marker() -> None:
    listing = parse_local_branches("* (HEAD detached at 1a2b3c)\n  master\n+ other-worktree\n")
    assert listing.current_branch == "1a2b3c"
    assert listing.local_branches == ["master", "other-worktree"]


def test_local_branch_listing_without_current_marker() -> None:
    listing = parse_local_branches("  a\n  b\n")
    assert listing.current_branch == ""
    assert listing.local_branches == ["a", "b"]


def test_remote_branches_skip_head_alias() -> None:
    branches = parse_remote_branches("  origin/HEAD -> origin/master\n  origin/master\n  fork/feature/x\n")
    assert branches == [
        GitRemoteBranch(repository_tracking_name="origin", branch_name="master"),
        GitRemoteBranch(repository_tracking_name="fork", branch_name="feature/x"),
    ]


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("hello:there", GitRemoteBranch(repository_tracking_name="hello", branch_name="there")),
        ("hello", GitRemoteBranch(repository_tracking_name="", branch_name="hello")),
        ("", GitRemoteBranch(repository_tracking_name="", branch_name="")),
        (None, None),
    ],
)
def test_get_git_remote_branch(value, expected) -> None:
    assert get_git_remote_branch(value) == expected


def test_get_git_remote_branch_passes_instances_through() -> None:
    branch = GitRemoteBranch(repository_tracking_name="a", branch_name="b")
    assert get_git_remote_branch(branch) is branch
    assert get_remote_branch_full_name(branch) == "a:b"
    assert get_remote_branch_full_name("a:b") == "a:b"
    assert get_remote_branch_full_name(None) is None


def test_configuration_value_is_trimmed() -> None:
    result = CommandResult(exit_code=0, stdout="https://x/y.git\n")
    assert parse_configuration_value(result) == "https://x/y.git"


def test_configuration_value_missing_key() -> None:
    assert parse_configuration_value(CommandResult(exit_code=1, stdout="", stderr="")) is None
    assert parse_configuration_value(CommandResult(error=OSError("boom"))) is None


def test_current_commit_sha() -> None:
    assert parse_current_commit_sha("c\n") == "c"
    assert parse_current_commit_sha("") is None


def test_remotes_collapse_fetch_and_push_lines() -> None:
    stdout = (
        "origin\thttps://github.com/ts-common/azure-js-dev-tools.git (fetch)\n"
        "origin\thttps://github.com/ts-common/azure-js-dev-tools.git (push)\n"
        "fork\thttps://github.com/me/azure-js-dev-tools.git (fetch)\n"
        "fork\thttps://github.com/me/azure-js-dev-tools-push.git (push)\n"
    )
    assert parse_remotes(stdout) == {
        "origin": "https://github.com/ts-common/azure-js-dev-tools.git",
        "fork": "https://github.com/me/azure-js-dev-tools-push.git",
    }


def test_files_that_would_be_overwritten() -> None:
    stderr = (
        "error: Your local changes to the following files would be overwritten by checkout:\n"
        "\tpackage.json\n"
        "\tsrc/index.ts\n"
        "Please commit your changes or stash them before you switch branches.\n"
        "Aborting\n"
    )
    assert parse_files_that_would_be_overwritten(stderr, CWD) == [
        "/mock/folder/package.json",
        "/mock/folder/src/index.ts",
    ]


def test_files_that_would_be_overwritten_absent() -> None:
    assert parse_files_that_would_be_overwritten("", CWD) is None
    assert parse_files_that_would_be_overwritten("error: pathspec 'x' did not match", CWD) is None

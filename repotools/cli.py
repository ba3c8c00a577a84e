"""repotools CLI: inspect a git working tree through the structured git engine."""

from __future__ import annotations

import json
import logging
import sys
from typing import Optional

import typer

from repotools.core.config import AppSettings
from repotools.integrations.git.credentials import Redactor
from repotools.integrations.git.git_ops import GitOps
from repotools.integrations.git.results import GitResult

app = typer.Typer(
    name="repotools",
    help="Run git operations and print their parsed results.",
    add_completion=False,
)


def _git(directory: Optional[str]) -> GitOps:
    settings = AppSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = settings.to_git_ops_config()
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    git = GitOps(config=config)
    if directory:
        git = git.scope(execution_folder_path=directory)
    return git


def _exit_on_failure(result: GitResult, git: GitOps) -> None:
    redactor = Redactor.for_authentication(git.config.authentication)
    if result.error is not None:
        error = redactor.redact(str(result.error))
        print(f"Error: git could not be started: {error}", file=sys.stderr)
        raise SystemExit(1)
    if result.exit_code != 0:
        if result.stderr:
            print(redactor.redact(result.stderr.rstrip()), file=sys.stderr)
        raise SystemExit(result.exit_code or 1)


_DIRECTORY_OPTION = typer.Option(
    None, "--directory", "-C", help="Working tree to run git in (defaults to the current one)."
)


@app.command()
def status(
    directory: Optional[str] = _DIRECTORY_OPTION,
    json_output: bool = typer.Option(False, "--json", help="Output as structured JSON."),
) -> None:
    """Show the parsed `git status` of a working tree."""
    git = _git(directory)
    result = git.status()
    _exit_on_failure(result, git)

    if json_output:
        payload = {
            "local_branch": result.local_branch,
            "remote_branch": result.remote_branch,
            "has_uncommitted_changes": result.has_uncommitted_changes,
            "modified_files": list(result.modified_files),
            "not_staged_modified_files": list(result.not_staged_modified_files),
            "not_staged_deleted_files": list(result.not_staged_deleted_files),
            "staged_modified_files": list(result.staged_modified_files),
            "staged_deleted_files": list(result.staged_deleted_files),
            "untracked_files": list(result.untracked_files),
        }
        print(json.dumps(payload, indent=2))
        return

    print(f"Local branch:  {result.local_branch or '-'}")
    print(f"Remote branch: {result.remote_branch or '-'}")
    print(f"Uncommitted:   {'yes' if result.has_uncommitted_changes else 'no'}")
    for path in result.modified_files:
        print(f"  M {path}")
    for path in (*result.not_staged_deleted_files, *result.staged_deleted_files):
        print(f"  D {path}")


@app.command()
def branches(
    directory: Optional[str] = _DIRECTORY_OPTION,
    remotes: bool = typer.Option(False, "--remotes", "-r", help="List remote-tracking branches."),
) -> None:
    """List local (or remote-tracking) branches; `*` marks the current one."""
    git = _git(directory)
    if remotes:
        remote_result = git.remote_branches()
        _exit_on_failure(remote_result, git)
        for branch in remote_result.remote_branches:
            print(f"{branch.repository_tracking_name}/{branch.branch_name}")
        return

    local_result = git.local_branches()
    _exit_on_failure(local_result, git)
    for name in local_result.local_branches:
        marker = "*" if name == local_result.current_branch else " "
        print(f"{marker} {name}")


@app.command("remotes")
def list_remotes(directory: Optional[str] = _DIRECTORY_OPTION) -> None:
    """List configured remotes and their URLs."""
    git = _git(directory)
    result = git.list_remotes()
    _exit_on_failure(result, git)
    for name, url in result.remotes.items():
        print(f"{name}\t{url}")


@app.command()
def diff(
    commit1: Optional[str] = typer.Argument(None, help="First commit to compare."),
    commit2: Optional[str] = typer.Argument(None, help="Second commit to compare."),
    directory: Optional[str] = _DIRECTORY_OPTION,
    staged: bool = typer.Option(False, "--staged", help="Compare the index with HEAD."),
) -> None:
    """Print the files changed between commits (or in the working tree)."""
    git = _git(directory)
    result = git.diff(
        commit1=commit1, commit2=commit2, staged=staged or None, name_only=True, use_pager=False
    )
    _exit_on_failure(result, git)
    for path in result.files_changed:
        print(path)


@app.command("config-get")
def config_get(
    name: str = typer.Argument(..., help="Configuration key, e.g. remote.origin.url."),
    directory: Optional[str] = _DIRECTORY_OPTION,
) -> None:
    """Print a git configuration value; exits 1 when it is not set."""
    git = _git(directory)
    result = git.get_configuration_value(name)
    if result.error is not None:
        _exit_on_failure(result, git)
    if result.configuration_value is None:
        raise SystemExit(1)
    print(result.configuration_value)


@app.command("current-commit")
def current_commit(directory: Optional[str] = _DIRECTORY_OPTION) -> None:
    """Print the SHA of the checked out commit."""
    git = _git(directory)
    result = git.current_commit_sha()
    _exit_on_failure(result, git)
    print(result.current_commit_sha or "")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

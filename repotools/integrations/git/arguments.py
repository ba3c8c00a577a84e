"""Builds git argument vectors from typed options.

Every builder is a pure function. ``None`` and empty strings mean "not set"
and never produce a flag. Tri-state flags map ``True``/``False`` to
``--foo``/``--no-foo``. Flag order is fixed per subcommand because git is
positional in places (a clone URL must precede the target directory).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

IgnoreSpace = Literal["all", "change", "at-eol"]

_IGNORE_SPACE_FLAGS: dict[str, str] = {
    "all": "--ignore-all-space",
    "change": "--ignore-space-change",
    "at-eol": "--ignore-space-at-eol",
}


def as_list(value: str | Sequence[str] | None) -> list[str]:
    """Normalizes a single value or a sequence into a list of non-empty strings."""

    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    return [item for item in value if item]


def pager_args(use_pager: bool | None) -> list[str]:
    """Global pager switch, placed before the subcommand."""

    if use_pager is None:
        return []
    return ["--paginate"] if use_pager else ["--no-pager"]


def _tri_state(value: bool | None, flag: str) -> list[str]:
    if value is None:
        return []
    return [f"--{flag}"] if value else [f"--no-{flag}"]


@dataclass(frozen=True)
class FetchOptions:
    prune: bool | None = None
    all: bool | None = None


def build_fetch_args(options: FetchOptions) -> list[str]:
    args = ["fetch"]
    if options.prune:
        args.append("--prune")
    if options.all:
        args.append("--all")
    return args


@dataclass(frozen=True)
class MergeOptions:
    refs_to_merge: str | Sequence[str] | None = None
    squash: bool | None = None
    edit: bool | None = None
    strategy_options: str | Sequence[str] | None = None
    quiet: bool | None = None
    messages: str | Sequence[str] | None = None


def build_merge_args(options: MergeOptions) -> list[str]:
    args = ["merge"]
    args.extend(_tri_state(options.squash, "squash"))
    args.extend(_tri_state(options.edit, "edit"))
    for strategy_option in as_list(options.strategy_options):
        args.append(f"--strategy-option={strategy_option}")
    if options.quiet:
        args.append("--quiet")
    for message in as_list(options.messages):
        args.extend(["-m", message])
    args.extend(as_list(options.refs_to_merge))
    return args


@dataclass(frozen=True)
class RebaseOptions:
    branch: str | None = None
    upstream: str | None = None
    newbase: str | None = None
    strategy: str | None = None
    strategy_option: str | None = None
    quiet: bool | None = None
    verbose: bool | None = None


def build_rebase_args(options: RebaseOptions) -> list[str]:
    args = ["rebase"]
    if options.strategy:
        args.append(f"--strategy={options.strategy}")
    if options.strategy_option:
        args.append(f"--strategy-option={options.strategy_option}")
    if options.quiet:
        args.append("--quiet")
    if options.verbose:
        args.append("--verbose")
    if options.newbase:
        args.extend(["--onto", options.newbase])
    if options.upstream:
        args.append(options.upstream)
    if options.branch:
        args.append(options.branch)
    return args


@dataclass(frozen=True)
class CloneOptions:
    quiet: bool | None = None
    verbose: bool | None = None
    origin: str | None = None
    branch: str | None = None
    depth: int | None = None
    directory: str | None = None


def build_clone_args(url: str, options: CloneOptions) -> list[str]:
    args = ["clone"]
    if options.quiet:
        args.append("--quiet")
    if options.verbose:
        args.append("--verbose")
    if options.origin:
        args.extend(["--origin", options.origin])
    if options.branch:
        args.extend(["--branch", options.branch])
    if options.depth is not None:
        args.extend(["--depth", str(options.depth)])
    args.append(url)
    if options.directory:
        args.append(options.directory)
    return args


def build_checkout_args(ref_id: str, *, remote: str | None = None) -> list[str]:
    if remote:
        return ["checkout", "--track", f"{remote}/{ref_id}"]
    return ["checkout", ref_id]


def build_push_args(
    *,
    upstream_remote: str | None = None,
    branch_name: str | None = None,
    force: bool | None = None,
) -> list[str]:
    args = ["push"]
    if upstream_remote:
        args.extend(["--set-upstream", upstream_remote])
        if branch_name:
            args.append(branch_name)
    if force:
        args.append("--force")
    return args


def build_delete_remote_branch_args(branch_name: str, *, remote_name: str = "origin") -> list[str]:
    return ["push", remote_name, f":{branch_name}"]


@dataclass(frozen=True)
class DiffOptions:
    commit1: str | None = None
    commit2: str | None = None
    name_only: bool | None = None
    staged: bool | None = None
    ignore_space: IgnoreSpace | None = None
    use_pager: bool | None = None


def build_diff_args(options: DiffOptions) -> list[str]:
    args = [*pager_args(options.use_pager), "diff"]
    if options.commit1:
        args.append(options.commit1)
    if options.commit2:
        args.append(options.commit2)
    if options.name_only:
        args.append("--name-only")
    if options.staged:
        args.append("--staged")
    if options.ignore_space:
        args.append(_IGNORE_SPACE_FLAGS[options.ignore_space])
    return args


def build_branch_list_args(*, remotes: bool = False, use_pager: bool | None = None) -> list[str]:
    args = [*pager_args(use_pager), "branch"]
    if remotes:
        args.append("--remotes")
    return args


def build_commit_args(messages: str | Sequence[str]) -> list[str]:
    args = ["commit"]
    for message in as_list(messages):
        args.extend(["-m", message])
    return args


def build_config_get_args(name: str) -> list[str]:
    return ["config", "--get", name]


def build_remote_add_args(name: str, url: str) -> list[str]:
    return ["remote", "add", name, url]


def build_remote_set_url_args(name: str, url: str) -> list[str]:
    return ["remote", "set-url", name, url]


def build_remote_get_url_args(name: str) -> list[str]:
    return ["remote", "get-url", name]


def build_list_remotes_args() -> list[str]:
    return ["remote", "--verbose"]

from __future__ import annotations

import pytest

from repotools.integrations.git.arguments import (
    CloneOptions,
    DiffOptions,
    FetchOptions,
    MergeOptions,
    RebaseOptions,
    as_list,
    build_branch_list_args,
    build_checkout_args,
    build_clone_args,
    build_commit_args,
    build_delete_remote_branch_args,
    build_diff_args,
    build_fetch_args,
    build_merge_args,
    build_push_args,
    build_rebase_args,
    pager_args,
)


def test_as_list_drops_empty_values() -> None:
    assert as_list(None) == []
    assert as_list("") == []
    assert as_list("a") == ["a"]
    assert as_list(["a", "", "b"]) == ["a", "b"]


def test_pager_args() -> None:
    assert pager_args(None) == []
    assert pager_args(True) == ["--paginate"]
    assert pager_args(False) == ["--no-pager"]


def test_fetch_args() -> None:
    assert build_fetch_args(FetchOptions()) == ["fetch"]
    assert build_fetch_args(FetchOptions(prune=True, all=True)) == ["fetch", "--prune", "--all"]
    assert build_fetch_args(FetchOptions(prune=False)) == ["fetch"]


def test_merge_args_with_tri_state_flags() -> None:
    args = build_merge_args(
        MergeOptions(
            refs_to_merge=["origin/master", "feature"],
            squash=True,
            edit=False,
            strategy_options="theirs",
            quiet=True,
            messages=["first", "second"],
        )
    )
    assert args == [
        "merge",
        "--squash",
        "--no-edit",
        "--strategy-option=theirs",
        "--quiet",
        "-m",
        "first",
        "-m",
        "second",
        "origin/master",
        "feature",
    ]


def test_merge_args_without_options() -> None:
    assert build_merge_args(MergeOptions()) == ["merge"]
    assert build_merge_args(MergeOptions(squash=False)) == ["merge", "--no-squash"]


def test_rebase_args_put_positionals_last() -> None:
    args = build_rebase_args(
        RebaseOptions(
            branch="topic",
            upstream="master",
            newbase="next",
            strategy="recursive",
            strategy_option="ours",
            quiet=True,
        )
    )
    assert args == [
        "rebase",
        "--strategy=recursive",
        "--strategy-option=ours",
        "--quiet",
        "--onto",
        "next",
        "master",
        "topic",
    ]


def test_clone_args_url_precedes_directory() -> None:
    args = build_clone_args(
        "https://github.com/ts-common/azure-js-dev-tools.git",
        CloneOptions(quiet=True, origin="upstream", branch="dev", depth=1, directory="tools"),
    )
    assert args == [
        "clone",
        "--quiet",
        "--origin",
        "upstream",
        "--branch",
        "dev",
        "--depth",
        "1",
        "https://github.com/ts-common/azure-js-dev-tools.git",
        "tools",
    ]


def test_clone_args_depth_zero_is_still_emitted() -> None:
    assert build_clone_args("u", CloneOptions(depth=0)) == ["clone", "--depth", "0", "u"]


def test_checkout_args() -> None:
    assert build_checkout_args("master") == ["checkout", "master"]
    assert build_checkout_args("master", remote="hello") == ["checkout", "--track", "hello/master"]


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({}, ["push"]),
        ({"force": True}, ["push", "--force"]),
        (
            {"upstream_remote": "hello", "branch_name": "myfakebranch"},
            ["push", "--set-upstream", "hello", "myfakebranch"],
        ),
        ({"upstream_remote": "origin"}, ["push", "--set-upstream", "origin"]),
        (
            {"upstream_remote": "origin", "branch_name": "b", "force": True},
            ["push", "--set-upstream", "origin", "b", "--force"],
        ),
    ],
)
def test_push_args(kwargs: dict, expected: list[str]) -> None:
    assert build_push_args(**kwargs) == expected


def test_delete_remote_branch_args() -> None:
    assert build_delete_remote_branch_args("branch") == ["push", "origin", ":branch"]
    assert build_delete_remote_branch_args("branch", remote_name="fancypants") == [
        "push",
        "fancypants",
        ":branch",
    ]


def test_diff_args_place_pager_switch_before_subcommand() -> None:
    args = build_diff_args(
        DiffOptions(
            commit1="a",
            commit2="b",
            name_only=True,
            staged=True,
            ignore_space="at-eol",
            use_pager=False,
        )
    )
    assert args == ["--no-pager", "diff", "a", "b", "--name-only", "--staged", "--ignore-space-at-eol"]


@pytest.mark.parametrize(
    ("ignore_space", "flag"),
    [("all", "--ignore-all-space"), ("change", "--ignore-space-change"), ("at-eol", "--ignore-space-at-eol")],
)
def test_diff_ignore_space_flags(ignore_space: str, flag: str) -> None:
    assert build_diff_args(DiffOptions(ignore_space=ignore_space)) == ["diff", flag]


def test_branch_list_args() -> None:
    assert build_branch_list_args() == ["branch"]
    assert build_branch_list_args(remotes=True, use_pager=True) == ["--paginate", "branch", "--remotes"]


def test_commit_args_accept_one_or_many_messages() -> None:
    assert build_commit_args("a") == ["commit", "-m", "a"]
    assert build_commit_args(["a", "b"]) == ["commit", "-m", "a", "-m", "b"]


def test_building_twice_yields_identical_vectors() -> None:
    options = MergeOptions(refs_to_merge=("x", "y"), squash=True, messages=("m",))
    assert build_merge_args(options) == build_merge_args(options)
    diff_options = DiffOptions(commit1="a", name_only=True, use_pager=True)
    assert build_diff_args(diff_options) == build_diff_args(diff_options)

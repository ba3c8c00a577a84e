"""Utilities for running subprocesses safely.

This module never raises for a command that could not be started. A spawn
failure (missing executable, permission denied, missing working directory) is
reported through ``CommandResult.error`` so callers can tell it apart from a
command that ran and exited non-zero.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class CommandResult:
    """Result of running a command."""

    exit_code: int | None = None
    stdout: str | None = None
    stderr: str | None = None
    process_id: int | None = None
    error: Exception | None = None


class Runner(Protocol):
    """Anything that can execute a command line."""

    def run(
        self,
        *,
        args: list[str],
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        timeout_seconds: int | None = None,
    ) -> CommandResult: ...


class CommandRunner:
    """Runs OS commands with controlled environment and output capturing."""

    def __init__(self, *, timeout_seconds: int | None = None) -> None:
        self._timeout_seconds = timeout_seconds

    def run(
        self,
        *,
        args: list[str],
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        timeout_seconds: int | None = None,
    ) -> CommandResult:
        """Runs a command and captures stdout/stderr.

        Args:
            args: Command arguments (no shell).
            cwd: Working directory.
            env: Environment variables to merge with current environment.
            timeout_seconds: Optional timeout. Falls back to the runner default.

        Returns:
            Captured result, or a result with only ``error`` set when the
            process could not be started.

        Raises:
            subprocess.TimeoutExpired: If timeout is exceeded.
        """

        merged_env = os.environ.copy()
        if env is not None:
            merged_env.update(env)

        try:
            process = subprocess.Popen(
                args,
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            return CommandResult(error=exc)

        timeout = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            raise
        return CommandResult(
            exit_code=int(process.returncode),
            stdout=stdout,
            stderr=stderr,
            process_id=process.pid,
        )


class FakeCommandRunner:
    """Runner that answers registered command lines with canned results.

    Unregistered command lines produce exit code 1 so a missing registration
    shows up as a failing result rather than a real process.
    """

    def __init__(self) -> None:
        self._results: dict[tuple[str, ...], CommandResult | Callable[[], CommandResult]] = {}
        self.calls: list[list[str]] = []

    def set(
        self,
        *,
        executable: str,
        args: Sequence[str],
        result: CommandResult | Callable[[], CommandResult],
    ) -> None:
        """Registers the result returned for ``executable args...``."""

        self._results[(executable, *args)] = result

    def run(
        self,
        *,
        args: list[str],
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        timeout_seconds: int | None = None,
    ) -> CommandResult:
        self.calls.append(list(args))
        registered = self._results.get(tuple(args))
        if registered is None:
            return CommandResult(
                exit_code=1,
                stdout="",
                stderr=f"No FakeCommandRunner result registered for: {' '.join(args)}",
            )
        if callable(registered):
            return registered()
        return registered

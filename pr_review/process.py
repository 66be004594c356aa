"""External process execution behind a narrow, mockable interface."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Exit status and combined stdout/stderr of one finished command."""

    command: tuple[str, ...]
    exit_code: int
    output: str = ""

    @property
    def succeeded(self) -> bool:
        """Return whether the command exited with status zero."""
        return self.exit_code == 0

    def display(self) -> str:
        """Render the command as a copy-pasteable shell line."""
        return shlex.join(self.command)


class ProcessRunner(Protocol):
    """Protocol for running an external command to completion."""

    def run(self, command: Sequence[str]) -> CommandResult:
        """Run the command, wait for it, and return its result."""


class SubprocessRunner:
    """Run commands with `subprocess.run`, capturing output as text."""

    def __init__(self, cwd: str | None = None) -> None:
        self._cwd = cwd

    def run(self, command: Sequence[str]) -> CommandResult:
        args = tuple(command)
        try:
            process = subprocess.run(  # noqa: S603
                list(args),
                cwd=self._cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except FileNotFoundError as error:
            return CommandResult(command=args, exit_code=127, output=str(error))
        return CommandResult(
            command=args,
            exit_code=process.returncode,
            output=process.stdout or "",
        )


def shell_pipeline_as_user(
    *,
    privilege_command: str,
    username: str,
    pipeline: str,
) -> tuple[str, ...]:
    """Build a command that runs a shell pipeline as another system user."""
    return (privilege_command, "-u", username, "sh", "-c", pipeline)

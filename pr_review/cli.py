"""Typer entry points for the `rpr`, `crp`, and `rrpr` commands."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from enum import StrEnum
from pathlib import Path
from typing import Annotated

import httpx
import typer

from pr_review.config import ReviewConfigError
from pr_review.context import open_context
from pr_review.github_client import GitHubApiError, GitHubInputError
from pr_review.logging_setup import setup_logging
from pr_review.reviewer import EXIT_USAGE, ReviewAbort, Reviewer

EXIT_REMOTE_ERROR = 1


class CommandName(StrEnum):
    """Executable names the tool is installed under."""

    REVIEW = "rpr"
    CHERRY_PICK = "crp"
    RESTORE = "rrpr"


class UnknownCommandError(ValueError):
    """Raised when the tool is invoked under a name it does not know."""


Arguments = Annotated[
    list[str] | None,
    typer.Argument(help="Positional arguments.", show_default=False),
]
Verbose = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Log every command and its output."),
]


def resolve_command(executable: str) -> CommandName:
    """Map the invoked executable path to the operation it selects."""
    name = Path(executable).name
    try:
        return CommandName(name)
    except ValueError as error:
        known = ", ".join(command.value for command in CommandName)
        raise UnknownCommandError(
            f"Unknown command name '{name}'. Install or link this tool as one of: {known}."
        ) from error


def _require_argument_count(
    args: list[str],
    *,
    minimum: int,
    maximum: int,
    usage: str,
) -> None:
    if not minimum <= len(args) <= maximum:
        typer.echo(f"Usage: {usage}", err=True)
        raise typer.Exit(code=EXIT_USAGE)


def _run_operation(operation: Callable[[Reviewer], None], *, verbose: bool) -> None:
    """Run one reviewer operation and translate failures into exit codes."""
    logger = setup_logging(logging.DEBUG if verbose else logging.INFO)
    try:
        with open_context(Path.cwd(), logger=logger) as context:
            operation(Reviewer(context))
    except ReviewAbort as error:
        raise typer.Exit(code=error.exit_code) from error
    except ReviewConfigError as error:
        logger.critical("Configuration error: %s", error)
        raise typer.Exit(code=EXIT_USAGE) from error
    except GitHubInputError as error:
        logger.critical("%s", error)
        raise typer.Exit(code=EXIT_USAGE) from error
    except GitHubApiError as error:
        logger.critical(
            "GitHub pull request lookup failed: status=%s endpoint=%s.",
            error.status_code,
            error.endpoint,
        )
        raise typer.Exit(code=EXIT_REMOTE_ERROR) from error
    except httpx.HTTPError as error:
        logger.critical("GitHub pull request lookup failed: network error (%s).", error)
        raise typer.Exit(code=EXIT_REMOTE_ERROR) from error


def review_command(args: Arguments = None, verbose: Verbose = False) -> None:
    """Back up the database and check out a pull request.

    Pass a PR number to check it out on review/pr<N>, or any other name to
    only take a database backup under that name.
    """
    arguments = args or []
    _require_argument_count(
        arguments, minimum=1, maximum=1, usage=f"{CommandName.REVIEW} <pr-number|backup-name>"
    )
    _run_operation(lambda reviewer: reviewer.review(arguments[0]), verbose=verbose)


def cherry_pick_command(args: Arguments = None, verbose: Verbose = False) -> None:
    """Cherry-pick a pull request onto the current branch."""
    arguments = args or []
    _require_argument_count(
        arguments, minimum=1, maximum=1, usage=f"{CommandName.CHERRY_PICK} <pr-number>"
    )
    _run_operation(lambda reviewer: reviewer.cherry_pick(arguments[0]), verbose=verbose)


def restore_command(args: Arguments = None, verbose: Verbose = False) -> None:
    """Restore the pre-review database backup and delete the review branch.

    Without an argument the backup name is taken from the current review/pr<N> branch.
    """
    arguments = args or []
    _require_argument_count(
        arguments, minimum=0, maximum=1, usage=f"{CommandName.RESTORE} [backup-name]"
    )
    suffix = arguments[0] if arguments else None
    _run_operation(lambda reviewer: reviewer.restore(suffix), verbose=verbose)


COMMAND_HANDLERS: dict[CommandName, Callable[..., None]] = {
    CommandName.REVIEW: review_command,
    CommandName.CHERRY_PICK: cherry_pick_command,
    CommandName.RESTORE: restore_command,
}


def build_app(command: CommandName) -> typer.Typer:
    """Build a single-command Typer app for one executable name."""
    app = typer.Typer(add_completion=False)
    app.command(name=command.value)(COMMAND_HANDLERS[command])
    return app


def main(executable: str | None = None) -> None:
    """Console entry point shared by all three executable names."""
    try:
        command = resolve_command(executable if executable is not None else sys.argv[0])
    except UnknownCommandError as error:
        typer.echo(str(error), err=True)
        raise SystemExit(EXIT_USAGE) from error
    build_app(command)(prog_name=command.value)

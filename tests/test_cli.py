"""Tests for the rpr/crp/rrpr command-line entry points."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import httpx
import pytest
from fakes import ContextFactory, FakeProcessRunner
from pr_review import cli
from pr_review.cli import CommandName, UnknownCommandError, build_app, resolve_command
from pr_review.context import ReviewContext
from typer.testing import CliRunner

runner = CliRunner()


def use_context(monkeypatch: pytest.MonkeyPatch, context: ReviewContext) -> None:
    """Make the CLI run against a prepared context instead of real processes."""

    @contextmanager
    def _open_context(cwd: Path, *, logger: logging.Logger) -> Iterator[ReviewContext]:
        yield context

    monkeypatch.setattr(cli, "open_context", _open_context)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("executable", "expected"),
    [
        ("/usr/local/bin/rpr", CommandName.REVIEW),
        ("crp", CommandName.CHERRY_PICK),
        ("/home/dev/.local/bin/rrpr", CommandName.RESTORE),
    ],
)
def test_resolve_command_uses_executable_name(executable: str, expected: CommandName) -> None:
    assert resolve_command(executable) is expected


@pytest.mark.unit
def test_resolve_command_rejects_unknown_name() -> None:
    with pytest.raises(UnknownCommandError, match="Unknown command name 'review'"):
        resolve_command("/usr/bin/review")


@pytest.mark.unit
def test_main_exits_with_usage_code_for_unknown_name() -> None:
    with pytest.raises(SystemExit) as exit_info:
        cli.main("/usr/bin/pr-review")

    assert exit_info.value.code == 2


@pytest.mark.unit
@pytest.mark.parametrize(
    ("command", "args"),
    [
        (CommandName.REVIEW, []),
        (CommandName.REVIEW, ["1", "2"]),
        (CommandName.CHERRY_PICK, []),
        (CommandName.RESTORE, ["a", "b"]),
    ],
)
def test_wrong_argument_count_is_a_usage_error(
    monkeypatch: pytest.MonkeyPatch,
    command: CommandName,
    args: list[str],
) -> None:
    def _fail_open_context(cwd: Path, *, logger: logging.Logger) -> None:
        raise AssertionError("Context must not be built for usage errors.")

    monkeypatch.setattr(cli, "open_context", _fail_open_context)

    result = runner.invoke(build_app(command), args)

    assert result.exit_code == 2
    assert f"Usage: {command.value}" in result.output


@pytest.mark.unit
def test_review_command_checks_out_pr(
    monkeypatch: pytest.MonkeyPatch,
    make_context: ContextFactory,
) -> None:
    process_runner = FakeProcessRunner()
    use_context(monkeypatch, make_context(runner=process_runner))

    result = runner.invoke(build_app(CommandName.REVIEW), ["42"])

    assert result.exit_code == 0
    assert ("git", "checkout", "-b", "review/pr42") in process_runner.commands


@pytest.mark.unit
def test_review_command_maps_abort_to_exit_code(
    monkeypatch: pytest.MonkeyPatch,
    make_context: ContextFactory,
) -> None:
    process_runner = FakeProcessRunner({("git", "pull"): (1, "fatal: no upstream")})
    use_context(monkeypatch, make_context(runner=process_runner))

    result = runner.invoke(build_app(CommandName.REVIEW), ["42"])

    assert result.exit_code == 5


@pytest.mark.unit
def test_review_command_reports_invalid_database_config(
    monkeypatch: pytest.MonkeyPatch,
    make_context: ContextFactory,
) -> None:
    context = make_context(database_yml="development:\n  database: foreman_dev\n")
    use_context(monkeypatch, context)

    result = runner.invoke(build_app(CommandName.REVIEW), ["snapshot"])

    assert result.exit_code == 2
    assert "CRITICAL - Configuration error" in result.output


@pytest.mark.unit
def test_cherry_pick_command_reports_github_failure(
    monkeypatch: pytest.MonkeyPatch,
    make_context: ContextFactory,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=404, json={"message": "Not Found"})

    use_context(monkeypatch, make_context(handler=handler))

    result = runner.invoke(build_app(CommandName.CHERRY_PICK), ["42"])

    assert result.exit_code == 1
    assert "status=404 endpoint=/repos/theforeman/foreman/pulls/42" in result.output
    assert "CRITICAL - GitHub pull request lookup failed" in result.output


@pytest.mark.unit
def test_cherry_pick_command_rejects_pr_zero(
    monkeypatch: pytest.MonkeyPatch,
    make_context: ContextFactory,
) -> None:
    process_runner = FakeProcessRunner()
    use_context(monkeypatch, make_context(runner=process_runner))

    result = runner.invoke(build_app(CommandName.CHERRY_PICK), ["0"])

    assert result.exit_code == 2
    assert "CRITICAL - Invalid PR number '0'" in result.output
    assert process_runner.commands == []


@pytest.mark.unit
def test_restore_command_without_argument_uses_branch(
    monkeypatch: pytest.MonkeyPatch,
    make_context: ContextFactory,
) -> None:
    process_runner = FakeProcessRunner(
        {("git", "rev-parse", "--abbrev-ref", "HEAD"): (0, "review/pr7\n")}
    )
    use_context(monkeypatch, make_context(project="smart-proxy", runner=process_runner))

    result = runner.invoke(build_app(CommandName.RESTORE), [])

    assert result.exit_code == 0
    assert process_runner.commands[-2:] == [
        ("git", "checkout", "develop"),
        ("git", "branch", "-D", "review/pr7"),
    ]

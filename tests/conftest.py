"""Shared pytest fixtures and test-run configuration."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest
from fakes import ContextFactory, FakeProcessRunner, FakePrompter, pr_handler
from pr_review.config import ReviewSettings
from pr_review.context import ReviewContext

TEST_LOGGER_NAME = "review_tests"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add custom pytest options for integration test execution."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run tests marked as integration (external dependencies).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests unless explicitly enabled."""
    run_integration = config.getoption("--run-integration")
    env_enabled = os.getenv("RUN_INTEGRATION_TESTS") == "1"
    if run_integration or env_enabled:
        return

    skip_marker = pytest.mark.skip(
        reason=(
            "Integration tests are disabled by default. "
            "Use --run-integration or set RUN_INTEGRATION_TESTS=1."
        )
    )
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_marker)


@pytest.fixture
def make_context(tmp_path: Path) -> Iterator[ContextFactory]:
    """Build review contexts rooted in a temporary project checkout."""
    clients: list[httpx.Client] = []

    def _make(
        *,
        project: str = "foreman",
        runner: FakeProcessRunner | None = None,
        prompter: FakePrompter | None = None,
        handler: Callable[[httpx.Request], httpx.Response] = pr_handler,
        database_yml: str | None = None,
    ) -> ReviewContext:
        cwd = tmp_path / project
        cwd.mkdir(exist_ok=True)
        if database_yml is not None:
            (cwd / "config").mkdir(exist_ok=True)
            (cwd / "config" / "database.yml").write_text(database_yml, encoding="utf-8")
        client = httpx.Client(
            base_url="https://api.github.com",
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return ReviewContext(
            settings=ReviewSettings(cwd=cwd),
            runner=runner or FakeProcessRunner(),
            prompter=prompter or FakePrompter(),
            http_client=client,
            logger=logging.getLogger(TEST_LOGGER_NAME),
        )

    yield _make
    for client in clients:
        client.close()

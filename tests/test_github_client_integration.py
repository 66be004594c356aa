"""Integration tests for pull request lookup against the live GitHub API."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from pr_review.config import load_settings
from pr_review.github_client import build_github_client, fetch_pull_request_ref


def _integration_target() -> tuple[str, str, str]:
    """Return organization/project/pr target configured for integration tests."""
    organization = os.getenv("GITHUB_TEST_ORG", "theforeman")
    project = os.getenv("GITHUB_TEST_PROJECT", "foreman")
    pr_value = os.getenv("GITHUB_TEST_PR")
    if not pr_value:
        pytest.skip("Set GITHUB_TEST_PR to run GitHub integration tests.")
    return organization, project, pr_value


@pytest.mark.integration
def test_live_fetch_pull_request_ref() -> None:
    organization, project, pr_number = _integration_target()

    settings = load_settings(Path.cwd())

    with build_github_client(
        timeout_seconds=settings.http_timeout_seconds,
        token=settings.github_token,
    ) as client:
        pr = fetch_pull_request_ref(
            client=client,
            organization=organization,
            project=project,
            pr_number=pr_number,
        )

    assert pr.number == pr_number
    assert pr.remote_name == pr.remote_name.lower()
    assert pr.remote_url.startswith("https://github.com/")
    assert pr.remote_branch

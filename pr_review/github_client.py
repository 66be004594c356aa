"""GitHub pull request metadata lookup and remote URL helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import yaml

from pr_review.config import DEFAULT_GITHUB_API_URL, DEFAULT_HTTP_TIMEOUT_SECONDS

GITHUB_API_VERSION = "2022-11-28"
GITHUB_HTTPS_PREFIXES = ("https://github.com/", "http://github.com/")
GITHUB_SSH_PREFIX = "git@github.com:"


class GitHubInputError(ValueError):
    """Raised when repository or PR input values are invalid."""


class GitHubApiError(RuntimeError):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, *, status_code: int, endpoint: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class GitHubRateLimitError(GitHubApiError):
    """Raised when GitHub API rate limiting prevents request completion."""


@dataclass(frozen=True, slots=True)
class PullRequestRef:
    """Where a pull request's head branch lives."""

    number: str
    remote_name: str
    remote_url: str
    remote_branch: str

    @property
    def tracking_ref(self) -> str:
        """Return the `<remote>/<branch>` ref created by fetching the remote."""
        return f"{self.remote_name}/{self.remote_branch}"


def _ensure_mapping(value: object, *, context: str) -> dict[str, Any]:
    """Ensure a response fragment is a mapping."""
    if not isinstance(value, dict):
        raise GitHubApiError(
            f"Expected mapping for {context}.",
            status_code=500,
            endpoint=context,
        )
    return value


def _require_str(payload: dict[str, Any], *, key: str, endpoint: str) -> str:
    """Read a required string field from payload."""
    value = payload.get(key)
    if not isinstance(value, str):
        raise GitHubApiError(
            f"Expected string field '{key}' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _require_object(payload: dict[str, Any], *, key: str, endpoint: str) -> dict[str, Any]:
    """Read a required object field from payload."""
    value = payload.get(key)
    if not isinstance(value, dict):
        raise GitHubApiError(
            f"Expected object field '{key}' in GitHub response.",
            status_code=500,
            endpoint=endpoint,
        )
    return value


def _raise_http_error(response: httpx.Response, endpoint: str) -> None:
    """Raise a typed error for a non-success GitHub API response."""
    message = f"GitHub API request failed with status {response.status_code} for '{endpoint}'."
    remaining = response.headers.get("X-RateLimit-Remaining")
    if response.status_code == 429 or (response.status_code == 403 and remaining == "0"):
        raise GitHubRateLimitError(
            message,
            status_code=response.status_code,
            endpoint=endpoint,
        )
    raise GitHubApiError(
        message,
        status_code=response.status_code,
        endpoint=endpoint,
    )


def _request_document(client: httpx.Client, endpoint: str) -> dict[str, Any]:
    """GET an endpoint and parse its body as a YAML (or JSON) mapping."""
    response = client.get(endpoint)
    if response.status_code >= 400:
        _raise_http_error(response, endpoint)
    try:
        payload = yaml.safe_load(response.text)
    except yaml.YAMLError as error:
        raise GitHubApiError(
            f"Could not parse GitHub response: {error}",
            status_code=response.status_code,
            endpoint=endpoint,
        ) from error
    return _ensure_mapping(payload, context=endpoint)


def validate_pr_number(pr_number: str) -> str:
    """Validate pull request number input, keeping its string form."""
    if not pr_number.isdigit() or int(pr_number) <= 0:
        raise GitHubInputError(f"Invalid PR number '{pr_number}'. Expected a positive integer.")
    return pr_number


def fetch_pull_request_ref(
    *,
    client: httpx.Client,
    organization: str,
    project: str,
    pr_number: str,
) -> PullRequestRef:
    """Fetch the head repository owner, URL, and branch of a pull request."""
    normalized_pr_number = validate_pr_number(pr_number)
    endpoint = f"/repos/{organization}/{project}/pulls/{normalized_pr_number}"

    payload = _request_document(client, endpoint)
    head_payload = _require_object(payload, key="head", endpoint=endpoint)
    repo_payload = _require_object(head_payload, key="repo", endpoint=endpoint)
    owner_payload = _require_object(repo_payload, key="owner", endpoint=endpoint)

    return PullRequestRef(
        number=normalized_pr_number,
        remote_name=_require_str(owner_payload, key="login", endpoint=endpoint).lower(),
        remote_url=_require_str(repo_payload, key="html_url", endpoint=endpoint),
        remote_branch=_require_str(head_payload, key="ref", endpoint=endpoint),
    )


def is_http_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def to_ssh_url(url: str) -> str:
    """Rewrite a GitHub web URL to its SSH clone form.

    `https://github.com/foo/bar` becomes `git@github.com:foo/bar.git`.
    URLs that do not point at github.com are returned unchanged.
    """
    for prefix in GITHUB_HTTPS_PREFIXES:
        if url.startswith(prefix):
            path = url.removeprefix(prefix).rstrip("/")
            if not path.endswith(".git"):
                path = f"{path}.git"
            return f"{GITHUB_SSH_PREFIX}{path}"
    return url


def build_github_client(
    timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    *,
    base_url: str = DEFAULT_GITHUB_API_URL,
    token: str | None = None,
    trust_env: bool = True,
) -> httpx.Client:
    """Build a GitHub HTTP client, authenticated when a token is available."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.Client(
        base_url=base_url,
        headers=headers,
        timeout=timeout_seconds,
        trust_env=trust_env,
    )

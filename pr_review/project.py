"""Project, branch, and backup-name derivation for review workflows."""

from __future__ import annotations

from pathlib import Path

REVIEW_BRANCH_PREFIX = "review/pr"
UPSTREAM_DIRECTORY_SUFFIX = "_upstream"
BACKUP_FILE_PREFIX = "pre_review_"
BACKUP_FILE_SUFFIX = ".sql.gz"
DEVELOP_BRANCH_PROJECTS = frozenset({"foreman", "smart-proxy"})
DEFAULT_MAIN_BRANCH = "master"
DEVELOP_MAIN_BRANCH = "develop"
DEFAULT_ORGANIZATION = "theforeman"
KATELLO_PROJECT = "katello"


def project_name(cwd: Path) -> str:
    """Return the checkout directory name without an `_upstream` suffix."""
    return cwd.name.removesuffix(UPSTREAM_DIRECTORY_SUFFIX)


def main_branch(project: str) -> str:
    """Return the long-lived branch reviews are cleaned up against."""
    if project in DEVELOP_BRANCH_PROJECTS:
        return DEVELOP_MAIN_BRANCH
    return DEFAULT_MAIN_BRANCH


def organization(project: str) -> str:
    """Return the GitHub organization that hosts the project's pull requests."""
    if project == KATELLO_PROJECT:
        return KATELLO_PROJECT
    return DEFAULT_ORGANIZATION


def is_pr_number(value: str) -> bool:
    """Return whether `value` is the canonical decimal form of an integer.

    `"42"` and `"-3"` qualify; `"042"`, `"+3"`, `" 42"` and `"4_2"` do not.
    """
    try:
        return str(int(value)) == value
    except ValueError:
        return False


def review_branch(pr_number: str) -> str:
    return f"{REVIEW_BRANCH_PREFIX}{pr_number}"


def suffix_from_branch(branch: str) -> str:
    """Strip the review branch prefix, leaving other branch names untouched."""
    return branch.removeprefix(REVIEW_BRANCH_PREFIX)


def backup_path(backup_dir: Path, suffix: str) -> Path:
    return backup_dir / f"{BACKUP_FILE_PREFIX}{suffix}{BACKUP_FILE_SUFFIX}"

"""Review workflow: database backup/restore and PR branch handling."""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path
from typing import NoReturn

from pr_review.config import DatabaseEntry
from pr_review.context import ReviewContext
from pr_review.github_client import (
    PullRequestRef,
    fetch_pull_request_ref,
    is_http_url,
    to_ssh_url,
    validate_pr_number,
)
from pr_review.process import CommandResult, shell_pipeline_as_user
from pr_review.project import (
    backup_path,
    is_pr_number,
    main_branch,
    organization,
    project_name,
    review_branch,
    suffix_from_branch,
)
from pr_review.prompts import confirm

EXIT_USER_ABORT = 1
EXIT_USAGE = 2
EXIT_CHECKOUT_FAILED = 2
EXIT_PR_PULL_FAILED = 3
EXIT_CHERRY_PICK_FAILED = 4
EXIT_GIT_PULL_FAILED = 5
EXIT_RESTORE_FAILED = 6

OVERRIDE_ANSWER = "y"
SKIP_ANSWER = "s"


class ReviewAbort(Exception):
    """Raised after a fatal step has been logged; carries the process exit code."""

    def __init__(self, message: str, *, exit_code: int) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class Reviewer:
    """Runs the review, cherry-pick, and restore workflows for one checkout."""

    def __init__(self, context: ReviewContext) -> None:
        self._context = context
        self._logger = context.logger
        self.project = project_name(context.cwd)
        self.main_branch = main_branch(self.project)
        self.organization = organization(self.project)

    def review(self, pr_arg: str) -> None:
        """Back up the database, then check out the PR when given a PR number.

        A non-numeric argument only names the backup file.
        """
        checkout_pr = is_pr_number(pr_arg)
        if checkout_pr:
            validate_pr_number(pr_arg)

        if self._context.has_database_config():
            self.backup_database(pr_arg)
        else:
            self._logger.info(
                "No %s found, skipping database backup.",
                self._context.settings.database_config_path,
            )

        if not checkout_pr:
            self._logger.info("'%s' is not a PR number, not checking out a branch.", pr_arg)
            return

        self._pull_origin()
        pr = self.add_remote(pr_arg)
        branch = review_branch(pr.number)

        checkout = self._run(("git", "checkout", "-b", branch))
        if not checkout.succeeded:
            self._fatal(
                f"Could not create branch {branch}. Run `{checkout.display()}` manually.",
                exit_code=EXIT_CHECKOUT_FAILED,
                result=checkout,
            )

        pull = self._run(("git", "pull", pr.remote_name, pr.remote_branch))
        if not pull.succeeded:
            self._fatal(
                f"Could not pull {pr.remote_branch} from {pr.remote_name}. "
                f"Run `{pull.display()}` manually.",
                exit_code=EXIT_PR_PULL_FAILED,
                result=pull,
            )
        self._logger.info("PR #%s is checked out on %s.", pr.number, branch)

    def cherry_pick(self, pr_arg: str) -> None:
        """Cherry-pick the head of a PR's branch onto the current branch."""
        if not is_pr_number(pr_arg):
            self._fatal(f"'{pr_arg}' is not a PR number.", exit_code=EXIT_USAGE)
        validate_pr_number(pr_arg)

        self._pull_origin()
        pr = self.add_remote(pr_arg)

        result = self._run(("git", "cherry-pick", pr.tracking_ref))
        if not result.succeeded:
            self._fatal(
                f"Cherry-pick of {pr.tracking_ref} failed. "
                f"Resolve the conflicts or run `{result.display()}` manually.",
                exit_code=EXIT_CHERRY_PICK_FAILED,
                result=result,
            )
        self._logger.info("Cherry-picked PR #%s from %s.", pr.number, pr.tracking_ref)

    def restore(self, suffix: str | None = None) -> None:
        """Offer to restore the pre-review backup, then leave the review branch."""
        current = self.current_branch()
        resolved_suffix = suffix if suffix is not None else suffix_from_branch(current)
        path = backup_path(self._context.settings.resolved_backup_dir, resolved_suffix)

        if not path.is_file():
            self._logger.info("No backup file found at %s, skipping database restore.", path)
        elif not self._context.has_database_config():
            self._logger.warning(
                "No %s found, skipping restore of %s.",
                self._context.settings.database_config_path,
                path,
            )
        elif confirm(self._context.prompter, f"Restore database from {path}?"):
            self.restore_database(path)
        else:
            self._logger.info("Leaving the database untouched.")

        self.cleanup_branch(current)

    def add_remote(self, pr_number: str) -> PullRequestRef:
        """Make sure the PR author's fork is a fetched SSH remote."""
        pr = fetch_pull_request_ref(
            client=self._context.http_client,
            organization=self.organization,
            project=self.project,
            pr_number=pr_number,
        )
        ssh_url = to_ssh_url(pr.remote_url)

        existing = self._run(("git", "remote", "get-url", pr.remote_name))
        if existing.succeeded:
            current_url = existing.output.strip()
            if is_http_url(current_url):
                rewrite = self._run(("git", "remote", "set-url", pr.remote_name, ssh_url))
                if not rewrite.succeeded:
                    self._warn(
                        f"Could not switch remote {pr.remote_name} to {ssh_url}. "
                        f"Run `{rewrite.display()}` manually.",
                        rewrite,
                    )
        else:
            added = self._run(("git", "remote", "add", pr.remote_name, ssh_url))
            if not added.succeeded:
                self._warn(
                    f"Could not add remote {pr.remote_name}. Run `{added.display()}` manually.",
                    added,
                )

        fetch = self._run(("git", "fetch", pr.remote_name))
        if not fetch.succeeded:
            self._warn(
                f"Could not fetch {pr.remote_name}. Run `{fetch.display()}` manually.",
                fetch,
            )
        return replace(pr, remote_url=ssh_url)

    def backup_database(self, suffix: str) -> None:
        """Dump the configured database to `pre_review_<suffix>.sql.gz`."""
        entry = self._database_entry()
        backup_dir = self._context.settings.resolved_backup_dir
        backup_dir.mkdir(parents=True, exist_ok=True)
        path = backup_path(backup_dir, suffix)

        if path.exists():
            answer = self._context.prompter.ask(
                f"{path} already exists. (y)es override / (s)kip / (*) exit"
            )
            answer = answer.strip().lower()
            if answer == SKIP_ANSWER:
                self._logger.info("Keeping existing backup %s.", path)
                return
            if answer != OVERRIDE_ANSWER:
                self._logger.info("Exiting without touching %s.", path)
                raise ReviewAbort(f"Backup of {path} aborted.", exit_code=EXIT_USER_ABORT)

        pipeline = (
            f"pg_dump --clean {shlex.quote(entry.database)} | gzip > {shlex.quote(str(path))}"
        )
        result = self._run_as_database_user(entry, pipeline)
        if not result.succeeded:
            self._logger.error(
                "Database backup failed: `%s`\n%s", result.display(), result.output.strip()
            )
            return
        self._logger.info("Backed up database %s to %s.", entry.database, path)

    def restore_database(self, path: Path) -> None:
        """Load a gzipped SQL dump into the configured database."""
        entry = self._database_entry()
        pipeline = f"zcat {shlex.quote(str(path))} | psql {shlex.quote(entry.database)}"
        result = self._run_as_database_user(entry, pipeline)
        if not result.succeeded:
            self._fatal(
                f"Restoring {path} into {entry.database} failed. "
                f"Run `{result.display()}` manually.",
                exit_code=EXIT_RESTORE_FAILED,
                result=result,
            )
        self._logger.info("Restored database %s from %s.", entry.database, path)

    def cleanup_branch(self, current: str) -> None:
        """Return to the main branch and force-delete the branch that was checked out."""
        if current == self.main_branch:
            self._logger.info("Already on %s, no branch to delete.", self.main_branch)
            return

        checkout = self._run(("git", "checkout", self.main_branch))
        if not checkout.succeeded:
            self._warn(
                f"Could not check out {self.main_branch}; {current} was kept. "
                f"Run `{checkout.display()}` manually.",
                checkout,
            )
            return

        delete = self._run(("git", "branch", "-D", current))
        if not delete.succeeded:
            self._warn(
                f"Could not delete branch {current}. Run `{delete.display()}` manually.",
                delete,
            )
            return
        self._logger.info("Deleted branch %s.", current)

    def current_branch(self) -> str:
        result = self._run(("git", "rev-parse", "--abbrev-ref", "HEAD"))
        if not result.succeeded:
            self._fatal(
                "Could not determine the current branch.",
                exit_code=EXIT_USAGE,
                result=result,
            )
        return result.output.strip()

    def _pull_origin(self) -> None:
        pull = self._run(("git", "pull"))
        if not pull.succeeded:
            self._fatal(
                f"Could not update the checkout. Run `{pull.display()}` manually.",
                exit_code=EXIT_GIT_PULL_FAILED,
                result=pull,
            )

    def _database_entry(self) -> DatabaseEntry:
        environment = self._context.settings.database_environment
        return self._context.database_config().entry(environment)

    def _run_as_database_user(self, entry: DatabaseEntry, pipeline: str) -> CommandResult:
        command = shell_pipeline_as_user(
            privilege_command=self._context.settings.privilege_command,
            username=entry.username,
            pipeline=pipeline,
        )
        return self._run(command)

    def _run(self, command: Sequence[str]) -> CommandResult:
        self._logger.debug("Running: %s", shlex.join(command))
        result = self._context.runner.run(command)
        if result.succeeded and result.output.strip():
            self._logger.debug(result.output.strip())
        return result

    def _warn(self, message: str, result: CommandResult) -> None:
        self._logger.warning(message)
        if result.output.strip():
            self._logger.warning(result.output.strip())

    def _fatal(
        self,
        message: str,
        *,
        exit_code: int,
        result: CommandResult | None = None,
    ) -> NoReturn:
        self._logger.critical(message)
        if result is not None and result.output.strip():
            self._logger.critical(result.output.strip())
        raise ReviewAbort(message, exit_code=exit_code)

"""Per-invocation context shared by reviewer operations."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import httpx

from pr_review.config import DatabaseConfig, ReviewSettings, load_database_config, load_settings
from pr_review.github_client import build_github_client
from pr_review.process import ProcessRunner, SubprocessRunner
from pr_review.prompts import Prompter, TyperPrompter


@dataclass(slots=True)
class ReviewContext:
    """Everything one `rpr`/`crp`/`rrpr` run needs, built once at startup."""

    settings: ReviewSettings
    runner: ProcessRunner
    prompter: Prompter
    http_client: httpx.Client
    logger: logging.Logger
    database_config_cache: DatabaseConfig | None = None

    @property
    def cwd(self) -> Path:
        return self.settings.cwd

    def has_database_config(self) -> bool:
        return self.settings.database_config_path.is_file()

    def database_config(self) -> DatabaseConfig:
        """Load `database.yml` on first use and reuse it for the rest of the run."""
        if self.database_config_cache is None:
            self.database_config_cache = load_database_config(self.settings.database_config_path)
        return self.database_config_cache


@contextmanager
def open_context(cwd: Path, *, logger: logging.Logger) -> Iterator[ReviewContext]:
    """Build a context backed by real processes, the terminal, and GitHub."""
    settings = load_settings(cwd)
    with build_github_client(
        timeout_seconds=settings.http_timeout_seconds,
        base_url=settings.github_api_url,
        token=settings.github_token,
    ) as client:
        yield ReviewContext(
            settings=settings,
            runner=SubprocessRunner(cwd=str(cwd)),
            prompter=TyperPrompter(),
            http_client=client,
            logger=logger,
        )

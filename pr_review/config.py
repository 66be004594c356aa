"""Runtime settings and `config/database.yml` loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

DATABASE_CONFIG_RELATIVE_PATH = Path("config/database.yml")
DEFAULT_BACKUP_RELATIVE_DIR = Path("tmp/db_backups")
DEFAULT_DATABASE_ENVIRONMENT = "development"
DEFAULT_PRIVILEGE_COMMAND = "sudo"
DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_HTTP_TIMEOUT_SECONDS = 20.0

DATABASE_ENV_VAR = "PR_REVIEW_DB_ENV"
BACKUP_DIR_ENV_VAR = "PR_REVIEW_BACKUP_DIR"
PRIVILEGE_COMMAND_ENV_VAR = "PR_REVIEW_PRIVILEGE_COMMAND"
GITHUB_API_URL_ENV_VAR = "PR_REVIEW_GITHUB_API_URL"
HTTP_TIMEOUT_ENV_VAR = "PR_REVIEW_HTTP_TIMEOUT"
GITHUB_TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


class ReviewConfigError(RuntimeError):
    """Raised when settings or the database config file are unusable."""


class DatabaseEntry(BaseModel):
    """Connection settings for one environment in `database.yml`."""

    model_config = ConfigDict(extra="allow")

    database: str = Field(min_length=1)
    username: str = Field(min_length=1)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    """Raw `database.yml` contents keyed by environment name."""

    path: Path
    environments: dict[str, Any]

    def entry(self, environment: str) -> DatabaseEntry:
        """Validate and return the entry for one environment."""
        raw_entry = self.environments.get(environment)
        if raw_entry is None:
            raise ReviewConfigError(
                f"No '{environment}' environment in {self.path}."
            )
        try:
            return DatabaseEntry.model_validate(raw_entry)
        except ValidationError as error:
            raise ReviewConfigError(
                f"Invalid '{environment}' entry in {self.path}: {error}"
            ) from error


@dataclass(frozen=True, slots=True)
class ReviewSettings:
    """Per-invocation settings resolved from the environment."""

    cwd: Path
    database_environment: str = DEFAULT_DATABASE_ENVIRONMENT
    backup_dir: Path | None = None
    privilege_command: str = DEFAULT_PRIVILEGE_COMMAND
    github_api_url: str = DEFAULT_GITHUB_API_URL
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    github_token: str | None = field(default=None, repr=False)

    @property
    def database_config_path(self) -> Path:
        return self.cwd / DATABASE_CONFIG_RELATIVE_PATH

    @property
    def resolved_backup_dir(self) -> Path:
        if self.backup_dir is not None:
            return self.backup_dir
        return self.cwd / DEFAULT_BACKUP_RELATIVE_DIR


def load_settings(cwd: Path) -> ReviewSettings:
    """Build settings from `<cwd>/.env` and the process environment."""
    load_dotenv(dotenv_path=cwd / ".env", override=False)

    backup_dir_value = os.getenv(BACKUP_DIR_ENV_VAR)
    timeout_value = os.getenv(HTTP_TIMEOUT_ENV_VAR)
    timeout_seconds = DEFAULT_HTTP_TIMEOUT_SECONDS
    if timeout_value:
        try:
            timeout_seconds = float(timeout_value)
        except ValueError as error:
            raise ReviewConfigError(
                f"{HTTP_TIMEOUT_ENV_VAR} must be a number, got '{timeout_value}'."
            ) from error

    return ReviewSettings(
        cwd=cwd,
        database_environment=os.getenv(DATABASE_ENV_VAR) or DEFAULT_DATABASE_ENVIRONMENT,
        backup_dir=(cwd / backup_dir_value) if backup_dir_value else None,
        privilege_command=os.getenv(PRIVILEGE_COMMAND_ENV_VAR) or DEFAULT_PRIVILEGE_COMMAND,
        github_api_url=os.getenv(GITHUB_API_URL_ENV_VAR) or DEFAULT_GITHUB_API_URL,
        http_timeout_seconds=timeout_seconds,
        github_token=_github_token(),
    )


def _github_token() -> str | None:
    """Return the first configured GitHub token, preferring GITHUB_TOKEN."""
    for name in GITHUB_TOKEN_ENV_VARS:
        token = os.getenv(name)
        if token:
            return token
    return None


def load_database_config(path: Path) -> DatabaseConfig:
    """Parse a Rails-style `database.yml` file."""
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as error:
        raise ReviewConfigError(f"Could not parse {path}: {error}") from error
    if not isinstance(payload, dict):
        raise ReviewConfigError(f"Expected a mapping of environments in {path}.")
    return DatabaseConfig(path=path, environments=payload)

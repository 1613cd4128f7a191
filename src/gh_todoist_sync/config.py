"""
Application settings loaded from the environment.

Settings come from environment variables, optionally seeded from a
``.env`` file in the working directory.
"""

from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError, InvalidRepositoryError, MissingSettingError
from .github_client import GitHubClient
from .todoist_client import TodoistClient

DEFAULT_SYNC_INTERVAL_MINUTES = 15
_REQUIRED = ("github_token", "github_owner", "github_repo", "todoist_token")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github_token: str = Field(description="GitHub personal access token")
    github_owner: str = Field(description="Repository owner")
    github_repo: str = Field(description="Repository name")
    todoist_token: str = Field(description="Todoist API token")

    todoist_project_name: str = Field(
        default="GitHub Sync",
        description="Todoist project that mirrors the repository",
    )
    sync_interval_minutes: int = Field(
        default=DEFAULT_SYNC_INTERVAL_MINUTES,
        ge=1,
        description="Minutes between passes in daemon mode",
    )
    debug: bool = Field(default=False, description="Enable debug logging")
    http_timeout: float = Field(
        default=30,
        gt=0,
        description="Per-request HTTP timeout in seconds",
    )
    github_api_url: str = Field(default=GitHubClient.DEFAULT_API_URL)
    todoist_api_url: str = Field(default=TodoistClient.DEFAULT_API_URL)

    @field_validator(*_REQUIRED)
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("sync_interval_minutes", mode="before")
    @classmethod
    def _lenient_interval(cls, value: Any) -> Any:
        # A malformed interval falls back to the default
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                return DEFAULT_SYNC_INTERVAL_MINUTES
        return value

    @field_validator("debug", mode="before")
    @classmethod
    def _lenient_debug(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "t", "true", "yes", "on")
        return value

    @property
    def repo(self) -> str:
        """Get repository in owner/repo format."""
        return f"{self.github_owner}/{self.github_repo}"

    @property
    def sync_interval(self) -> float:
        """Get the daemon interval in seconds."""
        return self.sync_interval_minutes * 60.0


def _to_config_error(error: ValidationError) -> ConfigError:
    """Turn the first pydantic validation failure into a ConfigError."""
    first = error.errors()[0]
    field = str(first["loc"][0]) if first["loc"] else ""
    env_var = field.upper()

    if field in _REQUIRED and first["type"] in ("missing", "value_error"):
        return MissingSettingError(env_var)

    return ConfigError(
        f"Invalid value for {env_var}: {first['msg']}",
        "Check your environment variables or .env file",
    )


def load_settings(env_file: Path | None = None) -> Settings:
    """
    Load and validate settings.

    Args:
        env_file: Optional .env file to read instead of ./.env

    Returns:
        Validated settings

    Raises:
        MissingSettingError: If a credential or repository setting is missing
        InvalidRepositoryError: If owner or repo contain a slash
        ConfigError: If any other value is invalid
    """
    try:
        if env_file is not None:
            settings = Settings(_env_file=env_file)
        else:
            settings = Settings()
    except ValidationError as e:
        raise _to_config_error(e) from None

    if "/" in settings.github_owner or "/" in settings.github_repo:
        raise InvalidRepositoryError(settings.repo)

    return settings

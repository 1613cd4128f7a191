"""
Exception hierarchy for gh-todoist-sync.

This module defines custom exceptions with clear messages and
actionable guidance for users.
"""


class GitHubTodoistSyncError(Exception):
    """Base exception for all gh-todoist-sync errors."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint
        super().__init__(message)

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


# GitHub Errors


class GitHubClientError(GitHubTodoistSyncError):
    """Base class for GitHub API related errors."""


class GitHubAuthError(GitHubClientError):
    """GitHub authentication failed or not configured."""

    def __init__(self, details: str = "") -> None:
        message = "GitHub authentication failed"
        if details:
            message = f"{message}: {details}"
        super().__init__(
            message,
            "Check that GITHUB_TOKEN is set and has access to the repository",
        )


class GitHubAPIError(GitHubClientError):
    """GitHub API returned an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        status_info = f" (HTTP {status_code})" if status_code else ""
        super().__init__(
            f"GitHub API error{status_info}: {message}",
            "Check that the repository exists and you have access to it",
        )


class GitHubNetworkError(GitHubClientError):
    """Network error communicating with GitHub."""

    def __init__(self, details: str = "") -> None:
        message = "Network error connecting to GitHub"
        if details:
            message = f"{message}: {details}"
        super().__init__(
            message,
            "Check your internet connection and try again",
        )


class GitHubRateLimitError(GitHubClientError):
    """GitHub API rate limit exceeded."""

    def __init__(self, reset_time: str | None = None) -> None:
        message = "GitHub API rate limit exceeded"
        hint = "Wait a few minutes and try again"
        if reset_time:
            hint = f"Rate limit resets at {reset_time}. Wait and try again."
        super().__init__(message, hint)


class GitHubTimeoutError(GitHubClientError):
    """GitHub API request timed out."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"GitHub API request timed out after {timeout_seconds:g} seconds",
            "Check your network or raise HTTP_TIMEOUT",
        )


# Todoist Errors


class TodoistClientError(GitHubTodoistSyncError):
    """Base class for Todoist API related errors."""


class TodoistAuthError(TodoistClientError):
    """Todoist authentication failed."""

    def __init__(self, details: str = "") -> None:
        message = "Todoist authentication failed"
        if details:
            message = f"{message}: {details}"
        super().__init__(
            message,
            "Check that TODOIST_TOKEN holds a valid API token "
            "(Settings -> Integrations -> Developer)",
        )


class TodoistAPIError(TodoistClientError):
    """Todoist API returned an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        status_info = f" (HTTP {status_code})" if status_code else ""
        super().__init__(
            f"Todoist API error{status_info}: {message}",
            "Check that the project and task still exist in Todoist",
        )


class TodoistNetworkError(TodoistClientError):
    """Network error communicating with Todoist."""

    def __init__(self, details: str = "") -> None:
        message = "Network error connecting to Todoist"
        if details:
            message = f"{message}: {details}"
        super().__init__(
            message,
            "Check your internet connection and try again",
        )


class TodoistRateLimitError(TodoistClientError):
    """Todoist API rate limit exceeded."""

    def __init__(self) -> None:
        super().__init__(
            "Todoist API rate limit exceeded",
            "Wait a few minutes or increase SYNC_INTERVAL_MINUTES",
        )


class TodoistTimeoutError(TodoistClientError):
    """Todoist API request timed out."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            f"Todoist API request timed out after {timeout_seconds:g} seconds",
            "Check your network or raise HTTP_TIMEOUT",
        )


# Sync Errors


class SyncError(GitHubTodoistSyncError):
    """Base class for sync orchestration errors."""


class ProjectResolutionError(SyncError):
    """The target Todoist project could neither be found nor created."""

    def __init__(self, project_name: str, details: str = "") -> None:
        message = f"Could not find or create Todoist project '{project_name}'"
        if details:
            message = f"{message}: {details}"
        super().__init__(
            message,
            "Check TODOIST_TOKEN and TODOIST_PROJECT_NAME",
        )


# Configuration Errors


class ConfigError(GitHubTodoistSyncError):
    """Configuration error."""

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message, hint)


class MissingSettingError(ConfigError):
    """A required setting is missing from the environment."""

    def __init__(self, env_var: str) -> None:
        self.env_var = env_var
        super().__init__(
            f"{env_var} is required",
            f"Set {env_var} in the environment or in a .env file",
        )


class InvalidRepositoryError(ConfigError):
    """Invalid repository format."""

    def __init__(self, repo: str) -> None:
        super().__init__(
            f"Invalid repository format: '{repo}'",
            "Set GITHUB_OWNER and GITHUB_REPO separately, e.g. 'octocat' and 'Hello-World'",
        )

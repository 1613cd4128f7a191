"""
Abstract provider protocols for the two synced services.

This module defines the interfaces the sync engine talks to. The real
GitHub and Todoist clients implement them, and tests substitute
in-memory fakes.
"""

from abc import ABC, abstractmethod

from .models import (
    GitHubIssue,
    IssueState,
    TaskCreate,
    TaskUpdate,
    TodoistProject,
    TodoistTask,
)


class IssueProvider(ABC):
    """
    Abstract base class for the issue tracker side.

    A provider is bound to a single repository at construction.
    """

    @property
    @abstractmethod
    def repo(self) -> str:
        """Return the repository in owner/repo format."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close any resources held by the provider."""
        ...

    @abstractmethod
    async def check_connection(self) -> bool:
        """
        Check if the provider is accessible and authenticated.

        Returns:
            True if connection is successful

        Raises:
            Provider-specific exceptions on failure
        """
        ...

    @abstractmethod
    async def fetch_issues(self) -> list[GitHubIssue]:
        """
        Fetch every issue of the repository, in all states.

        Pull requests are included and flagged; callers filter them.

        Returns:
            List of GitHubIssue objects
        """
        ...

    @abstractmethod
    async def fetch_issue(self, number: int) -> GitHubIssue:
        """
        Fetch a single issue by number.

        Args:
            number: Issue number

        Returns:
            GitHubIssue object
        """
        ...

    @abstractmethod
    async def update_issue_state(self, number: int, state: IssueState) -> None:
        """
        Open or close an issue.

        Args:
            number: Issue number
            state: Target state
        """
        ...


class TaskProvider(ABC):
    """Abstract base class for the task service side."""

    @abstractmethod
    async def close(self) -> None:
        """Close any resources held by the provider."""
        ...

    @abstractmethod
    async def check_connection(self) -> bool:
        """Check if the provider is accessible and authenticated."""
        ...

    @abstractmethod
    async def list_projects(self) -> list[TodoistProject]:
        """List all projects visible to the user."""
        ...

    @abstractmethod
    async def create_project(self, name: str) -> TodoistProject:
        """Create a project with the given name."""
        ...

    @abstractmethod
    async def list_tasks(self, project_id: str) -> list[TodoistTask]:
        """List the tasks of a project."""
        ...

    @abstractmethod
    async def create_task(self, task: TaskCreate) -> TodoistTask:
        """Create a task and return it as stored by the service."""
        ...

    @abstractmethod
    async def update_task(self, task_id: str, update: TaskUpdate) -> None:
        """Apply a partial update to a task."""
        ...

    @abstractmethod
    async def close_task(self, task_id: str) -> None:
        """Mark a task completed."""
        ...

    @abstractmethod
    async def reopen_task(self, task_id: str) -> None:
        """Mark a completed task active again."""
        ...

    async def find_project(self, name: str) -> TodoistProject | None:
        """
        Find a project by exact name.

        Args:
            name: Project name

        Returns:
            The first project with that name, or None
        """
        for project in await self.list_projects():
            if project.name == name:
                return project
        return None

"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from gh_todoist_sync.exceptions import (
    GitHubAPIError,
    GitHubNetworkError,
    TodoistAPIError,
    TodoistNetworkError,
)
from gh_todoist_sync.mapping import format_issue_reference
from gh_todoist_sync.models import (
    GitHubIssue,
    IssueState,
    TaskCreate,
    TaskUpdate,
    TodoistProject,
    TodoistTask,
)
from gh_todoist_sync.provider import IssueProvider, TaskProvider

PROJECT_ID = "proj-1"


def _issue_url(number: int) -> str:
    return f"https://github.com/owner/repo/issues/{number}"


class FakeIssueProvider(IssueProvider):
    """In-memory GitHub side that records every call."""

    def __init__(self, issues: list[GitHubIssue] | None = None) -> None:
        self.issues: list[GitHubIssue] = list(issues or [])
        self.calls: list[tuple[Any, ...]] = []
        self.fail_fetch_all = False
        self.fail_fetch: set[int] = set()
        self.fail_update: set[int] = set()
        self.closed = False

    @property
    def repo(self) -> str:
        return "owner/repo"

    async def close(self) -> None:
        self.closed = True

    async def check_connection(self) -> bool:
        return True

    async def fetch_issues(self) -> list[GitHubIssue]:
        self.calls.append(("fetch_issues",))
        if self.fail_fetch_all:
            raise GitHubNetworkError("connection reset")
        return list(self.issues)

    async def fetch_issue(self, number: int) -> GitHubIssue:
        self.calls.append(("fetch_issue", number))
        if number in self.fail_fetch:
            raise GitHubNetworkError("connection reset")
        for issue in self.issues:
            if issue.number == number:
                return issue
        raise GitHubAPIError(f"Not found: #{number}", 404)

    async def update_issue_state(self, number: int, state: IssueState) -> None:
        self.calls.append(("update_issue_state", number, state))
        if number in self.fail_update:
            raise GitHubAPIError("Validation failed", 422)
        self.issues = [
            issue.model_copy(update={"state": state}) if issue.number == number else issue
            for issue in self.issues
        ]

    @property
    def mutations(self) -> list[tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == "update_issue_state"]


class FakeTaskProvider(TaskProvider):
    """In-memory Todoist side that records every call."""

    def __init__(
        self,
        projects: list[TodoistProject] | None = None,
        tasks: list[TodoistTask] | None = None,
    ) -> None:
        self.projects: list[TodoistProject] = list(projects or [])
        self.tasks: list[TodoistTask] = list(tasks or [])
        self.calls: list[tuple[Any, ...]] = []
        self.fail_list_projects = False
        self.fail_create_project = False
        self.fail_list_tasks = False
        self.fail_create: set[str] = set()  # task contents
        self.fail_task_ids: set[str] = set()
        self.closed = False
        self._next_id = 100

    async def close(self) -> None:
        self.closed = True

    async def check_connection(self) -> bool:
        return True

    async def list_projects(self) -> list[TodoistProject]:
        self.calls.append(("list_projects",))
        if self.fail_list_projects:
            raise TodoistNetworkError("connection reset")
        return list(self.projects)

    async def create_project(self, name: str) -> TodoistProject:
        self.calls.append(("create_project", name))
        if self.fail_create_project:
            raise TodoistAPIError("Forbidden", 403)
        project = TodoistProject(id=f"proj-{len(self.projects) + 1}", name=name)
        self.projects.append(project)
        return project

    async def list_tasks(self, project_id: str) -> list[TodoistTask]:
        self.calls.append(("list_tasks", project_id))
        if self.fail_list_tasks:
            raise TodoistNetworkError("connection reset")
        return [task for task in self.tasks if task.project_id == project_id]

    async def create_task(self, task: TaskCreate) -> TodoistTask:
        self.calls.append(("create_task", task))
        if task.content in self.fail_create:
            raise TodoistAPIError("Bad request", 400)
        self._next_id += 1
        created = TodoistTask(
            id=str(self._next_id),
            project_id=task.project_id or "",
            content=task.content,
            description=task.description,
            labels=task.labels,
            priority=task.priority,
        )
        self.tasks.append(created)
        return created

    def _replace(self, task_id: str, **changes: Any) -> None:
        self.tasks = [
            task.model_copy(update=changes) if task.id == task_id else task
            for task in self.tasks
        ]

    async def update_task(self, task_id: str, update: TaskUpdate) -> None:
        self.calls.append(("update_task", task_id, update))
        if task_id in self.fail_task_ids:
            raise TodoistAPIError("Task not found", 404)
        self._replace(task_id, **update.to_payload())

    async def close_task(self, task_id: str) -> None:
        self.calls.append(("close_task", task_id))
        if task_id in self.fail_task_ids:
            raise TodoistAPIError("Task not found", 404)
        self._replace(task_id, is_completed=True)

    async def reopen_task(self, task_id: str) -> None:
        self.calls.append(("reopen_task", task_id))
        if task_id in self.fail_task_ids:
            raise TodoistAPIError("Task not found", 404)
        self._replace(task_id, is_completed=False)

    @property
    def mutations(self) -> list[tuple[Any, ...]]:
        reads = {"list_projects", "list_tasks"}
        return [call for call in self.calls if call[0] not in reads]


@pytest.fixture
def make_issue() -> Callable[..., GitHubIssue]:
    """Factory for GitHub issues."""

    def _make(
        number: int,
        title: str | None = None,
        state: IssueState = IssueState.OPEN,
        labels: list[str] | None = None,
        is_pull_request: bool = False,
    ) -> GitHubIssue:
        return GitHubIssue(
            number=number,
            id=1000 + number,
            title=title or f"Issue {number}",
            body="Issue body.",
            state=state,
            labels=labels or [],
            created_at=datetime(2024, 1, 10, 9, 0),
            updated_at=datetime(2024, 1, 15, 14, 30),
            url=_issue_url(number),
            is_pull_request=is_pull_request,
        )

    return _make


@pytest.fixture
def make_task() -> Callable[..., TodoistTask]:
    """Factory for Todoist tasks linked to an issue (or not, with issue_number=None)."""

    def _make(
        task_id: str,
        issue_number: int | None,
        content: str | None = None,
        is_completed: bool = False,
        priority: int = 1,
        labels: list[str] | None = None,
        project_id: str = PROJECT_ID,
    ) -> TodoistTask:
        if issue_number is None:
            description = "Buy milk"
        else:
            description = format_issue_reference(issue_number, _issue_url(issue_number))
        return TodoistTask(
            id=task_id,
            project_id=project_id,
            content=content or (f"Issue {issue_number}" if issue_number else "Chore"),
            description=description,
            is_completed=is_completed,
            labels=labels or [],
            priority=priority,
        )

    return _make


@pytest.fixture
def project() -> TodoistProject:
    """The target Todoist project."""
    return TodoistProject(id=PROJECT_ID, name="GitHub Sync")


@pytest.fixture
def github() -> FakeIssueProvider:
    """Empty fake GitHub side."""
    return FakeIssueProvider()


@pytest.fixture
def todoist(project: TodoistProject) -> FakeTaskProvider:
    """Fake Todoist side that already has the target project."""
    return FakeTaskProvider(projects=[project])


SETTINGS_ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_OWNER",
    "GITHUB_REPO",
    "TODOIST_TOKEN",
    "TODOIST_PROJECT_NAME",
    "SYNC_INTERVAL_MINUTES",
    "DEBUG",
    "HTTP_TIMEOUT",
    "GITHUB_API_URL",
    "TODOIST_API_URL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> pytest.MonkeyPatch:
    """Unset every setting and run from an empty directory (no stray .env)."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return monkeypatch


@pytest.fixture
def sync_env(clean_env: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment with every required setting present."""
    clean_env.setenv("GITHUB_TOKEN", "ghp_test")
    clean_env.setenv("GITHUB_OWNER", "owner")
    clean_env.setenv("GITHUB_REPO", "repo")
    clean_env.setenv("TODOIST_TOKEN", "todoist_test")
    return clean_env

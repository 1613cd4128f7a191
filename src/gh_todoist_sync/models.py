"""
Pydantic models for GitHub issues, Todoist tasks and sync reports.

This module defines the data models used throughout the application,
providing strong typing, validation, and serialization capabilities.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from .mapping import extract_issue_number


class IssueState(str, Enum):
    """GitHub issue state."""

    OPEN = "open"
    CLOSED = "closed"


class GitHubIssue(BaseModel):
    """
    GitHub issue as seen by the sync engine.

    Issues are identified by their repository-scoped ``number``; ``id`` is
    GitHub's opaque internal identifier and is kept only for reference.
    Pull requests come back from the issues endpoint too and are flagged
    with ``is_pull_request`` so the engine can skip them.
    """

    model_config = ConfigDict(frozen=True)

    number: int
    id: int = 0
    title: str
    body: str | None = None
    state: IssueState
    labels: list[str] = Field(default_factory=list)
    assignee: str | None = None
    created_at: datetime
    updated_at: datetime
    url: HttpUrl
    is_pull_request: bool = False

    @property
    def is_closed(self) -> bool:
        """Check if the issue is closed."""
        return self.state == IssueState.CLOSED


class TodoistProject(BaseModel):
    """Todoist project."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    url: str | None = None


class TodoistTask(BaseModel):
    """Todoist task (active or completed)."""

    model_config = ConfigDict(frozen=True)

    id: str
    project_id: str
    content: str
    description: str = ""
    is_completed: bool = False
    labels: list[str] = Field(default_factory=list)
    priority: int = Field(default=1, ge=1, le=4)
    url: str | None = None
    created_at: datetime | None = None

    @property
    def linked_issue_number(self) -> int | None:
        """Get the linked GitHub issue number from the description marker."""
        return extract_issue_number(self.description)


class TaskCreate(BaseModel):
    """Payload for creating a Todoist task."""

    content: str
    description: str = ""
    project_id: str | None = None
    labels: list[str] = Field(default_factory=list)
    priority: int = Field(default=1, ge=1, le=4)
    due_string: str | None = None
    due_date: str | None = None
    due_datetime: str | None = None
    due_lang: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize for the API, leaving out empty optional fields."""
        return {
            key: value
            for key, value in self.model_dump(exclude_none=True).items()
            if value not in ("", [])
        }


class TaskUpdate(BaseModel):
    """
    Partial update of a Todoist task.

    Only the fields the sync engine manages can be set. A field left at
    ``None`` is not sent.
    """

    content: str | None = None
    priority: int | None = Field(default=None, ge=1, le=4)
    labels: list[str] | None = None

    @property
    def is_empty(self) -> bool:
        """Check if the update carries no changes."""
        return not self.to_payload()

    @property
    def changed_fields(self) -> list[str]:
        """Get the names of the fields being updated."""
        return list(self.to_payload())

    def to_payload(self) -> dict[str, Any]:
        """Serialize only the fields that are set."""
        return self.model_dump(exclude_none=True)


class TaskOperationKind(str, Enum):
    """Remote operation planned for one issue's task."""

    CREATE = "create"
    UPDATE = "update"
    CLOSE = "close"
    REOPEN = "reopen"
    NONE = "none"


class TaskOperation(BaseModel):
    """
    One planned forward-pass operation.

    ``create`` is set for CREATE, ``update`` for UPDATE; ``task`` is the
    linked task for every kind except CREATE.
    """

    model_config = ConfigDict(frozen=True)

    kind: TaskOperationKind
    issue: GitHubIssue
    task: TodoistTask | None = None
    create: TaskCreate | None = None
    update: TaskUpdate | None = None

    def describe(self) -> str | None:
        """Describe the operation for the sync report."""
        if self.kind == TaskOperationKind.UPDATE and self.update is not None:
            return ", ".join(self.update.changed_fields)
        if self.kind == TaskOperationKind.CREATE and self.create is not None:
            return f"priority {self.create.priority}"
        return None


class SyncDirection(str, Enum):
    """Direction of a reconciliation pass."""

    FORWARD = "forward"  # GitHub -> Todoist
    REVERSE = "reverse"  # Todoist -> GitHub


class SyncAction(str, Enum):
    """Type of sync action taken for one item."""

    CREATED = "created"
    UPDATED = "updated"
    CLOSED = "closed"
    REOPENED = "reopened"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"  # Pull requests, unlinked tasks


class SyncEntry(BaseModel):
    """Record of a single sync operation."""

    model_config = ConfigDict(frozen=True)

    issue_number: int | None
    title: str
    action: SyncAction
    details: str | None = None


class SyncResult(BaseModel):
    """Result of one reconciliation pass."""

    model_config = ConfigDict(frozen=False)

    direction: SyncDirection
    dry_run: bool = False
    entries: list[SyncEntry] = Field(default_factory=list)
    total_issues: int = 0
    total_tasks: int = 0
    created: int = 0
    updated: int = 0
    closed: int = 0
    reopened: int = 0
    unchanged: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)

    def add_entry(
        self,
        issue_number: int | None,
        title: str,
        action: SyncAction,
        details: str | None = None,
    ) -> None:
        """Add a sync entry and update counters."""
        self.entries.append(
            SyncEntry(
                issue_number=issue_number,
                title=title,
                action=action,
                details=details,
            )
        )
        if action == SyncAction.CREATED:
            self.created += 1
        elif action == SyncAction.UPDATED:
            self.updated += 1
        elif action == SyncAction.CLOSED:
            self.closed += 1
        elif action == SyncAction.REOPENED:
            self.reopened += 1
        elif action == SyncAction.UNCHANGED:
            self.unchanged += 1
        elif action == SyncAction.SKIPPED:
            self.skipped += 1

    def add_error(self, issue_number: int, error: Exception | str) -> None:
        """Record an item-local failure."""
        self.errors.append(f"#{issue_number}: {error}")

    @property
    def has_changes(self) -> bool:
        """Check if any changes were made."""
        return (self.created + self.updated + self.closed + self.reopened) > 0

    def summary(self) -> str:
        """Generate human-readable summary."""
        if self.direction == SyncDirection.FORWARD:
            heading = (
                f"GitHub -> Todoist: {self.total_issues} issues, "
                f"{self.total_tasks} tasks"
            )
        else:
            heading = f"Todoist -> GitHub: {self.total_tasks} tasks"
        if self.dry_run:
            heading = f"{heading} (dry run)"
        lines = [
            heading,
            f"  Created: {self.created}",
            f"  Updated: {self.updated}",
            f"  Closed: {self.closed}",
            f"  Reopened: {self.reopened}",
            f"  Unchanged: {self.unchanged}",
            f"  Skipped: {self.skipped}",
        ]
        if self.errors:
            lines.append(f"  Errors: {len(self.errors)}")
            for error in self.errors[:5]:  # Show first 5 errors
                lines.append(f"    - {error}")
            if len(self.errors) > 5:
                lines.append(f"    ... and {len(self.errors) - 5} more")
        return "\n".join(lines)


class FullSyncResult(BaseModel):
    """Result of a forward pass followed by a reverse pass."""

    model_config = ConfigDict(frozen=False)

    forward: SyncResult
    reverse: SyncResult

    @property
    def errors(self) -> list[str]:
        """Get item errors from both passes."""
        return [*self.forward.errors, *self.reverse.errors]

    @property
    def has_changes(self) -> bool:
        """Check if either pass made changes."""
        return self.forward.has_changes or self.reverse.has_changes

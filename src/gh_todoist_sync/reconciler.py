"""
Reconciliation logic between GitHub issues and Todoist tasks.

This module provides the core sync algorithm:
- Links tasks to issues through the description marker
- Creates tasks for issues that have none
- Pushes title, priority and open/closed state from issues to tasks
- Pushes task completion back to the issue open/closed state
"""

import logging
from collections.abc import Iterable

from .exceptions import GitHubTodoistSyncError
from .mapping import convert_labels, format_issue_reference, label_priority
from .models import (
    GitHubIssue,
    IssueState,
    SyncAction,
    SyncDirection,
    SyncResult,
    TaskCreate,
    TaskOperation,
    TaskOperationKind,
    TaskUpdate,
    TodoistTask,
)
from .provider import IssueProvider, TaskProvider

logger = logging.getLogger(__name__)


def index_tasks_by_issue(tasks: Iterable[TodoistTask]) -> dict[int, TodoistTask]:
    """
    Map issue numbers to their linked tasks.

    Tasks are scanned in order and the first task carrying a given issue
    number wins. Later tasks with the same marker are logged and ignored.

    Args:
        tasks: Tasks in fetched order

    Returns:
        Dict of issue number to linked task
    """
    index: dict[int, TodoistTask] = {}
    for task in tasks:
        number = task.linked_issue_number
        if number is None:
            continue
        if number in index:
            logger.warning(
                f"Task {task.id} duplicates the marker for issue #{number}; "
                f"keeping task {index[number].id}"
            )
            continue
        index[number] = task
    return index


def build_task_create(issue: GitHubIssue, project_id: str) -> TaskCreate:
    """Build the task payload for an issue with no linked task."""
    return TaskCreate(
        content=issue.title,
        description=format_issue_reference(issue.number, str(issue.url)),
        project_id=project_id,
        priority=label_priority(issue.labels),
        labels=convert_labels(issue.labels),
    )


def plan_task_operation(
    issue: GitHubIssue,
    task: TodoistTask | None,
    project_id: str,
) -> TaskOperation:
    """
    Decide the single remote operation that brings a task in line with its issue.

    A completion state mismatch wins over field differences: the task is
    closed or reopened and any title/priority drift waits for a later pass.

    Args:
        issue: Source issue
        task: Linked task, or None if the issue has none yet
        project_id: Target project for new tasks

    Returns:
        The planned operation
    """
    if task is None:
        return TaskOperation(
            kind=TaskOperationKind.CREATE,
            issue=issue,
            create=build_task_create(issue, project_id),
        )

    if task.is_completed != issue.is_closed:
        kind = TaskOperationKind.CLOSE if issue.is_closed else TaskOperationKind.REOPEN
        return TaskOperation(kind=kind, issue=issue, task=task)

    priority = label_priority(issue.labels)
    update = TaskUpdate(
        content=issue.title if task.content != issue.title else None,
        priority=priority if task.priority != priority else None,
    )

    if update.is_empty:
        return TaskOperation(kind=TaskOperationKind.NONE, issue=issue, task=task)

    return TaskOperation(
        kind=TaskOperationKind.UPDATE,
        issue=issue,
        task=task,
        update=update,
    )


def plan_forward(
    issues: Iterable[GitHubIssue],
    tasks: Iterable[TodoistTask],
    project_id: str,
) -> list[TaskOperation]:
    """
    Plan the forward pass for every issue that is not a pull request.

    Args:
        issues: Complete issue set of the repository
        tasks: Complete task set of the target project
        project_id: Target project for new tasks

    Returns:
        One operation per issue, in issue order
    """
    task_index = index_tasks_by_issue(tasks)
    return [
        plan_task_operation(issue, task_index.get(issue.number), project_id)
        for issue in issues
        if not issue.is_pull_request
    ]


def decide_issue_state(task: TodoistTask, issue: GitHubIssue) -> IssueState | None:
    """
    Decide whether an issue must change state to follow its task.

    Args:
        task: Linked task
        issue: Current issue

    Returns:
        The state to set, or None when no change is needed
    """
    if task.is_completed and not issue.is_closed:
        return IssueState.CLOSED
    if not task.is_completed and issue.is_closed:
        return IssueState.OPEN
    return None


_OPERATION_ACTIONS = {
    TaskOperationKind.CREATE: SyncAction.CREATED,
    TaskOperationKind.UPDATE: SyncAction.UPDATED,
    TaskOperationKind.CLOSE: SyncAction.CLOSED,
    TaskOperationKind.REOPEN: SyncAction.REOPENED,
    TaskOperationKind.NONE: SyncAction.UNCHANGED,
}


class Reconciler:
    """
    Runs reconciliation passes between an issue provider and a task provider.

    Fetching the full issue set or task set is pass-fatal: the provider
    error propagates to the caller. Every later failure concerns a single
    issue or task; it is logged, recorded in the result, and the pass
    moves on.
    """

    def __init__(
        self,
        issue_provider: IssueProvider,
        task_provider: TaskProvider,
        dry_run: bool = False,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            issue_provider: GitHub side
            task_provider: Todoist side
            dry_run: If True, plan and report without calling mutating endpoints
        """
        self.issue_provider = issue_provider
        self.task_provider = task_provider
        self.dry_run = dry_run

    async def sync_forward(self, project_id: str) -> SyncResult:
        """
        Run a forward pass: GitHub issues -> Todoist tasks.

        Args:
            project_id: Target Todoist project

        Returns:
            SyncResult; ``created`` is the number of tasks created
        """
        issues = await self.issue_provider.fetch_issues()
        tasks = await self.task_provider.list_tasks(project_id)
        return await self.apply_forward(issues, tasks, project_id)

    async def apply_forward(
        self,
        issues: list[GitHubIssue],
        tasks: list[TodoistTask],
        project_id: str,
    ) -> SyncResult:
        """
        Reconcile fetched issues and tasks and apply the resulting operations.

        Args:
            issues: Complete issue set
            tasks: Complete task set of the project
            project_id: Target Todoist project

        Returns:
            SyncResult with statistics about the pass
        """
        result = SyncResult(
            direction=SyncDirection.FORWARD,
            dry_run=self.dry_run,
            total_issues=len(issues),
            total_tasks=len(tasks),
        )

        for issue in issues:
            if issue.is_pull_request:
                result.add_entry(
                    issue.number, issue.title, SyncAction.SKIPPED, "pull request"
                )

        for operation in plan_forward(issues, tasks, project_id):
            issue = operation.issue
            action = _OPERATION_ACTIONS[operation.kind]
            details = operation.describe()

            if action != SyncAction.UNCHANGED:
                if self.dry_run:
                    logger.info(
                        f"Would {operation.kind.value} task for issue #{issue.number}: "
                        f"{issue.title}"
                    )
                else:
                    try:
                        await self._apply_operation(operation)
                    except GitHubTodoistSyncError as e:
                        logger.warning(
                            f"Failed to {operation.kind.value} task for issue "
                            f"#{issue.number}: {e.message}"
                        )
                        result.add_error(issue.number, e.message)
                        continue
                    suffix = f" ({details})" if details else ""
                    logger.info(
                        f"{action.value.capitalize()} task for issue #{issue.number}: "
                        f"{issue.title}{suffix}"
                    )

            result.add_entry(
                issue_number=issue.number,
                title=issue.title,
                action=action,
                details=details,
            )

        return result

    async def _apply_operation(self, operation: TaskOperation) -> None:
        """Issue the remote call for one planned operation."""
        kind = operation.kind

        if kind == TaskOperationKind.CREATE:
            if operation.create is not None:
                await self.task_provider.create_task(operation.create)
            return

        task = operation.task
        if task is None:
            return

        if kind == TaskOperationKind.UPDATE and operation.update is not None:
            await self.task_provider.update_task(task.id, operation.update)
        elif kind == TaskOperationKind.CLOSE:
            await self.task_provider.close_task(task.id)
        elif kind == TaskOperationKind.REOPEN:
            await self.task_provider.reopen_task(task.id)

    async def sync_reverse(self, project_id: str) -> SyncResult:
        """
        Run a reverse pass: Todoist task completion -> GitHub issue state.

        Each linked task costs one issue fetch.

        Args:
            project_id: Target Todoist project

        Returns:
            SyncResult with statistics about the pass
        """
        tasks = await self.task_provider.list_tasks(project_id)
        result = SyncResult(
            direction=SyncDirection.REVERSE,
            dry_run=self.dry_run,
            total_tasks=len(tasks),
        )

        for task in tasks:
            number = task.linked_issue_number
            if number is None:
                result.add_entry(None, task.content, SyncAction.SKIPPED, "no issue marker")
                continue

            try:
                issue = await self.issue_provider.fetch_issue(number)
            except GitHubTodoistSyncError as e:
                logger.warning(f"Failed to fetch issue #{number}: {e.message}")
                result.add_error(number, e.message)
                continue
            result.total_issues += 1

            state = decide_issue_state(task, issue)
            if state is None:
                result.add_entry(number, issue.title, SyncAction.UNCHANGED)
                continue

            verb = "close" if state == IssueState.CLOSED else "reopen"
            if self.dry_run:
                logger.info(f"Would {verb} issue #{number}: {issue.title}")
            else:
                try:
                    await self.issue_provider.update_issue_state(number, state)
                except GitHubTodoistSyncError as e:
                    logger.warning(f"Failed to {verb} issue #{number}: {e.message}")
                    result.add_error(number, e.message)
                    continue
                if state == IssueState.CLOSED:
                    logger.info(f"Closed issue #{number} (task completed in Todoist)")
                else:
                    logger.info(f"Reopened issue #{number} (task reopened in Todoist)")

            action = SyncAction.CLOSED if state == IssueState.CLOSED else SyncAction.REOPENED
            result.add_entry(number, issue.title, action, f"task {task.id}")

        return result

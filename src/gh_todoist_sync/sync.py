"""
Main sync orchestrator.

This module coordinates the sync process:
1. Resolve (find or create) the target Todoist project once
2. Forward pass: GitHub issues -> Todoist tasks
3. Reverse pass: Todoist task completion -> GitHub issue state
4. Optionally repeat on a fixed interval until asked to stop
"""

import asyncio
import logging
import math
from collections.abc import Callable

from .config import Settings
from .exceptions import GitHubTodoistSyncError, ProjectResolutionError
from .github_client import GitHubClient
from .models import FullSyncResult, SyncResult, TodoistProject
from .provider import IssueProvider, TaskProvider
from .reconciler import Reconciler
from .todoist_client import TodoistClient

logger = logging.getLogger(__name__)


async def resolve_project(task_provider: TaskProvider, name: str) -> TodoistProject:
    """
    Find the project with the given name, creating it if it does not exist.

    A failed lookup is treated like a missing project.

    Args:
        task_provider: Todoist side
        name: Exact project name

    Returns:
        The resolved project

    Raises:
        ProjectResolutionError: If the project can be neither found nor created
    """
    try:
        project = await task_provider.find_project(name)
    except GitHubTodoistSyncError as e:
        logger.warning(f"Project lookup failed: {e.message}")
        project = None

    if project is not None:
        logger.info(f"Using existing Todoist project: {project.name} (ID: {project.id})")
        return project

    logger.info(f"Creating Todoist project: {name}")
    try:
        project = await task_provider.create_project(name)
    except GitHubTodoistSyncError as e:
        raise ProjectResolutionError(name, e.message) from e

    logger.info(f"Created Todoist project: {project.name} (ID: {project.id})")
    return project


class IssueTaskSync:
    """
    Orchestrates the sync between a GitHub repository and a Todoist project.

    Build instances with :meth:`create` or :meth:`from_settings`, which
    resolve the target project once. The project is then reused by every
    pass for the lifetime of the instance.
    """

    def __init__(
        self,
        issue_provider: IssueProvider,
        task_provider: TaskProvider,
        project: TodoistProject,
        dry_run: bool = False,
    ) -> None:
        """
        Initialize the sync orchestrator.

        Args:
            issue_provider: GitHub side
            task_provider: Todoist side
            project: Resolved target project
            dry_run: If True, report what would change without changing it
        """
        self.issue_provider = issue_provider
        self.task_provider = task_provider
        self.project = project
        self.dry_run = dry_run
        self.reconciler = Reconciler(issue_provider, task_provider, dry_run=dry_run)

    @classmethod
    async def create(
        cls,
        issue_provider: IssueProvider,
        task_provider: TaskProvider,
        project_name: str,
        dry_run: bool = False,
    ) -> "IssueTaskSync":
        """
        Resolve the target project and build the orchestrator.

        Raises:
            ProjectResolutionError: If the project can be neither found nor created
        """
        project = await resolve_project(task_provider, project_name)
        return cls(issue_provider, task_provider, project, dry_run=dry_run)

    @classmethod
    async def from_settings(cls, settings: Settings, dry_run: bool = False) -> "IssueTaskSync":
        """
        Build real GitHub and Todoist clients from settings.

        The clients are closed again if project resolution fails.
        """
        issue_provider = GitHubClient(
            token=settings.github_token,
            owner=settings.github_owner,
            repo=settings.github_repo,
            base_url=settings.github_api_url,
            timeout=settings.http_timeout,
        )
        task_provider = TodoistClient(
            token=settings.todoist_token,
            base_url=settings.todoist_api_url,
            timeout=settings.http_timeout,
        )
        try:
            return await cls.create(
                issue_provider,
                task_provider,
                settings.todoist_project_name,
                dry_run=dry_run,
            )
        except ProjectResolutionError:
            await issue_provider.close()
            await task_provider.close()
            raise

    async def close(self) -> None:
        """Close both providers."""
        await self.issue_provider.close()
        await self.task_provider.close()

    async def sync_from_github(self) -> SyncResult:
        """
        Run the forward pass only.

        Raises:
            GitHubClientError: If the issue list cannot be fetched
            TodoistClientError: If the task list cannot be fetched
        """
        logger.info(f"Starting sync GitHub ({self.issue_provider.repo}) -> Todoist")
        result = await self.reconciler.sync_forward(self.project.id)
        logger.info(
            f"GitHub -> Todoist sync complete: created {result.created}, "
            f"updated {result.updated}, errors {len(result.errors)}"
        )
        logger.debug(result.summary())
        return result

    async def sync_to_github(self) -> SyncResult:
        """
        Run the reverse pass only.

        Raises:
            TodoistClientError: If the task list cannot be fetched
        """
        logger.info(f"Starting sync Todoist -> GitHub ({self.issue_provider.repo})")
        result = await self.reconciler.sync_reverse(self.project.id)
        logger.info(
            f"Todoist -> GitHub sync complete: closed {result.closed}, "
            f"reopened {result.reopened}, errors {len(result.errors)}"
        )
        logger.debug(result.summary())
        return result

    async def full_sync(self) -> FullSyncResult:
        """
        Run the forward pass, then the reverse pass.

        The reverse pass fetches tasks again, so it sees what the forward
        pass changed. If the forward pass fails to fetch its inputs, the
        error propagates and the reverse pass does not run.
        """
        logger.info("Starting full sync")
        forward = await self.sync_from_github()
        reverse = await self.sync_to_github()
        result = FullSyncResult(forward=forward, reverse=reverse)
        if result.has_changes:
            logger.info("Full sync complete")
        else:
            logger.info("Full sync complete, no changes")
        return result

    async def run_forever(
        self,
        interval: float,
        stop_event: asyncio.Event,
        on_result: Callable[[FullSyncResult], None] | None = None,
    ) -> int:
        """
        Run full passes every ``interval`` seconds until ``stop_event`` is set.

        The first pass starts immediately and later passes start at
        ``start + k * interval``. A pass that runs past one or more ticks
        drops them and the loop waits for the next tick on the grid.
        Setting the event ends the wait for the next tick; a pass that is
        already running completes first.
        A pass that fails is logged and the loop keeps its schedule.

        Args:
            interval: Seconds between passes
            stop_event: Event that requests shutdown
            on_result: Optional callback receiving each successful result

        Returns:
            Number of passes run
        """
        logger.info(f"Daemon started (interval: {interval:g}s)")
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        passes = 0

        while True:
            passes += 1
            try:
                result = await self.full_sync()
            except GitHubTodoistSyncError as e:
                logger.error(f"Sync pass {passes} failed: {e.message}")
            else:
                if on_result is not None:
                    on_result(result)

            if stop_event.is_set():
                break

            next_tick += interval
            now = loop.time()
            if next_tick < now:
                missed = math.ceil((now - next_tick) / interval)
                logger.warning(f"Sync pass {passes} overran the interval, skipping {missed} ticks")
                next_tick += missed * interval

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=max(0.0, next_tick - now))
            except TimeoutError:
                continue
            break

        logger.info(f"Shutdown requested, daemon stopped after {passes} passes")
        return passes

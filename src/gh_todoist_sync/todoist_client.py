"""
Todoist REST API client.

This module handles all interactions with the Todoist REST API:
projects, task listing, task creation and partial updates, and the
close/reopen actions.
"""

import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import ValidationError

from .exceptions import (
    TodoistAPIError,
    TodoistAuthError,
    TodoistNetworkError,
    TodoistRateLimitError,
    TodoistTimeoutError,
)
from .models import TaskCreate, TaskUpdate, TodoistProject, TodoistTask
from .provider import TaskProvider

logger = logging.getLogger(__name__)


class TodoistClient(TaskProvider):
    """
    Client for interacting with Todoist via its REST API.

    Every request carries the API token as a bearer token.
    """

    DEFAULT_API_URL = "https://api.todoist.com/rest/v2"
    DEFAULT_TIMEOUT = 30  # seconds

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the Todoist client.

        Args:
            token: Todoist API token
            base_url: API base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/json",
                },
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """
        Make an API request with error handling.

        Args:
            method: HTTP method
            path: API path (without base URL)
            params: Query parameters
            json: JSON request body

        Returns:
            JSON response data, or None for empty responses

        Raises:
            Various TodoistClientError subclasses based on failure type
        """
        client = await self._get_client()
        logger.debug(f"Todoist {method} {path} params={params}")

        try:
            response = await client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise TodoistTimeoutError(self.timeout) from e
        except httpx.TransportError as e:
            raise TodoistNetworkError(str(e)) from e

        if response.status_code == 401:
            raise TodoistAuthError("Invalid or expired API token")

        if response.status_code == 429:
            raise TodoistRateLimitError

        if response.status_code == 403:
            if "rate limit" in response.text.lower():
                raise TodoistRateLimitError
            raise TodoistAuthError(f"Access forbidden: {response.text}")

        if response.status_code == 404:
            raise TodoistAPIError(f"Not found: {path}", 404)

        if not response.is_success:
            raise TodoistAPIError(response.text, response.status_code)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise TodoistAPIError(f"Invalid JSON response: {e}") from e

    async def _request_list(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """
        Fetch a collection.

        Handles both plain list responses and cursor-paginated
        ``{"results": [...], "next_cursor": ...}`` responses.
        """
        items: list[dict[str, Any]] = []
        query = dict(params or {})

        while True:
            data = await self._request("GET", path, params=query or None)

            if isinstance(data, list):
                items.extend(data)
                return items

            if not isinstance(data, dict) or not isinstance(data.get("results"), list):
                raise TodoistAPIError(f"Expected list in response from {path}")

            items.extend(data["results"])
            cursor = data.get("next_cursor")
            if not cursor:
                return items
            query["cursor"] = cursor

    def _parse_datetime(self, value: str | None) -> datetime | None:
        """Parse ISO datetime string."""
        if not value:
            return None
        try:
            if value.endswith("Z"):
                value = value[:-1] + "+00:00"
            return datetime.fromisoformat(value)
        except (ValueError, TypeError):
            logger.warning(f"Failed to parse datetime: {value}")
            return None

    def _parse_project(self, data: dict[str, Any]) -> TodoistProject:
        """Parse project JSON into TodoistProject model."""
        try:
            return TodoistProject(
                id=str(data.get("id", "")),
                name=data.get("name", ""),
                url=data.get("url"),
            )
        except ValidationError as e:
            raise TodoistAPIError(
                f"Malformed project {data.get('id', '?')}: {e.error_count()} invalid fields"
            ) from e

    def _parse_task(self, data: dict[str, Any]) -> TodoistTask:
        """Parse task JSON into TodoistTask model."""
        try:
            return TodoistTask(
                id=str(data.get("id", "")),
                project_id=str(data.get("project_id", "")),
                content=data.get("content", ""),
                description=data.get("description") or "",
                is_completed=bool(data.get("is_completed", data.get("checked", False))),
                labels=list(data.get("labels") or []),
                priority=data.get("priority") or 1,
                url=data.get("url"),
                created_at=self._parse_datetime(data.get("created_at")),
            )
        except ValidationError as e:
            raise TodoistAPIError(
                f"Malformed task {data.get('id', '?')}: {e.error_count()} invalid fields"
            ) from e

    async def check_connection(self) -> bool:
        """
        Check that the API token is valid.

        Returns:
            True if connection is successful

        Raises:
            TodoistAuthError: If authentication fails
            TodoistNetworkError: If connection fails
        """
        await self._request("GET", "/projects")
        return True

    async def list_projects(self) -> list[TodoistProject]:
        """List all projects visible to the user."""
        projects = await self._request_list("/projects")
        return [self._parse_project(p) for p in projects]

    async def create_project(self, name: str) -> TodoistProject:
        """
        Create a project.

        Args:
            name: Project name

        Returns:
            The created project
        """
        data = await self._request("POST", "/projects", json={"name": name})
        if not isinstance(data, dict):
            raise TodoistAPIError("Expected project object in response")
        return self._parse_project(data)

    async def list_tasks(self, project_id: str) -> list[TodoistTask]:
        """
        List the tasks of a project.

        Args:
            project_id: Project ID

        Returns:
            Tasks in API order
        """
        tasks = await self._request_list("/tasks", params={"project_id": project_id})
        logger.debug(f"Fetched {len(tasks)} tasks from project {project_id}")
        return [self._parse_task(t) for t in tasks]

    async def create_task(self, task: TaskCreate) -> TodoistTask:
        """
        Create a task.

        Args:
            task: Task fields

        Returns:
            The created task
        """
        data = await self._request("POST", "/tasks", json=task.to_payload())
        if not isinstance(data, dict):
            raise TodoistAPIError("Expected task object in response")
        return self._parse_task(data)

    async def update_task(self, task_id: str, update: TaskUpdate) -> None:
        """
        Apply a partial update to a task.

        Args:
            task_id: Task ID
            update: Fields to change
        """
        await self._request("POST", f"/tasks/{task_id}", json=update.to_payload())

    async def close_task(self, task_id: str) -> None:
        """Mark a task completed."""
        await self._request("POST", f"/tasks/{task_id}/close")

    async def reopen_task(self, task_id: str) -> None:
        """Mark a completed task active again."""
        await self._request("POST", f"/tasks/{task_id}/reopen")

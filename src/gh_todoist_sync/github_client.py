"""
GitHub REST API client for reading and closing issues.

This module handles all interactions with the GitHub REST API,
including paginated issue listing, single issue lookup and state updates.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import ValidationError

from .exceptions import (
    GitHubAPIError,
    GitHubAuthError,
    GitHubNetworkError,
    GitHubRateLimitError,
    GitHubTimeoutError,
)
from .models import GitHubIssue, IssueState
from .provider import IssueProvider

logger = logging.getLogger(__name__)


class GitHubClient(IssueProvider):
    """
    Client for interacting with GitHub via its REST API.

    The client is bound to one repository and provides async methods for
    listing issues, fetching one issue and switching its state.
    """

    DEFAULT_API_URL = "https://api.github.com"
    DEFAULT_TIMEOUT = 30  # seconds
    PAGE_SIZE = 100

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the GitHub client.

        Args:
            token: Personal access token
            owner: Repository owner (user or organization)
            repo: Repository name
            base_url: API base URL (override for GitHub Enterprise)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.token = token
        self.owner = owner
        self.repo_name = repo
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def repo(self) -> str:
        """Return the repository in owner/repo format."""
        return f"{self.owner}/{self.repo_name}"

    @property
    def issues_path(self) -> str:
        """Get the API path of the repository's issues."""
        return f"/repos/{self.repo}/issues"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": "application/vnd.github+json",
                    "X-GitHub-Api-Version": "2022-11-28",
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

    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send an API request and map failures to GitHub errors.

        Args:
            method: HTTP method
            path: API path or absolute URL (pagination links)
            params: Query parameters
            json: JSON request body

        Returns:
            The successful response

        Raises:
            Various GitHubClientError subclasses based on failure type
        """
        client = await self._get_client()
        logger.debug(f"GitHub {method} {path} params={params}")

        try:
            response = await client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise GitHubTimeoutError(self.timeout) from e
        except httpx.TransportError as e:
            raise GitHubNetworkError(str(e)) from e

        if response.status_code == 401:
            raise GitHubAuthError("Invalid or expired token")

        if response.status_code in (403, 429):
            if self._is_rate_limited(response):
                raise GitHubRateLimitError(self._rate_limit_reset(response))
            raise GitHubAuthError(f"Access forbidden: {response.text}")

        if response.status_code == 404:
            raise GitHubAPIError(f"Not found: {path}", 404)

        if response.is_redirect:
            # Transferred or renamed resources answer 301 and redirects are not followed
            location = response.headers.get("Location", "unknown location")
            raise GitHubAPIError(f"Moved to {location}: {path}", response.status_code)

        if not response.is_success:
            raise GitHubAPIError(response.text, response.status_code)

        return response

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make an API request and return the decoded JSON body."""
        response = await self._send(method, path, params=params, json=json)
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        """Decode a JSON response body."""
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GitHubAPIError(f"Invalid JSON response: {e}") from e

    def _is_rate_limited(self, response: httpx.Response) -> bool:
        """Check if a 403/429 response is a rate limit rejection."""
        if response.headers.get("X-RateLimit-Remaining") == "0":
            return True
        return "rate limit" in response.text.lower()

    def _rate_limit_reset(self, response: httpx.Response) -> str | None:
        """Get the rate limit reset time from response headers."""
        reset = response.headers.get("X-RateLimit-Reset")
        if not reset:
            return None
        try:
            return datetime.fromtimestamp(int(reset), UTC).isoformat()
        except ValueError:
            return None

    async def check_connection(self) -> bool:
        """
        Check that the token is valid and the repository is reachable.

        Returns:
            True if connection is successful

        Raises:
            GitHubAuthError: If authentication fails
            GitHubAPIError: If the repository cannot be read
        """
        await self._request("GET", f"/repos/{self.repo}")
        return True

    def _parse_datetime(self, value: str | None) -> datetime | None:
        """Parse ISO datetime string."""
        if not value:
            return None
        try:
            # Handle both Z suffix and +00:00 format
            if value.endswith("Z"):
                value = value[:-1] + "+00:00"
            return datetime.fromisoformat(value)
        except (ValueError, TypeError):
            logger.warning(f"Failed to parse datetime: {value}")
            return None

    def _parse_label(self, data: dict[str, Any] | str) -> str:
        """Parse a label name."""
        if isinstance(data, str):
            return data
        return data.get("name", "")

    def _parse_issue(self, data: dict[str, Any]) -> GitHubIssue:
        """Parse issue JSON into GitHubIssue model."""
        assignee = data.get("assignee")
        state_str = (data.get("state") or "open").lower()
        state = IssueState.CLOSED if state_str == "closed" else IssueState.OPEN

        try:
            return GitHubIssue(
                number=data.get("number", 0),
                id=data.get("id", 0),
                title=data.get("title", "Untitled"),
                body=data.get("body"),
                state=state,
                labels=[self._parse_label(lbl) for lbl in data.get("labels") or []],
                assignee=assignee.get("login") if assignee else None,
                created_at=self._parse_datetime(data.get("created_at")) or datetime.now(UTC),
                updated_at=self._parse_datetime(data.get("updated_at")) or datetime.now(UTC),
                url=data.get("html_url", ""),
                # The issues endpoint returns pull requests too
                is_pull_request="pull_request" in data,
            )
        except ValidationError as e:
            raise GitHubAPIError(
                f"Malformed issue #{data.get('number', '?')}: {e.error_count()} invalid fields"
            ) from e

    async def fetch_issues(self) -> list[GitHubIssue]:
        """
        Fetch every issue of the repository, following pagination links.

        Returns:
            List of GitHubIssue objects in API order (pull requests included)
        """
        logger.info(f"Fetching issues from GitHub: {self.repo}")

        all_issues: list[GitHubIssue] = []
        url: str | None = self.issues_path
        params: dict[str, Any] | None = {"state": "all", "per_page": self.PAGE_SIZE}
        page = 1

        while url is not None:
            response = await self._send("GET", url, params=params)
            issues_data = self._decode(response)

            if not isinstance(issues_data, list):
                raise GitHubAPIError("Expected list of issues in response")

            all_issues.extend(self._parse_issue(data) for data in issues_data)
            logger.debug(f"Page {page}: {len(issues_data)} issues")

            # The next link already carries the query string
            url = response.links.get("next", {}).get("url")
            params = None
            page += 1

        logger.info(f"Fetched {len(all_issues)} issues from GitHub")
        return all_issues

    async def fetch_issue(self, number: int) -> GitHubIssue:
        """
        Fetch a single issue by number.

        Args:
            number: Issue number

        Returns:
            GitHubIssue object
        """
        issue_data = await self._request("GET", f"{self.issues_path}/{number}")
        if not isinstance(issue_data, dict):
            raise GitHubAPIError(f"Expected issue object for #{number}")
        return self._parse_issue(issue_data)

    async def update_issue_state(self, number: int, state: IssueState) -> None:
        """
        Open or close an issue.

        Args:
            number: Issue number
            state: Target state
        """
        logger.debug(f"Setting issue #{number} state to {state.value}")
        await self._request(
            "PATCH",
            f"{self.issues_path}/{number}",
            json={"state": state.value},
        )

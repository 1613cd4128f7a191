"""Tests for the command-line interface."""

import asyncio
from collections.abc import Callable

import pytest
from typer.testing import CliRunner

from conftest import FakeIssueProvider, FakeTaskProvider
from gh_todoist_sync import __version__
from gh_todoist_sync.cli import app
from gh_todoist_sync.config import Settings
from gh_todoist_sync.exceptions import GitHubAuthError
from gh_todoist_sync.github_client import GitHubClient
from gh_todoist_sync.models import FullSyncResult, GitHubIssue, TodoistProject, TodoistTask
from gh_todoist_sync.sync import IssueTaskSync
from gh_todoist_sync.todoist_client import TodoistClient

runner = CliRunner()


@pytest.fixture
def fake_sync(
    sync_env: pytest.MonkeyPatch,
    github: FakeIssueProvider,
    todoist: FakeTaskProvider,
    project: TodoistProject,
) -> tuple[FakeIssueProvider, FakeTaskProvider]:
    """Make the CLI build its orchestrator on top of the in-memory fakes."""

    async def from_settings(settings: Settings, dry_run: bool = False) -> IssueTaskSync:
        return IssueTaskSync(github, todoist, project, dry_run=dry_run)

    sync_env.setattr(IssueTaskSync, "from_settings", from_settings)
    return github, todoist


class TestSyncCommand:
    """Tests for the sync command."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["sync", "--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_missing_setting(self, clean_env: pytest.MonkeyPatch) -> None:
        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 1
        assert "GITHUB_TOKEN is required" in result.output

    def test_once(
        self,
        fake_sync: tuple[FakeIssueProvider, FakeTaskProvider],
        make_issue: Callable[..., GitHubIssue],
    ) -> None:
        github, todoist = fake_sync
        github.issues = [make_issue(1), make_issue(2)]

        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 0, result.output
        assert "owner/repo" in result.output
        assert "GitHub -> Todoist" in result.output
        assert "Todoist -> GitHub" in result.output
        assert len(todoist.tasks) == 2
        assert github.closed is True
        assert todoist.closed is True

    def test_github_only(
        self,
        fake_sync: tuple[FakeIssueProvider, FakeTaskProvider],
        make_issue: Callable[..., GitHubIssue],
    ) -> None:
        github, todoist = fake_sync
        github.issues = [make_issue(1)]

        result = runner.invoke(app, ["sync", "--mode", "github-only"])

        assert result.exit_code == 0, result.output
        assert len(todoist.tasks) == 1
        assert not any(call[0] == "fetch_issue" for call in github.calls)

    def test_todoist_only(
        self,
        fake_sync: tuple[FakeIssueProvider, FakeTaskProvider],
        make_issue: Callable[..., GitHubIssue],
        make_task: Callable[..., TodoistTask],
    ) -> None:
        github, todoist = fake_sync
        github.issues = [make_issue(7)]
        todoist.tasks = [make_task("t7", 7, is_completed=True)]

        result = runner.invoke(app, ["sync", "-m", "todoist-only"])

        assert result.exit_code == 0, result.output
        assert github.issues[0].is_closed is True
        assert ("fetch_issues",) not in github.calls

    def test_dry_run(
        self,
        fake_sync: tuple[FakeIssueProvider, FakeTaskProvider],
        make_issue: Callable[..., GitHubIssue],
    ) -> None:
        github, todoist = fake_sync
        github.issues = [make_issue(1)]

        result = runner.invoke(app, ["sync", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "Dry run" in result.output
        assert todoist.tasks == []

    def test_item_errors_exit_nonzero(
        self,
        fake_sync: tuple[FakeIssueProvider, FakeTaskProvider],
        make_issue: Callable[..., GitHubIssue],
    ) -> None:
        github, todoist = fake_sync
        github.issues = [make_issue(1, title="Broken")]
        todoist.fail_create.add("Broken")

        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 1
        assert "#1:" in result.output

    def test_fetch_failure_exits_nonzero(
        self,
        fake_sync: tuple[FakeIssueProvider, FakeTaskProvider],
    ) -> None:
        github, todoist = fake_sync
        github.fail_fetch_all = True

        result = runner.invoke(app, ["sync"])

        assert result.exit_code == 1
        assert "Network error connecting to GitHub" in result.output
        assert todoist.closed is True

    @pytest.mark.parametrize(
        ("args", "expected"),
        [([], 300.0), (["--interval", "2"], 120.0)],
    )
    def test_daemon_interval(
        self,
        sync_env: pytest.MonkeyPatch,
        fake_sync: tuple[FakeIssueProvider, FakeTaskProvider],
        args: list[str],
        expected: float,
    ) -> None:
        github, todoist = fake_sync
        intervals: list[float] = []

        async def run_forever(
            self: IssueTaskSync,
            interval: float,
            stop_event: asyncio.Event,
            on_result: Callable[[FullSyncResult], None] | None = None,
        ) -> int:
            intervals.append(interval)
            return 1

        sync_env.setenv("SYNC_INTERVAL_MINUTES", "5")
        sync_env.setattr(IssueTaskSync, "run_forever", run_forever)

        result = runner.invoke(app, ["sync", "--mode", "daemon", *args])

        assert result.exit_code == 0, result.output
        assert intervals == [expected]
        assert todoist.closed is True


class TestCheckCommand:
    """Tests for the check command."""

    def test_all_checks_pass(
        self,
        sync_env: pytest.MonkeyPatch,
    ) -> None:
        async def ok(self: object) -> bool:
            return True

        sync_env.setattr(GitHubClient, "check_connection", ok)
        sync_env.setattr(TodoistClient, "check_connection", ok)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 0, result.output
        assert "Configuration loaded" in result.output
        assert "All checks passed" in result.output

    def test_github_failure(self, sync_env: pytest.MonkeyPatch) -> None:
        async def fail(self: object) -> bool:
            raise GitHubAuthError("Invalid or expired token")

        sync_env.setattr(GitHubClient, "check_connection", fail)

        result = runner.invoke(app, ["check"])

        assert result.exit_code == 1
        assert "GitHub authentication failed" in result.output

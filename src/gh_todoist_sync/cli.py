"""
Command-line interface for gh-todoist-sync.

This module provides the Typer-based CLI for syncing GitHub issues
with a Todoist project, once or as a long-running daemon.
"""

import asyncio
import logging
import signal
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .exceptions import GitHubTodoistSyncError
from .github_client import GitHubClient
from .models import FullSyncResult, SyncDirection, SyncResult
from .sync import IssueTaskSync
from .todoist_client import TodoistClient

# Create Typer app
app = typer.Typer(
    name="gh-todoist-sync",
    help="Two-way sync between GitHub issues and a Todoist project",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()
error_console = Console(stderr=True)


class SyncMode(str, Enum):
    """Sync mode options."""

    ONCE = "once"
    DAEMON = "daemon"
    GITHUB_ONLY = "github-only"
    TODOIST_ONLY = "todoist-only"


class LogLevel(str, Enum):
    """Log level options."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


def setup_logging(level: LogLevel, verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    log_level = getattr(logging, level.value.upper())

    if verbose:
        log_level = logging.DEBUG

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_time=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING if not verbose else logging.DEBUG)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"gh-todoist-sync version {__version__}")
        raise typer.Exit


def _print_error(error: GitHubTodoistSyncError) -> None:
    error_console.print(f"[red]Error:[/red] {error.message}")
    if error.hint:
        error_console.print(f"[dim]Hint: {error.hint}[/dim]")


def _load_settings_or_exit(env_file: Path | None) -> Settings:
    try:
        return load_settings(env_file)
    except GitHubTodoistSyncError as e:
        _print_error(e)
        raise typer.Exit(1) from None


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    """Set ``stop_event`` on SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_event.set))


async def _run(
    settings: Settings,
    mode: SyncMode,
    dry_run: bool,
    interval: float,
) -> int:
    """Run the selected mode and return the process exit code."""
    syncer = await IssueTaskSync.from_settings(settings, dry_run=dry_run)
    try:
        if mode == SyncMode.GITHUB_ONLY:
            result = await syncer.sync_from_github()
            _display_result(result)
            return 1 if result.errors else 0

        if mode == SyncMode.TODOIST_ONLY:
            result = await syncer.sync_to_github()
            _display_result(result)
            return 1 if result.errors else 0

        if mode == SyncMode.DAEMON:
            stop_event = asyncio.Event()
            _install_stop_handlers(stop_event)
            console.print(
                f"Daemon running every {interval / 60:g} min. "
                "Press [bold]Ctrl+C[/bold] to stop."
            )
            await syncer.run_forever(
                interval,
                stop_event,
                on_result=_display_full_result,
            )
            return 0

        full_result = await syncer.full_sync()
        _display_full_result(full_result)
        return 1 if full_result.errors else 0
    finally:
        await syncer.close()


@app.command()
def sync(
    mode: Annotated[
        SyncMode,
        typer.Option(
            "-m",
            "--mode",
            help="once: full pass; github-only / todoist-only: one direction; "
            "daemon: full pass on an interval",
        ),
    ] = SyncMode.ONCE,
    interval: Annotated[
        int | None,
        typer.Option(
            "-i",
            "--interval",
            help="Minutes between passes in daemon mode (default: SYNC_INTERVAL_MINUTES)",
            min=1,
        ),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would happen without making changes",
        ),
    ] = False,
    env_file: Annotated[
        Path | None,
        typer.Option(
            "--env-file",
            help="Read settings from this file instead of ./.env",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "-v",
            "--verbose",
            help="Enable verbose output",
        ),
    ] = False,
    log_level: Annotated[
        LogLevel,
        typer.Option(
            "--log-level",
            help="Set log level",
        ),
    ] = LogLevel.INFO,
    _version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
) -> None:
    """
    Sync GitHub issues with a Todoist project.

    Settings are read from the environment (GITHUB_TOKEN, GITHUB_OWNER,
    GITHUB_REPO, TODOIST_TOKEN, TODOIST_PROJECT_NAME, SYNC_INTERVAL_MINUTES,
    DEBUG) or from a .env file.

    The reverse pass closes an issue when its task shows up as completed.
    Todoist REST v2 lists active tasks only, so against the default
    TODOIST_API_URL a task completed in Todoist drops out of the listing
    instead; only an endpoint that also lists completed tasks lets the
    close rule fire.

    Examples:

        gh-todoist-sync sync

        gh-todoist-sync sync --mode github-only --dry-run

        gh-todoist-sync sync --mode daemon --interval 5
    """
    settings = _load_settings_or_exit(env_file)
    setup_logging(log_level, verbose or settings.debug)

    if dry_run:
        console.print("[yellow]Dry run mode - no changes will be written[/yellow]")

    console.print(
        f"Syncing [bold]{settings.repo}[/bold] <-> "
        f"Todoist project [bold]{settings.todoist_project_name}[/bold]"
    )
    logging.getLogger(__name__).debug(
        f"Interval: {settings.sync_interval_minutes} min, "
        f"timeout: {settings.http_timeout:g}s"
    )

    interval_seconds = interval * 60.0 if interval else settings.sync_interval

    try:
        exit_code = asyncio.run(_run(settings, mode, dry_run, interval_seconds))
    except GitHubTodoistSyncError as e:
        _print_error(e)
        raise typer.Exit(1) from None
    except KeyboardInterrupt:
        error_console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130) from None

    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def check(
    env_file: Annotated[
        Path | None,
        typer.Option(
            "--env-file",
            help="Read settings from this file instead of ./.env",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("-v", "--verbose", help="Show detailed status"),
    ] = False,
) -> None:
    """
    Check configuration and connectivity.

    Verifies that the GitHub repository and the Todoist API are reachable
    with the configured tokens.
    """
    settings = _load_settings_or_exit(env_file)
    setup_logging(LogLevel.INFO, verbose)
    console.print("[green]✓[/green] Configuration loaded")

    async def _check() -> None:
        github = GitHubClient(
            token=settings.github_token,
            owner=settings.github_owner,
            repo=settings.github_repo,
            base_url=settings.github_api_url,
            timeout=settings.http_timeout,
        )
        todoist = TodoistClient(
            token=settings.todoist_token,
            base_url=settings.todoist_api_url,
            timeout=settings.http_timeout,
        )
        try:
            await github.check_connection()
            console.print(f"[green]✓[/green] GitHub repository {settings.repo} is accessible")
            await todoist.check_connection()
            console.print("[green]✓[/green] Todoist API token is valid")
        finally:
            await github.close()
            await todoist.close()

    with console.status("Checking connections..."):
        try:
            asyncio.run(_check())
        except GitHubTodoistSyncError as e:
            error_console.print(f"[red]✗[/red] {e.message}")
            if e.hint:
                error_console.print(f"  [dim]Hint: {e.hint}[/dim]")
            raise typer.Exit(1) from None

    console.print("\n[green]All checks passed![/green]")


def _display_result(result: SyncResult) -> None:
    """Display one pass result as a formatted panel."""
    summary = Table.grid(padding=(0, 2))
    summary.add_column(style="bold")
    summary.add_column()

    if result.direction == SyncDirection.FORWARD:
        title = "GitHub -> Todoist"
        summary.add_row("GitHub issues:", str(result.total_issues))
        summary.add_row("Todoist tasks:", str(result.total_tasks))
        summary.add_row("Tasks created:", f"[green]{result.created}[/green]")
        summary.add_row("Tasks updated:", f"[yellow]{result.updated}[/yellow]")
        summary.add_row("Tasks closed:", str(result.closed))
        summary.add_row("Tasks reopened:", str(result.reopened))
    else:
        title = "Todoist -> GitHub"
        summary.add_row("Todoist tasks:", str(result.total_tasks))
        summary.add_row("Linked issues:", str(result.total_issues))
        summary.add_row("Issues closed:", f"[green]{result.closed}[/green]")
        summary.add_row("Issues reopened:", f"[yellow]{result.reopened}[/yellow]")

    summary.add_row("Unchanged:", str(result.unchanged))
    summary.add_row("Skipped:", f"[blue]{result.skipped}[/blue]")

    if result.errors:
        summary.add_row("Errors:", f"[red]{len(result.errors)}[/red]")

    if result.dry_run:
        title = f"{title} (dry run)"

    panel = Panel(
        summary,
        title=title,
        border_style="green" if not result.errors else "yellow",
    )
    console.print(panel)

    # Show errors if any
    if result.errors:
        error_console.print("\n[red]Errors:[/red]")
        for error in result.errors[:10]:
            error_console.print(f"  - {error}")
        if len(result.errors) > 10:
            error_console.print(f"  ... and {len(result.errors) - 10} more")


def _display_full_result(result: FullSyncResult) -> None:
    """Display both halves of a full pass."""
    _display_result(result.forward)
    _display_result(result.reverse)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

"""Shared utilities for CLI commands."""

from __future__ import annotations

import signal
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from workorder_sync.codes.resolver import CodeResolver
from workorder_sync.codes.vocabulary import VocabularyTable
from workorder_sync.config import Config, load_config
from workorder_sync.exceptions import WorkOrderSyncError
from workorder_sync.notes.repository import NotesRepository
from workorder_sync.remote.factory import create_remote_facade
from workorder_sync.remote.session import RemoteSession
from workorder_sync.sync.cancellation import CancellationToken
from workorder_sync.sync.report import ReconcileReport
from workorder_sync.sync.stack_store import JsonStackStore
from workorder_sync.sync.stacker import WorkOrderStacker
from workorder_sync.utils.logging import configure_logging, get_logger

# Shared console for all commands
console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to config.yaml", exists=True),
]
LogLevelOption = Annotated[
    str | None,
    typer.Option("--log-level", help="Log level (DEBUG, INFO, WARN, ERROR)"),
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Show all log messages on the terminal"),
]


def get_config_and_logger(
    config_path: Path | None = None,
    log_level: str | None = None,
    verbose: bool = False,
) -> tuple[Config, Any]:
    """Load configuration and configure logging for one command invocation.

    Args:
        config_path: Optional path to config.yaml
        log_level: Console log level; defaults to the configured one
        verbose: Show all log messages on terminal

    Returns:
        Tuple of (Config, Logger)
    """
    config = load_config(config_path)
    configure_logging(
        log_level or config.log_level,
        log_dir=config.get_log_dir(),
        verbose=verbose,
    )
    return config, get_logger("workorder_sync.cli")


def build_store(config: Config) -> JsonStackStore:
    return JsonStackStore(config.get_stack_path())


def build_stacker(config: Config, store: JsonStackStore) -> WorkOrderStacker:
    vocabulary = VocabularyTable.from_csv(config.get_tables_dir())
    return WorkOrderStacker(
        store=store,
        resolver=CodeResolver(vocabulary),
        notes=NotesRepository(config.get_work_orders_dir()),
    )


def build_session(config: Config) -> RemoteSession:
    """Session over the configured facade; credentials are read on first use."""
    return RemoteSession(
        create_remote_facade(config),
        config.get_credentials,
        retry=config.retry,
    )


@contextmanager
def cancel_on_interrupt(token: CancellationToken) -> Iterator[None]:
    """Turn the first Ctrl-C into a cancellation request.

    The item in flight finishes; a second Ctrl-C interrupts immediately.
    """

    def _handler(signum: int, frame: Any) -> None:
        if token.cancelled:
            raise KeyboardInterrupt
        token.cancel()
        console.print(
            "[yellow]Stopping after the current item (Ctrl-C again to abort)[/yellow]"
        )

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def fail(error: WorkOrderSyncError, logger: Any, command: str) -> typer.Exit:
    """Report a fatal error and return the Exit to raise."""
    logger.error(
        "cli_command_failed",
        command=command,
        error=error.message,
        error_type=type(error).__name__,
        error_code=error.error_code,
    )
    console.print(f"[bold red]Error:[/bold red] {escape(error.message)}")
    if error.suggestion:
        console.print(f"[dim]Suggestion: {error.suggestion}[/dim]")
    return typer.Exit(code=1)


def render_report(report: ReconcileReport, title: str) -> None:
    """Print a reconciliation report."""
    summary = report.summary()

    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")
    for key in ("succeeded", "failed", "skipped", "deleted", "zeroed_out"):
        if key in summary:
            table.add_row(key.replace("_", " ").capitalize(), str(summary[key]))
    if report.dry_run:
        table.add_row("Planned", str(len(report.planned)))
    console.print(table)

    for line in report.planned:
        console.print(f"  [dim]would[/dim] {escape(line)}")
    for failed in report.failed_operations:
        marker = "[bold yellow]REVIEW[/bold yellow] " if failed.needs_review else ""
        console.print(f"  [red]x[/red] {marker}{escape(str(failed))}")
    for warning in report.warnings:
        console.print(f"  [yellow]![/yellow] {escape(warning)}")
    if report.cancelled:
        console.print("[yellow]Cancelled before all items were processed[/yellow]")
    if report.aborted:
        console.print(f"[bold red]Aborted:[/bold red] {escape(report.aborted)}")

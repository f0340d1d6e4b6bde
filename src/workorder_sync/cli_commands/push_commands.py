"""Push CLI command."""

from __future__ import annotations

from typing import Annotated

import typer

from workorder_sync.exceptions import WorkOrderSyncError
from workorder_sync.notes.repository import NotesRepository
from workorder_sync.sync.cancellation import CancellationToken
from workorder_sync.sync.push import PushReconciler

from .shared import (
    ConfigOption,
    LogLevelOption,
    VerboseOption,
    build_session,
    build_store,
    cancel_on_interrupt,
    console,
    fail,
    get_config_and_logger,
    render_report,
)


def register(app: typer.Typer) -> None:
    """Register the push command on the given Typer app."""

    @app.command()
    def push(
        dry_run: Annotated[
            bool,
            typer.Option("--dry-run", help="List what would be pushed without pushing"),
        ] = False,
        mark_notes: Annotated[
            bool,
            typer.Option(
                "--mark-notes/--no-mark-notes",
                help="Mark pushed entries as synced in the notes files",
            ),
        ] = True,
        work_orders: Annotated[
            list[str] | None,
            typer.Option(
                "--work-order", "-w", help="Only push these work orders (repeatable)"
            ),
        ] = None,
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Push every Pending service on the stack to the remote system."""
        config, logger = get_config_and_logger(config_path, log_level, verbose)
        logger.info(
            "cli_command_started",
            command="push",
            dry_run=dry_run,
            work_orders=work_orders,
        )

        token = CancellationToken()
        try:
            store = build_store(config)
            if not store.get_all():
                console.print("[yellow]Stack is empty, nothing to push[/yellow]")
                return
            notes = None
            if mark_notes:
                notes = NotesRepository(config.get_work_orders_dir())
            reconciler = PushReconciler(
                store,
                build_session(config),
                notes=notes,
                cancellation=token,
            )
            with cancel_on_interrupt(token):
                report = reconciler.run(dry_run=dry_run, work_order_ids=work_orders)
        except WorkOrderSyncError as exc:
            raise fail(exc, logger, "push") from exc

        render_report(report, "Push Dry Run" if dry_run else "Push Results")
        if not report.success:
            raise typer.Exit(code=1)

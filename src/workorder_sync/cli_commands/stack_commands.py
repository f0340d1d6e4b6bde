"""Stack CLI commands: stack, stack-show, stack-remove, stack-clear."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from workorder_sync.domain.entities.service import TIMESTAMP_FORMAT, WorkOrderBatch
from workorder_sync.exceptions import WorkOrderSyncError

from .shared import (
    ConfigOption,
    LogLevelOption,
    VerboseOption,
    build_stacker,
    build_store,
    console,
    fail,
    get_config_and_logger,
)


def _batch_table(index: int, batch: WorkOrderBatch) -> Table:
    control = f" (Control: {batch.control_number})" if batch.control_number else ""
    table = Table(
        title=f"{index}. Work Order {batch.work_order_id}{control} "
        f"({len(batch.services)})",
        title_justify="left",
    )
    table.add_column("Date", style="cyan")
    table.add_column("Verb", justify="right")
    table.add_column("Noun", justify="right")
    table.add_column("Min", justify="right")
    table.add_column("State")
    table.add_column("Note", overflow="fold")

    for service in batch.services:
        state = service.push_state.value
        if service.needs_review:
            state = f"[bold yellow]{state} (review)[/bold yellow]"
        elif service.is_pending:
            state = f"[yellow]{state}[/yellow]"
        else:
            state = f"[green]{state}[/green]"
        table.add_row(
            service.timestamp.strftime(TIMESTAMP_FORMAT),
            str(service.verb_code),
            "" if service.noun_code is None else str(service.noun_code),
            str(service.elapsed_minutes),
            state,
            escape(service.note),
        )
    return table


def register(app: typer.Typer) -> None:
    """Register stack commands on the given Typer app."""

    @app.command()
    def stack(
        work_order: Annotated[str, typer.Argument(help="7-digit work order number")],
        control_number: Annotated[
            str | None,
            typer.Option("--control-number", help="8-digit control number"),
        ] = None,
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Parse a work order's notes and put its services on the stack."""
        config, logger = get_config_and_logger(config_path, log_level, verbose)
        logger.info("cli_command_started", command="stack", work_order=work_order)

        try:
            store = build_store(config)
            result = build_stacker(config, store).stack(work_order, control_number)
        except WorkOrderSyncError as exc:
            raise fail(exc, logger, "stack") from exc

        for diagnostic in result.diagnostics:
            console.print(f"[yellow]Skipped[/yellow] {escape(str(diagnostic))}")

        if not result.stacked:
            console.print(
                f"[yellow]No services to stack for work order "
                f"{result.work_order_id}[/yellow]"
            )
            return

        console.print(
            f"[green]Stacked {result.service_count} services for work order "
            f"{result.work_order_id}[/green]"
        )
        if result.carried_pushed:
            console.print(f"[dim]{result.carried_pushed} already pushed[/dim]")

    @app.command(name="stack-show")
    def stack_show(
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Show every stacked work order and its services."""
        config, logger = get_config_and_logger(config_path, log_level, verbose)
        try:
            batches = build_store(config).get_all()
        except WorkOrderSyncError as exc:
            raise fail(exc, logger, "stack-show") from exc

        if not batches:
            console.print(
                'Stack is empty. Use the "stack <wo-number>" command '
                "to add work orders."
            )
            return

        for index, batch in enumerate(batches, start=1):
            console.print(_batch_table(index, batch))

        pending = sum(len(b.pending_services) for b in batches)
        console.print(
            f"\n[bold]{pending}[/bold] pending across {len(batches)} work orders"
        )

    @app.command(name="stack-remove")
    def stack_remove(
        work_order: Annotated[str, typer.Argument(help="7-digit work order number")],
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Remove one work order from the stack."""
        config, logger = get_config_and_logger(config_path, log_level, verbose)
        try:
            removed = build_store(config).remove(work_order.strip())
        except WorkOrderSyncError as exc:
            raise fail(exc, logger, "stack-remove") from exc

        if not removed:
            console.print(
                f"[yellow]Work order {work_order} is not on the stack[/yellow]"
            )
            raise typer.Exit(code=1)
        console.print(
            f"[green]Removed work order {work_order} from the stack[/green]"
        )

    @app.command(name="stack-clear")
    def stack_clear(
        yes: Annotated[
            bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt")
        ] = False,
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Remove every work order from the stack."""
        config, logger = get_config_and_logger(config_path, log_level, verbose)
        if not yes and not typer.confirm("Clear the whole stack?"):
            raise typer.Exit(code=1)
        try:
            build_store(config).clear()
        except WorkOrderSyncError as exc:
            raise fail(exc, logger, "stack-clear") from exc
        console.print("[green]Stack cleared[/green]")

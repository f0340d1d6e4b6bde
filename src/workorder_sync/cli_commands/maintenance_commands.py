"""Maintenance CLI commands that clean up records on the remote system."""

from __future__ import annotations

from typing import Annotated

import typer

from workorder_sync.exceptions import WorkOrderSyncError
from workorder_sync.sync.cancellation import CancellationToken
from workorder_sync.sync.duplicates import DuplicateReconciler
from workorder_sync.sync.purge import (
    PurgeFilter,
    PurgeReconciler,
    parse_work_order_list,
)

from .shared import (
    ConfigOption,
    LogLevelOption,
    VerboseOption,
    build_session,
    cancel_on_interrupt,
    fail,
    get_config_and_logger,
    render_report,
)

DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="List what would change without changing it"),
]


def register(app: typer.Typer) -> None:
    """Register maintenance commands on the given Typer app."""

    @app.command(name="del-dups")
    def delete_duplicates(
        work_orders: Annotated[
            str,
            typer.Argument(help="Work order number or list like [1234567,7654321]"),
        ],
        dry_run: DryRunOption = False,
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Delete duplicate service records from one or more work orders."""
        config, logger = get_config_and_logger(config_path, log_level, verbose)
        logger.info(
            "cli_command_started",
            command="del-dups",
            work_orders=work_orders,
            dry_run=dry_run,
        )

        token = CancellationToken()
        reports = []
        try:
            work_order_ids = parse_work_order_list(work_orders)
            reconciler = DuplicateReconciler(build_session(config), cancellation=token)
            with cancel_on_interrupt(token):
                for work_order_id in work_order_ids:
                    report = reconciler.run(work_order_id, dry_run=dry_run)
                    reports.append((work_order_id, report))
                    if report.cancelled or report.aborted:
                        break
        except WorkOrderSyncError as exc:
            raise fail(exc, logger, "del-dups") from exc

        title = "Duplicate Dry Run" if dry_run else "Duplicate Cleanup"
        for work_order_id, report in reports:
            render_report(report, f"{title}: {work_order_id}")
        if not all(report.success for _, report in reports):
            raise typer.Exit(code=1)

    @app.command(name="delete-month")
    def delete_month(
        month: Annotated[int, typer.Argument(help="Month number (1-12)")],
        year: Annotated[int, typer.Argument(help="Four-digit year")],
        work_orders: Annotated[
            str,
            typer.Argument(help="Work order number or list like [1234567,7654321]"),
        ],
        servicer: Annotated[
            str | None,
            typer.Option(
                "--servicer", help="Servicer name; defaults to servicer_name in config"
            ),
        ] = None,
        dry_run: DryRunOption = False,
        config_path: ConfigOption = None,
        log_level: LogLevelOption = None,
        verbose: VerboseOption = False,
    ) -> None:
        """Delete or zero out one servicer's records for a month."""
        config, logger = get_config_and_logger(config_path, log_level, verbose)
        logger.info(
            "cli_command_started",
            command="delete-month",
            month=month,
            year=year,
            dry_run=dry_run,
        )

        token = CancellationToken()
        try:
            purge_filter = PurgeFilter(
                servicer=servicer or config.servicer_name,
                month=month,
                year=year,
            )
            work_order_ids = parse_work_order_list(work_orders)
            reconciler = PurgeReconciler(build_session(config), cancellation=token)
            with cancel_on_interrupt(token):
                report = reconciler.run(purge_filter, work_order_ids, dry_run=dry_run)
        except WorkOrderSyncError as exc:
            raise fail(exc, logger, "delete-month") from exc

        title = "Purge Dry Run" if dry_run else "Purge Results"
        render_report(report, f"{title}: {month}/{year}")
        if not report.success:
            raise typer.Exit(code=1)

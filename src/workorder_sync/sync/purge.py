"""Remove one servicer's records for a month from remote work orders."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from workorder_sync.domain.entities.remote import RecordEdit, RemoteServiceRecord
from workorder_sync.domain.entities.service import validate_work_order_id
from workorder_sync.error_codes import ErrorCode
from workorder_sync.exceptions import AuthError, RemoteError, ValidationError
from workorder_sync.remote.formats import format_remote_datetime
from workorder_sync.remote.session import RemoteSession
from workorder_sync.utils.logging import get_logger

from .cancellation import CancellationToken
from .report import ReconcileReport

logger = get_logger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100


@dataclass(frozen=True)
class PurgeFilter:
    """Which records a purge touches: one servicer, one calendar month."""

    servicer: str
    month: int
    year: int

    def __post_init__(self) -> None:
        if not self.servicer.strip():
            raise ValidationError(
                "Servicer name is required",
                suggestion="Pass --servicer or set servicer_name in config.yaml",
                error_code=ErrorCode.VAL_PURGE_FILTER.value,
            )
        if not 1 <= self.month <= 12:
            raise ValidationError(
                f"Month must be 1-12, got {self.month}",
                error_code=ErrorCode.VAL_PURGE_FILTER.value,
            )
        if not MIN_YEAR <= self.year <= MAX_YEAR:
            raise ValidationError(
                f"Year must be {MIN_YEAR}-{MAX_YEAR}, got {self.year}",
                error_code=ErrorCode.VAL_PURGE_FILTER.value,
            )

    def matches(self, record: RemoteServiceRecord) -> bool:
        return (
            record.servicer.strip().casefold() == self.servicer.strip().casefold()
            and record.timestamp.month == self.month
            and record.timestamp.year == self.year
        )


@dataclass
class PurgeReport(ReconcileReport):
    """ReconcileReport split into deletions and zero-outs."""

    deleted: int = 0
    zeroed_out: int = 0
    work_orders: int = 0

    def summary(self) -> dict[str, Any]:
        summary = super().summary()
        summary.update(
            deleted=self.deleted,
            zeroed_out=self.zeroed_out,
            work_orders=self.work_orders,
        )
        return summary


def parse_work_order_list(value: str) -> list[str]:
    """Parse ``1234567`` or ``[1234567,7654321]`` into validated work order ids."""
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        items = [item.strip() for item in value[1:-1].split(",")]
    else:
        items = [value]

    work_orders: list[str] = []
    for item in items:
        if not item:
            continue
        try:
            work_orders.append(validate_work_order_id(item))
        except ValueError as e:
            raise ValidationError(
                f"Invalid work order number: {item}. Must be 7 digits.",
                error_code=ErrorCode.VAL_WORK_ORDER_ID.value,
            ) from e
    if not work_orders:
        raise ValidationError(
            "No work orders given",
            error_code=ErrorCode.VAL_WORK_ORDER_ID.value,
        )
    return work_orders


def _needs_action(record: RemoteServiceRecord) -> bool:
    # A record with sub-items that is already at zero minutes is done
    return not (record.has_linked_sub_items and record.elapsed_minutes == 0)


def _describe(record: RemoteServiceRecord) -> str:
    return (
        f"{format_remote_datetime(record.timestamp)} - "
        f"{record.elapsed_minutes} Minutes - {record.description}"
    )


class PurgeReconciler:
    """Deletes or zeroes out the filtered records of each work order.

    Records with linked sub-items cannot be deleted, so their minutes are
    set to 0; everything else matching the filter is deleted. Records are
    processed from the bottom of the grid up, and the work order is
    extracted again after every mutation. Records outside the filter are
    never touched.
    """

    def __init__(
        self,
        session: RemoteSession,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.session = session
        self.cancellation = cancellation or CancellationToken()

    def plan(
        self, records: Iterable[RemoteServiceRecord], purge_filter: PurgeFilter
    ) -> list[RemoteServiceRecord]:
        """Filtered records still needing action, in processing order."""
        targets = [
            r for r in records if purge_filter.matches(r) and _needs_action(r)
        ]
        targets.reverse()
        return targets

    def run(
        self,
        purge_filter: PurgeFilter,
        work_order_ids: Sequence[str],
        dry_run: bool = False,
    ) -> PurgeReport:
        report = PurgeReport(operation="purge", dry_run=dry_run)
        logger.info(
            "purge_started",
            servicer=purge_filter.servicer,
            month=purge_filter.month,
            year=purge_filter.year,
            work_orders=len(work_order_ids),
            dry_run=dry_run,
        )

        for work_order_id in work_order_ids:
            if self.cancellation.cancelled:
                report.cancelled = True
                break
            try:
                self._purge_work_order(work_order_id, purge_filter, report, dry_run)
            except AuthError as e:
                report.aborted = e.message
                logger.error(
                    "purge_aborted", work_order_id=work_order_id, error=e.message
                )
                break
            except RemoteError as e:
                report.add_failed_operation("extract", work_order_id, e.message)
                logger.error(
                    "purge_work_order_failed",
                    work_order_id=work_order_id,
                    error=e.message,
                )
                continue
            report.work_orders += 1

        logger.info("purge_completed", **report.summary())
        return report

    def _purge_work_order(
        self,
        work_order_id: str,
        purge_filter: PurgeFilter,
        report: PurgeReport,
        dry_run: bool,
    ) -> None:
        records = self.session.extract_service_records(work_order_id)
        pending = self.plan(records, purge_filter)

        if dry_run:
            for record in pending:
                action = "zero out" if record.has_linked_sub_items else "delete"
                report.planned.append(
                    f"{work_order_id}: {action} {_describe(record)}"
                )
            return

        failed: set[tuple[Any, ...]] = set()
        budget = len(pending)
        steps = 0
        while steps < budget:
            if self.cancellation.cancelled:
                report.cancelled = True
                return

            pending = [
                r for r in self.plan(records, purge_filter)
                if r.content_key not in failed
            ]
            if not pending:
                return
            target = pending[0]
            before = sum(1 for r in records if r.content_key == target.content_key)
            zero_out = target.has_linked_sub_items
            operation = "zero_out" if zero_out else "delete"
            steps += 1

            error: str | None = None
            try:
                if zero_out:
                    self.session.edit_service_record(
                        target.handle, RecordEdit(elapsed_minutes=0)
                    )
                else:
                    self.session.delete_service_record(target.handle)
            except AuthError:
                raise
            except RemoteError as e:
                error = e.message

            # Row positions shift after any mutation attempt
            records = self.session.extract_service_records(work_order_id)
            after = sum(1 for r in records if r.content_key == target.content_key)

            if after < before:
                report.succeeded += 1
                if zero_out:
                    report.zeroed_out += 1
                else:
                    report.deleted += 1
                logger.info(
                    "purge_record_done",
                    work_order_id=work_order_id,
                    operation=operation,
                    record=_describe(target),
                )
                continue

            failed.add(target.content_key)
            report.add_failed_operation(
                operation,
                work_order_id,
                error or "Record unchanged after update",
                target=_describe(target),
                needs_review=error is None,
            )
            logger.warning(
                "purge_record_failed",
                work_order_id=work_order_id,
                operation=operation,
                record=_describe(target),
                error=error or "unchanged",
            )

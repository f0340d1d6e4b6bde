"""Collapse duplicated service records on a remote work order."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from workorder_sync.domain.entities.remote import DuplicateGroup, RemoteServiceRecord
from workorder_sync.exceptions import AuthError, RemoteError
from workorder_sync.remote.formats import format_remote_datetime
from workorder_sync.remote.session import RemoteSession
from workorder_sync.utils.logging import get_logger

from .cancellation import CancellationToken
from .report import ReconcileReport

logger = get_logger(__name__)

GroupKey = tuple[datetime, str]


def find_duplicate_groups(
    records: Iterable[RemoteServiceRecord],
) -> list[DuplicateGroup]:
    """Group records by (timestamp, description), keeping groups of two or more.

    Groups come out in order of their first member; members keep
    extraction order.
    """
    buckets: dict[GroupKey, list[RemoteServiceRecord]] = {}
    for record in records:
        buckets.setdefault(record.identity_key, []).append(record)
    return [
        DuplicateGroup(identity_key=key, members=tuple(members))
        for key, members in buckets.items()
        if len(members) > 1
    ]


def describe_key(key: GroupKey) -> str:
    return f"{format_remote_datetime(key[0])} - {key[1]}"


class DuplicateReconciler:
    """Deletes every duplicate but the first of each group.

    Handles are only valid for the extraction they came from, so the work
    order is extracted again after every deletion and the next target is
    picked from the fresh snapshot. A group whose deletion fails is skipped
    for the rest of the run. The number of deletions attempted never
    exceeds the number of candidates found by the first extraction.
    """

    def __init__(
        self,
        session: RemoteSession,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.session = session
        self.cancellation = cancellation or CancellationToken()

    def plan(self, work_order_id: str) -> list[DuplicateGroup]:
        """Find duplicate groups without changing anything."""
        records = self.session.extract_service_records(work_order_id)
        return find_duplicate_groups(records)

    def run(self, work_order_id: str, dry_run: bool = False) -> ReconcileReport:
        report = ReconcileReport(operation="del_dups", dry_run=dry_run)

        try:
            groups = self.plan(work_order_id)
        except RemoteError as e:
            report.add_failed_operation(
                "extract", work_order_id, e.message, recoverable=False
            )
            report.aborted = e.message
            logger.error(
                "duplicates_extract_failed",
                work_order_id=work_order_id,
                error=e.message,
            )
            return report

        budget = sum(len(group.deletion_candidates) for group in groups)
        logger.info(
            "duplicates_started",
            work_order_id=work_order_id,
            groups=len(groups),
            candidates=budget,
            dry_run=dry_run,
        )

        if dry_run:
            for group in groups:
                report.planned.extend(
                    f"{work_order_id}: delete {describe_key(group.identity_key)}"
                    for _ in group.deletion_candidates
                )
            logger.info("duplicates_completed", **report.summary())
            return report

        failed_keys: set[GroupKey] = set()
        attempts = 0
        while attempts < budget:
            if self.cancellation.cancelled:
                report.cancelled = True
                break

            eligible = [g for g in groups if g.identity_key not in failed_keys]
            if not eligible:
                break
            group = eligible[0]
            key = group.identity_key
            size_before = len(group.members)
            attempts += 1

            try:
                self.session.delete_service_record(group.members[1].handle)
                delete_error: str | None = None
            except AuthError as e:
                report.aborted = e.message
                logger.error(
                    "duplicates_aborted", work_order_id=work_order_id, error=e.message
                )
                break
            except RemoteError as e:
                delete_error = e.message

            # Any delete attempt may have shifted the rows
            try:
                groups = self.plan(work_order_id)
            except RemoteError as e:
                report.add_failed_operation(
                    "extract", work_order_id, e.message, recoverable=False
                )
                report.aborted = e.message
                logger.error(
                    "duplicates_extract_failed",
                    work_order_id=work_order_id,
                    error=e.message,
                )
                break

            size_after = next(
                (len(g.members) for g in groups if g.identity_key == key), 1
            )
            if size_after < size_before:
                report.succeeded += 1
                logger.info(
                    "duplicate_deleted",
                    work_order_id=work_order_id,
                    target=describe_key(key),
                    remaining=size_after,
                )
                continue

            failed_keys.add(key)
            report.add_failed_operation(
                "delete",
                work_order_id,
                delete_error or "Record still present after delete",
                target=describe_key(key),
                needs_review=delete_error is None,
            )
            logger.warning(
                "duplicate_delete_failed",
                work_order_id=work_order_id,
                target=describe_key(key),
                error=delete_error or "not_removed",
            )

        for group in groups:
            if group.identity_key in failed_keys:
                report.add_warning(
                    f"{work_order_id}: {len(group.deletion_candidates)} "
                    f"duplicate(s) of {describe_key(group.identity_key)} left in place"
                )

        logger.info(
            "duplicates_completed", work_order_id=work_order_id, **report.summary()
        )
        return report

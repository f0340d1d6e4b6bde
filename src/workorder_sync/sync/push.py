"""Push pending stacked services to the remote system."""

from __future__ import annotations

from collections.abc import Iterable

from workorder_sync.domain.entities.remote import RemoteServiceRecord
from workorder_sync.domain.entities.service import (
    TIMESTAMP_FORMAT,
    EncodedService,
    WorkOrderBatch,
)
from workorder_sync.domain.interfaces.stack_store import IStackStore
from workorder_sync.error_codes import ErrorCode
from workorder_sync.exceptions import (
    AuthError,
    PersistenceError,
    RemoteError,
    RemoteInteractionError,
    RemoteVerificationError,
)
from workorder_sync.notes.repository import NotesRepository
from workorder_sync.remote.session import RemoteSession
from workorder_sync.utils.logging import get_logger

from .cancellation import CancellationToken
from .report import ReconcileReport

logger = get_logger(__name__)


def matches_service(record: RemoteServiceRecord, service: EncodedService) -> bool:
    """Whether a remote row shows the service's verb code on the service's date."""
    if record.timestamp.date() != service.timestamp.date():
        return False
    if record.verb_code is not None:
        return record.verb_code == service.verb_code
    return str(service.verb_code) in record.description


def describe_service(service: EncodedService) -> str:
    noun = f", noun {service.noun_code}" if service.noun_code is not None else ""
    return (
        f"{service.timestamp.strftime(TIMESTAMP_FORMAT)} verb {service.verb_code}"
        f"{noun}, {service.elapsed_minutes} min"
    )


class PushReconciler:
    """Moves stacked services from Pending to Pushed.

    For each batch in stack order and each Pending service in batch order:
    create the remote record, read the work order back to confirm a new
    matching record appeared, then mark the service Pushed and persist the
    stack before moving on. A failed service stays Pending and is retried
    on the next run; services already Pushed are never sent again.
    """

    def __init__(
        self,
        store: IStackStore,
        session: RemoteSession,
        notes: NotesRepository | None = None,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.store = store
        self.session = session
        self.notes = notes
        self.cancellation = cancellation or CancellationToken()

    def run(
        self,
        dry_run: bool = False,
        work_order_ids: Iterable[str] | None = None,
    ) -> ReconcileReport:
        report = ReconcileReport(operation="push", dry_run=dry_run)
        batches = self.store.get_all()
        if work_order_ids is not None:
            wanted = set(work_order_ids)
            batches = [b for b in batches if b.work_order_id in wanted]

        pending_total = sum(len(b.pending_services) for b in batches)
        report.skipped = sum(len(b.services) for b in batches) - pending_total
        logger.info(
            "push_started",
            work_orders=len(batches),
            pending=pending_total,
            dry_run=dry_run,
        )

        if dry_run:
            for batch in batches:
                for service in batch.pending_services:
                    report.planned.append(
                        f"{batch.work_order_id}: {describe_service(service)}"
                    )
            logger.info("push_completed", **report.summary())
            return report

        try:
            for batch in batches:
                if not batch.pending_services:
                    continue
                if not self._push_batch(batch, report):
                    break
        except (PersistenceError, AuthError) as e:
            report.aborted = str(e)
            logger.error(
                "push_aborted",
                error=e.message,
                error_type=type(e).__name__,
                context=e.context,
            )

        if report.cancelled:
            logger.info("push_cancelled", **report.summary())
        logger.info("push_completed", **report.summary())
        return report

    def _push_batch(self, batch: WorkOrderBatch, report: ReconcileReport) -> bool:
        """Push one batch; returns False when the run was cancelled."""
        pushed_now: list[EncodedService] = []
        completed = True

        for service in batch.services:
            if not service.is_pending:
                continue
            if self.cancellation.cancelled:
                report.cancelled = True
                completed = False
                break

            try:
                self._push_service(batch.work_order_id, service)
            except RemoteVerificationError as e:
                service.record_failure(e.message, needs_review=True)
                report.add_failed_operation(
                    "create",
                    batch.work_order_id,
                    e.message,
                    target=describe_service(service),
                    needs_review=True,
                )
                logger.error(
                    "push_verification_failed",
                    work_order_id=batch.work_order_id,
                    timestamp=service.timestamp.isoformat(),
                    error=e.message,
                )
            except AuthError:
                raise
            except RemoteError as e:
                service.record_failure(e.message)
                report.add_failed_operation(
                    "create",
                    batch.work_order_id,
                    e.message,
                    target=describe_service(service),
                )
                logger.warning(
                    "push_entry_failed",
                    work_order_id=batch.work_order_id,
                    timestamp=service.timestamp.isoformat(),
                    error=e.message,
                    error_code=e.error_code,
                    attempts=service.push_attempts,
                )
            else:
                service.mark_pushed()
                pushed_now.append(service)
                report.succeeded += 1
                logger.info(
                    "push_entry_succeeded",
                    work_order_id=batch.work_order_id,
                    timestamp=service.timestamp.isoformat(),
                    verb_code=service.verb_code,
                )

            # Persist after every entry so a later failure cannot undo this one
            self.store.upsert(batch)

        if pushed_now and self.notes is not None:
            self._mark_notes(batch.work_order_id, pushed_now, report)
        return completed

    def _push_service(self, work_order_id: str, service: EncodedService) -> None:
        before = self._count_matches(
            self.session.extract_service_records(work_order_id), service
        )

        def landed() -> bool:
            return self._read_back(work_order_id, service) > before

        self.session.create_service_record(
            work_order_id,
            service.verb_code,
            service.noun_code,
            service.timestamp,
            service.elapsed_minutes,
            landed=landed,
        )

        added = self._read_back(work_order_id, service) - before
        if added == 1:
            return
        if added < 1:
            msg = (
                f"No new record with verb {service.verb_code} on "
                f"{service.timestamp.date().isoformat()} after create"
            )
        else:
            msg = (
                f"{added} new records with verb {service.verb_code} on "
                f"{service.timestamp.date().isoformat()} after one create"
            )
        raise RemoteVerificationError(
            msg,
            suggestion="Check the work order by hand before pushing again",
            error_code=ErrorCode.RMT_VERIFICATION_FAILED.value,
            context={"work_order_id": work_order_id, "added": added},
        )

    def _read_back(self, work_order_id: str, service: EncodedService) -> int:
        """Matching records visible after a create attempt."""
        try:
            records = self.session.extract_service_records(work_order_id)
        except RemoteInteractionError as e:
            msg = "Record may have been created but could not be read back"
            raise RemoteVerificationError(
                msg,
                suggestion="Check the work order by hand before pushing again",
                error_code=ErrorCode.RMT_VERIFICATION_FAILED.value,
                context={"work_order_id": work_order_id, "error": str(e)},
            ) from e
        return self._count_matches(records, service)

    @staticmethod
    def _count_matches(
        records: Iterable[RemoteServiceRecord], service: EncodedService
    ) -> int:
        return sum(1 for record in records if matches_service(record, service))

    def _mark_notes(
        self,
        work_order_id: str,
        services: list[EncodedService],
        report: ReconcileReport,
    ) -> None:
        assert self.notes is not None
        try:
            self.notes.mark_pushed(work_order_id, services)
        except PersistenceError as e:
            report.add_warning(f"{work_order_id}: notes not marked ({e.message})")
            logger.warning(
                "notes_mark_failed", work_order_id=work_order_id, error=e.message
            )

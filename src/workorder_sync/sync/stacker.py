"""Build a work order's batch from its notes and put it on the stack."""

from __future__ import annotations

from dataclasses import dataclass, field

from workorder_sync.codes.resolver import CodeResolver
from workorder_sync.domain.entities.diagnostic import Diagnostic
from workorder_sync.domain.entities.service import (
    WorkOrderBatch,
    validate_work_order_id,
)
from workorder_sync.domain.interfaces.stack_store import IStackStore
from workorder_sync.error_codes import ErrorCode
from workorder_sync.exceptions import ValidationError
from workorder_sync.notes.parser import NotesParser
from workorder_sync.notes.repository import NotesRepository
from workorder_sync.notes.timing import TimeAccumulator
from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class StackResult:
    """Outcome of stacking one work order."""

    work_order_id: str
    batch: WorkOrderBatch | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    parsed_entries: int = 0
    synced_entries: int = 0
    carried_pushed: int = 0

    @property
    def stacked(self) -> bool:
        return self.batch is not None

    @property
    def service_count(self) -> int:
        return len(self.batch.services) if self.batch else 0


class WorkOrderStacker:
    """Runs notes -> timed entries -> encoded services -> stack for one work order."""

    def __init__(
        self,
        store: IStackStore,
        resolver: CodeResolver,
        notes: NotesRepository,
        parser: NotesParser | None = None,
        accumulator: TimeAccumulator | None = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.notes = notes
        self.parser = parser or NotesParser()
        self.accumulator = accumulator or TimeAccumulator()

    def stack(
        self, work_order_id: str, control_number: str | None = None
    ) -> StackResult:
        """Re-stack a work order from its notes file."""
        try:
            work_order_id = validate_work_order_id(work_order_id)
        except ValueError as e:
            raise ValidationError(
                str(e), error_code=ErrorCode.VAL_WORK_ORDER_ID.value
            ) from e
        text = self.notes.read(work_order_id)
        return self.stack_text(work_order_id, text, control_number)

    def stack_text(
        self, work_order_id: str, text: str, control_number: str | None = None
    ) -> StackResult:
        """Re-stack a work order from notes text already in memory.

        The new batch replaces the stacked one. Services already pushed in
        the replaced batch keep their Pushed state. Nothing is written when
        no service survives resolution.
        """
        parsed = self.parser.parse(text)
        result = StackResult(
            work_order_id=work_order_id,
            parsed_entries=len(parsed.entries),
            synced_entries=parsed.synced_count,
        )

        timed = self.accumulator.accumulate(
            parsed.entries, parsed.effective_anchor, result.diagnostics
        )
        resolution = self.resolver.resolve(timed)
        result.diagnostics.extend(resolution.diagnostics)
        result.diagnostics.sort(key=lambda d: d.line_number)

        if result.diagnostics:
            logger.warning(
                "entries_dropped",
                work_order_id=work_order_id,
                dropped=len(result.diagnostics),
            )

        if not resolution.services:
            logger.info(
                "stack_empty",
                work_order_id=work_order_id,
                parsed=len(parsed.entries),
                synced=parsed.synced_count,
            )
            return result

        try:
            batch = WorkOrderBatch(
                work_order_id=work_order_id,
                control_number=control_number,
                services=resolution.services,
            )
        except ValueError as e:
            raise ValidationError(
                f"Invalid batch for work order {work_order_id}",
                suggestion=str(e),
                error_code=ErrorCode.VAL_WORK_ORDER_ID.value,
            ) from e

        result.carried_pushed = batch.merge_push_state(self.store.get(work_order_id))
        self.store.upsert(batch)
        result.batch = batch

        logger.info(
            "stack_built",
            work_order_id=work_order_id,
            services=len(batch.services),
            pending=len(batch.pending_services),
            carried_pushed=result.carried_pushed,
        )
        return result

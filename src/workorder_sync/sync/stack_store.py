"""JSON-file backed stack of work order batches."""

from __future__ import annotations

from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from workorder_sync.domain.entities.service import WorkOrderBatch
from workorder_sync.domain.interfaces.stack_store import IStackStore
from workorder_sync.error_codes import ErrorCode
from workorder_sync.exceptions import PersistenceError
from workorder_sync.utils.io import atomic_write
from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)

_BATCHES = TypeAdapter(list[WorkOrderBatch])


class JsonStackStore(IStackStore):
    """Stack persisted as a JSON array of batches.

    The whole file is rewritten atomically on every mutation and the
    in-memory copy only changes once the write succeeded. Only one process
    may write the file at a time.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._batches: list[WorkOrderBatch] = self._load()

    def _load(self) -> list[WorkOrderBatch]:
        if not self.path.exists():
            logger.debug("stack_file_missing", path=str(self.path))
            return []

        try:
            raw = self.path.read_bytes()
        except OSError as e:
            msg = f"Cannot read stack file: {self.path}"
            raise PersistenceError(
                msg,
                error_code=ErrorCode.STK_READ_FAILED.value,
                context={"path": str(self.path), "error": str(e)},
            ) from e

        if not raw.strip():
            return []

        try:
            batches = _BATCHES.validate_json(raw)
        except ValidationError as e:
            msg = f"Stack file is corrupt: {self.path}"
            raise PersistenceError(
                msg,
                suggestion="Restore the file from a backup or clear the stack",
                error_code=ErrorCode.STK_READ_FAILED.value,
                context={"path": str(self.path), "errors": e.error_count()},
            ) from e

        seen: set[str] = set()
        for batch in batches:
            if batch.work_order_id in seen:
                msg = f"Work order {batch.work_order_id} appears twice in {self.path}"
                raise PersistenceError(
                    msg,
                    error_code=ErrorCode.STK_READ_FAILED.value,
                    context={"path": str(self.path)},
                )
            seen.add(batch.work_order_id)

        logger.debug("stack_loaded", path=str(self.path), work_orders=len(batches))
        return batches

    def _persist(self, batches: list[WorkOrderBatch]) -> None:
        payload = _BATCHES.dump_json(batches, indent=2).decode("utf-8")
        try:
            with atomic_write(self.path) as f:
                f.write(payload)
                f.write("\n")
        except OSError as e:
            msg = f"Cannot write stack file: {self.path}"
            raise PersistenceError(
                msg,
                suggestion=f"Check write permissions on {self.path.parent}",
                error_code=ErrorCode.STK_WRITE_FAILED.value,
                context={"path": str(self.path), "error": str(e)},
            ) from e
        self._batches = batches

    def upsert(self, batch: WorkOrderBatch) -> None:
        stored = batch.model_copy(deep=True)
        batches = list(self._batches)
        for index, existing in enumerate(batches):
            if existing.work_order_id == batch.work_order_id:
                batches[index] = stored
                break
        else:
            batches.append(stored)
        self._persist(batches)
        logger.debug(
            "stack_upserted",
            work_order_id=batch.work_order_id,
            services=len(batch.services),
            pending=len(batch.pending_services),
        )

    def get(self, work_order_id: str) -> WorkOrderBatch | None:
        for batch in self._batches:
            if batch.work_order_id == work_order_id:
                return batch.model_copy(deep=True)
        return None

    def get_all(self) -> list[WorkOrderBatch]:
        return [batch.model_copy(deep=True) for batch in self._batches]

    def remove(self, work_order_id: str) -> bool:
        batches = [b for b in self._batches if b.work_order_id != work_order_id]
        if len(batches) == len(self._batches):
            return False
        self._persist(batches)
        logger.info("stack_work_order_removed", work_order_id=work_order_id)
        return True

    def clear(self) -> None:
        self._persist([])
        logger.info("stack_cleared", path=str(self.path))

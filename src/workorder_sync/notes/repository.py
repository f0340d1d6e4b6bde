"""Access to the per-work-order notes files."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from workorder_sync.domain.entities.service import (
    EncodedService,
    validate_work_order_id,
)
from workorder_sync.error_codes import ErrorCode
from workorder_sync.exceptions import NotesNotFoundError, PersistenceError
from workorder_sync.utils.io import atomic_write
from workorder_sync.utils.logging import get_logger

from .parser import mark_synced

logger = get_logger(__name__)


class NotesRepository:
    """Reads and rewrites ``<root>/<wo>/<wo>_notes.md``."""

    def __init__(self, work_orders_dir: Path) -> None:
        self.work_orders_dir = work_orders_dir

    def path_for(self, work_order_id: str) -> Path:
        work_order_id = validate_work_order_id(work_order_id)
        return self.work_orders_dir / work_order_id / f"{work_order_id}_notes.md"

    def read(self, work_order_id: str) -> str:
        path = self.path_for(work_order_id)
        if not path.exists():
            msg = f"Notes file for work order {work_order_id} not found"
            raise NotesNotFoundError(
                msg,
                suggestion=f"Expected {path}",
                error_code=ErrorCode.STK_NOTES_NOT_FOUND.value,
                context={"path": str(path)},
            )
        try:
            with open(path, encoding="utf-8", newline="") as f:
                return f.read()
        except OSError as e:
            msg = f"Cannot read notes for work order {work_order_id}"
            raise PersistenceError(
                msg,
                error_code=ErrorCode.STK_READ_FAILED.value,
                context={"path": str(path), "error": str(e)},
            ) from e

    def mark_pushed(
        self, work_order_id: str, services: Iterable[EncodedService]
    ) -> int:
        """Append the synced marker to the lines of ``services``.

        The file is read and written without newline translation, so CRLF
        notes stay CRLF.

        Returns:
            Number of lines marked
        """
        text = self.read(work_order_id)
        updated, marked = mark_synced(text, services)
        if marked:
            path = self.path_for(work_order_id)
            try:
                with atomic_write(path, newline="") as f:
                    f.write(updated)
            except OSError as e:
                msg = f"Cannot update notes for work order {work_order_id}"
                raise PersistenceError(
                    msg,
                    error_code=ErrorCode.STK_WRITE_FAILED.value,
                    context={"path": str(path), "error": str(e)},
                ) from e
        logger.info("notes_marked_synced", work_order_id=work_order_id, lines=marked)
        return marked

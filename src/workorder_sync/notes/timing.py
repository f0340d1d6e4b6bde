"""Derive elapsed minutes between consecutive log entries."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime

from workorder_sync.domain.entities.diagnostic import Diagnostic
from workorder_sync.domain.entities.entries import RawEntry, TimedEntry
from workorder_sync.error_codes import ErrorCode
from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end``, rounded half up."""
    return math.floor((end - start).total_seconds() / 60 + 0.5)


class TimeAccumulator:
    """Turns raw entries into timed entries.

    The first entry is measured from the anchor, every later entry from the
    entry before it, whether or not that entry survived. Entries that round
    to zero or fewer minutes are dropped; without an anchor the first entry
    is dropped. There is no upper cap.
    """

    def accumulate(
        self,
        entries: Sequence[RawEntry],
        anchor: datetime | None,
        diagnostics: list[Diagnostic] | None = None,
    ) -> list[TimedEntry]:
        timed: list[TimedEntry] = []
        boundary = anchor

        for entry in entries:
            if boundary is None:
                self._drop(
                    entry,
                    ErrorCode.VAL_MISSING_ANCHOR,
                    "No start time to measure the first entry from",
                    diagnostics,
                )
            else:
                minutes = elapsed_minutes(boundary, entry.timestamp)
                if minutes > 0:
                    timed.append(TimedEntry(entry=entry, elapsed_minutes=minutes))
                else:
                    self._drop(
                        entry,
                        ErrorCode.VAL_NON_POSITIVE_ELAPSED,
                        f"Elapsed time is {minutes} minutes",
                        diagnostics,
                    )
            boundary = entry.timestamp

        return timed

    def _drop(
        self,
        entry: RawEntry,
        code: ErrorCode,
        message: str,
        diagnostics: list[Diagnostic] | None,
    ) -> None:
        logger.warning(
            "entry_dropped",
            reason=code.value,
            line=entry.line_number,
            timestamp=entry.timestamp.isoformat(),
        )
        if diagnostics is not None:
            diagnostics.append(
                Diagnostic(
                    code=code,
                    message=message,
                    line_number=entry.line_number,
                    timestamp=entry.timestamp,
                )
            )

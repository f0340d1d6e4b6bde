"""Domain entities for log entries parsed out of work order notes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class RawEntry:
    """One activity line from a notes document, before timing is applied.

    ``timestamp`` is a naive local date-time; notes carry no timezone.
    """

    verb: str
    noun: str | None
    timestamp: datetime
    note: str
    line_number: int = 0

    def __post_init__(self) -> None:
        """Validate entity invariants."""
        if not self.verb.strip():
            raise ValueError("Entry verb cannot be empty")
        if self.noun is not None and not self.noun.strip():
            raise ValueError("Entry noun must be None or non-empty")


@dataclass(frozen=True)
class TimedEntry:
    """A RawEntry with the minutes elapsed since the previous boundary."""

    entry: RawEntry
    elapsed_minutes: int

    def __post_init__(self) -> None:
        if self.elapsed_minutes <= 0:
            raise ValueError(
                f"elapsed_minutes must be positive, got {self.elapsed_minutes}"
            )

    @property
    def verb(self) -> str:
        return self.entry.verb

    @property
    def noun(self) -> str | None:
        return self.entry.noun

    @property
    def timestamp(self) -> datetime:
        return self.entry.timestamp

    @property
    def note(self) -> str:
        return self.entry.note

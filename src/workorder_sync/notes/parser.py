"""Parse activity lines out of work order notes.

Line format::

    [Verb, Noun] (YYYY-MM-DD HH:MM) => free text note
    [Verb] (YYYY-MM-DD HH:MM:SS) => free text note

Lines carrying the synced marker ``(||)`` were pushed already and are not
returned as entries. Anything that does not match the format is ignored.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, time

from workorder_sync.domain.entities.entries import RawEntry
from workorder_sync.domain.entities.service import EncodedService
from workorder_sync.utils.logging import get_logger

logger = get_logger(__name__)

SYNCED_MARKER = "(||)"

ENTRY_RE = re.compile(
    r"^\s*\[(?P<verb>.*?)(?:,\s*(?P<noun>.*?))?\]\s*"
    r"\((?P<timestamp>\d{4}-\d{2}-\d{2}\s+\d{1,2}:\d{2}(?::\d{2})?)\)\s*"
    r"=>\s*(?P<note>.*?)\s*$"
)
ANCHOR_RE = re.compile(
    r"START/RESUME TIME:\s*(?:(?P<date>\d{4}-\d{2}-\d{2})[ T]+)?"
    r"(?P<time>\d{1,2}:\d{1,2}(?::\d{1,2})?)"
)
IMPORTED_DATE_RE = re.compile(r"IMPORTED FROM MM ON (\d{4}-\d{2}-\d{2})")

_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M")


@dataclass
class ParsedNotes:
    """Result of parsing one notes document.

    Attributes:
        entries: Pending entries in document order
        anchor: Declared START/RESUME time, if any
        resume_boundary: Timestamp of the last synced entry before the
            first pending entry, if any
        synced_count: Number of synced lines seen
        skipped_lines: Lines that looked like entries but could not be parsed
    """

    entries: list[RawEntry] = field(default_factory=list)
    anchor: datetime | None = None
    resume_boundary: datetime | None = None
    synced_count: int = 0
    skipped_lines: int = 0

    @property
    def effective_anchor(self) -> datetime | None:
        """Boundary for the first pending entry.

        Work already pushed ends where its last synced line says, so a
        resume boundary later than the declared anchor takes over.
        """
        candidates = [t for t in (self.anchor, self.resume_boundary) if t is not None]
        return max(candidates) if candidates else None


def parse_timestamp(value: str) -> datetime | None:
    """Parse ``YYYY-MM-DD H:MM[:SS]``; None for impossible dates or times."""
    value = " ".join(value.split())
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def parse_entry_line(line: str, line_number: int = 0) -> RawEntry | None:
    """Parse one line, returning None when it is not a well-formed entry."""
    match = ENTRY_RE.match(line)
    if not match:
        return None

    verb = match.group("verb").strip()
    noun = (match.group("noun") or "").strip() or None
    timestamp = parse_timestamp(match.group("timestamp"))
    if not verb or timestamp is None:
        return None

    return RawEntry(
        verb=verb,
        noun=noun,
        timestamp=timestamp,
        note=match.group("note").strip(),
        line_number=line_number,
    )


class NotesParser:
    """Extracts pending entries and the time anchor from notes text."""

    def parse(self, text: str) -> ParsedNotes:
        result = ParsedNotes()
        last_synced: datetime | None = None

        for line_number, line in enumerate(text.splitlines(), start=1):
            is_synced = SYNCED_MARKER in line
            entry = parse_entry_line(
                line.replace(SYNCED_MARKER, "") if is_synced else line, line_number
            )

            if entry is None:
                stripped = line.strip()
                if ENTRY_RE.match(line) or (stripped.startswith("[") and "=>" in line):
                    result.skipped_lines += 1
                    logger.debug(
                        "entry_skipped", line=line_number, text=stripped[:80]
                    )
                continue

            if is_synced:
                result.synced_count += 1
                if not result.entries:
                    last_synced = entry.timestamp
                continue

            result.entries.append(entry)

        result.resume_boundary = last_synced
        result.anchor = self._find_anchor(text, result.entries)
        return result

    def _find_anchor(self, text: str, entries: list[RawEntry]) -> datetime | None:
        match = ANCHOR_RE.search(text)
        if not match:
            return None

        anchor_time = _parse_clock(match.group("time"))
        if anchor_time is None:
            logger.debug("anchor_invalid", value=match.group(0))
            return None

        anchor_date = _parse_date(match.group("date"))
        if anchor_date is None:
            imported = IMPORTED_DATE_RE.search(text)
            anchor_date = _parse_date(imported.group(1)) if imported else None
        if anchor_date is None and entries:
            anchor_date = entries[0].timestamp.date()
        if anchor_date is None:
            return None

        return datetime.combine(anchor_date, anchor_time)


def mark_synced(text: str, services: Iterable[EncodedService]) -> tuple[str, int]:
    """Append the synced marker to the lines of pushed services.

    Each service marks the first unmarked line with the same timestamp and
    note. Line endings are preserved.

    Returns:
        The updated text and the number of lines marked
    """
    wanted: list[tuple[datetime, str]] = [(s.timestamp, s.note) for s in services]
    if not wanted:
        return text, 0

    lines = text.splitlines(keepends=True)
    marked = 0
    for index, line in enumerate(lines):
        if not wanted:
            break
        if SYNCED_MARKER in line:
            continue
        entry = parse_entry_line(line)
        if entry is None:
            continue
        key = (entry.timestamp, entry.note)
        if key in wanted:
            wanted.remove(key)
            body = line.rstrip("\r\n")
            ending = line[len(body):]
            lines[index] = f"{body} {SYNCED_MARKER}{ending}"
            marked += 1

    return "".join(lines), marked


def _parse_clock(value: str) -> time | None:
    parts = [int(p) for p in value.split(":")]
    while len(parts) < 3:
        parts.append(0)
    try:
        return time(parts[0], parts[1], parts[2])
    except ValueError:
        return None


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None

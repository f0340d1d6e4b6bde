"""Work order notes: parsing, timing and file access."""

from .parser import SYNCED_MARKER, NotesParser, ParsedNotes, mark_synced
from .repository import NotesRepository
from .timing import TimeAccumulator

__all__ = [
    "SYNCED_MARKER",
    "NotesParser",
    "NotesRepository",
    "ParsedNotes",
    "TimeAccumulator",
    "mark_synced",
]

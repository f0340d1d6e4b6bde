"""Domain entities describing records visible in the remote system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class RemoteCredentials:
    """Login credentials for the remote system."""

    username: str
    password: str = field(repr=False)
    domain: str = ""


@dataclass(frozen=True)
class RemoteHandle:
    """Opaque reference to a record within one extraction snapshot.

    The remote grid has no stable identifiers: a row's position shifts after
    every create, edit or delete. A handle therefore names the snapshot it
    was read from, and facades reject handles from any other snapshot.
    """

    work_order_id: str
    snapshot_version: int
    row_id: str


@dataclass(frozen=True)
class RemoteServiceRecord:
    """One service row as read back from a work order."""

    handle: RemoteHandle
    servicer: str
    timestamp: datetime
    elapsed_minutes: int
    description: str
    has_linked_sub_items: bool = False
    verb_code: int | None = None

    @property
    def identity_key(self) -> tuple[datetime, str]:
        """Two records with the same key are duplicates of each other."""
        return (self.timestamp, self.description)

    @property
    def content_key(self) -> tuple[str, datetime, int, str, bool]:
        """Everything visible about the record except its snapshot handle."""
        return (
            self.servicer,
            self.timestamp,
            self.elapsed_minutes,
            self.description,
            self.has_linked_sub_items,
        )


@dataclass(frozen=True)
class RecordEdit:
    """Fields to change on an existing record; None leaves a field as is."""

    elapsed_minutes: int | None = None
    description: str | None = None

    def __post_init__(self) -> None:
        if self.elapsed_minutes is None and self.description is None:
            raise ValueError("RecordEdit must change at least one field")
        if self.elapsed_minutes is not None and self.elapsed_minutes < 0:
            raise ValueError("elapsed_minutes cannot be negative")


@dataclass(frozen=True)
class DuplicateGroup:
    """Records sharing one identity key, in extraction order.

    ``members[0]`` is the record that is kept.
    """

    identity_key: tuple[datetime, str]
    members: tuple[RemoteServiceRecord, ...]

    def __post_init__(self) -> None:
        if len(self.members) < 2:
            raise ValueError("A duplicate group needs at least two members")

    @property
    def canonical(self) -> RemoteServiceRecord:
        return self.members[0]

    @property
    def deletion_candidates(self) -> tuple[RemoteServiceRecord, ...]:
        return self.members[1:]

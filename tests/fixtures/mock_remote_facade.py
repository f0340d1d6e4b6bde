"""In-memory implementation of IRemoteFacade for testing."""

from dataclasses import dataclass
from datetime import datetime

from workorder_sync.domain.entities.remote import (
    RecordEdit,
    RemoteCredentials,
    RemoteHandle,
    RemoteServiceRecord,
)
from workorder_sync.domain.interfaces.remote_facade import IRemoteFacade
from workorder_sync.exceptions import (
    AuthError,
    RemoteInteractionError,
    StaleHandleError,
)


@dataclass
class _Row:
    servicer: str
    timestamp: datetime
    elapsed_minutes: int
    description: str
    has_linked_sub_items: bool = False
    verb_code: int | None = None


class MockRemoteFacade(IRemoteFacade):
    """Remote grid kept in memory.

    Behaves like the real UI where it matters for reconciliation: handles
    are bound to a snapshot version that moves on every mutation of the
    work order, and records with linked sub-items refuse deletion.
    Failures can be injected per operation.
    """

    def __init__(self, servicer: str = "Jane Doe", password: str | None = None):
        self.servicer = servicer
        self.password = password
        self.logged_in = False
        self.login_attempts = 0
        self.calls: list[tuple[str, str]] = []
        self.mutation_count = 0
        self._rows: dict[str, list[_Row]] = {}
        self._versions: dict[str, int] = {}
        self._failures: dict[str, list[Exception]] = {}
        self._late_failures: dict[str, list[Exception]] = {}
        self.ignore_creates = False
        self.ignore_deletes = False
        self.record_verb_codes = True

    # IRemoteFacade

    def login(self, credentials: RemoteCredentials) -> None:
        self.login_attempts += 1
        self.calls.append(("login", credentials.username))
        self._maybe_fail("login")
        if self.password is not None and credentials.password != self.password:
            raise AuthError("Login rejected")
        self.logged_in = True

    def extract_service_records(self, work_order_id: str) -> list[RemoteServiceRecord]:
        self._enter("extract", work_order_id)
        version = self._versions.get(work_order_id, 0)
        return [
            RemoteServiceRecord(
                handle=RemoteHandle(work_order_id, version, str(index)),
                servicer=row.servicer,
                timestamp=row.timestamp,
                elapsed_minutes=row.elapsed_minutes,
                description=row.description,
                has_linked_sub_items=row.has_linked_sub_items,
                verb_code=row.verb_code,
            )
            for index, row in enumerate(self._rows.get(work_order_id, []))
        ]

    def create_service_record(
        self,
        work_order_id: str,
        verb_code: int,
        noun_code: int | None,
        timestamp: datetime,
        minutes: int,
    ) -> None:
        self._enter("create", work_order_id)
        if self.ignore_creates:
            return
        noun = f" / {noun_code}" if noun_code is not None else ""
        self._mutate(work_order_id).append(
            _Row(
                servicer=self.servicer,
                timestamp=timestamp,
                elapsed_minutes=minutes,
                description=f"Code {verb_code}{noun}",
                verb_code=verb_code if self.record_verb_codes else None,
            )
        )
        self._maybe_fail_late("create")

    def edit_service_record(self, handle: RemoteHandle, edit: RecordEdit) -> None:
        self._enter("edit", handle.work_order_id)
        row = self._resolve(handle)
        if edit.elapsed_minutes is not None:
            row.elapsed_minutes = edit.elapsed_minutes
        if edit.description is not None:
            row.description = edit.description
        self._mutate(handle.work_order_id)

    def delete_service_record(self, handle: RemoteHandle) -> None:
        self._enter("delete", handle.work_order_id)
        row = self._resolve(handle)
        if row.has_linked_sub_items:
            raise RemoteInteractionError("Record has linked sub-items")
        if self.ignore_deletes:
            return
        self._mutate(handle.work_order_id).remove(row)

    # Helper methods for testing

    def seed(
        self,
        work_order_id: str,
        timestamp: datetime,
        minutes: int,
        description: str,
        servicer: str | None = None,
        has_linked_sub_items: bool = False,
        verb_code: int | None = None,
    ) -> None:
        """Add a record without counting it as a mutation."""
        self._rows.setdefault(work_order_id, []).append(
            _Row(
                servicer=servicer or self.servicer,
                timestamp=timestamp,
                elapsed_minutes=minutes,
                description=description,
                has_linked_sub_items=has_linked_sub_items,
                verb_code=verb_code,
            )
        )

    def fail_next(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error``."""
        self._failures.setdefault(operation, []).extend([error] * times)

    def fail_after_next(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` take effect, then raise."""
        self._late_failures.setdefault(operation, []).extend([error] * times)

    def expire_session(self) -> None:
        self.logged_in = False

    def rows(self, work_order_id: str) -> list[tuple[str, datetime, int, str]]:
        """Visible state of a work order as plain tuples."""
        return [
            (r.servicer, r.timestamp, r.elapsed_minutes, r.description)
            for r in self._rows.get(work_order_id, [])
        ]

    def call_count(self, operation: str) -> int:
        return sum(1 for name, _ in self.calls if name == operation)

    # Internals

    def _enter(self, operation: str, work_order_id: str) -> None:
        self.calls.append((operation, work_order_id))
        if not self.logged_in:
            raise AuthError("Session expired")
        self._maybe_fail(operation)

    def _maybe_fail(self, operation: str) -> None:
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _maybe_fail_late(self, operation: str) -> None:
        queued = self._late_failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _resolve(self, handle: RemoteHandle) -> _Row:
        rows = self._rows.get(handle.work_order_id, [])
        if handle.snapshot_version != self._versions.get(handle.work_order_id, 0):
            raise StaleHandleError(
                f"Handle from snapshot {handle.snapshot_version} is stale"
            )
        return rows[int(handle.row_id)]

    def _mutate(self, work_order_id: str) -> list[_Row]:
        self.mutation_count += 1
        self._versions[work_order_id] = self._versions.get(work_order_id, 0) + 1
        return self._rows.setdefault(work_order_id, [])

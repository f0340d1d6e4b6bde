"""Interface for the remote maintenance system."""

from abc import ABC, abstractmethod
from datetime import datetime

from ..entities.remote import (
    RecordEdit,
    RemoteCredentials,
    RemoteHandle,
    RemoteServiceRecord,
)


class IRemoteFacade(ABC):
    """Interface for the remote maintenance system's service records.

    Implementations drive the remote UI. Every call may fail transiently
    with RemoteInteractionError; an expired session surfaces as AuthError.
    Each successful mutation invalidates all handles from earlier
    extractions of that work order, and using such a handle raises
    StaleHandleError.

    Implementations that scrape the service grid can turn its text into
    records with ``workorder_sync.remote.formats.parse_service_row`` and
    ``parse_remote_datetime``, and render timestamps for input fields with
    ``format_remote_datetime``.
    """

    @abstractmethod
    def login(self, credentials: RemoteCredentials) -> None:
        """Authenticate the session.

        Args:
            credentials: User name, password and domain

        Raises:
            AuthError: If the login is rejected
        """
        pass

    @abstractmethod
    def extract_service_records(self, work_order_id: str) -> list[RemoteServiceRecord]:
        """Read every service record visible on a work order.

        Args:
            work_order_id: 7-digit work order id

        Returns:
            Records in display order, all bound to one fresh snapshot
        """
        pass

    @abstractmethod
    def create_service_record(
        self,
        work_order_id: str,
        verb_code: int,
        noun_code: int | None,
        timestamp: datetime,
        minutes: int,
    ) -> None:
        """Create one service record.

        A successful return is not proof the record exists; callers verify
        by reading the work order back.

        Args:
            work_order_id: 7-digit work order id
            verb_code: Resolved verb code
            noun_code: Resolved noun code, or None for verbs without a noun
            timestamp: Service date-time
            minutes: Elapsed minutes to book
        """
        pass

    @abstractmethod
    def edit_service_record(self, handle: RemoteHandle, edit: RecordEdit) -> None:
        """Change fields of an existing record.

        Args:
            handle: Handle from the most recent extraction
            edit: Fields to change
        """
        pass

    @abstractmethod
    def delete_service_record(self, handle: RemoteHandle) -> None:
        """Delete an existing record.

        Args:
            handle: Handle from the most recent extraction
        """
        pass

"""Centralized exception hierarchy for workorder-sync.

Exception Hierarchy:
    WorkOrderSyncError (base)
     ConfigurationError - Configuration loading/validation errors
        VocabularyError - Verb/noun table loading errors
     ValidationError - Entry, work order id or filter validation errors
     PersistenceError - Stack store read/write failures (fatal)
        NotesNotFoundError - Work order notes file is missing
     RemoteError - Remote system errors
         AuthError - Session expired or login rejected
         RemoteInteractionError - Transient UI failure (retryable)
         RemoteVerificationError - Created record not visible on read-back
         StaleHandleError - Handle used after its snapshot was invalidated

Usage Examples:
    try:
        reconciler.run()
    except PersistenceError as e:
        logger.error("push_aborted", **e.to_dict())

    raise RemoteInteractionError(
        "Save button did not respond",
        error_code=ErrorCode.RMT_INTERACTION_FAILED.value,
        context={"work_order_id": "1234567"},
    )
"""

from typing import Any


class WorkOrderSyncError(Exception):
    """Base exception for all workorder-sync errors.

    Attributes:
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
        error_code: Structured error code for machine-readable handling
        context: Additional context for debugging (work order id, paths)
    """

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        self.suggestion = suggestion
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = []
        if self.error_code:
            parts.append(f"[{self.error_code}] {self.message}")
        else:
            parts.append(self.message)
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for structured logging.

        Returns:
            Dictionary with error details
        """
        return {
            "message": self.message,
            "error_code": self.error_code,
            "suggestion": self.suggestion,
            "context": self.context,
            "type": type(self).__name__,
        }


class ConfigurationError(WorkOrderSyncError):
    """Configuration loading or validation errors.

    Raised when:
    - Config file is missing or malformed
    - Configuration values fail validation
    - The remote facade path cannot be loaded
    """


class VocabularyError(ConfigurationError):
    """Verb or noun table is missing, unreadable or malformed."""


class ValidationError(WorkOrderSyncError):
    """Input failed validation.

    Raised for bad work order ids and purge filters. Per-entry validation
    failures during stacking are reported as diagnostics instead of raised.
    """


class PersistenceError(WorkOrderSyncError):
    """The stack file could not be read or written.

    Fatal for the current operation: an unpersisted push state change must
    not be acknowledged.
    """


class NotesNotFoundError(PersistenceError):
    """The notes file for a work order does not exist."""


class RemoteError(WorkOrderSyncError):
    """Base class for remote system errors."""


class AuthError(RemoteError):
    """Remote session is unauthenticated or the login was rejected."""


class RemoteInteractionError(RemoteError):
    """Transient UI interaction failure (timeout, element missing).

    Retried with a bounded number of attempts; exhaustion is a per-item
    failure, not a fatal one.
    """


class RemoteVerificationError(RemoteError):
    """A create reported success but the record is not visible on read-back.

    The entry stays Pending and is flagged for manual review since the
    remote may or may not hold the record.
    """


class StaleHandleError(RemoteError):
    """A record handle was used against a different snapshot than it came from.

    Always a programming error in the caller; never retried.
    """

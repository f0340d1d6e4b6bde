"""Structured error codes for machine-readable error handling.

Error codes follow the format: {DOMAIN}-{CATEGORY}-{NUMBER}

Error Domains:
    CFG - Configuration errors (settings, vocabulary tables)
    VAL - Validation errors (entries, work order ids, purge filters)
    STK - Stack persistence errors
    RMT - Remote system errors (auth, interaction, verification)

Usage:
    from workorder_sync.error_codes import ErrorCode

    logger.error(
        "push_entry_failed",
        error_code=ErrorCode.RMT_INTERACTION_FAILED.value,
        work_order_id="1234567",
    )
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Structured error codes for machine-readable handling.

    All error codes inherit from str for JSON serialization compatibility.
    """

    # Configuration
    CFG_INVALID = "CFG-INVALID-001"
    """Configuration validation failed."""

    CFG_PATH_INVALID = "CFG-PATH-001"
    """Configuration path is invalid or inaccessible."""

    CFG_VOCABULARY_INVALID = "CFG-VOCAB-001"
    """Verb or noun table is missing or malformed."""

    CFG_FACADE_INVALID = "CFG-FACADE-001"
    """Remote facade path could not be imported or instantiated."""

    # Validation
    VAL_UNKNOWN_VERB = "VAL-VERB-001"
    """Entry verb is not in the vocabulary."""

    VAL_MISSING_NOUN = "VAL-NOUN-001"
    """Verb requires a noun but none was supplied."""

    VAL_UNKNOWN_NOUN = "VAL-NOUN-002"
    """Supplied noun is not in the vocabulary."""

    VAL_NON_POSITIVE_ELAPSED = "VAL-TIME-001"
    """Elapsed minutes rounded to zero or less."""

    VAL_MISSING_ANCHOR = "VAL-TIME-002"
    """First entry has no anchor to measure from."""

    VAL_WORK_ORDER_ID = "VAL-WO-001"
    """Work order id is not a 7-digit number."""

    VAL_PURGE_FILTER = "VAL-PURGE-001"
    """Purge month or year is out of range."""

    # Stack persistence
    STK_READ_FAILED = "STK-READ-001"
    """Stack file could not be read or decoded."""

    STK_WRITE_FAILED = "STK-WRITE-001"
    """Stack file could not be written."""

    STK_NOTES_NOT_FOUND = "STK-NOTES-001"
    """Work order notes file does not exist."""

    # Remote system
    RMT_AUTH_FAILED = "RMT-AUTH-001"
    """Remote session is not authenticated or login was rejected."""

    RMT_INTERACTION_FAILED = "RMT-INTERACT-001"
    """Transient UI interaction failure."""

    RMT_VERIFICATION_FAILED = "RMT-VERIFY-001"
    """Created record did not appear on read-back."""

    RMT_STALE_HANDLE = "RMT-HANDLE-001"
    """Record handle used against a newer snapshot."""

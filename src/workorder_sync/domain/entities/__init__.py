"""Domain entities."""

from .diagnostic import Diagnostic
from .entries import RawEntry, TimedEntry
from .remote import (
    DuplicateGroup,
    RecordEdit,
    RemoteCredentials,
    RemoteHandle,
    RemoteServiceRecord,
)
from .service import EncodedService, PushState, WorkOrderBatch

__all__ = [
    "Diagnostic",
    "DuplicateGroup",
    "EncodedService",
    "PushState",
    "RawEntry",
    "RecordEdit",
    "RemoteCredentials",
    "RemoteHandle",
    "RemoteServiceRecord",
    "TimedEntry",
    "WorkOrderBatch",
]

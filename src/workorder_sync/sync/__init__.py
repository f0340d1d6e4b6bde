"""Stack persistence and the push, duplicate and purge reconcilers."""

from .cancellation import CancellationToken
from .duplicates import DuplicateReconciler, find_duplicate_groups
from .purge import PurgeFilter, PurgeReconciler, PurgeReport, parse_work_order_list
from .push import PushReconciler
from .report import FailedOperation, ReconcileReport
from .stack_store import JsonStackStore
from .stacker import StackResult, WorkOrderStacker

__all__ = [
    "CancellationToken",
    "DuplicateReconciler",
    "FailedOperation",
    "JsonStackStore",
    "PurgeFilter",
    "PurgeReconciler",
    "PurgeReport",
    "PushReconciler",
    "ReconcileReport",
    "StackResult",
    "WorkOrderStacker",
    "find_duplicate_groups",
    "parse_work_order_list",
]

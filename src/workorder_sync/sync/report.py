"""Reconciliation results with per-item failure detail."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class FailedOperation:
    """One remote operation that did not succeed.

    Provides enough context to find the entry or record again by hand.
    """

    operation: str  # e.g. "create", "delete", "zero_out", "extract"
    work_order_id: str
    error: str
    target: str = ""  # timestamp/description of the entry or record
    needs_review: bool = False
    recoverable: bool = True

    def __str__(self) -> str:
        target = f" ({self.target})" if self.target else ""
        return f"[{self.operation}] {self.work_order_id}{target}: {self.error}"


@dataclass
class ReconcileReport:
    """Result of a push, duplicate or purge run.

    Supports partial success: failed items are recorded and the run moves on.

    Attributes:
        operation: Which reconciler produced the report
        dry_run: Whether remote mutations were suppressed
        succeeded: Items completed in this run
        skipped: Items that needed no work
        planned: Descriptions of what a dry run would do
        failed_operations: Failures with context
        cancelled: Whether the run stopped early on request
        aborted: Fatal error that stopped the run, if any
    """

    operation: str
    dry_run: bool = False
    succeeded: int = 0
    skipped: int = 0
    planned: list[str] = field(default_factory=list)
    failed_operations: list[FailedOperation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False
    aborted: str | None = None

    def add_failed_operation(
        self,
        operation: str,
        work_order_id: str,
        error: str,
        target: str = "",
        needs_review: bool = False,
        recoverable: bool = True,
    ) -> FailedOperation:
        failed = FailedOperation(
            operation=operation,
            work_order_id=work_order_id,
            error=error,
            target=target,
            needs_review=needs_review,
            recoverable=recoverable,
        )
        self.failed_operations.append(failed)
        return failed

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    @property
    def failed(self) -> int:
        return len(self.failed_operations)

    @property
    def success(self) -> bool:
        return (
            not self.failed_operations
            and self.aborted is None
            and not self.cancelled
        )

    @property
    def partial_success(self) -> bool:
        return self.succeeded > 0 and self.failed > 0

    def summary(self) -> dict[str, Any]:
        """Flat counts for logging and display."""
        return {
            "operation": self.operation,
            "dry_run": self.dry_run,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "planned": len(self.planned),
            "needs_review": sum(1 for f in self.failed_operations if f.needs_review),
            "cancelled": self.cancelled,
            "aborted": self.aborted,
        }

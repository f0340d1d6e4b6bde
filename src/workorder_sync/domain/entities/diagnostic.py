"""Diagnostics for entries dropped between parsing and stacking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from workorder_sync.error_codes import ErrorCode


@dataclass(frozen=True)
class Diagnostic:
    """Why one entry was dropped."""

    code: ErrorCode
    message: str
    line_number: int = 0
    timestamp: datetime | None = None

    def __str__(self) -> str:
        where = f"line {self.line_number}: " if self.line_number else ""
        return f"{where}{self.message}"

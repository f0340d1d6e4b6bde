"""Cooperative cancellation for long-running reconciliations."""

from __future__ import annotations

import threading


class CancellationToken:
    """Flag checked by reconcilers between items.

    A remote call already in flight is never interrupted; the run stops
    before starting the next item.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

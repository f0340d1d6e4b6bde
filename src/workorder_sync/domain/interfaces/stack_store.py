"""Interface for the durable stack of work order batches."""

from abc import ABC, abstractmethod

from ..entities.service import WorkOrderBatch


class IStackStore(ABC):
    """Durable, keyed collection of work order batches.

    Every mutating call is persisted before it returns. Callers receive
    copies; changing a returned batch has no effect until it is upserted.
    """

    @abstractmethod
    def upsert(self, batch: WorkOrderBatch) -> None:
        """Insert or replace the batch for ``batch.work_order_id``.

        A replaced batch keeps its position in the stack.

        Raises:
            PersistenceError: If the stack cannot be written
        """
        pass

    @abstractmethod
    def get(self, work_order_id: str) -> WorkOrderBatch | None:
        """Get the batch for one work order.

        Returns:
            The batch, or None if the work order is not stacked
        """
        pass

    @abstractmethod
    def get_all(self) -> list[WorkOrderBatch]:
        """Get every batch in insertion order."""
        pass

    @abstractmethod
    def remove(self, work_order_id: str) -> bool:
        """Remove one work order from the stack.

        Returns:
            True if a batch was removed
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every batch."""
        pass

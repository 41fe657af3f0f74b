"""Abstract inventory ledger: on-hand stock and the sale transactions against it.

The ledger does not know about reservations.  Availability is the
reservation service's concern.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from orderflow.domain.model.inventory import LedgerTransaction, StockLevel
from orderflow.domain.model.value_objects import ItemRef


class InventoryLedger(ABC):

    @abstractmethod
    def current_stock(self, inventory_id: int, item: ItemRef) -> int:
        """Return the on-hand quantity, 0 if the item was never stocked."""

    @abstractmethod
    def get_stock(self, inventory_id: int, item: ItemRef) -> StockLevel | None:
        """Return the stock row, or None."""

    @abstractmethod
    def list_stock(self, inventory_id: int | None = None) -> list[StockLevel]:
        """Return stock rows, optionally limited to one inventory snapshot."""

    @abstractmethod
    def set_stock(self, inventory_id: int, item: ItemRef, quantity: int) -> StockLevel:
        """Set the on-hand quantity, creating the row if needed."""

    @abstractmethod
    def decrement(
        self,
        inventory_id: int,
        item: ItemRef,
        quantity: int,
        kind: str,
        actor_id: int | None,
        note: str | None,
        created_at: datetime,
    ) -> LedgerTransaction:
        """Remove stock and record the ledger transaction that did it.

        Raises InsufficientInventoryError if stock would go negative.
        """

    @abstractmethod
    def list_transactions(self) -> list[LedgerTransaction]:
        """Return every ledger transaction."""

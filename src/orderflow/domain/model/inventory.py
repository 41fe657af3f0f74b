"""Inventory ledger records: stock levels, sale transactions and store assignments.

Each store works against one *current inventory* snapshot at a time.
Stock is tracked per (inventory snapshot, item).  Reserved quantities are
not stored here; they are derived from active reservations.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from orderflow.domain.exceptions import (
    InsufficientInventoryError,
    Shortage,
    ValidationError,
)
from orderflow.domain.model.value_objects import ItemRef

SALE = "sale"


@dataclass
class StockLevel:
    """Current on-hand quantity for one item in one inventory snapshot.

    Invariants:
    - ``quantity`` is always >= 0
    """

    inventory_id: int
    item: ItemRef
    quantity: int
    version: int = 0

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValidationError(
                f"Stock for {self.item} cannot be negative, got {self.quantity}"
            )

    @property
    def key(self) -> tuple:
        return (self.inventory_id, *self.item.key)

    def decrement(self, quantity: int) -> None:
        """Permanently remove delivered stock.

        Raises InsufficientInventoryError rather than going below zero.
        """
        if quantity <= 0:
            raise ValidationError("Decrement quantity must be positive")
        if quantity > self.quantity:
            raise InsufficientInventoryError(
                [Shortage(self.item, quantity, self.quantity)]
            )
        self.quantity -= quantity

    def set(self, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")
        self.quantity = quantity


@dataclass(frozen=True)
class LedgerTransaction:
    """An immutable ledger row produced by a stock decrement."""

    id: int | None
    inventory_id: int
    item: ItemRef
    quantity: int
    kind: str
    actor_id: int | None
    note: str | None
    created_at: datetime


@dataclass(frozen=True)
class StoreAssignment:
    """A store's active assignment and the inventory snapshot it draws from."""

    assignment_id: int
    store_id: int
    current_inventory_id: int

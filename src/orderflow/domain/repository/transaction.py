"""Explicit unit of work.

Every multi-step operation runs inside one Transaction, which is passed
to each repository and service call.  Nothing is visible to other
transactions until ``commit()``; any exception inside the ``with`` block
rolls everything back.

    with database.begin() as tx:
        order = tx.orders.get_for_update(order_id)
        ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

from orderflow.domain.model.value_objects import ItemRef
from orderflow.domain.repository.history_repository import StatusHistoryRepository
from orderflow.domain.repository.inventory_ledger import InventoryLedger
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.reservation_repository import ReservationRepository
from orderflow.domain.repository.store_assignment import StoreAssignmentRepository
from orderflow.domain.repository.transaction_link_repository import (
    TransactionLinkRepository,
)


class Transaction(ABC):

    orders: OrderRepository
    reservations: ReservationRepository
    history: StatusHistoryRepository
    links: TransactionLinkRepository
    ledger: InventoryLedger
    assignments: StoreAssignmentRepository

    @abstractmethod
    def lock_order(self, order_id: int) -> None:
        """Hold the order's row lock until the transaction ends."""

    @abstractmethod
    def lock_stock(self, inventory_id: int, items: Iterable[ItemRef]) -> None:
        """Hold the stock row locks for *items*, always acquired in sorted order."""

    @abstractmethod
    def commit(self) -> None:
        """Publish staged changes; raises ConflictError on a version mismatch."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard staged changes and release every lock."""

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False


class Database(ABC):

    @abstractmethod
    def begin(self) -> Transaction:
        """Open a new transaction."""

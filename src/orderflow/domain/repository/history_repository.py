"""Abstract repository for the append-only order status history."""

from __future__ import annotations

from abc import ABC, abstractmethod

from orderflow.domain.model.history import StatusHistoryEntry


class StatusHistoryRepository(ABC):

    @abstractmethod
    def append(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        """Store a new entry and return it with its ID assigned."""

    @abstractmethod
    def find_by_order(self, order_id: int) -> list[StatusHistoryEntry]:
        """Return an order's entries in the order they were recorded."""

    @abstractmethod
    def list_all(self) -> list[StatusHistoryEntry]:
        """Return every entry."""

"""Abstract repository for Reservation entities."""

from __future__ import annotations

from abc import ABC, abstractmethod

from orderflow.domain.model.reservation import Reservation
from orderflow.domain.model.value_objects import ItemRef


class ReservationRepository(ABC):

    @abstractmethod
    def next_id(self) -> int:
        """Generate the next unique reservation ID."""

    @abstractmethod
    def get_by_id(self, reservation_id: int) -> Reservation | None:
        """Return a reservation by its ID, or None if not found."""

    @abstractmethod
    def find_by_order(self, order_id: int) -> list[Reservation]:
        """Return every reservation of an order, whatever its status."""

    @abstractmethod
    def find_active_by_item(self, inventory_id: int, item: ItemRef) -> list[Reservation]:
        """Return active reservations held against one item of one inventory snapshot."""

    @abstractmethod
    def list_all(self) -> list[Reservation]:
        """Return every reservation."""

    @abstractmethod
    def save(self, reservation: Reservation) -> None:
        """Persist a new or updated reservation."""

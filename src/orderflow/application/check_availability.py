"""Application service: Check Availability use case (query)."""

from __future__ import annotations

from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from orderflow.domain.service.types import AvailabilityResult, ItemRequest


class CheckAvailabilityHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service

    def handle(self, store_id: int, items: list[ItemRequest]) -> AvailabilityResult:
        with self._database.begin() as tx:
            return self._reservation_service.check_availability(tx, store_id, items)

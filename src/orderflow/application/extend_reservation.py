"""Application service: Extend Reservation use case."""

from __future__ import annotations

from datetime import datetime

from orderflow.domain.model.reservation import Reservation
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)


class ExtendReservationHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service

    def handle(self, reservation_id: int, expires_at: datetime) -> Reservation:
        with self._database.begin() as tx:
            return self._reservation_service.extend_reservation_expiry(
                tx, reservation_id, expires_at
            )

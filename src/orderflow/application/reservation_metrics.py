"""Application service: Reservation Metrics use case (query)."""

from __future__ import annotations

from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from orderflow.domain.service.types import DateRange, ReservationMetrics


class ReservationMetricsHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service

    def handle(
        self, store_id: int | None = None, date_range: DateRange | None = None
    ) -> ReservationMetrics:
        with self._database.begin() as tx:
            return self._reservation_service.get_reservation_metrics(
                tx, store_id=store_id, date_range=date_range
            )

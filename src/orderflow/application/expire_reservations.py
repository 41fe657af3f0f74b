"""Application service: Expire Reservations use case.

The sweep.  Scheduling it (cron, a worker loop) is up to the deployment;
the CLI exposes it as ``reservation sweep``.
"""

from __future__ import annotations

from datetime import datetime

from orderflow.domain.model.reservation import Reservation
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)


class ExpireReservationsHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service

    def handle(self, now: datetime | None = None) -> list[Reservation]:
        with self._database.begin() as tx:
            return self._reservation_service.expire_reservations(tx, now)

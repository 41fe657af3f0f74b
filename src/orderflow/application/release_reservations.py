"""Application service: Release Reservations use case.

Frees the stock held by a failed order without changing its status.
No history entry is written because the status does not change.
"""

from __future__ import annotations

import structlog

from orderflow.application.transition import load_order_for_update
from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order import OrderStatus
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from orderflow.domain.service.types import RestoreResult

logger = structlog.get_logger(__name__)


class ReleaseReservationsHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service

    def handle(self, order_id: int, reason: str, actor_id: int) -> RestoreResult:
        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            if order.status is not OrderStatus.FAILED:
                raise ValidationError(
                    f"Reservations can only be released for failed orders; "
                    f"order #{order_id} is {order.status.value}"
                )
            result = self._reservation_service.restore_reservation(
                tx, order_id, reason, actor_id
            )

        logger.info(
            "order.reservations_released",
            order_id=order_id,
            restored=len(result.restored_quantities),
        )
        return result

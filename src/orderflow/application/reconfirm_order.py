"""Application service: Reconfirm Order use case (failed -> confirmed).

Puts a failed order back in the queue.  Reservations that are still
active are kept; if they were released (or expired) the order's items
are reserved again against its store assignment, subject to
availability.
"""

from __future__ import annotations

import structlog

from orderflow.application.transition import (
    TransitionResult,
    load_order_for_update,
    record_transition,
    reservation_requests,
)
from orderflow.domain.clock import Clock
from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order import OrderStatus
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = structlog.get_logger(__name__)


class ReconfirmOrderHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
        clock: Clock,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service
        self._clock = clock

    def handle(
        self, order_id: int, actor_id: int, notes: str | None = None
    ) -> TransitionResult:
        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            order.require_transition(OrderStatus.CONFIRMED)
            if order.store_assignment_id is None:
                raise ValidationError(
                    f"Order #{order_id} has no store assignment to reconfirm against"
                )

            reservation = None
            active = self._reservation_service.get_active_reservations(tx, order_id)
            if not active:
                reservation = self._reservation_service.create_reservation(
                    tx,
                    order_id=order_id,
                    store_assignment_id=order.store_assignment_id,
                    items=reservation_requests(order),
                    actor_id=actor_id,
                )
                reason = "Order restored, inventory reserved again"
            else:
                reason = "Order restored, reservations kept"

            from_status, entry = record_transition(
                tx,
                order,
                OrderStatus.CONFIRMED,
                actor_id,
                self._clock.now(),
                reason=reason,
                notes=notes,
            )

        logger.info(
            "order.reconfirmed",
            order_id=order_id,
            rereserved=reservation is not None,
        )
        return TransitionResult(
            order=order,
            from_status=from_status,
            to_status=OrderStatus.CONFIRMED,
            history_entry=entry,
            reservation=reservation,
        )

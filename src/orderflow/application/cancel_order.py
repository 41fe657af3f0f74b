"""Application service: Cancel Order use case.

If the order holds reservations (confirmed, in_transit or failed) they
are cancelled first, so the quantities count as available again.
Pending orders are cancelled without inventory changes.  Delivered
orders cannot be cancelled; fail them first.

The cancelled order loses its store assignment (the history keeps it)
and its pending items are marked cancelled.
"""

from __future__ import annotations

import structlog

from orderflow.application.transition import (
    TransitionResult,
    load_order_for_update,
    record_transition,
)
from orderflow.domain.clock import Clock
from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.order import (
    RESERVATION_HOLDING_STATUSES,
    DeliveryStatus,
    OrderStatus,
)
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = structlog.get_logger(__name__)


class CancelOrderHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
        clock: Clock,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service
        self._clock = clock

    def handle(self, order_id: int, reason: str, actor_id: int) -> TransitionResult:
        if not reason or not reason.strip():
            raise ValidationError("A cancellation reason is required")

        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            order.require_transition(OrderStatus.CANCELLED)

            # Restore inventory if the order had reserved it.
            restoration = None
            if order.status in RESERVATION_HOLDING_STATUSES:
                restoration = self._reservation_service.restore_reservation(
                    tx, order_id, reason, actor_id
                )

            order.mark_items(DeliveryStatus.CANCELLED)
            from_status, entry = record_transition(
                tx,
                order,
                OrderStatus.CANCELLED,
                actor_id,
                self._clock.now(),
                reason=reason.strip(),
            )

        logger.info(
            "order.cancelled",
            order_id=order_id,
            from_status=from_status.value,
            restored=len(restoration.restored_quantities) if restoration else 0,
        )
        return TransitionResult(
            order=order,
            from_status=from_status,
            to_status=OrderStatus.CANCELLED,
            history_entry=entry,
            restoration=restoration,
        )

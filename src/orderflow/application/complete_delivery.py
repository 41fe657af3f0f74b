"""Application service: Complete Delivery use case.

in_transit -> delivered.  Fulfills the order's active reservations:
the ledger is decremented by what was actually delivered, each
decrement is linked to its reservation, and every reservation settles
as fulfilled.  Differences between reserved and delivered quantities
are reported as discrepancies, not errors.
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
from orderflow.domain.model.order import DeliveryStatus, OrderStatus
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from orderflow.domain.service.types import DeliveredItem

logger = structlog.get_logger(__name__)


class CompleteDeliveryHandler:

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
        self,
        order_id: int,
        delivery_actor_id: int,
        actual_items: list[DeliveredItem] | None = None,
        signature: str | None = None,
        notes: str | None = None,
    ) -> TransitionResult:
        log = logger.bind(order_id=order_id, actor_id=delivery_actor_id)

        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            order.require_transition(OrderStatus.DELIVERED)

            fulfillment = self._reservation_service.fulfill_reservation(
                tx,
                order_id,
                delivery_actor_id,
                actual_items=actual_items,
                signature=signature,
                notes=notes,
            )
            if not fulfillment.successful:
                # Delivering without a ledger decrement would lose stock.
                raise ValidationError(
                    f"Cannot complete delivery of order #{order_id}: "
                    + "; ".join(fulfillment.errors)
                )

            order.mark_items(DeliveryStatus.DELIVERED)
            from_status, entry = record_transition(
                tx,
                order,
                OrderStatus.DELIVERED,
                delivery_actor_id,
                self._clock.now(),
                reason="Delivery completed, inventory updated",
                notes=notes,
            )

        if fulfillment.discrepancies:
            log.warning(
                "order.delivery_discrepancy",
                discrepancies=[
                    f"{d.item}: reserved {d.reserved}, delivered {d.delivered}"
                    for d in fulfillment.discrepancies
                ],
            )
        log.info("order.delivered", transactions=len(fulfillment.transaction_ids))
        return TransitionResult(
            order=order,
            from_status=from_status,
            to_status=OrderStatus.DELIVERED,
            history_entry=entry,
            fulfillment=fulfillment,
        )

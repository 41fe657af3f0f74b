"""Application service: Start Delivery use case.

confirmed -> in_transit, or failed -> in_transit for a retry.
Reservations are left as they are.
"""

from __future__ import annotations

import structlog

from orderflow.application.transition import (
    TransitionResult,
    load_order_for_update,
    record_transition,
)
from orderflow.domain.clock import Clock
from orderflow.domain.model.order import OrderStatus
from orderflow.domain.repository.transaction import Database

logger = structlog.get_logger(__name__)


class StartDeliveryHandler:

    def __init__(self, database: Database, clock: Clock) -> None:
        self._database = database
        self._clock = clock

    def handle(
        self,
        order_id: int,
        delivery_actor_id: int,
        instructions: str | None = None,
    ) -> TransitionResult:
        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            order.require_transition(OrderStatus.IN_TRANSIT)
            reason = (
                "Delivery retried"
                if order.status is OrderStatus.FAILED
                else "Delivery started"
            )
            from_status, entry = record_transition(
                tx,
                order,
                OrderStatus.IN_TRANSIT,
                delivery_actor_id,
                self._clock.now(),
                reason=reason,
                notes=instructions,
            )

        logger.info(
            "order.in_transit",
            order_id=order_id,
            from_status=from_status.value,
            actor_id=delivery_actor_id,
        )
        return TransitionResult(
            order=order,
            from_status=from_status,
            to_status=OrderStatus.IN_TRANSIT,
            history_entry=entry,
        )

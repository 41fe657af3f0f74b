"""Application service: Fail Delivery use case.

in_transit -> failed, or delivered -> failed.  Reservations are kept so
the delivery can be retried; ``release_reservations`` frees them on
request.
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
from orderflow.domain.model.order import OrderStatus
from orderflow.domain.repository.transaction import Database

logger = structlog.get_logger(__name__)


class FailDeliveryHandler:

    def __init__(self, database: Database, clock: Clock) -> None:
        self._database = database
        self._clock = clock

    def handle(
        self,
        order_id: int,
        reason: str,
        actor_id: int,
        reschedule: bool = False,
    ) -> TransitionResult:
        if not reason or not reason.strip():
            raise ValidationError("A failure reason is required")

        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            order.require_transition(OrderStatus.FAILED)
            from_status, entry = record_transition(
                tx,
                order,
                OrderStatus.FAILED,
                actor_id,
                self._clock.now(),
                reason=reason.strip(),
                notes="Reschedule requested" if reschedule else "No reschedule planned",
            )

        logger.warning(
            "order.delivery_failed",
            order_id=order_id,
            from_status=from_status.value,
            reason=reason,
            reschedule=reschedule,
        )
        return TransitionResult(
            order=order,
            from_status=from_status,
            to_status=OrderStatus.FAILED,
            history_entry=entry,
        )

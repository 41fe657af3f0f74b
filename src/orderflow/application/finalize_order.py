"""Application service: Finalize Order use case (delivered -> fulfilled).

The invoice step.  Inventory was already settled on delivery, so this
only closes the order.
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


class FinalizeOrderHandler:

    def __init__(self, database: Database, clock: Clock) -> None:
        self._database = database
        self._clock = clock

    def handle(
        self, order_id: int, actor_id: int, notes: str | None = None
    ) -> TransitionResult:
        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            order.require_transition(OrderStatus.FULFILLED)
            from_status, entry = record_transition(
                tx,
                order,
                OrderStatus.FULFILLED,
                actor_id,
                self._clock.now(),
                reason="Invoice generated, order finalized",
                notes=notes,
            )

        logger.info("order.fulfilled", order_id=order_id, total=order.total_amount.to_fixed())
        return TransitionResult(
            order=order,
            from_status=from_status,
            to_status=OrderStatus.FULFILLED,
            history_entry=entry,
        )

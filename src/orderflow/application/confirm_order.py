"""Application service: Confirm Order use case.

pending -> confirmed.  Assigns the order to a store and reserves every
item against that store's current inventory, all in one transaction:
a single short item leaves the order pending with nothing reserved.
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
from orderflow.domain.model.order import OrderStatus
from orderflow.domain.repository.store_assignment import StoreAssignmentResolver
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)

logger = structlog.get_logger(__name__)


class ConfirmOrderHandler:

    def __init__(
        self,
        database: Database,
        reservation_service: InventoryReservationService,
        resolver: StoreAssignmentResolver,
        clock: Clock,
    ) -> None:
        self._database = database
        self._reservation_service = reservation_service
        self._resolver = resolver
        self._clock = clock

    def handle(
        self,
        order_id: int,
        store_assignment_id: int,
        actor_id: int,
        notes: str | None = None,
    ) -> TransitionResult:
        log = logger.bind(order_id=order_id, store_assignment_id=store_assignment_id)

        with self._database.begin() as tx:
            order = load_order_for_update(tx, order_id)
            order.require_transition(OrderStatus.CONFIRMED)
            assignment = self._resolver.resolve(tx, store_assignment_id)

            # Reserve first (the service validates availability for every item)
            reservation = self._reservation_service.create_reservation(
                tx,
                order_id=order_id,
                store_assignment_id=assignment.assignment_id,
                items=reservation_requests(order),
                actor_id=actor_id,
            )

            # Then transition the order
            order.assign_to_store(assignment.assignment_id)
            from_status, entry = record_transition(
                tx,
                order,
                OrderStatus.CONFIRMED,
                actor_id,
                self._clock.now(),
                reason="Store assigned, inventory reserved",
                notes=notes,
            )

        log.info("order.confirmed", reservations=len(reservation.reservations))
        return TransitionResult(
            order=order,
            from_status=from_status,
            to_status=OrderStatus.CONFIRMED,
            history_entry=entry,
            reservation=reservation,
        )

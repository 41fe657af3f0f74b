"""Application service: Available Transitions use case (query)."""

from __future__ import annotations

from orderflow.application.dto import AvailableTransition
from orderflow.application.transition import (
    CONFIRMATION_REQUIRED,
    describe_transition,
)
from orderflow.domain.exceptions import NotFoundError
from orderflow.domain.model.order import allowed_transitions
from orderflow.domain.repository.transaction import Database


class AvailableTransitionsHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(self, order_id: int) -> list[AvailableTransition]:
        with self._database.begin() as tx:
            order = tx.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order #{order_id} not found")

        return [
            AvailableTransition(
                to_status=target.value,
                description=describe_transition(order.status, target),
                requires_confirmation=target in CONFIRMATION_REQUIRED,
            )
            for target in allowed_transitions(order.status)
        ]

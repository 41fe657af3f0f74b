"""Application service: Validate Transition use case (query).

Answers "could this order move to that status right now?" without
locking or changing anything.
"""

from __future__ import annotations

from orderflow.application.dto import TransitionValidation
from orderflow.domain.model.order import OrderStatus, transition_error
from orderflow.domain.repository.transaction import Database


class ValidateTransitionHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(
        self, order_id: int, to_status: str | OrderStatus, actor_id: int | None = None
    ) -> TransitionValidation:
        try:
            target = OrderStatus(to_status)
        except ValueError:
            return TransitionValidation(False, f"Unknown status '{to_status}'")

        with self._database.begin() as tx:
            order = tx.orders.get_by_id(order_id)
        if order is None:
            return TransitionValidation(False, "Order not found")

        reason = transition_error(order.status, target)
        return TransitionValidation(can_transition=reason is None, reason=reason)

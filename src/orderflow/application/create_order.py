"""Application service: Create Order use case.

Builds a pending order from the requested lines, with unit prices
snapshotted at creation time, and records the creation history entry.
Creating an order reserves nothing; inventory is reserved on confirm.
"""

from __future__ import annotations

import structlog

from orderflow.application.dto import OrderDTO, OrderItemSpec
from orderflow.domain.clock import Clock
from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.history import StatusHistoryEntry
from orderflow.domain.model.order import Order, OrderItem, PaymentMethod
from orderflow.domain.model.value_objects import Money, Quantity, item_ref
from orderflow.domain.repository.transaction import Database

logger = structlog.get_logger(__name__)


class CreateOrderHandler:

    def __init__(self, database: Database, clock: Clock) -> None:
        self._database = database
        self._clock = clock

    def handle(
        self,
        customer_id: int,
        item_specs: list[OrderItemSpec],
        created_by: int,
        priority: int = 1,
        payment_method: str = "cash",
        delivery_address: str = "",
        notes: str | None = None,
    ) -> OrderDTO:
        """Create a new pending order.

        Steps:
        1. Build OrderItems from the specs (value objects validate each line).
        2. Let the Order aggregate validate all business rules.
        3. Persist it together with its first history entry.
        """
        items = [
            OrderItem(
                id=None,
                item=item_ref(spec.kind, spec.item_id),
                quantity=Quantity(spec.quantity),
                unit_price=Money.of(spec.unit_price),  # <-- price snapshot
            )
            for spec in item_specs
        ]
        try:
            method = PaymentMethod(payment_method)
        except ValueError as exc:
            raise ValidationError(f"Unknown payment method '{payment_method}'") from exc

        now = self._clock.now()
        order = Order.create(
            customer_id=customer_id,
            items=items,
            created_by=created_by,
            now=now,
            priority=priority,
            payment_method=method,
            delivery_address=delivery_address,
            notes=notes,
        )

        with self._database.begin() as tx:
            tx.orders.save(order)
            tx.history.append(
                StatusHistoryEntry(
                    id=None,
                    order_id=order.id,  # type: ignore[arg-type]
                    from_status=None,
                    to_status=order.status,
                    actor_id=created_by,
                    reason="Order created",
                    notes=notes,
                    created_at=now,
                )
            )

        logger.info(
            "order.created",
            order_id=order.id,
            order_number=order.order_number,
            items=len(order.items),
            total=order.total_amount.to_fixed(),
        )
        return OrderDTO.from_order(order)

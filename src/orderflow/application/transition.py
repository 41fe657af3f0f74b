"""Shared plumbing for the status-changing use cases.

Every workflow handler follows the same shape inside one transaction:

1. lock and load the order (``load_order_for_update``);
2. check the transition against the table before any side effect;
3. run reservation work through the reservation service;
4. apply the status change and append exactly one history entry
   (``record_transition``).

If anything raises, the transaction rolls back and no history is written.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from orderflow.domain.exceptions import NotFoundError
from orderflow.domain.model.history import StatusHistoryEntry
from orderflow.domain.model.order import Order, OrderStatus
from orderflow.domain.repository.transaction import Transaction
from orderflow.domain.service.types import (
    FulfillmentResult,
    ItemRequest,
    ReservationResult,
    RestoreResult,
)

TRANSITION_DESCRIPTIONS: dict[tuple[OrderStatus, OrderStatus], str] = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED): "Confirm order, assign store and reserve inventory",
    (OrderStatus.CONFIRMED, OrderStatus.IN_TRANSIT): "Start delivery",
    (OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED): "Complete delivery and update inventory",
    (OrderStatus.IN_TRANSIT, OrderStatus.FAILED): "Mark delivery as failed",
    (OrderStatus.DELIVERED, OrderStatus.FULFILLED): "Generate invoice and finalize order",
    (OrderStatus.DELIVERED, OrderStatus.FAILED): "Mark delivery as failed",
    (OrderStatus.FAILED, OrderStatus.IN_TRANSIT): "Retry delivery",
    (OrderStatus.FAILED, OrderStatus.CONFIRMED): "Restore order to confirmed",
}
CANCEL_DESCRIPTION = "Cancel order and restore inventory"

# Transitions a caller should confirm with the user before running.
CONFIRMATION_REQUIRED = frozenset({OrderStatus.CANCELLED, OrderStatus.FAILED})


def describe_transition(from_status: OrderStatus, to_status: OrderStatus) -> str:
    if to_status is OrderStatus.CANCELLED:
        return CANCEL_DESCRIPTION
    return TRANSITION_DESCRIPTIONS.get(
        (from_status, to_status), f"Move order to {to_status.value}"
    )


@dataclass(frozen=True)
class TransitionResult:
    order: Order
    from_status: OrderStatus
    to_status: OrderStatus
    history_entry: StatusHistoryEntry
    reservation: ReservationResult | None = None
    fulfillment: FulfillmentResult | None = None
    restoration: RestoreResult | None = None


def load_order_for_update(tx: Transaction, order_id: int) -> Order:
    order = tx.orders.get_for_update(order_id)
    if order is None:
        raise NotFoundError(f"Order #{order_id} not found")
    return order


def reservation_requests(order: Order) -> list[ItemRequest]:
    return [
        ItemRequest(item=line.item, quantity=line.quantity.value, order_item_id=line.id)
        for line in order.items
    ]


def record_transition(
    tx: Transaction,
    order: Order,
    to_status: OrderStatus,
    actor_id: int | None,
    now: datetime,
    reason: str | None = None,
    notes: str | None = None,
) -> tuple[OrderStatus, StatusHistoryEntry]:
    """Apply *to_status*, save the order and append its history entry.

    Callers make any other changes to the aggregate (store assignment,
    item delivery status) before calling this, so the invariants are
    checked against the final shape.
    """
    from_status = order.transition_to(to_status, now)
    if to_status is OrderStatus.CANCELLED:
        order.clear_assignment()
    order.check_invariants()
    tx.orders.save(order)
    entry = tx.history.append(
        StatusHistoryEntry(
            id=None,
            order_id=order.id,  # type: ignore[arg-type]
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            reason=reason,
            notes=notes,
            created_at=now,
        )
    )
    return from_status, entry

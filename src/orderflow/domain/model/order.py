"""Order aggregate: the core of the domain.

The Order is an aggregate root that owns its items and (through the
history store) its audit trail.  The permitted-transition table below is
the single source of truth for the order state machine; every handler
validates against it before producing any side effect.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from orderflow.domain.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from orderflow.domain.model.value_objects import ItemRef, Money, Quantity


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PaymentMethod(Enum):
    CASH = "cash"
    YAPE = "yape"
    PLIN = "plin"
    TRANSFER = "transfer"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    DEBT = "debt"


class DeliveryStatus(Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED}),
    OrderStatus.IN_TRANSIT: frozenset(
        {OrderStatus.DELIVERED, OrderStatus.FAILED, OrderStatus.CANCELLED}
    ),
    OrderStatus.DELIVERED: frozenset({OrderStatus.FULFILLED, OrderStatus.FAILED}),
    # retry delivery, restore to confirmed, or give up
    OrderStatus.FAILED: frozenset(
        {OrderStatus.IN_TRANSIT, OrderStatus.CONFIRMED, OrderStatus.CANCELLED}
    ),
    OrderStatus.FULFILLED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({OrderStatus.FULFILLED, OrderStatus.CANCELLED})

# Statuses that require a store assignment.  FAILED keeps whatever it had.
ASSIGNED_STATUSES = frozenset(
    {
        OrderStatus.CONFIRMED,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
        OrderStatus.FULFILLED,
    }
)
UNASSIGNED_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CANCELLED})

# Statuses in which the order may hold active reservations.
RESERVATION_HOLDING_STATUSES = frozenset(
    {OrderStatus.CONFIRMED, OrderStatus.IN_TRANSIT, OrderStatus.FAILED}
)

MIN_PRIORITY = 1
MAX_PRIORITY = 5
MAX_ITEMS = 50


def allowed_transitions(status: OrderStatus) -> list[OrderStatus]:
    """Targets reachable from *status*, in declaration order of OrderStatus."""
    allowed = ALLOWED_TRANSITIONS.get(status, frozenset())
    return [s for s in OrderStatus if s in allowed]


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def transition_error(from_status: OrderStatus, to_status: OrderStatus) -> str | None:
    """Return why a transition is rejected, or None if it is allowed."""
    if can_transition(from_status, to_status):
        return None
    if from_status in TERMINAL_STATUSES:
        return f"Order is {from_status.value}, a terminal status"
    allowed = ", ".join(s.value for s in allowed_transitions(from_status))
    return (
        f"Cannot transition from {from_status.value} to {to_status.value} "
        f"(allowed: {allowed})"
    )


def generate_order_number(now: datetime) -> str:
    """Human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


@dataclass
class OrderItem:
    """One order line: a tank type or an inventory item, never both.

    ``unit_price`` is a snapshot taken when the order was created.
    """

    id: int | None
    item: ItemRef
    quantity: Quantity
    unit_price: Money
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING

    def __post_init__(self) -> None:
        if self.unit_price.amount <= 0:
            raise ValidationError(f"Unit price for {self.item} must be greater than zero")

    @property
    def total_price(self) -> Money:
        return self.unit_price * self.quantity.value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Order:
    """Aggregate root for customer orders.

    Use the ``Order.create()`` factory for new orders; it enforces all
    business rules.  The ``__init__`` stays simple so the store can
    reconstitute persisted orders without re-validating.
    """

    id: int | None
    order_number: str
    customer_id: int
    items: list[OrderItem]
    status: OrderStatus = OrderStatus.PENDING
    store_assignment_id: int | None = None
    priority: int = MIN_PRIORITY
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_address: str = ""
    notes: str | None = None
    created_by: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    version: int = 0

    # --- Factory (used for NEW orders only) -----------------------------------

    @staticmethod
    def create(
        customer_id: int,
        items: list[OrderItem],
        created_by: int,
        now: datetime,
        priority: int = MIN_PRIORITY,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        delivery_address: str = "",
        notes: str | None = None,
    ) -> Order:
        """Create a new pending order, enforcing all invariants."""
        if not isinstance(customer_id, int) or customer_id <= 0:
            raise ValidationError("Customer reference is required")
        if not items:
            raise ValidationError("Order must contain at least one item")
        if len(items) > MAX_ITEMS:
            raise ValidationError(f"Maximum {MAX_ITEMS} items per order")
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            raise ValidationError(
                f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}, got {priority}"
            )

        return Order(
            id=None,
            order_number=generate_order_number(now),
            customer_id=customer_id,
            items=list(items),
            priority=priority,
            payment_method=payment_method,
            delivery_address=delivery_address.strip(),
            notes=notes,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )

    # --- State transitions ----------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, to_status: OrderStatus) -> bool:
        return can_transition(self.status, to_status)

    def require_transition(self, to_status: OrderStatus) -> None:
        """Raise InvalidTransitionError unless the table allows *to_status*."""
        reason = transition_error(self.status, to_status)
        if reason is not None:
            raise InvalidTransitionError(self.status, to_status, reason)

    def transition_to(self, to_status: OrderStatus, now: datetime) -> OrderStatus:
        """Move to *to_status* and return the previous status."""
        self.require_transition(to_status)
        from_status = self.status
        self.status = to_status
        self.updated_at = now
        return from_status

    def assign_to_store(self, store_assignment_id: int) -> None:
        if self.status not in (OrderStatus.PENDING, OrderStatus.FAILED):
            raise ValidationError(
                f"Cannot assign a store to an order in {self.status.value} status"
            )
        self.store_assignment_id = store_assignment_id

    def clear_assignment(self) -> None:
        self.store_assignment_id = None

    def mark_items(self, delivery_status: DeliveryStatus) -> None:
        for item in self.items:
            if item.delivery_status is DeliveryStatus.PENDING:
                item.delivery_status = delivery_status

    # --- Invariants -----------------------------------------------------------

    def check_invariants(self) -> None:
        """Raise ValidationError if the aggregate is in an illegal shape."""
        if not isinstance(self.status, OrderStatus):
            raise ValidationError(f"Unknown order status {self.status!r}")
        if self.status in ASSIGNED_STATUSES and self.store_assignment_id is None:
            raise ValidationError(
                f"Order {self.order_number} is {self.status.value} but has no store assignment"
            )
        if self.status in UNASSIGNED_STATUSES and self.store_assignment_id is not None:
            raise ValidationError(
                f"Order {self.order_number} is {self.status.value} "
                f"but is still assigned to store assignment {self.store_assignment_id}"
            )
        if not MIN_PRIORITY <= self.priority <= MAX_PRIORITY:
            raise ValidationError(f"Priority out of range: {self.priority}")

    # --- Computed properties --------------------------------------------------

    @property
    def total_amount(self) -> Money:
        result = Money.zero()
        for item in self.items:
            result = result + item.total_price
        return result

    def find_item(self, order_item_id: int) -> OrderItem:
        for item in self.items:
            if item.id == order_item_id:
                return item
        raise NotFoundError(
            f"Order item {order_item_id} not found in order {self.order_number}"
        )

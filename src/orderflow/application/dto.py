"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without
exposing domain internals to the outside world.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from orderflow.domain.model.order import Order


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: one requested line (``kind`` is ``"tank"`` or ``"item"``)."""

    kind: str
    item_id: int
    quantity: int
    unit_price: str


@dataclass(frozen=True)
class OrderItemDTO:
    """Output: a single line item as displayed to the user."""

    id: int
    item: str  # e.g. "tank #3"
    quantity: int
    unit_price: str  # formatted, e.g. "S/ 45.00"
    line_total: str
    delivery_status: str


@dataclass(frozen=True)
class OrderDTO:
    """Output: a complete order as displayed to the user."""

    id: int
    order_number: str
    customer_id: int
    status: str
    store_assignment_id: int | None
    priority: int
    payment_method: str
    payment_status: str
    delivery_address: str
    notes: str | None
    items: list[OrderItemDTO]
    total: str
    created_at: str
    updated_at: str

    @staticmethod
    def from_order(order: Order) -> OrderDTO:
        return OrderDTO(
            id=order.id,  # type: ignore[arg-type]
            order_number=order.order_number,
            customer_id=order.customer_id,
            status=order.status.value,
            store_assignment_id=order.store_assignment_id,
            priority=order.priority,
            payment_method=order.payment_method.value,
            payment_status=order.payment_status.value,
            delivery_address=order.delivery_address,
            notes=order.notes,
            items=[
                OrderItemDTO(
                    id=item.id,  # type: ignore[arg-type]
                    item=str(item.item),
                    quantity=item.quantity.value,
                    unit_price=str(item.unit_price),
                    line_total=str(item.total_price),
                    delivery_status=item.delivery_status.value,
                )
                for item in order.items
            ],
            total=str(order.total_amount),
            created_at=order.created_at.strftime("%Y-%m-%d %H:%M UTC"),
            updated_at=order.updated_at.strftime("%Y-%m-%d %H:%M UTC"),
        )


@dataclass(frozen=True)
class TransitionValidation:
    can_transition: bool
    reason: str | None = None


@dataclass(frozen=True)
class AvailableTransition:
    to_status: str
    description: str
    requires_confirmation: bool


@dataclass(frozen=True)
class TimelineEntry:
    """One history entry plus the minutes spent in ``to_status`` afterwards.

    ``duration_minutes`` is None for the latest entry.
    """

    from_status: str | None
    to_status: str
    actor_id: int | None
    reason: str | None
    notes: str | None
    created_at: str
    duration_minutes: int | None


@dataclass(frozen=True)
class BulkFailure:
    order_id: int
    error: str


@dataclass
class BulkResult:
    successful: list[int] = field(default_factory=list)
    failed: list[BulkFailure] = field(default_factory=list)


@dataclass(frozen=True)
class WorkflowMetrics:
    total_orders: int
    by_status: dict[str, int]
    transitions: dict[str, int]
    delivery_success_rate: float
    cancellation_rate: float

"""Requests and results exchanged with the reservation service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from orderflow.domain.exceptions import Shortage, ValidationError
from orderflow.domain.model.inventory import LedgerTransaction
from orderflow.domain.model.reservation import Reservation, TransactionLink
from orderflow.domain.model.value_objects import ItemRef


@dataclass(frozen=True)
class ItemRequest:
    """A quantity of one item asked for; ``order_item_id`` is set when reserving."""

    item: ItemRef
    quantity: int
    order_item_id: int | None = None

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValidationError(f"Quantity for {self.item} must be a positive integer")


@dataclass(frozen=True)
class DeliveredItem:
    """Actual delivered quantity for an item; 0 means nothing was delivered."""

    item: ItemRef
    quantity: int

    def __post_init__(self) -> None:
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError(f"Delivered quantity for {self.item} must be an integer")
        if self.quantity < 0:
            raise ValidationError(f"Delivered quantity for {self.item} cannot be negative")


@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValidationError("Date range end must not be before its start")

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


# --- Availability -------------------------------------------------------------


@dataclass(frozen=True)
class ItemAvailability:
    item: ItemRef
    current_stock: int
    reserved_quantity: int
    available_quantity: int
    requested_quantity: int
    can_fulfill: bool


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    items: list[ItemAvailability]

    @property
    def shortages(self) -> list[Shortage]:
        return [
            Shortage(i.item, i.requested_quantity, i.available_quantity)
            for i in self.items
            if not i.can_fulfill
        ]


# --- Reservation lifecycle results --------------------------------------------


@dataclass
class ReservationResult:
    successful: bool
    reservations: list[Reservation] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Discrepancy:
    """Delivered quantity differed from what was reserved."""

    item: ItemRef
    reserved: int
    delivered: int


@dataclass
class FulfillmentResult:
    successful: bool
    transaction_ids: list[int] = field(default_factory=list)
    links: list[TransactionLink] = field(default_factory=list)
    discrepancies: list[Discrepancy] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    transactions: list[LedgerTransaction] = field(default_factory=list)


@dataclass(frozen=True)
class RestoredQuantity:
    item: ItemRef
    quantity: int


@dataclass
class RestoreResult:
    successful: bool
    restored_quantities: list[RestoredQuantity] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReservationMetrics:
    total: int = 0
    active: int = 0
    fulfilled: int = 0
    cancelled: int = 0
    expired: int = 0
    expiring_soon: int = 0
    fulfillment_rate: float = 0.0

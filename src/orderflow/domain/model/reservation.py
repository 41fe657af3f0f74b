"""Reservation entity: a hold on stock for one order item.

A reservation is created ``active`` and settles exactly once, into
``fulfilled``, ``cancelled`` or ``expired``.  Settled reservations are
never reactivated; a retry creates a new reservation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.value_objects import ItemRef


class ReservationStatus(Enum):
    ACTIVE = "active"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


@dataclass
class Reservation:

    id: int | None
    order_id: int
    order_item_id: int
    store_assignment_id: int
    current_inventory_id: int
    item: ItemRef
    quantity: int
    status: ReservationStatus
    expires_at: datetime | None
    created_at: datetime
    updated_at: datetime
    version: int = 0

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValidationError("Reservation quantity must be positive")

    @property
    def is_active(self) -> bool:
        return self.status is ReservationStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def fulfill(self, now: datetime) -> None:
        self._settle(ReservationStatus.FULFILLED, now)

    def cancel(self, now: datetime) -> None:
        self._settle(ReservationStatus.CANCELLED, now)

    def expire(self, now: datetime) -> None:
        self._settle(ReservationStatus.EXPIRED, now)

    def extend(self, expires_at: datetime, now: datetime) -> None:
        if not self.is_active:
            raise ValidationError(
                f"Cannot extend expiry of non-active reservation #{self.id} "
                f"({self.status.value})"
            )
        if expires_at <= now:
            raise ValidationError("Reservation expiry must be in the future")
        self.expires_at = expires_at
        self.updated_at = now

    def _settle(self, status: ReservationStatus, now: datetime) -> None:
        if not self.is_active:
            raise ValidationError(
                f"Reservation #{self.id} is {self.status.value}, "
                f"cannot mark it {status.value}"
            )
        self.status = status
        self.updated_at = now


@dataclass(frozen=True)
class TransactionLink:
    """Joins a fulfilled reservation to the ledger transaction it produced."""

    id: int | None
    order_id: int
    reservation_id: int
    ledger_transaction_id: int
    created_at: datetime

"""Value Objects shared across the domain.

Value Objects are immutable and compared by value, not identity.
They encapsulate validation so invalid values can never exist.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import ClassVar, Union

from orderflow.domain.exceptions import ValidationError


@dataclass(frozen=True)
class Money:
    """Monetary amount with currency.

    Uses Decimal to avoid floating-point drift; persisted as a fixed-point
    string with two decimal places.
    """

    amount: Decimal
    currency: str = "PEN"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < Decimal("0"):
            raise ValidationError(
                f"Money amount cannot be negative, got {self.amount}"
            )

    # --- Arithmetic helpers ---------------------------------------------------

    def __add__(self, other: Money) -> Money:
        self._assert_same_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int):
            raise TypeError(f"Can only multiply Money by int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount < other.amount

    def __le__(self, other: Money) -> bool:
        self._assert_same_currency(other)
        return self.amount <= other.amount

    # --- Display --------------------------------------------------------------

    def __str__(self) -> str:
        return f"S/ {self.amount:.2f}"

    def to_fixed(self) -> str:
        """Fixed-point string used for persistence, e.g. ``"45.50"``."""
        return f"{self.amount.quantize(Decimal('0.01'))}"

    # --- Internal helpers -----------------------------------------------------

    def _assert_same_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValidationError(
                f"Cannot combine {self.currency} with {other.currency}"
            )

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def of(amount: str | int | Decimal, currency: str = "PEN") -> Money:
        """Convenient factory that coerces to Decimal safely."""
        try:
            return Money(Decimal(str(amount)), currency)
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc

    @staticmethod
    def zero(currency: str = "PEN") -> Money:
        return Money(Decimal("0.00"), currency)


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity.

    Enforces the invariant that you cannot order zero or negative items.
    """

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


# ---------------------------------------------------------------------------
# Item references
# ---------------------------------------------------------------------------


class ItemKind(Enum):
    TANK = "tank"
    ITEM = "item"


def _require_positive_id(value: object, label: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValidationError(f"{label} must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class TankRef:
    """Reference to a tank type."""

    tank_type_id: int
    kind: ClassVar[ItemKind] = ItemKind.TANK

    def __post_init__(self) -> None:
        _require_positive_id(self.tank_type_id, "Tank type id")

    @property
    def item_id(self) -> int:
        return self.tank_type_id

    @property
    def key(self) -> tuple[str, int]:
        return (self.kind.value, self.tank_type_id)

    def __str__(self) -> str:
        return f"tank #{self.tank_type_id}"


@dataclass(frozen=True)
class InventoryItemRef:
    """Reference to a non-tank inventory item (regulators, hoses, ...)."""

    inventory_item_id: int
    kind: ClassVar[ItemKind] = ItemKind.ITEM

    def __post_init__(self) -> None:
        _require_positive_id(self.inventory_item_id, "Inventory item id")

    @property
    def item_id(self) -> int:
        return self.inventory_item_id

    @property
    def key(self) -> tuple[str, int]:
        return (self.kind.value, self.inventory_item_id)

    def __str__(self) -> str:
        return f"item #{self.inventory_item_id}"


# An order line references exactly one of the two; never both, never neither.
ItemRef = Union[TankRef, InventoryItemRef]


def item_ref(kind: str | ItemKind, item_id: int) -> ItemRef:
    """Build an ItemRef from its tag and id (``("tank", 3)`` -> ``TankRef(3)``)."""
    try:
        kind = ItemKind(kind)
    except ValueError as exc:
        raise ValidationError(
            f"Unknown item type {kind!r}, expected 'tank' or 'item'"
        ) from exc
    if kind is ItemKind.TANK:
        return TankRef(item_id)
    return InventoryItemRef(item_id)

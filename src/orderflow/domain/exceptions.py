"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Any of these raised inside a transaction rolls the whole transaction back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class DomainException(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainException):
    """Malformed input or a violated invariant, caught before side effects."""


class NotFoundError(DomainException):
    """An order, reservation, assignment or referenced item does not exist."""


class ConflictError(DomainException):
    """A concurrent modification was detected.

    Callers should retry the whole operation, never resume it.
    """


class InvalidTransitionError(DomainException):
    """The requested status change is not in the allowed-transition table."""

    def __init__(self, from_status: Any, to_status: Any, message: str | None = None) -> None:
        self.from_status = from_status
        self.to_status = to_status
        if message is None:
            message = (
                f"Cannot transition order from {_label(from_status)} "
                f"to {_label(to_status)}"
            )
        super().__init__(message)


@dataclass(frozen=True)
class Shortage:
    """One item that could not be reserved."""

    item: Any
    requested: int
    available: int

    def __str__(self) -> str:
        return f"{self.item} (need {self.requested}, have {self.available} available)"


class InsufficientInventoryError(DomainException):
    """Availability check failed; names every short item."""

    def __init__(self, shortages: list[Shortage]) -> None:
        self.shortages = list(shortages)
        details = ", ".join(str(s) for s in self.shortages)
        super().__init__(f"Insufficient inventory: {details}")


def _label(status: Any) -> str:
    return getattr(status, "value", str(status))

"""Store assignments and the resolver that maps them to inventory snapshots."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from orderflow.domain.model.inventory import StoreAssignment

if TYPE_CHECKING:
    from orderflow.domain.repository.transaction import Transaction


class StoreAssignmentRepository(ABC):

    @abstractmethod
    def get_by_id(self, assignment_id: int) -> StoreAssignment | None:
        """Return an assignment by its ID, or None if not found."""

    @abstractmethod
    def list_all(self) -> list[StoreAssignment]:
        """Return every assignment, oldest first."""

    @abstractmethod
    def save(self, assignment: StoreAssignment) -> None:
        """Persist a new or updated assignment."""


class StoreAssignmentResolver(ABC):
    """Resolves assignments to the inventory snapshot they currently draw from."""

    @abstractmethod
    def resolve(self, tx: Transaction, assignment_id: int) -> StoreAssignment:
        """Raise NotFoundError if the assignment does not exist."""

    @abstractmethod
    def resolve_for_store(self, tx: Transaction, store_id: int) -> StoreAssignment:
        """Return the store's current assignment; NotFoundError if it has none."""

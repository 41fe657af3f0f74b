"""Store assignment resolver backed by the transaction's assignment table."""

from __future__ import annotations

from orderflow.domain.exceptions import NotFoundError
from orderflow.domain.model.inventory import StoreAssignment
from orderflow.domain.repository.store_assignment import StoreAssignmentResolver
from orderflow.domain.repository.transaction import Transaction


class TransactionalStoreAssignmentResolver(StoreAssignmentResolver):

    def resolve(self, tx: Transaction, assignment_id: int) -> StoreAssignment:
        assignment = tx.assignments.get_by_id(assignment_id)
        if assignment is None:
            raise NotFoundError(f"Store assignment #{assignment_id} not found")
        return assignment

    def resolve_for_store(self, tx: Transaction, store_id: int) -> StoreAssignment:
        # A store's most recent assignment is its current one.
        candidates = [a for a in tx.assignments.list_all() if a.store_id == store_id]
        if not candidates:
            raise NotFoundError(f"Store #{store_id} has no active assignment")
        return max(candidates, key=lambda a: a.assignment_id)

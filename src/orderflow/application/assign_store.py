"""Application service: Assign Store use case.

Records which inventory snapshot a store assignment draws from.  A
store's newest assignment is the one availability checks use.
"""

from __future__ import annotations

import structlog

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.inventory import StoreAssignment
from orderflow.domain.repository.transaction import Database

logger = structlog.get_logger(__name__)


class AssignStoreHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(self, assignment_id: int, store_id: int, inventory_id: int) -> StoreAssignment:
        for label, value in (
            ("Assignment ID", assignment_id),
            ("Store ID", store_id),
            ("Inventory ID", inventory_id),
        ):
            if value <= 0:
                raise ValidationError(f"{label} must be positive")

        assignment = StoreAssignment(
            assignment_id=assignment_id,
            store_id=store_id,
            current_inventory_id=inventory_id,
        )
        with self._database.begin() as tx:
            existing = tx.assignments.get_by_id(assignment_id)
            if existing is not None and existing.store_id != store_id:
                raise ValidationError(
                    f"Assignment #{assignment_id} belongs to store #{existing.store_id}"
                )
            tx.assignments.save(assignment)

        logger.info(
            "store.assigned",
            assignment_id=assignment_id,
            store_id=store_id,
            inventory_id=inventory_id,
        )
        return assignment

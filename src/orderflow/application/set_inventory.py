"""Application service: Set Inventory use case.

Sets the on-hand stock of one item in one inventory snapshot.  This is
a stock count, not a sale: no ledger transaction is recorded.
"""

from __future__ import annotations

import structlog

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.inventory import StockLevel
from orderflow.domain.model.value_objects import item_ref
from orderflow.domain.repository.transaction import Database

logger = structlog.get_logger(__name__)


class SetInventoryHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(self, inventory_id: int, kind: str, item_id: int, quantity: int) -> StockLevel:
        if quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")
        item = item_ref(kind, item_id)

        with self._database.begin() as tx:
            level = tx.ledger.set_stock(inventory_id, item, quantity)

        logger.info(
            "inventory.stock_set",
            inventory_id=inventory_id,
            item=str(item),
            quantity=quantity,
        )
        return level

"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from dataclasses import dataclass

from orderflow.domain.repository.transaction import Database


@dataclass(frozen=True)
class StockLineDTO:
    inventory_id: int
    item: str
    on_hand: int
    reserved: int
    available: int


class ShowInventoryHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(self, inventory_id: int | None = None) -> list[StockLineDTO]:
        with self._database.begin() as tx:
            levels = tx.ledger.list_stock(inventory_id)
            lines = []
            for level in levels:
                reserved = sum(
                    r.quantity
                    for r in tx.reservations.find_active_by_item(level.inventory_id, level.item)
                )
                lines.append(
                    StockLineDTO(
                        inventory_id=level.inventory_id,
                        item=str(level.item),
                        on_hand=level.quantity,
                        reserved=reserved,
                        available=max(0, level.quantity - reserved),
                    )
                )
        return lines

"""Application service: Show Order use case (query)."""

from __future__ import annotations

from orderflow.application.dto import OrderDTO
from orderflow.domain.exceptions import NotFoundError
from orderflow.domain.repository.transaction import Database


class ShowOrderHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(self, order_id: int) -> OrderDTO:
        with self._database.begin() as tx:
            order = tx.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order #{order_id} not found")
        return OrderDTO.from_order(order)

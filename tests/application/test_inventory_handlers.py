"""Tests for stock maintenance, store assignment and availability queries."""

import pytest

from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.value_objects import TankRef
from orderflow.domain.service.types import ItemRequest
from tests.fakes import (
    ASSIGNMENT_ID,
    INVENTORY_ID,
    REGULATOR,
    STORE_ID,
    TANK,
    Workflow,
    seeded_database,
)


def _setup() -> Workflow:
    return Workflow(seeded_database({TANK: 10, REGULATOR: 5}))


class TestSetInventory:

    def test_sets_on_hand_quantity(self):
        wf = _setup()

        level = wf.set_inventory.handle(INVENTORY_ID, "tank", 1, 25)

        assert level.quantity == 25
        assert wf.stock(TANK) == 25

    def test_creates_row_for_new_item(self):
        wf = _setup()
        wf.set_inventory.handle(INVENTORY_ID, "tank", 9, 4)
        assert wf.stock(TankRef(9)) == 4

    def test_stock_count_writes_no_ledger_transaction(self):
        wf = _setup()
        wf.set_inventory.handle(INVENTORY_ID, "tank", 1, 3)
        with wf.db.begin() as tx:
            assert tx.ledger.list_transactions() == []

    def test_negative_quantity_rejected(self):
        wf = _setup()
        with pytest.raises(ValidationError, match="cannot be negative"):
            wf.set_inventory.handle(INVENTORY_ID, "tank", 1, -1)
        assert wf.stock(TANK) == 10

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError, match="Unknown item type"):
            _setup().set_inventory.handle(INVENTORY_ID, "barrel", 1, 1)


class TestShowInventory:

    def test_lines_include_reserved_and_available(self):
        wf = _setup()
        wf.confirmed_order((TANK, 2))

        lines = {line.item: line for line in wf.show_inventory.handle(INVENTORY_ID)}

        tank = lines["tank #1"]
        assert (tank.on_hand, tank.reserved, tank.available) == (10, 2, 8)
        regulator = lines["item #10"]
        assert (regulator.on_hand, regulator.reserved, regulator.available) == (5, 0, 5)

    def test_filter_by_inventory(self):
        wf = _setup()
        wf.set_inventory.handle(777, "tank", 1, 3)

        assert {line.inventory_id for line in wf.show_inventory.handle()} == {INVENTORY_ID, 777}
        assert [line.on_hand for line in wf.show_inventory.handle(777)] == [3]


class TestAssignStore:

    def test_new_assignment_becomes_current_for_store(self):
        wf = _setup()
        wf.set_inventory.handle(600, "tank", 1, 2)

        wf.assign_store.handle(ASSIGNMENT_ID + 1, STORE_ID, 600)

        result = wf.check_availability.handle(STORE_ID, [ItemRequest(TANK, 3)])
        assert result.items[0].current_stock == 2
        assert not result.available

    def test_existing_reservations_keep_their_inventory(self):
        wf = _setup()
        order_id = wf.confirmed_order((TANK, 2))

        wf.assign_store.handle(ASSIGNMENT_ID + 1, STORE_ID, 600)

        assert wf.reservations(order_id)[0].current_inventory_id == INVENTORY_ID

    def test_assignment_of_other_store_rejected(self):
        wf = _setup()
        with pytest.raises(ValidationError, match=f"belongs to store #{STORE_ID}"):
            wf.assign_store.handle(ASSIGNMENT_ID, 2, INVENTORY_ID)

    def test_non_positive_ids_rejected(self):
        wf = _setup()
        with pytest.raises(ValidationError, match="Store ID must be positive"):
            wf.assign_store.handle(200, 0, INVENTORY_ID)

    def test_second_store(self):
        wf = _setup()
        wf.assign_store.handle(200, 2, 800)
        wf.set_inventory.handle(800, "item", 10, 7)

        result = wf.check_availability.handle(2, [ItemRequest(REGULATOR, 7)])

        assert result.available
        # The first store's stock is unaffected.
        assert wf.available(REGULATOR) == 5


class TestCheckAvailability:

    def test_reflects_reservations(self):
        wf = _setup()
        wf.confirmed_order((TANK, 7))

        result = wf.check_availability.handle(
            STORE_ID, [ItemRequest(TANK, 4), ItemRequest(REGULATOR, 1)]
        )

        assert not result.available
        assert [str(s) for s in result.shortages] == ["tank #1 (need 4, have 3 available)"]

    def test_changes_nothing(self):
        wf = _setup()
        order_id = wf.new_order((TANK, 1))
        wf.check_availability.handle(STORE_ID, [ItemRequest(TANK, 1)])
        assert wf.reservations(order_id) == []

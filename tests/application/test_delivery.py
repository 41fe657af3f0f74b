"""Integration tests for the delivery use cases.

Covers start delivery, complete delivery, fail delivery and finalize.
"""

import pytest

from orderflow.domain.exceptions import (
    InsufficientInventoryError,
    InvalidTransitionError,
    ValidationError,
)
from orderflow.domain.model.order import DeliveryStatus, OrderStatus
from orderflow.domain.model.reservation import ReservationStatus
from orderflow.domain.service.types import DeliveredItem, Discrepancy
from tests.fakes import (
    ACTOR,
    DRIVER,
    INVENTORY_ID,
    REGULATOR,
    TANK,
    Workflow,
    seeded_database,
)


def _setup(stock=None) -> Workflow:
    return Workflow(seeded_database(stock if stock is not None else {TANK: 10, REGULATOR: 5}))


class TestStartDelivery:

    def test_confirmed_order_goes_in_transit(self):
        wf = _setup()
        order_id = wf.confirmed_order((TANK, 2))

        result = wf.start_delivery.handle(order_id, DRIVER, instructions="Gate code 4411")

        assert result.from_status == OrderStatus.CONFIRMED
        assert wf.order(order_id).status == OrderStatus.IN_TRANSIT
        entry = wf.history(order_id)[-1]
        assert (entry.actor_id, entry.reason, entry.notes) == (DRIVER, "Delivery started", "Gate code 4411")
        # Reservations ride along untouched
        assert [r.status for r in wf.reservations(order_id)] == [ReservationStatus.ACTIVE]

    def test_pending_order_cannot_start(self):
        wf = _setup()
        order_id = wf.new_order((TANK, 1))
        with pytest.raises(InvalidTransitionError, match="allowed: confirmed, cancelled"):
            wf.start_delivery.handle(order_id, DRIVER)
        assert len(wf.history(order_id)) == 1

    def test_failed_delivery_can_be_retried(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        wf.fail.handle(order_id, "Nobody home", DRIVER, reschedule=True)

        result = wf.start_delivery.handle(order_id, DRIVER)

        assert result.from_status == OrderStatus.FAILED
        assert wf.history(order_id)[-1].reason == "Delivery retried"


class TestCompleteDelivery:

    def test_full_delivery_decrements_stock(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 2), (REGULATOR, 1))

        result = wf.complete_delivery.handle(order_id, DRIVER, signature="J. Quispe")

        assert result.to_status == OrderStatus.DELIVERED
        assert result.fulfillment.discrepancies == []
        assert len(result.fulfillment.transaction_ids) == 2
        assert wf.stock(TANK) == 8
        assert wf.stock(REGULATOR) == 4

        order = wf.order(order_id)
        assert order.status == OrderStatus.DELIVERED
        assert {line.delivery_status for line in order.items} == {DeliveryStatus.DELIVERED}
        assert {r.status for r in wf.reservations(order_id)} == {ReservationStatus.FULFILLED}
        assert wf.history(order_id)[-1].reason == "Delivery completed, inventory updated"

        with wf.db.begin() as tx:
            links = tx.links.find_by_order(order_id)
            notes = {t.note for t in tx.ledger.list_transactions()}
        assert sorted(link.ledger_transaction_id for link in links) == sorted(
            result.fulfillment.transaction_ids
        )
        assert notes == {f"Order fulfillment - Order #{order_id}; signed by J. Quispe"}

    def test_short_delivery_reports_discrepancy(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 2))

        result = wf.complete_delivery.handle(
            order_id, DRIVER, actual_items=[DeliveredItem(TANK, 1)]
        )

        assert result.fulfillment.discrepancies == [Discrepancy(TANK, 2, 1)]
        assert wf.stock(TANK) == 9
        assert wf.available(TANK) == 9
        assert wf.order(order_id).status == OrderStatus.DELIVERED

    def test_ledger_underflow_rolls_everything_back(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 2), (REGULATOR, 1))
        wf.set_inventory.handle(INVENTORY_ID, "item", REGULATOR.item_id, 0)
        history_before = len(wf.history(order_id))

        with pytest.raises(InsufficientInventoryError):
            wf.complete_delivery.handle(order_id, DRIVER)

        assert wf.order(order_id).status == OrderStatus.IN_TRANSIT
        assert wf.stock(TANK) == 10
        assert {r.status for r in wf.reservations(order_id)} == {ReservationStatus.ACTIVE}
        assert len(wf.history(order_id)) == history_before
        with wf.db.begin() as tx:
            assert tx.ledger.list_transactions() == []

    def test_expired_reservations_block_completion(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 2))
        wf.clock.advance(hours=25)
        wf.expire.handle()

        with pytest.raises(ValidationError, match=f"Cannot complete delivery of order #{order_id}"):
            wf.complete_delivery.handle(order_id, DRIVER)

        assert wf.order(order_id).status == OrderStatus.IN_TRANSIT
        assert wf.stock(TANK) == 10

    def test_confirmed_order_cannot_skip_transit(self):
        wf = _setup()
        order_id = wf.confirmed_order((TANK, 1))
        with pytest.raises(InvalidTransitionError, match="Cannot transition from confirmed to delivered"):
            wf.complete_delivery.handle(order_id, DRIVER)
        assert wf.stock(TANK) == 10


class TestFailDelivery:

    def test_in_transit_order_fails_and_keeps_reservations(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 2))

        wf.fail.handle(order_id, "  Customer absent  ", DRIVER)

        order = wf.order(order_id)
        assert order.status == OrderStatus.FAILED
        assert order.store_assignment_id is not None
        entry = wf.history(order_id)[-1]
        assert (entry.reason, entry.notes) == ("Customer absent", "No reschedule planned")
        assert wf.available(TANK) == 8

    def test_reason_is_required(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        with pytest.raises(ValidationError, match="A failure reason is required"):
            wf.fail.handle(order_id, "   ", DRIVER)
        assert wf.order(order_id).status == OrderStatus.IN_TRANSIT

    def test_delivered_order_can_be_failed(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        wf.complete_delivery.handle(order_id, DRIVER)

        result = wf.fail.handle(order_id, "Wrong valve type", ACTOR, reschedule=True)

        assert result.from_status == OrderStatus.DELIVERED
        assert result.history_entry.notes == "Reschedule requested"


class TestFinalizeOrder:

    def test_delivered_order_is_finalized(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        wf.complete_delivery.handle(order_id, DRIVER)

        result = wf.finalize.handle(order_id, ACTOR)

        assert result.to_status == OrderStatus.FULFILLED
        assert wf.order(order_id).is_terminal
        assert wf.history(order_id)[-1].reason == "Invoice generated, order finalized"

    def test_fulfilled_order_is_terminal(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        wf.complete_delivery.handle(order_id, DRIVER)
        wf.finalize.handle(order_id, ACTOR)

        with pytest.raises(InvalidTransitionError, match="Order is fulfilled, a terminal status"):
            wf.fail.handle(order_id, "late complaint", ACTOR)

    def test_in_transit_order_cannot_be_finalized(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        with pytest.raises(InvalidTransitionError):
            wf.finalize.handle(order_id, ACTOR)

    def test_full_history_of_a_delivered_order(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        wf.complete_delivery.handle(order_id, DRIVER)
        wf.finalize.handle(order_id, ACTOR)

        steps = [(e.from_status, e.to_status) for e in wf.history(order_id)]
        assert steps == [
            (None, OrderStatus.PENDING),
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.CONFIRMED, OrderStatus.IN_TRANSIT),
            (OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.FULFILLED),
        ]

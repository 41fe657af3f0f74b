"""Integration tests for cancelling orders and recovering failed ones.

Covers cancel, bulk cancel, reconfirm and release.
"""

import pytest

from orderflow.domain.exceptions import (
    InsufficientInventoryError,
    InvalidTransitionError,
    ValidationError,
)
from orderflow.domain.model.order import DeliveryStatus, OrderStatus
from orderflow.domain.model.reservation import ReservationStatus
from orderflow.domain.service.types import RestoredQuantity
from tests.fakes import (
    ACTOR,
    ASSIGNMENT_ID,
    DRIVER,
    INVENTORY_ID,
    REGULATOR,
    TANK,
    Workflow,
    seeded_database,
)


def _setup(stock=None) -> Workflow:
    return Workflow(seeded_database(stock if stock is not None else {TANK: 10, REGULATOR: 5}))


def _failed_order(wf: Workflow, *lines) -> int:
    order_id = wf.in_transit_order(*lines)
    wf.fail.handle(order_id, "Nobody home", DRIVER)
    return order_id


class TestCancelOrder:

    def test_cancel_pending_order_touches_no_inventory(self):
        wf = _setup()
        order_id = wf.new_order((TANK, 2))

        result = wf.cancel.handle(order_id, "Duplicate order", ACTOR)

        assert result.restoration is None
        order = wf.order(order_id)
        assert order.status == OrderStatus.CANCELLED
        assert {line.delivery_status for line in order.items} == {DeliveryStatus.CANCELLED}
        assert wf.history(order_id)[-1].reason == "Duplicate order"

    def test_cancel_confirmed_order_restores_reservations(self):
        wf = _setup()
        order_id = wf.confirmed_order((TANK, 2), (REGULATOR, 1))
        assert wf.available(TANK) == 8

        result = wf.cancel.handle(order_id, "Customer changed mind", ACTOR)

        assert result.restoration.restored_quantities == [
            RestoredQuantity(TANK, 2),
            RestoredQuantity(REGULATOR, 1),
        ]
        assert wf.available(TANK) == 10
        assert wf.available(REGULATOR) == 5
        assert {r.status for r in wf.reservations(order_id)} == {ReservationStatus.CANCELLED}

    def test_cancel_clears_store_assignment_but_history_keeps_it(self):
        wf = _setup()
        order_id = wf.confirmed_order((TANK, 1))

        wf.cancel.handle(order_id, "No longer needed", ACTOR)

        assert wf.order(order_id).store_assignment_id is None
        assert wf.reservations(order_id)[0].store_assignment_id == ASSIGNMENT_ID

    def test_cancel_in_transit_order(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 3))

        wf.cancel.handle(order_id, "Truck broke down", ACTOR)

        assert wf.order(order_id).status == OrderStatus.CANCELLED
        assert wf.available(TANK) == 10
        assert wf.stock(TANK) == 10

    def test_cancel_failed_order_restores_reservations(self):
        wf = _setup()
        order_id = _failed_order(wf, (TANK, 2))

        result = wf.cancel.handle(order_id, "Giving up", ACTOR)

        assert result.from_status == OrderStatus.FAILED
        assert wf.available(TANK) == 10

    def test_delivered_order_cannot_be_cancelled(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        wf.complete_delivery.handle(order_id, DRIVER)

        with pytest.raises(InvalidTransitionError, match="Cannot transition from delivered to cancelled"):
            wf.cancel.handle(order_id, "Too late", ACTOR)

        assert wf.order(order_id).status == OrderStatus.DELIVERED
        assert wf.stock(TANK) == 9

    def test_cancelled_order_is_terminal(self):
        wf = _setup()
        order_id = wf.new_order((TANK, 1))
        wf.cancel.handle(order_id, "First", ACTOR)

        with pytest.raises(InvalidTransitionError, match="Order is cancelled, a terminal status"):
            wf.cancel.handle(order_id, "Second", ACTOR)

    def test_reason_is_required(self):
        wf = _setup()
        order_id = wf.confirmed_order((TANK, 1))
        with pytest.raises(ValidationError, match="A cancellation reason is required"):
            wf.cancel.handle(order_id, "", ACTOR)
        assert wf.available(TANK) == 9


class TestBulkCancel:

    def test_collects_per_order_failures(self):
        wf = _setup()
        pending = wf.new_order((TANK, 1))
        confirmed = wf.confirmed_order((TANK, 2))
        delivered = wf.in_transit_order((TANK, 1))
        wf.complete_delivery.handle(delivered, DRIVER)

        result = wf.bulk_cancel.handle([pending, confirmed, delivered, 404], "Route closed", ACTOR)

        assert result.successful == [pending, confirmed]
        assert [f.order_id for f in result.failed] == [delivered, 404]
        assert "delivered to cancelled" in result.failed[0].error
        assert result.failed[1].error == "Order #404 not found"
        assert wf.order(confirmed).status == OrderStatus.CANCELLED
        assert wf.available(TANK) == 9

    def test_duplicate_ids_are_cancelled_once(self):
        wf = _setup()
        order_id = wf.new_order((TANK, 1))

        result = wf.bulk_cancel.handle([order_id, order_id], "Oops", ACTOR)

        assert result.successful == [order_id]
        assert result.failed == []

    def test_empty_list_rejected(self):
        wf = _setup()
        with pytest.raises(ValidationError, match="At least one order ID is required"):
            wf.bulk_cancel.handle([], "Nothing", ACTOR)


class TestReconfirmOrder:

    def test_keeps_active_reservations(self):
        wf = _setup()
        order_id = _failed_order(wf, (TANK, 2))

        result = wf.reconfirm.handle(order_id, ACTOR)

        assert result.reservation is None
        assert wf.order(order_id).status == OrderStatus.CONFIRMED
        assert wf.history(order_id)[-1].reason == "Order restored, reservations kept"
        assert len(wf.reservations(order_id)) == 1
        assert wf.available(TANK) == 8

    def test_reserves_again_after_release(self):
        wf = _setup()
        order_id = _failed_order(wf, (TANK, 2))
        wf.release.handle(order_id, "Freeing stock", ACTOR)
        assert wf.available(TANK) == 10

        result = wf.reconfirm.handle(order_id, ACTOR)

        assert result.reservation.successful
        assert wf.history(order_id)[-1].reason == "Order restored, inventory reserved again"
        statuses = [r.status for r in wf.reservations(order_id)]
        assert statuses == [ReservationStatus.CANCELLED, ReservationStatus.ACTIVE]
        assert wf.available(TANK) == 8

    def test_shortage_after_release_keeps_order_failed(self):
        wf = _setup()
        order_id = _failed_order(wf, (TANK, 2))
        wf.release.handle(order_id, "Freeing stock", ACTOR)
        wf.set_inventory.handle(INVENTORY_ID, "tank", TANK.item_id, 1)

        with pytest.raises(InsufficientInventoryError):
            wf.reconfirm.handle(order_id, ACTOR)

        assert wf.order(order_id).status == OrderStatus.FAILED

    def test_only_failed_orders_can_be_reconfirmed(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        with pytest.raises(InvalidTransitionError):
            wf.reconfirm.handle(order_id, ACTOR)


class TestReleaseReservations:

    def test_release_frees_stock_without_status_change(self):
        wf = _setup()
        order_id = _failed_order(wf, (TANK, 2), (REGULATOR, 1))
        history_before = len(wf.history(order_id))

        result = wf.release.handle(order_id, "Reschedule next week", ACTOR)

        assert [q.quantity for q in result.restored_quantities] == [2, 1]
        assert wf.order(order_id).status == OrderStatus.FAILED
        assert len(wf.history(order_id)) == history_before
        assert wf.available(TANK) == 10

    def test_release_twice_restores_nothing(self):
        wf = _setup()
        order_id = _failed_order(wf, (TANK, 2))
        wf.release.handle(order_id, "First", ACTOR)

        result = wf.release.handle(order_id, "Second", ACTOR)

        assert result.successful
        assert result.restored_quantities == []

    def test_only_failed_orders_release(self):
        wf = _setup()
        order_id = wf.in_transit_order((TANK, 1))
        with pytest.raises(ValidationError, match="only be released for failed orders"):
            wf.release.handle(order_id, "Nope", ACTOR)
        assert wf.available(TANK) == 9

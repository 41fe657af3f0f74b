"""Tests for the transactional in-memory store: isolation, locking, conflicts."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from orderflow.domain.exceptions import ConflictError, InsufficientInventoryError
from orderflow.domain.model.order import OrderStatus
from tests.fakes import (
    ACTOR,
    ASSIGNMENT_ID,
    INVENTORY_ID,
    REGULATOR,
    TANK,
    Workflow,
    seeded_database,
)


class TestTransactionIsolation:

    def test_uncommitted_writes_are_invisible(self):
        db = seeded_database({TANK: 10})
        tx = db.begin()
        tx.ledger.set_stock(INVENTORY_ID, TANK, 99)

        with db.begin() as other:
            assert other.ledger.current_stock(INVENTORY_ID, TANK) == 10

        tx.commit()
        with db.begin() as other:
            assert other.ledger.current_stock(INVENTORY_ID, TANK) == 99

    def test_exception_rolls_back(self):
        db = seeded_database({TANK: 10})

        with pytest.raises(RuntimeError):
            with db.begin() as tx:
                tx.ledger.set_stock(INVENTORY_ID, TANK, 0)
                raise RuntimeError("boom")

        with db.begin() as tx:
            assert tx.ledger.current_stock(INVENTORY_ID, TANK) == 10

    def test_closed_transaction_rejects_use(self):
        db = seeded_database()
        tx = db.begin()
        tx.commit()
        with pytest.raises(ConflictError, match="already closed"):
            tx.orders.get_by_id(1)

    def test_rollback_twice_is_harmless(self):
        tx = seeded_database().begin()
        tx.rollback()
        tx.rollback()

    def test_ids_are_not_reused_after_rollback(self):
        db = seeded_database()
        tx = db.begin()
        first = tx.reservations.next_id()
        tx.rollback()

        with db.begin() as tx:
            assert tx.reservations.next_id() > first


class TestRowLocks:

    def test_order_lock_is_reentrant_within_a_transaction(self):
        wf = Workflow(seeded_database({TANK: 1}))
        order_id = wf.new_order((TANK, 1))

        with wf.db.begin() as tx:
            first = tx.orders.get_for_update(order_id)
            second = tx.orders.get_for_update(order_id)
            assert first is second

    def test_lock_wait_times_out_as_conflict(self):
        wf = Workflow(seeded_database({TANK: 1}, lock_timeout=0.1))
        order_id = wf.new_order((TANK, 1))
        holder = wf.db.begin()
        holder.orders.get_for_update(order_id)

        waiter = wf.db.begin()
        with pytest.raises(ConflictError, match="Timed out waiting for lock"):
            waiter.orders.get_for_update(order_id)

        waiter.rollback()
        holder.rollback()

    def test_locks_are_released_on_commit(self):
        db = seeded_database({TANK: 1}, lock_timeout=0.1)
        with db.begin() as tx:
            tx.lock_stock(INVENTORY_ID, [TANK, REGULATOR])
        with db.begin() as tx:
            tx.lock_stock(INVENTORY_ID, [REGULATOR, TANK])


class TestOptimisticConflicts:

    def test_lost_update_on_order_is_detected(self):
        wf = Workflow(seeded_database({TANK: 1}))
        order_id = wf.new_order((TANK, 1))

        tx1 = wf.db.begin()
        tx2 = wf.db.begin()
        a = tx1.orders.get_by_id(order_id)
        b = tx2.orders.get_by_id(order_id)

        a.notes = "first"
        tx1.orders.save(a)
        tx1.commit()

        b.notes = "second"
        tx2.orders.save(b)
        with pytest.raises(ConflictError, match=f"order #{order_id}"):
            tx2.commit()

        assert wf.order(order_id).notes == "first"


class TestConcurrentReservations:

    def test_last_unit_goes_to_exactly_one_order(self):
        wf = Workflow(seeded_database({TANK: 1}))
        orders = [wf.new_order((TANK, 1)), wf.new_order((TANK, 1))]
        barrier = threading.Barrier(len(orders))

        def confirm(order_id):
            barrier.wait()
            try:
                wf.confirm.handle(order_id, ASSIGNMENT_ID, ACTOR)
            except InsufficientInventoryError as exc:
                return exc
            return None

        with ThreadPoolExecutor(max_workers=len(orders)) as pool:
            outcomes = list(pool.map(confirm, orders))

        assert sum(outcome is None for outcome in outcomes) == 1
        assert sum(isinstance(outcome, InsufficientInventoryError) for outcome in outcomes) == 1
        statuses = sorted(wf.order(order_id).status.value for order_id in orders)
        assert statuses == [OrderStatus.CONFIRMED.value, OrderStatus.PENDING.value]
        assert wf.available(TANK) == 0

    def test_many_orders_never_oversell(self):
        wf = Workflow(seeded_database({TANK: 5}))
        orders = [wf.new_order((TANK, 1)) for _ in range(8)]
        barrier = threading.Barrier(len(orders))

        def confirm(order_id):
            barrier.wait()
            try:
                wf.confirm.handle(order_id, ASSIGNMENT_ID, ACTOR)
            except InsufficientInventoryError:
                return False
            return True

        with ThreadPoolExecutor(max_workers=len(orders)) as pool:
            confirmed = sum(pool.map(confirm, orders))

        assert confirmed == 5
        assert wf.available(TANK) == 0
        with wf.db.begin() as tx:
            active = tx.reservations.find_active_by_item(INVENTORY_ID, TANK)
        assert len(active) == 5

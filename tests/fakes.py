"""Test wiring: a seeded in-memory database plus every handler bound to it.

The in-memory database implements the same abstract interfaces as the
JSON store but keeps everything in dicts. No file I/O, and the clock
only moves when a test advances it.
"""

from __future__ import annotations

from datetime import datetime, timezone

from orderflow.application.assign_store import AssignStoreHandler
from orderflow.application.available_transitions import AvailableTransitionsHandler
from orderflow.application.bulk_cancel import BulkCancelHandler
from orderflow.application.cancel_order import CancelOrderHandler
from orderflow.application.check_availability import CheckAvailabilityHandler
from orderflow.application.complete_delivery import CompleteDeliveryHandler
from orderflow.application.confirm_order import ConfirmOrderHandler
from orderflow.application.create_order import CreateOrderHandler
from orderflow.application.dto import OrderItemSpec
from orderflow.application.expire_reservations import ExpireReservationsHandler
from orderflow.application.extend_reservation import ExtendReservationHandler
from orderflow.application.fail_delivery import FailDeliveryHandler
from orderflow.application.finalize_order import FinalizeOrderHandler
from orderflow.application.reconfirm_order import ReconfirmOrderHandler
from orderflow.application.release_reservations import ReleaseReservationsHandler
from orderflow.application.reservation_metrics import ReservationMetricsHandler
from orderflow.application.set_inventory import SetInventoryHandler
from orderflow.application.show_inventory import ShowInventoryHandler
from orderflow.application.show_order import ShowOrderHandler
from orderflow.application.start_delivery import StartDeliveryHandler
from orderflow.application.validate_transition import ValidateTransitionHandler
from orderflow.application.workflow_history import WorkflowHistoryHandler
from orderflow.application.workflow_metrics import WorkflowMetricsHandler
from orderflow.domain.clock import FixedClock
from orderflow.domain.model.history import StatusHistoryEntry
from orderflow.domain.model.inventory import StoreAssignment
from orderflow.domain.model.order import Order
from orderflow.domain.model.reservation import Reservation
from orderflow.domain.model.value_objects import InventoryItemRef, ItemRef, TankRef
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from orderflow.infrastructure.persistence.assignment_resolver import (
    TransactionalStoreAssignmentResolver,
)
from orderflow.infrastructure.persistence.memory_database import InMemoryDatabase

START = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)

STORE_ID = 1
ASSIGNMENT_ID = 100
INVENTORY_ID = 500

TANK = TankRef(1)
BIG_TANK = TankRef(2)
REGULATOR = InventoryItemRef(10)

ACTOR = 7
DRIVER = 8


def seed(db: InMemoryDatabase, stock: dict[ItemRef, int] | None = None) -> InMemoryDatabase:
    """Give the store its assignment and put *stock* on hand."""
    with db.begin() as tx:
        tx.assignments.save(
            StoreAssignment(
                assignment_id=ASSIGNMENT_ID,
                store_id=STORE_ID,
                current_inventory_id=INVENTORY_ID,
            )
        )
        for item, quantity in (stock or {}).items():
            tx.ledger.set_stock(INVENTORY_ID, item, quantity)
    return db


def seeded_database(
    stock: dict[ItemRef, int] | None = None, lock_timeout: float = 2.0
) -> InMemoryDatabase:
    return seed(InMemoryDatabase(lock_timeout=lock_timeout), stock)


class Workflow:
    """Every handler, wired to one database and one fixed clock."""

    def __init__(self, db: InMemoryDatabase, clock: FixedClock | None = None) -> None:
        self.db = db
        self.clock = clock or FixedClock(START)
        self.resolver = TransactionalStoreAssignmentResolver()
        self.service = InventoryReservationService(self.resolver, self.clock)

        self.create = CreateOrderHandler(db, self.clock)
        self.show = ShowOrderHandler(db)
        self.confirm = ConfirmOrderHandler(db, self.service, self.resolver, self.clock)
        self.start_delivery = StartDeliveryHandler(db, self.clock)
        self.complete_delivery = CompleteDeliveryHandler(db, self.service, self.clock)
        self.fail = FailDeliveryHandler(db, self.clock)
        self.cancel = CancelOrderHandler(db, self.service, self.clock)
        self.finalize = FinalizeOrderHandler(db, self.clock)
        self.reconfirm = ReconfirmOrderHandler(db, self.service, self.clock)
        self.release = ReleaseReservationsHandler(db, self.service)
        self.validate = ValidateTransitionHandler(db)
        self.transitions = AvailableTransitionsHandler(db)
        self.timeline = WorkflowHistoryHandler(db)
        self.bulk_cancel = BulkCancelHandler(self.cancel)
        self.metrics = WorkflowMetricsHandler(db)
        self.check_availability = CheckAvailabilityHandler(db, self.service)
        self.reservation_metrics = ReservationMetricsHandler(db, self.service)
        self.expire = ExpireReservationsHandler(db, self.service)
        self.extend_reservation = ExtendReservationHandler(db, self.service)
        self.set_inventory = SetInventoryHandler(db)
        self.show_inventory = ShowInventoryHandler(db)
        self.assign_store = AssignStoreHandler(db)

    # --- Shortcuts --------------------------------------------------------------

    def new_order(self, *lines: tuple[ItemRef, int], price: str = "45.00", **kwargs) -> int:
        specs = [
            OrderItemSpec(kind=item.kind.value, item_id=item.item_id, quantity=qty, unit_price=price)
            for item, qty in lines
        ]
        kwargs.setdefault("customer_id", 1)
        kwargs.setdefault("created_by", ACTOR)
        return self.create.handle(item_specs=specs, **kwargs).id

    def confirmed_order(self, *lines: tuple[ItemRef, int]) -> int:
        order_id = self.new_order(*lines)
        self.confirm.handle(order_id, ASSIGNMENT_ID, ACTOR)
        return order_id

    def in_transit_order(self, *lines: tuple[ItemRef, int]) -> int:
        order_id = self.confirmed_order(*lines)
        self.start_delivery.handle(order_id, DRIVER)
        return order_id

    # --- Read helpers -----------------------------------------------------------

    def order(self, order_id: int) -> Order:
        with self.db.begin() as tx:
            return tx.orders.get_by_id(order_id)

    def reservations(self, order_id: int) -> list[Reservation]:
        with self.db.begin() as tx:
            return tx.reservations.find_by_order(order_id)

    def history(self, order_id: int) -> list[StatusHistoryEntry]:
        with self.db.begin() as tx:
            return tx.history.find_by_order(order_id)

    def stock(self, item: ItemRef) -> int:
        with self.db.begin() as tx:
            return tx.ledger.current_stock(INVENTORY_ID, item)

    def available(self, item: ItemRef) -> int:
        with self.db.begin() as tx:
            return self.service.calculate_available_quantity(tx, STORE_ID, item)

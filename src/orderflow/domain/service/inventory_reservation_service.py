"""Domain service: Inventory Reservation.

This service is the only code that creates, settles or counts
reservations, and the only code that takes stock out of the ledger.
It lives in the domain layer because availability and fulfillment are
core business rules, not just orchestration.

Every mutating operation uses a two-phase approach (validate-then-mutate)
inside the caller's transaction, so a failure in phase one leaves no
trace and a failure in phase two is rolled back with the transaction.

Availability is always derived, never stored:

    available = max(0, current_stock - sum(active reservations))

for one item in one inventory snapshot, computed while holding that
item's stock lock.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta

import structlog

from orderflow.domain.clock import Clock
from orderflow.domain.exceptions import (
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from orderflow.domain.model.inventory import SALE
from orderflow.domain.model.order import Order
from orderflow.domain.model.reservation import (
    Reservation,
    ReservationStatus,
    TransactionLink,
)
from orderflow.domain.model.value_objects import ItemRef
from orderflow.domain.repository.store_assignment import StoreAssignmentResolver
from orderflow.domain.repository.transaction import Transaction
from orderflow.domain.service.types import (
    AvailabilityResult,
    DateRange,
    DeliveredItem,
    Discrepancy,
    FulfillmentResult,
    ItemAvailability,
    ItemRequest,
    ReservationMetrics,
    ReservationResult,
    RestoredQuantity,
    RestoreResult,
)

logger = structlog.get_logger(__name__)

DEFAULT_RESERVATION_TTL = timedelta(hours=24)
EXPIRING_SOON_WINDOW = timedelta(hours=2)
NO_ACTIVE_RESERVATIONS = "No active reservations found for order"


class InventoryReservationService:

    def __init__(
        self,
        resolver: StoreAssignmentResolver,
        clock: Clock,
        reservation_ttl: timedelta = DEFAULT_RESERVATION_TTL,
    ) -> None:
        self._resolver = resolver
        self._clock = clock
        self._reservation_ttl = reservation_ttl

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def check_availability(
        self, tx: Transaction, store_id: int, items: list[ItemRequest]
    ) -> AvailabilityResult:
        """Report per-item availability in the store's current inventory.

        Read-only.  Duplicate items are merged and their quantities summed.
        """
        if not items:
            raise ValidationError("At least one item is required")
        assignment = self._resolver.resolve_for_store(tx, store_id)
        return self._availability(tx, assignment.current_inventory_id, items)

    def calculate_available_quantity(
        self, tx: Transaction, store_id: int, item: ItemRef
    ) -> int:
        assignment = self._resolver.resolve_for_store(tx, store_id)
        inventory_id = assignment.current_inventory_id
        tx.lock_stock(inventory_id, [item])
        return self._available(tx, inventory_id, item)[2]

    def get_active_reservations(self, tx: Transaction, order_id: int) -> list[Reservation]:
        return [r for r in tx.reservations.find_by_order(order_id) if r.is_active]

    def get_reservation_metrics(
        self,
        tx: Transaction,
        store_id: int | None = None,
        date_range: DateRange | None = None,
    ) -> ReservationMetrics:
        """Counts by status plus the fulfillment rate of settled reservations.

        An unknown store simply has no reservations.
        """
        reservations = tx.reservations.list_all()
        if store_id is not None:
            assignment_ids = {
                a.assignment_id for a in tx.assignments.list_all() if a.store_id == store_id
            }
            reservations = [r for r in reservations if r.store_assignment_id in assignment_ids]
        if date_range is not None:
            reservations = [r for r in reservations if date_range.contains(r.created_at)]

        now = self._clock.now()
        counts: dict[ReservationStatus, int] = defaultdict(int)
        expiring_soon = 0
        for r in reservations:
            counts[r.status] += 1
            if (
                r.is_active
                and r.expires_at is not None
                and now < r.expires_at <= now + EXPIRING_SOON_WINDOW
            ):
                expiring_soon += 1

        fulfilled = counts[ReservationStatus.FULFILLED]
        settled = fulfilled + counts[ReservationStatus.CANCELLED] + counts[ReservationStatus.EXPIRED]
        rate = round(fulfilled / settled * 100, 2) if settled else 0.0

        return ReservationMetrics(
            total=len(reservations),
            active=counts[ReservationStatus.ACTIVE],
            fulfilled=fulfilled,
            cancelled=counts[ReservationStatus.CANCELLED],
            expired=counts[ReservationStatus.EXPIRED],
            expiring_soon=expiring_soon,
            fulfillment_rate=rate,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_reservation(
        self,
        tx: Transaction,
        order_id: int,
        store_assignment_id: int,
        items: list[ItemRequest],
        actor_id: int | None,
        expires_at: datetime | None = None,
    ) -> ReservationResult:
        """Reserve every requested order item, or nothing at all.

        Phase 1 validates the request and checks availability under the
        stock locks.  Phase 2 writes one active reservation per item.

        Raises:
            NotFoundError: unknown order or assignment.
            ValidationError: malformed request, or an order item that
                already holds an active reservation.
            InsufficientInventoryError: one or more items are short;
                every short item is named.
        """
        log = logger.bind(order_id=order_id, store_assignment_id=store_assignment_id)

        # Phase 1: validate
        order = self._require_order(tx, order_id)
        assignment = self._resolver.resolve(tx, store_assignment_id)
        if not items:
            raise ValidationError("At least one item is required")

        now = self._clock.now()
        if expires_at is None:
            expires_at = now + self._reservation_ttl
        elif expires_at <= now:
            raise ValidationError("Reservation expiry must be in the future")

        self._validate_order_items(tx, order, items)

        availability = self._availability(tx, assignment.current_inventory_id, items)
        if not availability.available:
            log.warning(
                "reservation.insufficient_inventory",
                shortages=[str(s) for s in availability.shortages],
            )
            raise InsufficientInventoryError(availability.shortages)

        # Phase 2: mutate
        reservations: list[Reservation] = []
        for request in items:
            reservation = Reservation(
                id=tx.reservations.next_id(),
                order_id=order_id,
                order_item_id=request.order_item_id,  # type: ignore[arg-type]
                store_assignment_id=assignment.assignment_id,
                current_inventory_id=assignment.current_inventory_id,
                item=request.item,
                quantity=request.quantity,
                status=ReservationStatus.ACTIVE,
                expires_at=expires_at,
                created_at=now,
                updated_at=now,
            )
            tx.reservations.save(reservation)
            reservations.append(reservation)

        log.info(
            "reservation.created",
            count=len(reservations),
            inventory_id=assignment.current_inventory_id,
            actor_id=actor_id,
        )
        return ReservationResult(successful=True, reservations=reservations)

    def fulfill_reservation(
        self,
        tx: Transaction,
        order_id: int,
        actor_id: int | None,
        actual_items: list[DeliveredItem] | None = None,
        signature: str | None = None,
        notes: str | None = None,
    ) -> FulfillmentResult:
        """Turn the order's active reservations into ledger decrements.

        The delivered quantity defaults to the reserved quantity.  An
        override for an item spread over several reservations is handed
        out in reservation order; any excess lands on the last one.  Each
        difference from the reserved quantity is reported as a
        discrepancy, and a delivered quantity of 0 writes no ledger row.

        No active reservations is a soft failure, not an exception.
        """
        log = logger.bind(order_id=order_id, actor_id=actor_id)
        self._require_order(tx, order_id)

        active = self.get_active_reservations(tx, order_id)
        if not active:
            log.warning("reservation.fulfill_without_reservations")
            return FulfillmentResult(successful=False, errors=[NO_ACTIVE_RESERVATIONS])

        # Phase 1: work out delivered quantities before touching anything
        delivered = self._delivered_quantities(active, actual_items)

        by_inventory: dict[int, list[ItemRef]] = defaultdict(list)
        for r in active:
            by_inventory[r.current_inventory_id].append(r.item)
        for inventory_id in sorted(by_inventory):
            tx.lock_stock(inventory_id, by_inventory[inventory_id])

        # Phase 2: decrement, link, settle
        now = self._clock.now()
        note = _fulfillment_note(order_id, signature, notes)
        result = FulfillmentResult(successful=True)
        for r in active:
            quantity = delivered[r.id]  # type: ignore[index]
            if quantity > 0:
                txn = tx.ledger.decrement(
                    r.current_inventory_id, r.item, quantity, SALE, actor_id, note, now
                )
                link = tx.links.add(
                    TransactionLink(
                        id=None,
                        order_id=order_id,
                        reservation_id=r.id,  # type: ignore[arg-type]
                        ledger_transaction_id=txn.id,  # type: ignore[arg-type]
                        created_at=now,
                    )
                )
                result.transactions.append(txn)
                result.transaction_ids.append(txn.id)  # type: ignore[arg-type]
                result.links.append(link)
            if quantity != r.quantity:
                result.discrepancies.append(Discrepancy(r.item, r.quantity, quantity))
            r.fulfill(now)
            tx.reservations.save(r)

        log.info(
            "reservation.fulfilled",
            reservations=len(active),
            transactions=len(result.transaction_ids),
            discrepancies=len(result.discrepancies),
        )
        return result

    def cancel_reservation(
        self,
        tx: Transaction,
        order_id: int,
        reason: str | None,
        actor_id: int | None,
    ) -> RestoreResult:
        """Cancel every active reservation of the order.

        Idempotent: an order with nothing active restores nothing and
        still succeeds.  Stock rows are untouched; cancelling only stops
        the quantities from counting against availability.
        """
        self._require_order(tx, order_id)
        now = self._clock.now()

        restored: list[RestoredQuantity] = []
        for r in self.get_active_reservations(tx, order_id):
            r.cancel(now)
            tx.reservations.save(r)
            restored.append(RestoredQuantity(r.item, r.quantity))

        logger.info(
            "reservation.cancelled",
            order_id=order_id,
            restored=len(restored),
            reason=reason,
            actor_id=actor_id,
        )
        return RestoreResult(successful=True, restored_quantities=restored)

    def restore_reservation(
        self,
        tx: Transaction,
        order_id: int,
        reason: str | None,
        actor_id: int | None,
    ) -> RestoreResult:
        return self.cancel_reservation(tx, order_id, reason, actor_id)

    def expire_reservations(
        self, tx: Transaction, now: datetime | None = None
    ) -> list[Reservation]:
        """Sweep: mark active reservations past their expiry as expired."""
        now = now or self._clock.now()
        expired: list[Reservation] = []
        for r in tx.reservations.list_all():
            if r.is_active and r.is_expired(now):
                r.expire(now)
                tx.reservations.save(r)
                expired.append(r)
        if expired:
            logger.info("reservation.expired", count=len(expired))
        return expired

    def extend_reservation_expiry(
        self, tx: Transaction, reservation_id: int, expires_at: datetime
    ) -> Reservation:
        """Push back the expiry of one active reservation.

        A reservation already past its expiry but not yet swept is still
        active and can be extended.
        """
        reservation = tx.reservations.get_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError(f"Reservation #{reservation_id} not found")

        previous = reservation.expires_at
        reservation.extend(expires_at, self._clock.now())
        tx.reservations.save(reservation)

        logger.info(
            "reservation.extended",
            reservation_id=reservation_id,
            order_id=reservation.order_id,
            previous_expires_at=previous.isoformat() if previous else None,
            expires_at=expires_at.isoformat(),
        )
        return reservation

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_order(tx: Transaction, order_id: int) -> Order:
        order = tx.orders.get_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order #{order_id} not found")
        return order

    def _validate_order_items(
        self, tx: Transaction, order: Order, items: list[ItemRequest]
    ) -> None:
        seen: set[int] = set()
        for request in items:
            if request.order_item_id is None:
                raise ValidationError(f"Reservation for {request.item} must name its order item")
            if request.order_item_id in seen:
                raise ValidationError(
                    f"Order item {request.order_item_id} is listed more than once"
                )
            seen.add(request.order_item_id)
            line = order.find_item(request.order_item_id)
            if line.item != request.item:
                raise ValidationError(
                    f"Order item {request.order_item_id} is {line.item}, not {request.item}"
                )

        for r in self.get_active_reservations(tx, order.id):  # type: ignore[arg-type]
            if r.order_item_id in seen:
                raise ValidationError(
                    f"Order item {r.order_item_id} already holds active reservation #{r.id}"
                )

    def _available(
        self, tx: Transaction, inventory_id: int, item: ItemRef
    ) -> tuple[int, int, int]:
        """Return (current stock, reserved, available).  Caller holds the stock lock.

        Available never goes below zero.  Active holds can exceed stock when
        someone lowers the count with ``set_stock`` after orders were
        confirmed; that is logged as ``inventory.overcommitted`` so the
        shortfall is visible, and new requests for the item are refused.
        """
        current = tx.ledger.current_stock(inventory_id, item)
        reserved = sum(r.quantity for r in tx.reservations.find_active_by_item(inventory_id, item))
        if reserved > current:
            logger.warning(
                "inventory.overcommitted",
                inventory_id=inventory_id,
                item=str(item),
                current_stock=current,
                reserved=reserved,
            )
        return current, reserved, max(0, current - reserved)

    def _availability(
        self, tx: Transaction, inventory_id: int, items: list[ItemRequest]
    ) -> AvailabilityResult:
        requested: dict[ItemRef, int] = {}
        for request in items:
            requested[request.item] = requested.get(request.item, 0) + request.quantity

        tx.lock_stock(inventory_id, requested)

        lines: list[ItemAvailability] = []
        for item, quantity in requested.items():
            current, reserved, available = self._available(tx, inventory_id, item)
            lines.append(
                ItemAvailability(
                    item=item,
                    current_stock=current,
                    reserved_quantity=reserved,
                    available_quantity=available,
                    requested_quantity=quantity,
                    can_fulfill=available >= quantity,
                )
            )
        return AvailabilityResult(
            available=all(line.can_fulfill for line in lines), items=lines
        )

    @staticmethod
    def _delivered_quantities(
        active: list[Reservation], actual_items: list[DeliveredItem] | None
    ) -> dict[int, int]:
        """Map reservation id to delivered quantity."""
        delivered = {r.id: r.quantity for r in active}
        if not actual_items:
            return delivered  # type: ignore[return-value]

        overrides: dict[ItemRef, int] = {}
        for d in actual_items:
            overrides[d.item] = overrides.get(d.item, 0) + d.quantity

        reserved_items = {r.item for r in active}
        unknown = [item for item in overrides if item not in reserved_items]
        if unknown:
            names = ", ".join(str(i) for i in unknown)
            raise ValidationError(f"No active reservation for delivered item(s): {names}")

        for item, remaining in overrides.items():
            holders = [r for r in active if r.item == item]
            for i, r in enumerate(holders):
                share = remaining if i == len(holders) - 1 else min(remaining, r.quantity)
                delivered[r.id] = share
                remaining -= share
        return delivered  # type: ignore[return-value]


def _fulfillment_note(order_id: int, signature: str | None, notes: str | None) -> str:
    parts = [f"Order fulfillment - Order #{order_id}"]
    if signature:
        parts.append(f"signed by {signature}")
    if notes:
        parts.append(notes)
    return "; ".join(parts)

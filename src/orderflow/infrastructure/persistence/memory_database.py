"""Transactional in-memory store.

Committed state lives in plain dicts and lists on ``InMemoryDatabase``.
Each ``MemoryTransaction`` works on private copies:

* reads copy committed rows into the transaction's workspace;
* writes are staged in the workspace and applied by ``commit()``;
* row locks (order and stock) are held until commit or rollback;
* orders, reservations and stock rows carry a ``version`` that is
  checked at commit, so a lost update raises ConflictError instead of
  silently overwriting someone else's change.

Stock locks are always taken in sorted key order to avoid deadlocks.
"""

from __future__ import annotations

import copy
import dataclasses
import threading
from collections.abc import Iterable
from datetime import datetime

import structlog

from orderflow.domain.exceptions import ConflictError
from orderflow.domain.model.history import StatusHistoryEntry
from orderflow.domain.model.inventory import (
    LedgerTransaction,
    StockLevel,
    StoreAssignment,
)
from orderflow.domain.model.order import Order
from orderflow.domain.model.reservation import (
    Reservation,
    ReservationStatus,
    TransactionLink,
)
from orderflow.domain.model.value_objects import ItemRef
from orderflow.domain.repository.history_repository import StatusHistoryRepository
from orderflow.domain.repository.inventory_ledger import InventoryLedger
from orderflow.domain.repository.order_repository import OrderRepository
from orderflow.domain.repository.reservation_repository import ReservationRepository
from orderflow.domain.repository.store_assignment import StoreAssignmentRepository
from orderflow.domain.repository.transaction import Database, Transaction
from orderflow.domain.repository.transaction_link_repository import (
    TransactionLinkRepository,
)

logger = structlog.get_logger(__name__)

StockKey = tuple  # (inventory_id, kind, item_id)


def stock_key(inventory_id: int, item: ItemRef) -> StockKey:
    return (inventory_id, *item.key)


class InMemoryDatabase(Database):

    def __init__(self, lock_timeout: float = 5.0) -> None:
        self.lock_timeout = lock_timeout

        # --- Committed tables ---
        self.orders: dict[int, Order] = {}
        self.reservations: dict[int, Reservation] = {}
        self.history: list[StatusHistoryEntry] = []
        self.links: list[TransactionLink] = []
        self.stock: dict[StockKey, StockLevel] = {}
        self.ledger_transactions: list[LedgerTransaction] = []
        self.assignments: dict[int, StoreAssignment] = {}

        self._counters: dict[str, int] = {}
        self._commit_lock = threading.RLock()
        self._row_locks: dict[tuple, threading.Lock] = {}
        self._row_locks_guard = threading.Lock()

    def begin(self) -> MemoryTransaction:
        return MemoryTransaction(self)

    # --- Id generation --------------------------------------------------------

    def next_id(self, sequence: str) -> int:
        # Ids handed out to rolled-back transactions are not reused.
        with self._commit_lock:
            value = max(self._counters.get(sequence, 0), self._max_committed_id(sequence)) + 1
            self._counters[sequence] = value
            return value

    def _max_committed_id(self, sequence: str) -> int:
        if sequence == "order":
            ids = list(self.orders)
        elif sequence == "order_item":
            ids = [i.id for o in self.orders.values() for i in o.items if i.id]
        elif sequence == "reservation":
            ids = list(self.reservations)
        elif sequence == "history":
            ids = [e.id for e in self.history if e.id]
        elif sequence == "link":
            ids = [link.id for link in self.links if link.id]
        elif sequence == "ledger":
            ids = [t.id for t in self.ledger_transactions if t.id]
        else:
            ids = []
        return max(ids, default=0)

    # --- Row locks ------------------------------------------------------------

    def _row_lock(self, key: tuple) -> threading.Lock:
        with self._row_locks_guard:
            lock = self._row_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._row_locks[key] = lock
            return lock

    def acquire(self, key: tuple) -> threading.Lock:
        lock = self._row_lock(key)
        if not lock.acquire(timeout=self.lock_timeout):
            raise ConflictError(f"Timed out waiting for lock on {key}")
        return lock

    # --- Commit hooks (overridden by file-backed stores) ----------------------

    def _before_commit(self) -> None:
        """Called under the commit lock before version checks."""

    def _after_commit(self) -> None:
        """Called under the commit lock after staged rows are applied."""

    # --- Commit ---------------------------------------------------------------

    def apply(self, tx: MemoryTransaction) -> None:
        with self._commit_lock:
            self._before_commit()
            self._check_versions(tx)

            for order in tx.dirty_orders():
                order.version += 1
                self.orders[order.id] = copy.deepcopy(order)
            for reservation in tx.dirty_reservations():
                reservation.version += 1
                self.reservations[reservation.id] = copy.deepcopy(reservation)
            for level in tx.dirty_stock():
                level.version += 1
                self.stock[level.key] = copy.deepcopy(level)
            for assignment in tx.staged_assignments.values():
                self.assignments[assignment.assignment_id] = assignment
            self.history.extend(tx.staged_history)
            self.links.extend(tx.staged_links)
            self.ledger_transactions.extend(tx.staged_ledger)

            self._after_commit()

    def _check_versions(self, tx: MemoryTransaction) -> None:
        stale: list[str] = []
        for order in tx.dirty_orders():
            if order.version != _version(self.orders.get(order.id)):
                stale.append(f"order #{order.id}")
        for reservation in tx.dirty_reservations():
            if reservation.version != _version(self.reservations.get(reservation.id)):
                stale.append(f"reservation #{reservation.id}")
        for level in tx.dirty_stock():
            if level.version != _version(self.stock.get(level.key)):
                stale.append(f"stock {level.item} in inventory #{level.inventory_id}")
        # Append-only rows carry no version; a committed row with the same id
        # means another writer took that id first.
        stale.extend(_taken_ids("history entry", tx.staged_history, self.history))
        stale.extend(_taken_ids("transaction link", tx.staged_links, self.links))
        stale.extend(
            _taken_ids("ledger transaction", tx.staged_ledger, self.ledger_transactions)
        )
        if stale:
            logger.warning("transaction.conflict", rows=stale)
            raise ConflictError(
                "Concurrent modification detected on " + ", ".join(stale) + "; retry the operation"
            )

    # --- Snapshot reads (used by transactions) --------------------------------

    def read_order(self, order_id: int) -> Order | None:
        with self._commit_lock:
            return copy.deepcopy(self.orders.get(order_id))

    def read_reservation(self, reservation_id: int) -> Reservation | None:
        with self._commit_lock:
            return copy.deepcopy(self.reservations.get(reservation_id))

    def read_stock(self, key: StockKey) -> StockLevel | None:
        with self._commit_lock:
            return copy.deepcopy(self.stock.get(key))

    def snapshot(self, table: str):
        """Shallow copy of a committed table (dict keys or list rows)."""
        with self._commit_lock:
            return copy.copy(getattr(self, table))


def _version(row: object) -> int:
    return getattr(row, "version", 0) if row is not None else 0


def _taken_ids(label: str, staged: Iterable, committed: Iterable) -> list[str]:
    committed_ids = {row.id for row in committed}
    return [f"{label} #{row.id}" for row in staged if row.id in committed_ids]


class MemoryTransaction(Transaction):

    def __init__(self, db: InMemoryDatabase) -> None:
        self.db = db
        self._held: dict[tuple, threading.Lock] = {}
        self._closed = False

        # --- Workspace ---
        self.order_rows: dict[int, Order | None] = {}
        self.reservation_rows: dict[int, Reservation | None] = {}
        self.stock_rows: dict[StockKey, StockLevel | None] = {}
        self.dirty_order_ids: set[int] = set()
        self.dirty_reservation_ids: set[int] = set()
        self.dirty_stock_keys: set[StockKey] = set()
        self.staged_assignments: dict[int, StoreAssignment] = {}
        self.staged_history: list[StatusHistoryEntry] = []
        self.staged_links: list[TransactionLink] = []
        self.staged_ledger: list[LedgerTransaction] = []

        self.orders = MemoryOrderRepository(self)
        self.reservations = MemoryReservationRepository(self)
        self.history = MemoryStatusHistoryRepository(self)
        self.links = MemoryTransactionLinkRepository(self)
        self.ledger = MemoryInventoryLedger(self)
        self.assignments = MemoryStoreAssignmentRepository(self)

    # --- Locks ----------------------------------------------------------------

    def _lock(self, key: tuple) -> bool:
        """Acquire *key*; return False if this transaction already held it."""
        self._ensure_open()
        if key in self._held:
            return False
        self._held[key] = self.db.acquire(key)
        return True

    def lock_order(self, order_id: int) -> None:
        # Reload after locking so the locked copy is the latest committed one.
        if self._lock(("order", order_id)) and order_id not in self.dirty_order_ids:
            self.order_rows.pop(order_id, None)

    def lock_stock(self, inventory_id: int, items: Iterable[ItemRef]) -> None:
        keys = sorted({stock_key(inventory_id, item) for item in items})
        acquired = False
        for key in keys:
            if self._lock(("stock", *key)):
                acquired = True
                if key not in self.dirty_stock_keys:
                    self.stock_rows.pop(key, None)
        if acquired:
            # Reservations counted against this stock may have settled meanwhile.
            for reservation_id in list(self.reservation_rows):
                if reservation_id not in self.dirty_reservation_ids:
                    del self.reservation_rows[reservation_id]

    def _release_locks(self) -> None:
        for lock in self._held.values():
            lock.release()
        self._held.clear()

    # --- Lifecycle ------------------------------------------------------------

    def commit(self) -> None:
        self._ensure_open()
        try:
            if self.has_changes():
                self.db.apply(self)
        finally:
            self._close()

    def rollback(self) -> None:
        if self._closed:
            return
        self._close()

    def _close(self) -> None:
        self._release_locks()
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise ConflictError("Transaction is already closed")

    # --- Workspace helpers ----------------------------------------------------

    def has_changes(self) -> bool:
        return bool(
            self.dirty_order_ids
            or self.dirty_reservation_ids
            or self.dirty_stock_keys
            or self.staged_assignments
            or self.staged_history
            or self.staged_links
            or self.staged_ledger
        )

    def dirty_orders(self) -> list[Order]:
        return [self.order_rows[i] for i in sorted(self.dirty_order_ids)]  # type: ignore[misc]

    def dirty_reservations(self) -> list[Reservation]:
        return [self.reservation_rows[i] for i in sorted(self.dirty_reservation_ids)]  # type: ignore[misc]

    def dirty_stock(self) -> list[StockLevel]:
        return [self.stock_rows[k] for k in sorted(self.dirty_stock_keys)]  # type: ignore[misc]

    def order(self, order_id: int) -> Order | None:
        self._ensure_open()
        if order_id not in self.order_rows:
            self.order_rows[order_id] = self.db.read_order(order_id)
        return self.order_rows[order_id]

    def reservation(self, reservation_id: int) -> Reservation | None:
        self._ensure_open()
        if reservation_id not in self.reservation_rows:
            self.reservation_rows[reservation_id] = self.db.read_reservation(reservation_id)
        return self.reservation_rows[reservation_id]

    def stock(self, key: StockKey) -> StockLevel | None:
        self._ensure_open()
        if key not in self.stock_rows:
            self.stock_rows[key] = self.db.read_stock(key)
        return self.stock_rows[key]


# ---------------------------------------------------------------------------
# Repositories bound to a transaction
# ---------------------------------------------------------------------------


class MemoryOrderRepository(OrderRepository):

    def __init__(self, tx: MemoryTransaction) -> None:
        self._tx = tx

    def next_id(self) -> int:
        return self._tx.db.next_id("order")

    def get_by_id(self, order_id: int) -> Order | None:
        return self._tx.order(order_id)

    def get_for_update(self, order_id: int) -> Order | None:
        self._tx.lock_order(order_id)
        return self._tx.order(order_id)

    def list_all(self) -> list[Order]:
        ids = set(self._tx.db.snapshot("orders")) | set(self._tx.dirty_order_ids)
        orders = [self._tx.order(i) for i in sorted(ids)]
        return [o for o in orders if o is not None]

    def save(self, order: Order) -> None:
        if order.id is None:
            order.id = self.next_id()
        for item in order.items:
            if item.id is None:
                item.id = self._tx.db.next_id("order_item")
        self._tx.order_rows[order.id] = order
        self._tx.dirty_order_ids.add(order.id)


class MemoryReservationRepository(ReservationRepository):

    def __init__(self, tx: MemoryTransaction) -> None:
        self._tx = tx

    def next_id(self) -> int:
        return self._tx.db.next_id("reservation")

    def get_by_id(self, reservation_id: int) -> Reservation | None:
        return self._tx.reservation(reservation_id)

    def list_all(self) -> list[Reservation]:
        ids = set(self._tx.db.snapshot("reservations")) | set(self._tx.dirty_reservation_ids)
        rows = [self._tx.reservation(i) for i in sorted(ids)]
        return [r for r in rows if r is not None]

    def find_by_order(self, order_id: int) -> list[Reservation]:
        return [r for r in self.list_all() if r.order_id == order_id]

    def find_active_by_item(self, inventory_id: int, item: ItemRef) -> list[Reservation]:
        return [
            r
            for r in self.list_all()
            if r.status is ReservationStatus.ACTIVE
            and r.current_inventory_id == inventory_id
            and r.item == item
        ]

    def save(self, reservation: Reservation) -> None:
        if reservation.id is None:
            reservation.id = self.next_id()
        self._tx.reservation_rows[reservation.id] = reservation
        self._tx.dirty_reservation_ids.add(reservation.id)


class MemoryStatusHistoryRepository(StatusHistoryRepository):

    def __init__(self, tx: MemoryTransaction) -> None:
        self._tx = tx

    def append(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        self._tx._ensure_open()
        if entry.id is None:
            entry = dataclasses.replace(entry, id=self._tx.db.next_id("history"))
        self._tx.staged_history.append(entry)
        return entry

    def find_by_order(self, order_id: int) -> list[StatusHistoryEntry]:
        return [e for e in self.list_all() if e.order_id == order_id]

    def list_all(self) -> list[StatusHistoryEntry]:
        return self._tx.db.snapshot("history") + list(self._tx.staged_history)


class MemoryTransactionLinkRepository(TransactionLinkRepository):

    def __init__(self, tx: MemoryTransaction) -> None:
        self._tx = tx

    def add(self, link: TransactionLink) -> TransactionLink:
        self._tx._ensure_open()
        if link.id is None:
            link = dataclasses.replace(link, id=self._tx.db.next_id("link"))
        self._tx.staged_links.append(link)
        return link

    def find_by_order(self, order_id: int) -> list[TransactionLink]:
        rows = self._tx.db.snapshot("links") + list(self._tx.staged_links)
        return [link for link in rows if link.order_id == order_id]


class MemoryInventoryLedger(InventoryLedger):

    def __init__(self, tx: MemoryTransaction) -> None:
        self._tx = tx

    def get_stock(self, inventory_id: int, item: ItemRef) -> StockLevel | None:
        return self._tx.stock(stock_key(inventory_id, item))

    def current_stock(self, inventory_id: int, item: ItemRef) -> int:
        level = self.get_stock(inventory_id, item)
        return level.quantity if level is not None else 0

    def list_stock(self, inventory_id: int | None = None) -> list[StockLevel]:
        keys = set(self._tx.db.snapshot("stock")) | set(self._tx.dirty_stock_keys)
        rows = [self._tx.stock(k) for k in sorted(keys)]
        return [
            r
            for r in rows
            if r is not None and (inventory_id is None or r.inventory_id == inventory_id)
        ]

    def set_stock(self, inventory_id: int, item: ItemRef, quantity: int) -> StockLevel:
        self._tx.lock_stock(inventory_id, [item])
        key = stock_key(inventory_id, item)
        level = self._tx.stock(key)
        if level is None:
            level = StockLevel(inventory_id=inventory_id, item=item, quantity=quantity)
        else:
            level.set(quantity)
        self._stage(key, level)
        return level

    def decrement(
        self,
        inventory_id: int,
        item: ItemRef,
        quantity: int,
        kind: str,
        actor_id: int | None,
        note: str | None,
        created_at: datetime,
    ) -> LedgerTransaction:
        self._tx.lock_stock(inventory_id, [item])
        key = stock_key(inventory_id, item)
        level = self._tx.stock(key)
        if level is None:
            level = StockLevel(inventory_id=inventory_id, item=item, quantity=0)
        level.decrement(quantity)
        self._stage(key, level)

        txn = LedgerTransaction(
            id=self._tx.db.next_id("ledger"),
            inventory_id=inventory_id,
            item=item,
            quantity=quantity,
            kind=kind,
            actor_id=actor_id,
            note=note,
            created_at=created_at,
        )
        self._tx.staged_ledger.append(txn)
        return txn

    def list_transactions(self) -> list[LedgerTransaction]:
        return self._tx.db.snapshot("ledger_transactions") + list(self._tx.staged_ledger)

    def _stage(self, key: StockKey, level: StockLevel) -> None:
        self._tx.stock_rows[key] = level
        self._tx.dirty_stock_keys.add(key)


class MemoryStoreAssignmentRepository(StoreAssignmentRepository):

    def __init__(self, tx: MemoryTransaction) -> None:
        self._tx = tx

    def get_by_id(self, assignment_id: int) -> StoreAssignment | None:
        staged = self._tx.staged_assignments.get(assignment_id)
        if staged is not None:
            return staged
        return self._tx.db.snapshot("assignments").get(assignment_id)

    def list_all(self) -> list[StoreAssignment]:
        rows = self._tx.db.snapshot("assignments")
        rows.update(self._tx.staged_assignments)
        return [rows[k] for k in sorted(rows)]

    def save(self, assignment: StoreAssignment) -> None:
        self._tx._ensure_open()
        self._tx.staged_assignments[assignment.assignment_id] = assignment

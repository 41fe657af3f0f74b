"""JSON-file-backed store.

Same transactional engine as ``InMemoryDatabase``; the committed tables
are loaded from one JSON document and written back after every commit.
Before the version checks the document is re-read, so a CLI process
that committed in between is detected as a conflict rather than
overwritten.  Writes go to a temp file that replaces the original.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path

from orderflow.domain.model.history import StatusHistoryEntry
from orderflow.domain.model.inventory import (
    LedgerTransaction,
    StockLevel,
    StoreAssignment,
)
from orderflow.domain.model.order import (
    DeliveryStatus,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from orderflow.domain.model.reservation import (
    Reservation,
    ReservationStatus,
    TransactionLink,
)
from orderflow.domain.model.value_objects import ItemRef, Money, Quantity, item_ref
from orderflow.infrastructure.persistence.memory_database import InMemoryDatabase

_TABLES = (
    "orders",
    "reservations",
    "history",
    "links",
    "stock",
    "ledger_transactions",
    "assignments",
)


class JsonDatabase(InMemoryDatabase):

    def __init__(self, file_path: Path, lock_timeout: float = 5.0) -> None:
        super().__init__(lock_timeout=lock_timeout)
        self._file_path = file_path
        self._ensure_file()
        self._load()

    # --- Commit hooks ---------------------------------------------------------

    def _before_commit(self) -> None:
        self._load()

    def _after_commit(self) -> None:
        self._persist()

    # --- Load / persist -------------------------------------------------------

    def _load(self) -> None:
        raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        self.orders = {o["id"]: _order_to_domain(o) for o in raw.get("orders", [])}
        self.reservations = {
            r["id"]: _reservation_to_domain(r) for r in raw.get("reservations", [])
        }
        self.history = [_history_to_domain(e) for e in raw.get("history", [])]
        self.links = [_link_to_domain(link) for link in raw.get("links", [])]
        stock = [_stock_to_domain(s) for s in raw.get("stock", [])]
        self.stock = {s.key: s for s in stock}
        self.ledger_transactions = [
            _ledger_to_domain(t) for t in raw.get("ledger_transactions", [])
        ]
        self.assignments = {
            a["assignment_id"]: StoreAssignment(**a) for a in raw.get("assignments", [])
        }

    def _persist(self) -> None:
        raw = {
            "orders": [_order_to_raw(o) for o in self.orders.values()],
            "reservations": [_reservation_to_raw(r) for r in self.reservations.values()],
            "history": [_history_to_raw(e) for e in self.history],
            "links": [_link_to_raw(link) for link in self.links],
            "stock": [_stock_to_raw(s) for s in self.stock.values()],
            "ledger_transactions": [_ledger_to_raw(t) for t in self.ledger_transactions],
            "assignments": [
                {
                    "assignment_id": a.assignment_id,
                    "store_id": a.store_id,
                    "current_inventory_id": a.current_inventory_id,
                }
                for a in self.assignments.values()
            ],
        }
        fd, tmp_name = tempfile.mkstemp(
            dir=self._file_path.parent, prefix=self._file_path.name, suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(json.dumps(raw, indent=2) + "\n")
            os.replace(tmp_name, self._file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _ensure_file(self) -> None:
        if not self._file_path.exists():
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            self._file_path.write_text(
                json.dumps({table: [] for table in _TABLES}, indent=2) + "\n",
                encoding="utf-8",
            )


# --- Serialization ------------------------------------------------------------


def _item_to_raw(item: ItemRef) -> dict:
    return {"kind": item.kind.value, "id": item.item_id}


def _item_to_domain(raw: dict) -> ItemRef:
    return item_ref(raw["kind"], raw["id"])


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _order_to_raw(order: Order) -> dict:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_id": order.customer_id,
        "status": order.status.value,
        "store_assignment_id": order.store_assignment_id,
        "priority": order.priority,
        "payment_method": order.payment_method.value,
        "payment_status": order.payment_status.value,
        "delivery_address": order.delivery_address,
        "notes": order.notes,
        "created_by": order.created_by,
        "created_at": order.created_at.isoformat(),
        "updated_at": order.updated_at.isoformat(),
        "version": order.version,
        "items": [
            {
                "id": item.id,
                "item": _item_to_raw(item.item),
                "quantity": item.quantity.value,
                "unit_price": item.unit_price.to_fixed(),
                "currency": item.unit_price.currency,
                "delivery_status": item.delivery_status.value,
            }
            for item in order.items
        ],
    }


def _order_to_domain(raw: dict) -> Order:
    items = [
        OrderItem(
            id=i["id"],
            item=_item_to_domain(i["item"]),
            quantity=Quantity(i["quantity"]),
            unit_price=Money(Decimal(i["unit_price"]), i.get("currency", "PEN")),
            delivery_status=DeliveryStatus(i.get("delivery_status", "pending")),
        )
        for i in raw["items"]
    ]
    return Order(
        id=raw["id"],
        order_number=raw["order_number"],
        customer_id=raw["customer_id"],
        items=items,
        status=OrderStatus(raw["status"]),
        store_assignment_id=raw.get("store_assignment_id"),
        priority=raw.get("priority", 1),
        payment_method=PaymentMethod(raw.get("payment_method", "cash")),
        payment_status=PaymentStatus(raw.get("payment_status", "pending")),
        delivery_address=raw.get("delivery_address", ""),
        notes=raw.get("notes"),
        created_by=raw.get("created_by"),
        created_at=datetime.fromisoformat(raw["created_at"]),
        updated_at=datetime.fromisoformat(raw["updated_at"]),
        version=raw.get("version", 0),
    )


def _reservation_to_raw(r: Reservation) -> dict:
    return {
        "id": r.id,
        "order_id": r.order_id,
        "order_item_id": r.order_item_id,
        "store_assignment_id": r.store_assignment_id,
        "current_inventory_id": r.current_inventory_id,
        "item": _item_to_raw(r.item),
        "quantity": r.quantity,
        "status": r.status.value,
        "expires_at": _iso(r.expires_at),
        "created_at": r.created_at.isoformat(),
        "updated_at": r.updated_at.isoformat(),
        "version": r.version,
    }


def _reservation_to_domain(raw: dict) -> Reservation:
    return Reservation(
        id=raw["id"],
        order_id=raw["order_id"],
        order_item_id=raw["order_item_id"],
        store_assignment_id=raw["store_assignment_id"],
        current_inventory_id=raw["current_inventory_id"],
        item=_item_to_domain(raw["item"]),
        quantity=raw["quantity"],
        status=ReservationStatus(raw["status"]),
        expires_at=_dt(raw.get("expires_at")),
        created_at=datetime.fromisoformat(raw["created_at"]),
        updated_at=datetime.fromisoformat(raw["updated_at"]),
        version=raw.get("version", 0),
    )


def _history_to_raw(e: StatusHistoryEntry) -> dict:
    return {
        "id": e.id,
        "order_id": e.order_id,
        "from_status": e.from_status.value if e.from_status else None,
        "to_status": e.to_status.value,
        "actor_id": e.actor_id,
        "reason": e.reason,
        "notes": e.notes,
        "created_at": e.created_at.isoformat(),
    }


def _history_to_domain(raw: dict) -> StatusHistoryEntry:
    from_status = raw.get("from_status")
    return StatusHistoryEntry(
        id=raw["id"],
        order_id=raw["order_id"],
        from_status=OrderStatus(from_status) if from_status else None,
        to_status=OrderStatus(raw["to_status"]),
        actor_id=raw.get("actor_id"),
        reason=raw.get("reason"),
        notes=raw.get("notes"),
        created_at=datetime.fromisoformat(raw["created_at"]),
    )


def _link_to_raw(link: TransactionLink) -> dict:
    return {
        "id": link.id,
        "order_id": link.order_id,
        "reservation_id": link.reservation_id,
        "ledger_transaction_id": link.ledger_transaction_id,
        "created_at": link.created_at.isoformat(),
    }


def _link_to_domain(raw: dict) -> TransactionLink:
    return TransactionLink(
        id=raw["id"],
        order_id=raw["order_id"],
        reservation_id=raw["reservation_id"],
        ledger_transaction_id=raw["ledger_transaction_id"],
        created_at=datetime.fromisoformat(raw["created_at"]),
    )


def _stock_to_raw(s: StockLevel) -> dict:
    return {
        "inventory_id": s.inventory_id,
        "item": _item_to_raw(s.item),
        "quantity": s.quantity,
        "version": s.version,
    }


def _stock_to_domain(raw: dict) -> StockLevel:
    return StockLevel(
        inventory_id=raw["inventory_id"],
        item=_item_to_domain(raw["item"]),
        quantity=raw["quantity"],
        version=raw.get("version", 0),
    )


def _ledger_to_raw(t: LedgerTransaction) -> dict:
    return {
        "id": t.id,
        "inventory_id": t.inventory_id,
        "item": _item_to_raw(t.item),
        "quantity": t.quantity,
        "kind": t.kind,
        "actor_id": t.actor_id,
        "note": t.note,
        "created_at": t.created_at.isoformat(),
    }


def _ledger_to_domain(raw: dict) -> LedgerTransaction:
    return LedgerTransaction(
        id=raw["id"],
        inventory_id=raw["inventory_id"],
        item=_item_to_domain(raw["item"]),
        quantity=raw["quantity"],
        kind=raw["kind"],
        actor_id=raw.get("actor_id"),
        note=raw.get("note"),
        created_at=datetime.fromisoformat(raw["created_at"]),
    )

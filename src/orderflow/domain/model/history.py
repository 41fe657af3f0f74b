"""Order status history: the append-only audit trail."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from orderflow.domain.model.order import OrderStatus


@dataclass(frozen=True)
class StatusHistoryEntry:
    """One successful status change.  ``from_status`` is None only on creation."""

    id: int | None
    order_id: int
    from_status: OrderStatus | None
    to_status: OrderStatus
    actor_id: int | None
    reason: str | None
    notes: str | None
    created_at: datetime

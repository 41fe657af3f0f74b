"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from orderflow.domain.clock import Clock, SystemClock
from orderflow.domain.repository.store_assignment import StoreAssignmentResolver
from orderflow.domain.service.inventory_reservation_service import (
    InventoryReservationService,
)
from orderflow.infrastructure import settings
from orderflow.infrastructure.persistence.assignment_resolver import (
    TransactionalStoreAssignmentResolver,
)
from orderflow.infrastructure.persistence.json_database import JsonDatabase


@lru_cache(maxsize=1)
def database() -> JsonDatabase:
    return JsonDatabase(
        settings.DATA_DIR / "orderflow.json",
        lock_timeout=settings.LOCK_TIMEOUT_SECONDS,
    )


def clock() -> Clock:
    return SystemClock()


def assignment_resolver() -> StoreAssignmentResolver:
    return TransactionalStoreAssignmentResolver()


def reservation_service() -> InventoryReservationService:
    return InventoryReservationService(
        resolver=assignment_resolver(),
        clock=clock(),
        reservation_ttl=timedelta(hours=settings.RESERVATION_TTL_HOURS),
    )

"""Application service: Workflow History use case (query).

Returns the order's timeline: each status change with the whole minutes
the order then spent in that status.
"""

from __future__ import annotations

from orderflow.application.dto import TimelineEntry
from orderflow.domain.exceptions import NotFoundError
from orderflow.domain.repository.transaction import Database


class WorkflowHistoryHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(self, order_id: int) -> list[TimelineEntry]:
        with self._database.begin() as tx:
            if tx.orders.get_by_id(order_id) is None:
                raise NotFoundError(f"Order #{order_id} not found")
            entries = tx.history.find_by_order(order_id)

        timeline: list[TimelineEntry] = []
        for i, entry in enumerate(entries):
            duration = None
            if i + 1 < len(entries):
                elapsed = entries[i + 1].created_at - entry.created_at
                duration = int(elapsed.total_seconds() // 60)
            timeline.append(
                TimelineEntry(
                    from_status=entry.from_status.value if entry.from_status else None,
                    to_status=entry.to_status.value,
                    actor_id=entry.actor_id,
                    reason=entry.reason,
                    notes=entry.notes,
                    created_at=entry.created_at.strftime("%Y-%m-%d %H:%M UTC"),
                    duration_minutes=duration,
                )
            )
        return timeline

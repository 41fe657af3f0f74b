"""Application service: Workflow Metrics use case (query).

Just enough numbers to see whether the workflow is healthy: orders per
status, how often each transition happened, the delivery success rate
and the cancellation rate.
"""

from __future__ import annotations

from collections import Counter

from orderflow.application.dto import WorkflowMetrics
from orderflow.domain.model.order import OrderStatus
from orderflow.domain.repository.transaction import Database
from orderflow.domain.service.types import DateRange


class WorkflowMetricsHandler:

    def __init__(self, database: Database) -> None:
        self._database = database

    def handle(
        self, store_id: int | None = None, date_range: DateRange | None = None
    ) -> WorkflowMetrics:
        with self._database.begin() as tx:
            orders = tx.orders.list_all()
            if store_id is not None:
                assignment_ids = {
                    a.assignment_id
                    for a in tx.assignments.list_all()
                    if a.store_id == store_id
                }
                # Cancelled orders lose their assignment; their reservations keep it.
                reserved_at_store = {
                    r.order_id
                    for r in tx.reservations.list_all()
                    if r.store_assignment_id in assignment_ids
                }
                orders = [
                    o
                    for o in orders
                    if o.store_assignment_id in assignment_ids or o.id in reserved_at_store
                ]
            if date_range is not None:
                orders = [o for o in orders if date_range.contains(o.created_at)]
            order_ids = {o.id for o in orders}
            history = [e for e in tx.history.list_all() if e.order_id in order_ids]

        by_status = Counter(o.status.value for o in orders)
        transitions = Counter(
            f"{e.from_status.value}->{e.to_status.value}"
            for e in history
            if e.from_status is not None
        )

        delivered = by_status[OrderStatus.DELIVERED.value] + by_status[OrderStatus.FULFILLED.value]
        failed = by_status[OrderStatus.FAILED.value]
        attempts = delivered + failed
        total = len(orders)

        return WorkflowMetrics(
            total_orders=total,
            by_status={s.value: by_status[s.value] for s in OrderStatus},
            transitions=dict(sorted(transitions.items())),
            delivery_success_rate=round(delivered / attempts * 100, 2) if attempts else 0.0,
            cancellation_rate=(
                round(by_status[OrderStatus.CANCELLED.value] / total * 100, 2) if total else 0.0
            ),
        )

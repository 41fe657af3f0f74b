"""Application service: Bulk Cancel use case.

Cancels each order in its own transaction, so one failure does not undo
the others.  Per-order errors are collected in the result.
"""

from __future__ import annotations

import structlog

from orderflow.application.cancel_order import CancelOrderHandler
from orderflow.application.dto import BulkFailure, BulkResult
from orderflow.domain.exceptions import DomainException, ValidationError

logger = structlog.get_logger(__name__)


class BulkCancelHandler:

    def __init__(self, cancel_handler: CancelOrderHandler) -> None:
        self._cancel_handler = cancel_handler

    def handle(self, order_ids: list[int], reason: str, actor_id: int) -> BulkResult:
        if not order_ids:
            raise ValidationError("At least one order ID is required")

        result = BulkResult()
        for order_id in dict.fromkeys(order_ids):
            try:
                self._cancel_handler.handle(order_id, reason, actor_id)
            except DomainException as exc:
                result.failed.append(BulkFailure(order_id=order_id, error=str(exc)))
            else:
                result.successful.append(order_id)

        logger.info(
            "order.bulk_cancelled",
            successful=len(result.successful),
            failed=len(result.failed),
        )
        return result

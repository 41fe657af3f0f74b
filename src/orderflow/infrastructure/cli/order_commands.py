"""CLI commands for the Order aggregate and its workflow."""

from __future__ import annotations

import click

from orderflow.application.available_transitions import AvailableTransitionsHandler
from orderflow.application.bulk_cancel import BulkCancelHandler
from orderflow.application.cancel_order import CancelOrderHandler
from orderflow.application.complete_delivery import CompleteDeliveryHandler
from orderflow.application.confirm_order import ConfirmOrderHandler
from orderflow.application.create_order import CreateOrderHandler
from orderflow.application.dto import OrderDTO
from orderflow.application.fail_delivery import FailDeliveryHandler
from orderflow.application.finalize_order import FinalizeOrderHandler
from orderflow.application.reconfirm_order import ReconfirmOrderHandler
from orderflow.application.release_reservations import ReleaseReservationsHandler
from orderflow.application.show_order import ShowOrderHandler
from orderflow.application.start_delivery import StartDeliveryHandler
from orderflow.application.transition import TransitionResult
from orderflow.application.workflow_history import WorkflowHistoryHandler
from orderflow.application.workflow_metrics import WorkflowMetricsHandler
from orderflow.domain.exceptions import DomainException
from orderflow.domain.model.order import PaymentMethod
from orderflow.domain.service.types import DeliveredItem
from orderflow.infrastructure.bootstrap import (
    assignment_resolver,
    clock,
    database,
    reservation_service,
)
from orderflow.infrastructure.cli.parsing import (
    parse_date_range,
    parse_ids,
    parse_order_items,
    parse_quantities,
)

_actor_option = click.option("--actor", "actor_id", required=True, type=int, help="Acting user ID.")
_id_option = click.option("--id", "order_id", required=True, type=int, help="Order ID.")


def _cancel_handler() -> CancelOrderHandler:
    return CancelOrderHandler(database(), reservation_service(), clock())


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id} {dto.order_number}  (status={dto.status})")
    click.echo(f"Customer: #{dto.customer_id}   Priority: {dto.priority}")
    click.echo(f"Payment:  {dto.payment_method} ({dto.payment_status})")
    if dto.store_assignment_id is not None:
        click.echo(f"Store assignment: #{dto.store_assignment_id}")
    if dto.delivery_address:
        click.echo(f"Address:  {dto.delivery_address}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo()
    click.echo(f"  {'Item':<14} {'Qty':>5} {'Price':>12} {'Total':>12} {'Delivery':>10}")
    click.echo(f"  {'-'*57}")
    for item in dto.items:
        click.echo(
            f"  {item.item:<14} {item.quantity:>5} {item.unit_price:>12} "
            f"{item.line_total:>12} {item.delivery_status:>10}"
        )
    click.echo(f"  {'-'*57}")
    click.echo(f"  {'Order Total':<20} {dto.total:>24}")


def _echo_transition(result: TransitionResult) -> None:
    click.echo(
        f"Order #{result.order.id} {result.from_status.value} -> {result.to_status.value}"
    )


@click.command("create")
@click.option("--customer", "customer_id", required=True, type=int, help="Customer ID.")
@click.option(
    "--items",
    required=True,
    help="Items as 'kind:id:qty:price,...', e.g. 'tank:3:2:45.00,item:7:1:12.50'.",
)
@_actor_option
@click.option("--priority", default=1, show_default=True, type=click.IntRange(1, 5))
@click.option(
    "--payment",
    "payment_method",
    default=PaymentMethod.CASH.value,
    show_default=True,
    type=click.Choice([m.value for m in PaymentMethod]),
)
@click.option("--address", "delivery_address", default="", help="Delivery address.")
@click.option("--notes", default=None)
def order_create(
    customer_id: int,
    items: str,
    actor_id: int,
    priority: int,
    payment_method: str,
    delivery_address: str,
    notes: str | None,
) -> None:
    """Create a new pending order."""
    specs = parse_order_items(items)
    handler = CreateOrderHandler(database(), clock())

    try:
        dto = handler.handle(
            customer_id=customer_id,
            item_specs=specs,
            created_by=actor_id,
            priority=priority,
            payment_method=payment_method,
            delivery_address=delivery_address,
            notes=notes,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{dto.id} created")
    _display_order(dto)


@click.command("show")
@_id_option
def order_show(order_id: int) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(database())

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("confirm")
@_id_option
@click.option("--assignment", "store_assignment_id", required=True, type=int, help="Store assignment ID.")
@_actor_option
@click.option("--notes", default=None)
def order_confirm(order_id: int, store_assignment_id: int, actor_id: int, notes: str | None) -> None:
    """Confirm a pending order (assigns the store, reserves inventory)."""
    handler = ConfirmOrderHandler(database(), reservation_service(), assignment_resolver(), clock())

    try:
        result = handler.handle(order_id, store_assignment_id, actor_id, notes=notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_transition(result)
    for r in result.reservation.reservations:  # type: ignore[union-attr]
        click.echo(f"  reserved {r.quantity} x {r.item} (reservation #{r.id})")


@click.command("start-delivery")
@_id_option
@_actor_option
@click.option("--instructions", default=None, help="Notes for the driver.")
def order_start_delivery(order_id: int, actor_id: int, instructions: str | None) -> None:
    """Send a confirmed (or failed) order out for delivery."""
    handler = StartDeliveryHandler(database(), clock())

    try:
        result = handler.handle(order_id, actor_id, instructions=instructions)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_transition(result)


@click.command("complete-delivery")
@_id_option
@_actor_option
@click.option(
    "--delivered",
    default=None,
    help="Actual quantities as 'kind:id:qty,...' when they differ from the order.",
)
@click.option("--signature", default=None)
@click.option("--notes", default=None)
def order_complete_delivery(
    order_id: int,
    actor_id: int,
    delivered: str | None,
    signature: str | None,
    notes: str | None,
) -> None:
    """Mark an order delivered (decrements inventory)."""
    try:
        actual_items = (
            [DeliveredItem(item, qty) for item, qty in parse_quantities(delivered)]
            if delivered
            else None
        )
        handler = CompleteDeliveryHandler(database(), reservation_service(), clock())
        result = handler.handle(
            order_id,
            actor_id,
            actual_items=actual_items,
            signature=signature,
            notes=notes,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_transition(result)
    for d in result.fulfillment.discrepancies:  # type: ignore[union-attr]
        click.echo(f"  discrepancy: {d.item} reserved {d.reserved}, delivered {d.delivered}")


@click.command("fail")
@_id_option
@click.option("--reason", required=True)
@_actor_option
@click.option("--reschedule", is_flag=True, default=False, help="A new delivery attempt is planned.")
def order_fail(order_id: int, reason: str, actor_id: int, reschedule: bool) -> None:
    """Mark a delivery as failed (reservations are kept)."""
    handler = FailDeliveryHandler(database(), clock())

    try:
        result = handler.handle(order_id, reason, actor_id, reschedule=reschedule)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_transition(result)


@click.command("cancel")
@_id_option
@click.option("--reason", required=True)
@_actor_option
def order_cancel(order_id: int, reason: str, actor_id: int) -> None:
    """Cancel an order (restores reserved inventory)."""
    try:
        result = _cancel_handler().handle(order_id, reason, actor_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_transition(result)
    if result.restoration is not None:
        for r in result.restoration.restored_quantities:
            click.echo(f"  restored {r.quantity} x {r.item}")


@click.command("finalize")
@_id_option
@_actor_option
@click.option("--notes", default=None)
def order_finalize(order_id: int, actor_id: int, notes: str | None) -> None:
    """Invoice and close a delivered order."""
    handler = FinalizeOrderHandler(database(), clock())

    try:
        result = handler.handle(order_id, actor_id, notes=notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_transition(result)


@click.command("reconfirm")
@_id_option
@_actor_option
@click.option("--notes", default=None)
def order_reconfirm(order_id: int, actor_id: int, notes: str | None) -> None:
    """Return a failed order to confirmed."""
    handler = ReconfirmOrderHandler(database(), reservation_service(), clock())

    try:
        result = handler.handle(order_id, actor_id, notes=notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _echo_transition(result)


@click.command("release")
@_id_option
@click.option("--reason", required=True)
@_actor_option
def order_release(order_id: int, reason: str, actor_id: int) -> None:
    """Release the reservations of a failed order without changing its status."""
    handler = ReleaseReservationsHandler(database(), reservation_service())

    try:
        result = handler.handle(order_id, reason, actor_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not result.restored_quantities:
        click.echo(f"Order #{order_id} had no active reservations.")
    for r in result.restored_quantities:
        click.echo(f"  released {r.quantity} x {r.item}")


@click.command("transitions")
@_id_option
def order_transitions(order_id: int) -> None:
    """List the statuses an order can move to next."""
    handler = AvailableTransitionsHandler(database())

    try:
        transitions = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not transitions:
        click.echo(f"Order #{order_id} is in a terminal status.")
        return
    for t in transitions:
        flag = " (requires confirmation)" if t.requires_confirmation else ""
        click.echo(f"  {t.to_status:<12} {t.description}{flag}")


@click.command("history")
@_id_option
def order_history(order_id: int) -> None:
    """Show the status timeline of an order."""
    handler = WorkflowHistoryHandler(database())

    try:
        timeline = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{'When':<22} {'From':<12} {'To':<12} {'Minutes':>8}  Reason")
    click.echo("-" * 72)
    for e in timeline:
        minutes = "" if e.duration_minutes is None else str(e.duration_minutes)
        click.echo(
            f"{e.created_at:<22} {e.from_status or '-':<12} {e.to_status:<12} "
            f"{minutes:>8}  {e.reason or ''}"
        )


@click.command("bulk-cancel")
@click.option("--ids", required=True, help="Comma-separated order IDs.")
@click.option("--reason", required=True)
@_actor_option
def order_bulk_cancel(ids: str, reason: str, actor_id: int) -> None:
    """Cancel several orders, each on its own."""
    handler = BulkCancelHandler(_cancel_handler())

    try:
        result = handler.handle(parse_ids(ids), reason, actor_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Cancelled: {', '.join(f'#{i}' for i in result.successful) or 'none'}")
    for failure in result.failed:
        click.echo(f"  #{failure.order_id} failed: {failure.error}")


@click.command("metrics")
@click.option("--store", "store_id", default=None, type=int, help="Limit to one store.")
@click.option("--from", "start", default=None, type=click.DateTime(), help="Start (UTC).")
@click.option("--to", "end", default=None, type=click.DateTime(), help="End (UTC).")
def order_metrics(store_id: int | None, start, end) -> None:
    """Show workflow metrics."""
    date_range = parse_date_range(start, end)
    metrics = WorkflowMetricsHandler(database()).handle(store_id=store_id, date_range=date_range)

    click.echo(f"Total orders:          {metrics.total_orders}")
    click.echo(f"Delivery success rate: {metrics.delivery_success_rate:.2f}%")
    click.echo(f"Cancellation rate:     {metrics.cancellation_rate:.2f}%")
    click.echo()
    for status, count in metrics.by_status.items():
        click.echo(f"  {status:<12} {count:>6}")
    if metrics.transitions:
        click.echo()
        for transition, count in metrics.transitions.items():
            click.echo(f"  {transition:<24} {count:>6}")

"""CLI commands for reservations."""

from __future__ import annotations

from datetime import timezone

import click

from orderflow.application.expire_reservations import ExpireReservationsHandler
from orderflow.application.extend_reservation import ExtendReservationHandler
from orderflow.application.reservation_metrics import ReservationMetricsHandler
from orderflow.domain.exceptions import DomainException
from orderflow.infrastructure.bootstrap import database, reservation_service
from orderflow.infrastructure.cli.parsing import parse_date_range


@click.command("metrics")
@click.option("--store", "store_id", default=None, type=int, help="Limit to one store.")
@click.option("--from", "start", default=None, type=click.DateTime(), help="Start (UTC).")
@click.option("--to", "end", default=None, type=click.DateTime(), help="End (UTC).")
def reservation_metrics(store_id: int | None, start, end) -> None:
    """Show reservation counts and the fulfillment rate."""
    date_range = parse_date_range(start, end)
    handler = ReservationMetricsHandler(database(), reservation_service())
    m = handler.handle(store_id=store_id, date_range=date_range)

    click.echo(f"Total:            {m.total}")
    click.echo(f"Active:           {m.active}  ({m.expiring_soon} expiring within 2h)")
    click.echo(f"Fulfilled:        {m.fulfilled}")
    click.echo(f"Cancelled:        {m.cancelled}")
    click.echo(f"Expired:          {m.expired}")
    click.echo(f"Fulfillment rate: {m.fulfillment_rate:.2f}%")


@click.command("sweep")
def reservation_sweep() -> None:
    """Expire active reservations that are past their expiry time."""
    handler = ExpireReservationsHandler(database(), reservation_service())

    try:
        expired = handler.handle()
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Expired {len(expired)} reservation(s).")
    for r in expired:
        click.echo(f"  #{r.id} order #{r.order_id}: {r.quantity} x {r.item}")


@click.command("extend")
@click.option("--id", "reservation_id", required=True, type=int, help="Reservation ID.")
@click.option("--until", "until", required=True, type=click.DateTime(), help="New expiry (UTC).")
def reservation_extend(reservation_id: int, until) -> None:
    """Push back the expiry of an active reservation."""
    handler = ExtendReservationHandler(database(), reservation_service())

    try:
        r = handler.handle(reservation_id, until.replace(tzinfo=timezone.utc))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Reservation #{r.id} now expires at {r.expires_at.isoformat()}")

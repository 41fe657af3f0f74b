"""CLI commands for inventory management."""

from __future__ import annotations

import click

from orderflow.application.check_availability import CheckAvailabilityHandler
from orderflow.application.set_inventory import SetInventoryHandler
from orderflow.application.show_inventory import ShowInventoryHandler
from orderflow.domain.exceptions import DomainException
from orderflow.domain.service.types import ItemRequest
from orderflow.infrastructure.bootstrap import database, reservation_service
from orderflow.infrastructure.cli.parsing import parse_item, parse_quantities


@click.command("set")
@click.option("--inventory", "inventory_id", required=True, type=int, help="Inventory snapshot ID.")
@click.option("--item", required=True, help="Item as 'kind:id', e.g. 'tank:3'.")
@click.option("--quantity", required=True, type=int, help="On-hand quantity.")
def inventory_set(inventory_id: int, item: str, quantity: int) -> None:
    """Set the on-hand stock of an item."""
    ref = parse_item(item)
    handler = SetInventoryHandler(database())

    try:
        handler.handle(inventory_id, ref.kind.value, ref.item_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Stock of {ref} in inventory #{inventory_id} set to {quantity}")


@click.command("show")
@click.option("--inventory", "inventory_id", default=None, type=int, help="Limit to one snapshot.")
def inventory_show(inventory_id: int | None) -> None:
    """Show current stock, reserved and available quantities."""
    handler = ShowInventoryHandler(database())
    lines = handler.handle(inventory_id)

    if not lines:
        click.echo("No inventory records found.")
        return

    click.echo(f"{'Inventory':>9}  {'Item':<14} {'On hand':>8} {'Reserved':>10} {'Available':>10}")
    click.echo("-" * 56)
    for line in lines:
        click.echo(
            f"{line.inventory_id:>9}  {line.item:<14} {line.on_hand:>8} "
            f"{line.reserved:>10} {line.available:>10}"
        )


@click.command("check")
@click.option("--store", "store_id", required=True, type=int, help="Store ID.")
@click.option("--items", required=True, help="Items as 'kind:id:qty,...'.")
def inventory_check(store_id: int, items: str) -> None:
    """Check whether a store can supply the given items."""
    handler = CheckAvailabilityHandler(database(), reservation_service())

    try:
        requests = [ItemRequest(item, qty) for item, qty in parse_quantities(items)]
        result = handler.handle(store_id, requests)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{'Item':<14} {'Stock':>6} {'Reserved':>9} {'Available':>10} {'Wanted':>7}")
    click.echo("-" * 50)
    for line in result.items:
        marker = "" if line.can_fulfill else "  SHORT"
        click.echo(
            f"{str(line.item):<14} {line.current_stock:>6} {line.reserved_quantity:>9} "
            f"{line.available_quantity:>10} {line.requested_quantity:>7}{marker}"
        )
    click.echo()
    click.echo("Available" if result.available else "Not available")

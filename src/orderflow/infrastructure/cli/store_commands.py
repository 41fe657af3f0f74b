"""CLI commands for store assignments."""

from __future__ import annotations

import click

from orderflow.application.assign_store import AssignStoreHandler
from orderflow.domain.exceptions import DomainException
from orderflow.infrastructure.bootstrap import database


@click.command("assign")
@click.option("--assignment", "assignment_id", required=True, type=int, help="Assignment ID.")
@click.option("--store", "store_id", required=True, type=int, help="Store ID.")
@click.option("--inventory", "inventory_id", required=True, type=int, help="Current inventory snapshot ID.")
def store_assign(assignment_id: int, store_id: int, inventory_id: int) -> None:
    """Point a store assignment at its current inventory snapshot."""
    handler = AssignStoreHandler(database())

    try:
        handler.handle(assignment_id, store_id, inventory_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Assignment #{assignment_id}: store #{store_id} draws from inventory #{inventory_id}"
    )

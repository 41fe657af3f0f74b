import click

from orderflow.infrastructure import settings
from orderflow.infrastructure.cli.inventory_commands import (
    inventory_check,
    inventory_set,
    inventory_show,
)
from orderflow.infrastructure.cli.order_commands import (
    order_bulk_cancel,
    order_cancel,
    order_complete_delivery,
    order_confirm,
    order_create,
    order_fail,
    order_finalize,
    order_history,
    order_metrics,
    order_reconfirm,
    order_release,
    order_show,
    order_start_delivery,
    order_transitions,
)
from orderflow.infrastructure.cli.reservation_commands import (
    reservation_extend,
    reservation_metrics,
    reservation_sweep,
)
from orderflow.infrastructure.cli.store_commands import store_assign
from orderflow.infrastructure.logging import configure_logging


@click.group()
def cli() -> None:
    """orderflow: order workflow and inventory reservations"""
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)


@cli.group()
def order() -> None:
    """Manage orders and their workflow."""


@cli.group()
def inventory() -> None:
    """Manage inventory."""


@cli.group()
def reservation() -> None:
    """Inspect, extend and sweep reservations."""


@cli.group()
def store() -> None:
    """Manage store assignments."""


# Register subcommands
order.add_command(order_bulk_cancel)
order.add_command(order_cancel)
order.add_command(order_complete_delivery)
order.add_command(order_confirm)
order.add_command(order_create)
order.add_command(order_fail)
order.add_command(order_finalize)
order.add_command(order_history)
order.add_command(order_metrics)
order.add_command(order_reconfirm)
order.add_command(order_release)
order.add_command(order_show)
order.add_command(order_start_delivery)
order.add_command(order_transitions)
inventory.add_command(inventory_check)
inventory.add_command(inventory_set)
inventory.add_command(inventory_show)
reservation.add_command(reservation_extend)
reservation.add_command(reservation_metrics)
reservation.add_command(reservation_sweep)
store.add_command(store_assign)

"""Option parsers shared by the CLI command modules."""

from __future__ import annotations

from datetime import datetime, timezone

import click

from orderflow.application.dto import OrderItemSpec
from orderflow.domain.exceptions import ValidationError
from orderflow.domain.model.value_objects import ItemRef, item_ref
from orderflow.domain.service.types import DateRange


def _split(raw: str, parts: int, expected: str) -> list[str]:
    fields = [f.strip() for f in raw.split(":")]
    if len(fields) != parts or not all(fields):
        raise click.BadParameter(f"Invalid item format '{raw}'. Expected '{expected}'.")
    return fields


def _to_int(value: str, label: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise click.BadParameter(f"Invalid {label} '{value}'.")


def parse_item(raw: str) -> ItemRef:
    """Parse 'tank:3' into an ItemRef."""
    kind, item_id = _split(raw, 2, "kind:id")
    try:
        return item_ref(kind, _to_int(item_id, "item id"))
    except ValidationError as exc:
        raise click.BadParameter(str(exc))


def parse_quantities(raw: str) -> list[tuple[ItemRef, int]]:
    """Parse 'tank:3:2,item:7:1' into (item, quantity) pairs."""
    pairs: list[tuple[ItemRef, int]] = []
    for chunk in raw.split(","):
        kind, item_id, qty = _split(chunk.strip(), 3, "kind:id:quantity")
        pairs.append((parse_item(f"{kind}:{item_id}"), _to_int(qty, "quantity")))
    return pairs


def parse_order_items(raw: str) -> list[OrderItemSpec]:
    """Parse 'tank:3:2:45.00,item:7:1:12.50' into OrderItemSpec list."""
    specs: list[OrderItemSpec] = []
    for chunk in raw.split(","):
        kind, item_id, qty, price = _split(chunk.strip(), 4, "kind:id:quantity:price")
        specs.append(
            OrderItemSpec(
                kind=kind,
                item_id=_to_int(item_id, "item id"),
                quantity=_to_int(qty, "quantity"),
                unit_price=price,
            )
        )
    return specs


def parse_ids(raw: str) -> list[int]:
    return [_to_int(part.strip(), "order id") for part in raw.split(",") if part.strip()]


def parse_date_range(start: datetime | None, end: datetime | None) -> DateRange | None:
    """Build a UTC DateRange from click DateTime options; both or neither."""
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise click.BadParameter("--from and --to must be given together.")
    try:
        return DateRange(
            start.replace(tzinfo=timezone.utc), end.replace(tzinfo=timezone.utc)
        )
    except ValidationError as exc:
        raise click.BadParameter(str(exc))

"""Helpers shared by the CLI command modules."""

from __future__ import annotations

from datetime import datetime, timezone

import click

from pos_inventory.application.dto import OrderItemSpec
from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.actor import Actor, Position

POSITIONS = [p.value for p in Position if p is not Position.SYSTEM]


def actor_options(func):
    """Add --actor / --position options for the identity of the caller."""
    func = click.option(
        "--position",
        type=click.Choice(POSITIONS),
        default=Position.CASHIER.value,
        show_default=True,
        help="Position of the acting user.",
    )(func)
    func = click.option(
        "--actor", "actor_id", default="pos-terminal", show_default=True,
        help="Id of the acting user.",
    )(func)
    return func


def make_actor(actor_id: str, position: str) -> Actor:
    try:
        return Actor(id=actor_id, position=Position(position))
    except ValidationError as exc:
        raise click.BadParameter(str(exc))


def parse_items(raw: str) -> list[OrderItemSpec]:
    """Parse 'burger:2,fries:1' into OrderItemSpec list."""
    specs: list[OrderItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'MenuItemId:Quantity'."
            )
        menu_item_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for menu item '{menu_item_id}'."
            )
        specs.append(OrderItemSpec(menu_item_id=menu_item_id.strip(), quantity=qty))
    return specs


def as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)

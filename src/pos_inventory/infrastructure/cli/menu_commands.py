"""CLI commands for the menu catalog and food-cost reporting."""

from __future__ import annotations

import click

from pos_inventory.application.menu_item_cost import MenuItemCostHandler
from pos_inventory.domain.exceptions import DomainException
from pos_inventory.domain.model.menu_item import MenuItem
from pos_inventory.domain.model.value_objects import Money
from pos_inventory.infrastructure.bootstrap import menu_catalog, unit_of_work


@click.command("add")
@click.option("--id", "menu_item_id", required=True, help="Menu item id.")
@click.option("--name", required=True, help="Display name.")
@click.option("--price", required=True, help="Menu price.")
def menu_add(menu_item_id: str, name: str, price: str) -> None:
    """Add or update a menu item in the local catalog."""
    try:
        item = MenuItem(id=menu_item_id, name=name, price=Money.of(price))
        menu_catalog().save(item)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Menu item '{item.id}' saved at {item.price}")


@click.command("cost")
@click.option("--id", "menu_item_id", required=True, help="Menu item id.")
def menu_cost(menu_item_id: str) -> None:
    """Show food cost and margin for a menu item."""
    handler = MenuItemCostHandler(unit_of_work(), menu_catalog())

    try:
        dto = handler.handle(menu_item_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"{dto.name}  price {dto.price}")
    for row in dto.ingredients:
        click.echo(f"  {row.ingredient_name:<20} {row.quantity:>8} {row.unit:<8} {row.cost:>10}")
    click.echo(f"Food cost: {dto.food_cost}  margin: {dto.margin} ({dto.margin_percent})")

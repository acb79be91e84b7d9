"""CLI commands for recipe mappings."""

from __future__ import annotations

import click

from pos_inventory.application.set_recipe_requirement import SetRecipeRequirementHandler
from pos_inventory.domain.exceptions import DomainException
from pos_inventory.infrastructure.bootstrap import unit_of_work


@click.command("set")
@click.option("--menu-item", "menu_item_id", required=True, help="Menu item id.")
@click.option("--ingredient", "ingredient_id", required=True, help="Ingredient id.")
@click.option("--quantity", required=True, help="Amount per unit of the menu item.")
@click.option("--unit", required=True, help="Unit of --quantity.")
@click.option("--optional", is_flag=True, default=False, help="Item can be served without it.")
@click.option("--substitute", "substitutes", multiple=True, help="Substitute ingredient id (repeatable).")
@click.option("--notes", default="", help="Free-text notes.")
def recipe_set(
    menu_item_id: str,
    ingredient_id: str,
    quantity: str,
    unit: str,
    optional: bool,
    substitutes: tuple[str, ...],
    notes: str,
) -> None:
    """Set how much of an ingredient one menu item needs."""
    handler = SetRecipeRequirementHandler(unit_of_work())

    try:
        requirement = handler.handle(
            menu_item_id=menu_item_id,
            ingredient_id=ingredient_id,
            quantity=quantity,
            unit=unit,
            is_required=not optional,
            substitutes=list(substitutes),
            notes=notes,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    kind = "required" if requirement.is_required else "optional"
    click.echo(
        f"{requirement.menu_item_id} uses {requirement.quantity} {requirement.unit.value} "
        f"of {requirement.ingredient_id} ({kind})"
    )

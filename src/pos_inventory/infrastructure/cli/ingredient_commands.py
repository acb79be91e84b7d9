"""CLI commands for the Stock Ledger."""

from __future__ import annotations

import click

from pos_inventory.application.adjust_stock import AdjustStockHandler
from pos_inventory.application.register_ingredient import RegisterIngredientHandler
from pos_inventory.application.show_inventory import ShowInventoryHandler
from pos_inventory.domain.exceptions import DomainException
from pos_inventory.domain.model.audit import ReferenceType
from pos_inventory.infrastructure.bootstrap import (
    audit_ledger,
    availability_service,
    unit_of_work,
)
from pos_inventory.infrastructure.cli.common import (
    POSITIONS,
    actor_options,
    make_actor,
)

ADJUSTMENT_KINDS = [
    ReferenceType.MANUAL_ADJUSTMENT.value,
    ReferenceType.RECEIVING.value,
    ReferenceType.WASTE.value,
    ReferenceType.THEFT_LOSS.value,
    ReferenceType.SYSTEM_CORRECTION.value,
    ReferenceType.TRANSFER_IN.value,
    ReferenceType.TRANSFER_OUT.value,
    ReferenceType.RECIPE_TEST.value,
    ReferenceType.PROMOTION_SAMPLE.value,
]


@click.command("add")
@click.option("--id", "ingredient_id", required=True, help="Ingredient id.")
@click.option("--name", required=True, help="Display name.")
@click.option("--unit", required=True, help="Stock unit (g, kg, ml, l, pieces...).")
@click.option("--on-hand", default="0", show_default=True, help="Opening stock.")
@click.option("--minimum", default="0", show_default=True, help="Minimum stock level.")
@click.option("--unit-cost", default="0", show_default=True, help="Cost per stock unit.")
@actor_options
def ingredient_add(
    ingredient_id: str,
    name: str,
    unit: str,
    on_hand: str,
    minimum: str,
    unit_cost: str,
    actor_id: str,
    position: str,
) -> None:
    """Register a stocked ingredient."""
    handler = RegisterIngredientHandler(unit_of_work(), audit_ledger())

    try:
        dto = handler.handle(
            ingredient_id=ingredient_id,
            name=name,
            unit=unit,
            on_hand=on_hand,
            actor=make_actor(actor_id, position),
            minimum_stock=minimum,
            unit_cost=unit_cost,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Ingredient '{dto.id}' registered: {dto.on_hand} {dto.unit} on hand")


@click.command("adjust")
@click.option("--id", "ingredient_id", required=True, help="Ingredient id.")
@click.option("--delta", required=True, help="Signed quantity change.")
@click.option(
    "--kind",
    type=click.Choice(ADJUSTMENT_KINDS),
    default=ReferenceType.MANUAL_ADJUSTMENT.value,
    show_default=True,
    help="What kind of stock movement this is.",
)
@click.option("--unit", default=None, help="Unit of --delta (defaults to the stock unit).")
@click.option("--reason", default="", help="Why the stock changed.")
@click.option("--authorized-by", default=None, help="Id of the authorizing manager.")
@click.option(
    "--authorizer-position",
    type=click.Choice(POSITIONS),
    default="shift_manager",
    show_default=True,
    help="Position of the authorizing manager.",
)
@actor_options
def ingredient_adjust(
    ingredient_id: str,
    delta: str,
    kind: str,
    unit: str | None,
    reason: str,
    authorized_by: str | None,
    authorizer_position: str,
    actor_id: str,
    position: str,
) -> None:
    """Record a delivery, waste, count correction or other stock movement."""
    handler = AdjustStockHandler(unit_of_work(), audit_ledger())
    authorizer = make_actor(authorized_by, authorizer_position) if authorized_by else None

    try:
        dto = handler.handle(
            ingredient_id=ingredient_id,
            delta=delta,
            actor=make_actor(actor_id, position),
            kind=ReferenceType(kind),
            reason=reason,
            unit=unit,
            authorized_by=authorizer,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"{dto.ingredient_id}: {dto.quantity_before} -> {dto.quantity_after} {dto.unit} "
        f"(value {dto.value_impact})"
    )
    if dto.flags:
        click.echo(f"Compliance flags: {', '.join(dto.flags)}")


@click.command("show")
@click.option("--id", "ingredient_id", default=None, help="Only this ingredient.")
@click.option("--low-stock", is_flag=True, default=False, help="Only recipe ingredients at or below minimum.")
def ingredient_show(ingredient_id: str | None, low_stock: bool) -> None:
    """Show on-hand, reserved and available stock."""
    handler = ShowInventoryHandler(unit_of_work(), availability_service())

    try:
        rows = handler.low_stock() if low_stock else handler.handle(ingredient_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not rows:
        click.echo("No ingredients found.")
        return

    click.echo(
        f"{'Ingredient':<20} {'Unit':<8} {'On hand':>10} {'Reserved':>10} {'Available':>10} {'Min':>8}"
    )
    click.echo("-" * 71)
    for row in rows:
        marker = " LOW" if row.low_stock else ""
        click.echo(
            f"{row.name:<20} {row.unit:<8} {row.on_hand:>10} {row.reserved:>10} "
            f"{row.available:>10} {row.minimum_stock:>8}{marker}"
        )

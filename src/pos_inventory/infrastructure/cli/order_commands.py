"""CLI commands for the order-facing operations."""

from __future__ import annotations

import click

from pos_inventory.application.cancel_order import CancelOrderHandler
from pos_inventory.application.check_availability import CheckAvailabilityHandler
from pos_inventory.application.complete_order import CompleteOrderHandler
from pos_inventory.application.dto import fmt_quantity
from pos_inventory.application.reserve_order import ReserveOrderHandler
from pos_inventory.domain.exceptions import DomainException
from pos_inventory.domain.model.reservation_result import (
    OverrideRequest,
    ReservationOptions,
    ReservationResult,
)
from pos_inventory.infrastructure.bootstrap import availability_service, reservation_engine
from pos_inventory.infrastructure.cli.common import (
    POSITIONS,
    actor_options,
    make_actor,
    parse_items,
)


@click.command("check")
@click.option("--items", required=True, help="Items as 'MenuItem:Qty,MenuItem:Qty'.")
def order_check(items: str) -> None:
    """Check whether an order could be made right now."""
    handler = CheckAvailabilityHandler(availability_service())

    try:
        dto = handler.handle(parse_items(items))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not dto.tracked:
        click.echo("No ingredient tracking for these items: always available.")
        return

    click.echo(f"Feasible: {'yes' if dto.feasible else 'no'}")
    click.echo()
    click.echo(f"  {'Ingredient':<20} {'Needed':>10} {'Available':>10} {'Unit':<8} Status")
    click.echo(f"  {'-'*60}")
    for check in dto.checks:
        if check.sufficient:
            status = "ok"
        elif check.is_required:
            status = f"SHORT {check.shortage}"
        else:
            status = f"short {check.shortage} (optional)"
        click.echo(
            f"  {check.ingredient_name:<20} {check.required:>10} {check.available:>10} "
            f"{check.unit:<8} {status}"
        )


def _display_failure(result: ReservationResult) -> None:
    for check in result.insufficient:
        click.echo(
            f"  {check.ingredient_name}: need {fmt_quantity(check.required)} "
            f"{check.unit.value}, short by {fmt_quantity(check.shortage)}"
        )
    for option in result.substitution_options:
        for candidate in option.candidates:
            state = "covers" if candidate.sufficient else "partial"
            click.echo(
                f"  substitute for {option.original.ingredient_name}: "
                f"{candidate.ingredient_name} ({fmt_quantity(candidate.available)} "
                f"{candidate.unit.value} available, {state})"
            )
    if result.can_retry_with_override:
        click.echo("  Retry with --override-reason (shift manager) or --allow-partial.")


@click.command("reserve")
@click.option("--order-id", required=True, help="Order id (one reservation per order).")
@click.option("--items", required=True, help="Items as 'MenuItem:Qty,MenuItem:Qty'.")
@click.option("--allow-partial", is_flag=True, default=False, help="Hold whatever stock remains.")
@click.option("--override-reason", default=None, help="Manager override reason.")
@click.option("--approver", default=None, help="Id of the approving manager (defaults to --actor).")
@click.option(
    "--approver-position",
    type=click.Choice(POSITIONS),
    default="shift_manager",
    show_default=True,
    help="Position of the approving manager.",
)
@click.option("--ttl", type=int, default=None, help="Minutes to hold the stock.")
@click.option("--notes", default="", help="Notes stored on the reservation.")
@actor_options
def order_reserve(
    order_id: str,
    items: str,
    allow_partial: bool,
    override_reason: str | None,
    approver: str | None,
    approver_position: str,
    ttl: int | None,
    notes: str,
    actor_id: str,
    position: str,
) -> None:
    """Reserve ingredients for an order."""
    specs = parse_items(items)
    actor = make_actor(actor_id, position)

    override = None
    if override_reason is not None:
        override = OverrideRequest(
            reason=override_reason,
            approver=make_actor(approver, approver_position) if approver else None,
        )
    options = ReservationOptions(
        allow_partial=allow_partial,
        manager_override=override,
        ttl_minutes=ttl,
        notes=notes,
    )
    handler = ReserveOrderHandler(reservation_engine())

    try:
        result = handler.handle(order_id, specs, actor, options)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not result.success:
        _display_failure(result)
        raise click.ClickException(f"{result.error}: {result.message}")

    if not result.has_ingredient_tracking:
        click.echo(f"Order {order_id}: {result.message}")
        return

    reservation = result.reservation
    prefix = "Existing reservation" if result.is_idempotent else "Reservation"
    click.echo(f"{prefix} {reservation.id} for order {order_id} (status={reservation.status.value})")
    click.echo(f"Value: {result.total_value}  Expires: {result.expires_at:%Y-%m-%d %H:%M UTC}")
    for line in reservation.lines:
        extra = f" (substitute for {line.substituted_for})" if line.substituted_for else ""
        if line.shortfall > 0:
            extra += f" short {fmt_quantity(line.shortfall)}"
        click.echo(
            f"  {line.ingredient_id:<20} {fmt_quantity(line.quantity_reserved):>10} "
            f"{line.unit.value:<8} {line.line_cost}{extra}"
        )


@click.command("complete")
@click.option("--order-id", required=True, help="Order id.")
@actor_options
def order_complete(order_id: str, actor_id: str, position: str) -> None:
    """Complete an order: deduct its reserved ingredients from stock."""
    handler = CompleteOrderHandler(reservation_engine())

    try:
        dto = handler.handle(order_id, make_actor(actor_id, position))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id} completed. {dto.message}")


@click.command("cancel")
@click.option("--order-id", required=True, help="Order id.")
@click.option("--reason", default="Order cancelled", show_default=True, help="Why.")
@actor_options
def order_cancel(order_id: str, reason: str, actor_id: str, position: str) -> None:
    """Cancel an order: release its reservation (stock unchanged)."""
    handler = CancelOrderHandler(reservation_engine())

    try:
        dto = handler.handle(order_id, make_actor(actor_id, position), reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order {order_id} cancelled. {dto.message}")

"""CLI commands for inspecting and extending reservations."""

from __future__ import annotations

import click

from pos_inventory.application.dto import ReservationDTO, fmt_time
from pos_inventory.application.extend_reservation import ExtendReservationHandler
from pos_inventory.application.show_reservation import ShowReservationHandler
from pos_inventory.domain.exceptions import DomainException
from pos_inventory.infrastructure.bootstrap import reservation_engine
from pos_inventory.infrastructure.cli.common import actor_options, make_actor


def _display_reservation(dto: ReservationDTO) -> None:
    click.echo(f"Reservation {dto.id}  (status={dto.status}, type={dto.reservation_type})")
    click.echo(f"Order:    {dto.order_id}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo(f"Expires:  {dto.expires_at}  ({dto.remaining_minutes} min left)")
    if dto.override_by:
        click.echo(f"Override: approved by {dto.override_by}")
    click.echo()
    click.echo(f"  {'Ingredient':<20} {'Qty':>10} {'Unit':<8} {'Status':<10} {'Cost':>10}")
    click.echo(f"  {'-'*62}")
    for line in dto.lines:
        click.echo(
            f"  {line.ingredient_id:<20} {line.quantity:>10} {line.unit:<8} "
            f"{line.status:<10} {line.line_cost:>10}"
        )
    click.echo(f"  {'-'*62}")
    click.echo(f"  {'Total':<51} {dto.total_value:>10}")


@click.command("show")
@click.option("--id", "reservation_id", required=True, help="Reservation id.")
def reservation_show(reservation_id: str) -> None:
    """Show a reservation with its remaining hold time."""
    handler = ShowReservationHandler(reservation_engine())

    try:
        dto = handler.handle(reservation_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_reservation(dto)


@click.command("extend")
@click.option("--id", "reservation_id", required=True, help="Reservation id.")
@click.option("--minutes", required=True, type=int, help="Minutes to add.")
@click.option("--reason", default="", help="Why the hold is extended.")
@actor_options
def reservation_extend(
    reservation_id: str,
    minutes: int,
    reason: str,
    actor_id: str,
    position: str,
) -> None:
    """Push a reservation's expiry further out."""
    handler = ExtendReservationHandler(reservation_engine())

    try:
        dto = handler.handle(reservation_id, minutes, make_actor(actor_id, position), reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Reservation {dto.id} now expires at {dto.expires_at}")


@click.command("expiring")
@click.option("--within", type=int, default=None, help="Window in minutes.")
def reservation_expiring(within: int | None) -> None:
    """List reservations about to expire."""
    try:
        reservations = reservation_engine().find_expiring(within)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not reservations:
        click.echo("No reservations expiring soon.")
        return
    for reservation in reservations:
        click.echo(
            f"{reservation.id}  order={reservation.order_id}  "
            f"expires={fmt_time(reservation.expires_at)}"
        )

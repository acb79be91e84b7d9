"""CLI command for the expiry sweeper."""

from __future__ import annotations

import time

import click

from pos_inventory.domain.exceptions import DomainException
from pos_inventory.infrastructure.bootstrap import expiry_sweeper


@click.command("run")
@click.option("--once", is_flag=True, default=False, help="Sweep once and exit.")
def sweeper_run(once: bool) -> None:
    """Release reservations that have passed their expiry."""
    sweeper = expiry_sweeper()

    if once:
        try:
            result = sweeper.sweep()
        except DomainException as exc:
            raise click.ClickException(str(exc))
        click.echo(
            f"Expired: {result.total_expired}  released: {result.released}  "
            f"failed: {len(result.failed)}"
        )
        for failure in result.failed:
            click.echo(f"  {failure.reservation_id}: {failure.error}")
        return

    click.echo("Sweeper running; press Ctrl+C to stop.")
    sweeper.start()
    try:
        while sweeper.running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        sweeper.stop()

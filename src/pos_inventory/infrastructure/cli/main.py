import click

from pos_inventory.infrastructure.cli.audit_commands import (
    audit_export,
    audit_history,
    audit_resolve,
    audit_review,
    audit_summary,
)
from pos_inventory.infrastructure.cli.ingredient_commands import (
    ingredient_add,
    ingredient_adjust,
    ingredient_show,
)
from pos_inventory.infrastructure.cli.menu_commands import menu_add, menu_cost
from pos_inventory.infrastructure.cli.order_commands import (
    order_cancel,
    order_check,
    order_complete,
    order_reserve,
)
from pos_inventory.infrastructure.cli.recipe_commands import recipe_set
from pos_inventory.infrastructure.cli.reservation_commands import (
    reservation_expiring,
    reservation_extend,
    reservation_show,
)
from pos_inventory.infrastructure.cli.sweeper_commands import sweeper_run
from pos_inventory.infrastructure.logging_config import setup_logging


@click.group()
def cli() -> None:
    """POS Inventory: ingredient reservation and availability engine"""
    setup_logging()


@cli.group()
def ingredient() -> None:
    """Manage stocked ingredients."""


@cli.group()
def recipe() -> None:
    """Manage recipe mappings."""


@cli.group()
def order() -> None:
    """Check, reserve, complete and cancel orders."""


@cli.group()
def reservation() -> None:
    """Inspect reservations."""


@cli.group()
def sweeper() -> None:
    """Run the expiry sweeper."""


@cli.group()
def audit() -> None:
    """Query the audit ledger."""


@cli.group()
def menu() -> None:
    """Menu catalog and food cost."""


# Register subcommands
ingredient.add_command(ingredient_add)
ingredient.add_command(ingredient_adjust)
ingredient.add_command(ingredient_show)
recipe.add_command(recipe_set)
order.add_command(order_check)
order.add_command(order_reserve)
order.add_command(order_complete)
order.add_command(order_cancel)
reservation.add_command(reservation_show)
reservation.add_command(reservation_extend)
reservation.add_command(reservation_expiring)
sweeper.add_command(sweeper_run)
audit.add_command(audit_history)
audit.add_command(audit_summary)
audit.add_command(audit_review)
audit.add_command(audit_resolve)
audit.add_command(audit_export)
menu.add_command(menu_add)
menu.add_command(menu_cost)

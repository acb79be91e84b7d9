"""CLI commands for the Audit Ledger."""

from __future__ import annotations

import click

from pos_inventory.application.audit_report import (
    AuditEntryDTO,
    AuditExportHandler,
    AuditHistoryHandler,
    AuditReviewHandler,
    AuditSummaryHandler,
)
from pos_inventory.application.resolve_compliance_flag import ResolveComplianceFlagHandler
from pos_inventory.domain.exceptions import DomainException
from pos_inventory.domain.model.value_objects import to_decimal
from pos_inventory.infrastructure.bootstrap import audit_ledger
from pos_inventory.infrastructure.cli.common import actor_options, as_utc, make_actor


def _display_entries(entries: list[AuditEntryDTO]) -> None:
    if not entries:
        click.echo("No audit entries found.")
        return
    for entry in entries:
        flags = ", ".join(
            f"{f.type}{' (resolved)' if f.resolved else ''}" for f in entry.flags
        )
        click.echo(
            f"{entry.timestamp}  {entry.reference_type:<18} {entry.reference_id:<16} "
            f"qty={entry.quantity_impact:<8} value={entry.value_impact:<9} "
            f"by={entry.performed_by}  id={entry.id}"
        )
        if flags:
            click.echo(f"    flags: {flags}")


@click.command("history")
@click.option("--ingredient", "ingredient_id", required=True, help="Ingredient id.")
@click.option("--limit", type=int, default=50, show_default=True)
@click.option("--type", "types", multiple=True, help="Only these reference types.")
@click.option("--since", type=click.DateTime(), default=None, help="Start (UTC).")
@click.option("--until", type=click.DateTime(), default=None, help="End (UTC).")
def audit_history(ingredient_id, limit, types, since, until) -> None:
    """Show the ledger history for one ingredient."""
    handler = AuditHistoryHandler(audit_ledger())

    try:
        entries = handler.handle(
            ingredient_id,
            limit=limit,
            start=as_utc(since),
            end=as_utc(until),
            reference_types=list(types),
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_entries(entries)


@click.command("summary")
@click.option("--since", type=click.DateTime(), default=None, help="Start (UTC).")
@click.option("--until", type=click.DateTime(), default=None, help="End (UTC).")
def audit_summary(since, until) -> None:
    """Totals per event type."""
    handler = AuditSummaryHandler(audit_ledger())

    try:
        rows = handler.handle(as_utc(since), as_utc(until))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not rows:
        click.echo("No audit entries found.")
        return
    click.echo(f"{'Type':<20} {'Count':>6} {'Quantity':>12} {'Value':>12} {'Average':>10}")
    click.echo("-" * 64)
    for row in rows:
        click.echo(
            f"{row.reference_type:<20} {row.count:>6} {row.total_quantity_impact:>12} "
            f"{row.total_value_impact:>12} {row.average_value_impact:>10}"
        )


@click.command("review")
@click.option("--value-threshold", default=None, help="Value cut-off.")
@click.option("--quantity-threshold", default=None, help="Quantity cut-off.")
@click.option("--include-resolved", is_flag=True, default=False)
def audit_review(value_threshold, quantity_threshold, include_resolved) -> None:
    """Entries large or flagged enough to need a second look."""
    handler = AuditReviewHandler(audit_ledger())

    try:
        entries = handler.handle(
            value_threshold=(
                to_decimal(value_threshold, "Value threshold") if value_threshold else None
            ),
            quantity_threshold=(
                to_decimal(quantity_threshold, "Quantity threshold")
                if quantity_threshold else None
            ),
            include_resolved=include_resolved,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_entries(entries)


@click.command("resolve")
@click.option("--entry", "entry_id", required=True, help="Audit entry id.")
@click.option("--flag", "flag_index", type=int, default=0, show_default=True, help="Flag number.")
@actor_options
def audit_resolve(entry_id: str, flag_index: int, actor_id: str, position: str) -> None:
    """Mark a compliance flag as resolved."""
    handler = ResolveComplianceFlagHandler(audit_ledger())

    try:
        flag = handler.handle(entry_id, flag_index, make_actor(actor_id, position))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Resolved {flag} flag on {entry_id}")


@click.command("export")
@click.option("--type", "types", multiple=True, help="Only these reference types.")
@click.option("--performed-by", default=None, help="Only entries by this user.")
@click.option("--since", type=click.DateTime(), default=None, help="Start (UTC).")
@click.option("--until", type=click.DateTime(), default=None, help="End (UTC).")
def audit_export(types, performed_by, since, until) -> None:
    """Export ledger entries with totals."""
    handler = AuditExportHandler(audit_ledger())

    try:
        dto = handler.handle(
            start=as_utc(since),
            end=as_utc(until),
            reference_types=list(types),
            performed_by=performed_by,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_entries(dto.entries)
    click.echo()
    click.echo(
        f"Records: {dto.total_records}  value: {dto.total_value_impact}  "
        f"quantity: {dto.total_quantity_impact}"
    )
    for ref_type, count in sorted(dto.type_breakdown.items()):
        click.echo(f"  {ref_type}: {count}")

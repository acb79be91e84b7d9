"""Application services: Audit Ledger queries.

Read-only views over the ledger for the back office: one ingredient's
history, totals per event type, entries that need a second look, and a
filtered export.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pos_inventory.application.dto import fmt_quantity, fmt_time
from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.audit import AuditEntry, ReferenceType
from pos_inventory.domain.service.audit_service import AuditLedger


@dataclass(frozen=True)
class AuditFlagDTO:
    type: str
    description: str
    resolved: bool
    resolved_by: str | None


@dataclass(frozen=True)
class AuditEntryDTO:
    id: str
    reference_id: str
    reference_type: str
    performed_by: str
    timestamp: str
    quantity_impact: str
    value_impact: str
    ingredients: list[str]
    flags: list[AuditFlagDTO]
    authorized_by: str | None = None


@dataclass(frozen=True)
class TypeSummaryDTO:
    reference_type: str
    count: int
    total_quantity_impact: str
    total_value_impact: str
    average_value_impact: str


@dataclass(frozen=True)
class AuditExportDTO:
    entries: list[AuditEntryDTO]
    total_records: int
    type_breakdown: dict[str, int]
    total_value_impact: str
    total_quantity_impact: str


def entry_to_dto(entry: AuditEntry) -> AuditEntryDTO:
    return AuditEntryDTO(
        id=entry.id,
        reference_id=entry.reference_id,
        reference_type=entry.reference_type.value,
        performed_by=entry.performed_by,
        timestamp=fmt_time(entry.timestamp),
        quantity_impact=fmt_quantity(entry.total_quantity_impact),
        value_impact=f"{entry.total_value_impact:.2f}",
        ingredients=[line.ingredient_id for line in entry.lines],
        flags=[
            AuditFlagDTO(
                type=flag.type.value,
                description=flag.description,
                resolved=flag.resolved,
                resolved_by=flag.resolved_by,
            )
            for flag in entry.flags
        ],
        authorized_by=entry.authorized_by,
    )


def _parse_types(names: list[str] | None) -> list[ReferenceType] | None:
    if not names:
        return None
    try:
        return [ReferenceType(name) for name in names]
    except ValueError as exc:
        raise ValidationError(f"Unknown reference type: {exc}") from exc


class AuditHistoryHandler:

    def __init__(self, ledger: AuditLedger) -> None:
        self._ledger = ledger

    def handle(
        self,
        ingredient_id: str,
        limit: int = 50,
        start: datetime | None = None,
        end: datetime | None = None,
        reference_types: list[str] | None = None,
    ) -> list[AuditEntryDTO]:
        entries = self._ledger.item_history(
            ingredient_id,
            limit=limit,
            start=start,
            end=end,
            reference_types=_parse_types(reference_types),
        )
        return [entry_to_dto(e) for e in entries]


class AuditSummaryHandler:

    def __init__(self, ledger: AuditLedger) -> None:
        self._ledger = ledger

    def handle(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TypeSummaryDTO]:
        return [
            TypeSummaryDTO(
                reference_type=s.reference_type.value,
                count=s.count,
                total_quantity_impact=fmt_quantity(s.total_quantity_impact),
                total_value_impact=f"{s.total_value_impact:.2f}",
                average_value_impact=f"{s.average_value_impact:.2f}",
            )
            for s in self._ledger.summary_by_type(start, end)
        ]


class AuditReviewHandler:

    def __init__(self, ledger: AuditLedger) -> None:
        self._ledger = ledger

    def handle(
        self,
        value_threshold: Decimal | None = None,
        quantity_threshold: Decimal | None = None,
        include_resolved: bool = False,
    ) -> list[AuditEntryDTO]:
        entries = self._ledger.adjustments_for_review(
            value_threshold=value_threshold,
            quantity_threshold=quantity_threshold,
            include_resolved=include_resolved,
        )
        return [entry_to_dto(e) for e in entries]


class AuditExportHandler:

    def __init__(self, ledger: AuditLedger) -> None:
        self._ledger = ledger

    def handle(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        reference_types: list[str] | None = None,
        performed_by: str | None = None,
    ) -> AuditExportDTO:
        export = self._ledger.export(
            start=start,
            end=end,
            reference_types=_parse_types(reference_types),
            performed_by=performed_by,
        )
        return AuditExportDTO(
            entries=[entry_to_dto(e) for e in export.entries],
            total_records=export.total_records,
            type_breakdown=export.type_breakdown,
            total_value_impact=f"{export.total_value_impact:.2f}",
            total_quantity_impact=fmt_quantity(export.total_quantity_impact),
        )

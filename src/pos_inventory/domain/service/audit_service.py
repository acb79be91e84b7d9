"""Domain service: Audit Ledger.

Every stock-affecting event ends up here as one ``AuditEntry``.  ``record``
enriches each change with the stock picture at write time (quantity
before and after, unit cost), evaluates the compliance rules and appends
the entry.

``record`` joins the caller's transaction when one is open on this thread,
so an entry and the stock change it describes commit or roll back
together.  Called on its own it commits by itself.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

import structlog

from pos_inventory.domain.exceptions import EntityNotFoundError
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.audit import (
    AuditEntry,
    AuditLine,
    ComplianceFlag,
    FlagType,
    ReferenceType,
    StockChange,
)
from pos_inventory.domain.model.clock import Clock, utc_now
from pos_inventory.domain.model.units import convert
from pos_inventory.domain.model.value_objects import CENT
from pos_inventory.domain.repository.unit_of_work import UnitOfWork

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LedgerPolicy:
    high_value_threshold: Decimal = Decimal("500")
    large_quantity_threshold: Decimal = Decimal("100")
    review_value_threshold: Decimal = Decimal("100")
    review_quantity_threshold: Decimal = Decimal("50")


@dataclass(frozen=True)
class TypeSummary:
    reference_type: ReferenceType
    count: int
    total_quantity_impact: Decimal
    total_value_impact: Decimal

    @property
    def average_value_impact(self) -> Decimal:
        if not self.count:
            return Decimal("0")
        return (self.total_value_impact / self.count).quantize(CENT)


@dataclass(frozen=True)
class AuditExport:
    entries: tuple[AuditEntry, ...]
    type_breakdown: dict[str, int] = field(default_factory=dict)
    total_value_impact: Decimal = Decimal("0")
    total_quantity_impact: Decimal = Decimal("0")

    @property
    def total_records(self) -> int:
        return len(self.entries)


class AuditLedger:

    def __init__(
        self,
        uow: UnitOfWork,
        policy: LedgerPolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._uow = uow
        self._policy = policy or LedgerPolicy()
        self._clock = clock

    # --- Write side -----------------------------------------------------------

    def record(
        self,
        reference_id: str,
        reference_type: ReferenceType,
        changes: list[StockChange],
        actor: Actor,
        authorized_by: str | None = None,
        notes: str = "",
        system_generated: bool = False,
        override_reason: str | None = None,
    ) -> AuditEntry:
        standalone = not self._uow.in_transaction
        with self._uow:
            lines = [self._enrich(change) for change in changes]
            entry = AuditEntry.create(
                reference_id=reference_id,
                reference_type=reference_type,
                lines=lines,
                performed_by=actor.id,
                timestamp=self._clock(),
                authorized_by=authorized_by,
                notes=notes,
                system_generated=system_generated,
                override_reason=override_reason,
            )
            entry.flags = self._compliance_flags(entry)
            self._uow.audit.add(entry)
            if standalone:
                self._uow.commit()

        logger.info(
            "audit_entry_recorded",
            entry_id=entry.id,
            reference_id=entry.reference_id,
            reference_type=entry.reference_type.value,
            value_impact=str(entry.total_value_impact),
            flags=[flag.type.value for flag in entry.flags],
        )
        return entry

    def resolve_flag(self, entry_id: str, flag_index: int, resolver: Actor) -> AuditEntry:
        with self._uow:
            entry = self._uow.audit.get_by_id(entry_id)
            if entry is None:
                raise EntityNotFoundError(f"Audit entry '{entry_id}' not found")
            flag = entry.resolve_flag(flag_index, resolver.id, self._clock())
            self._uow.audit.save_flags(entry)
            self._uow.commit()

        logger.info(
            "compliance_flag_resolved",
            entry_id=entry_id,
            flag=flag.type.value,
            resolved_by=resolver.id,
        )
        return entry

    # --- Read side ------------------------------------------------------------

    def item_history(
        self,
        ingredient_id: str,
        limit: int = 50,
        start: datetime | None = None,
        end: datetime | None = None,
        reference_types: list[ReferenceType] | None = None,
    ) -> list[AuditEntry]:
        """Entries touching one ingredient, newest first."""
        entries = [
            e for e in self._entries_between(start, end)
            if e.touches(ingredient_id)
            and (not reference_types or e.reference_type in reference_types)
        ]
        return entries[:limit]

    def summary_by_type(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[TypeSummary]:
        """Totals per reference type, largest value impact first."""
        grouped: dict[ReferenceType, list[AuditEntry]] = {}
        for entry in self._entries_between(start, end):
            grouped.setdefault(entry.reference_type, []).append(entry)

        summaries = [
            TypeSummary(
                reference_type=ref_type,
                count=len(entries),
                total_quantity_impact=sum(
                    (e.total_quantity_impact for e in entries), Decimal("0")
                ),
                total_value_impact=sum(
                    (e.total_value_impact for e in entries), Decimal("0")
                ),
            )
            for ref_type, entries in grouped.items()
        ]
        summaries.sort(key=lambda s: abs(s.total_value_impact), reverse=True)
        return summaries

    def adjustments_for_review(
        self,
        value_threshold: Decimal | None = None,
        quantity_threshold: Decimal | None = None,
        include_resolved: bool = False,
    ) -> list[AuditEntry]:
        """Large entries, or flagged ones, that someone should look at.

        Entries whose flags have all been resolved drop out unless
        ``include_resolved`` is set.
        """
        value_limit = (
            value_threshold if value_threshold is not None
            else self._policy.review_value_threshold
        )
        quantity_limit = (
            quantity_threshold if quantity_threshold is not None
            else self._policy.review_quantity_threshold
        )

        selected = []
        for entry in self._entries_between(None, None):
            large = (
                abs(entry.total_value_impact) > value_limit
                or entry.total_quantity_impact > quantity_limit
            )
            if not (large or entry.flags):
                continue
            if entry.flags and not entry.has_open_flags and not include_resolved:
                continue
            selected.append(entry)
        return selected

    def export(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        reference_types: list[ReferenceType] | None = None,
        performed_by: str | None = None,
    ) -> AuditExport:
        entries = [
            e for e in self._entries_between(start, end)
            if (not reference_types or e.reference_type in reference_types)
            and (performed_by is None or e.performed_by == performed_by)
        ]
        breakdown = Counter(e.reference_type.value for e in entries)
        return AuditExport(
            entries=tuple(entries),
            type_breakdown=dict(breakdown),
            total_value_impact=sum((e.total_value_impact for e in entries), Decimal("0")),
            total_quantity_impact=sum(
                (e.total_quantity_impact for e in entries), Decimal("0")
            ),
        )

    # --- Internal helpers -----------------------------------------------------

    def _entries_between(self, start: datetime | None, end: datetime | None) -> list[AuditEntry]:
        with self._uow:
            entries = self._uow.audit.list_all()
        return [
            e for e in entries
            if (start is None or e.timestamp >= start)
            and (end is None or e.timestamp <= end)
        ]

    def _enrich(self, change: StockChange) -> AuditLine:
        ingredient = self._uow.ingredients.get_by_id(change.ingredient_id)
        if ingredient is None:
            raise EntityNotFoundError(f"Ingredient '{change.ingredient_id}' not found")

        unit = change.unit or ingredient.unit
        delta = convert(change.delta, unit, ingredient.unit)
        before = (
            change.quantity_before if change.quantity_before is not None
            else ingredient.on_hand
        )
        if change.value_impact is not None:
            value = change.value_impact
        else:
            value = (ingredient.unit_cost.amount * delta).quantize(CENT)

        return AuditLine(
            ingredient_id=ingredient.id,
            quantity_before=before,
            quantity_after=before + delta,
            delta=delta,
            unit=ingredient.unit,
            reason=change.reason or "System adjustment",
            unit_cost=ingredient.unit_cost.amount,
            value_impact=value,
        )

    def _compliance_flags(self, entry: AuditEntry) -> list[ComplianceFlag]:
        flags: list[ComplianceFlag] = []
        value = abs(entry.total_value_impact)
        if value > self._policy.high_value_threshold:
            flags.append(
                ComplianceFlag(
                    type=FlagType.VARIANCE_THRESHOLD,
                    description=f"High value adjustment: ${value:.2f}",
                )
            )
        if entry.total_quantity_impact > self._policy.large_quantity_threshold:
            flags.append(
                ComplianceFlag(
                    type=FlagType.VARIANCE_THRESHOLD,
                    description=(
                        f"Large quantity adjustment: {entry.total_quantity_impact} units"
                    ),
                )
            )
        if entry.reference_type is ReferenceType.WASTE:
            flags.append(
                ComplianceFlag(
                    type=FlagType.FOOD_SAFETY,
                    description="Waste adjustment requires food safety review",
                )
            )
        if entry.reference_type is ReferenceType.MANUAL_ADJUSTMENT and not entry.authorized_by:
            flags.append(
                ComplianceFlag(
                    type=FlagType.AUDIT_REQUIRED,
                    description="Manual adjustment without authorization",
                )
            )
        if entry.override_reason:
            flags.append(
                ComplianceFlag(
                    type=FlagType.MANAGER_OVERRIDE,
                    description=f"Manager override: {entry.override_reason}",
                )
            )
        return flags

"""AuditEntry: immutable record of one stock-affecting event.

Entries are append-only.  The only mutation ever applied after creation is
marking a compliance flag resolved.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pos_inventory.domain.exceptions import StateConflictError, ValidationError
from pos_inventory.domain.model.units import Unit


class ReferenceType(Enum):
    ORDER_RESERVATION = "order_reservation"
    ORDER_CONSUMPTION = "order_consumption"
    ORDER_RELEASE = "order_release"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    RECEIVING = "receiving"
    WASTE = "waste"
    THEFT_LOSS = "theft_loss"
    RECIPE_TEST = "recipe_test"
    SYSTEM_CORRECTION = "system_correction"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"
    PROMOTION_SAMPLE = "promotion_sample"


class FlagType(Enum):
    FOOD_SAFETY = "food_safety"
    REGULATORY = "regulatory"
    AUDIT_REQUIRED = "audit_required"
    VARIANCE_THRESHOLD = "variance_threshold"
    MANAGER_OVERRIDE = "manager_override"


@dataclass(frozen=True)
class StockChange:
    """Input to the ledger: what happened to one ingredient.

    ``delta`` is in ``unit`` (defaults to the ingredient's stock unit).
    Leave ``value_impact`` unset to have the ledger price it at the
    ingredient's current unit cost.
    """

    ingredient_id: str
    delta: Decimal
    reason: str
    unit: Unit | None = None
    value_impact: Decimal | None = None
    quantity_before: Decimal | None = None


@dataclass(frozen=True)
class AuditLine:
    ingredient_id: str
    quantity_before: Decimal
    quantity_after: Decimal
    delta: Decimal
    unit: Unit
    reason: str
    unit_cost: Decimal
    value_impact: Decimal


@dataclass
class ComplianceFlag:
    type: FlagType
    description: str
    resolved: bool = False
    resolved_by: str | None = None
    resolved_at: datetime | None = None


@dataclass
class AuditEntry:
    id: str
    reference_id: str
    reference_type: ReferenceType
    lines: list[AuditLine]
    performed_by: str
    timestamp: datetime
    authorized_by: str | None = None
    notes: str = ""
    system_generated: bool = False
    override_reason: str | None = None
    flags: list[ComplianceFlag] = field(default_factory=list)

    @staticmethod
    def create(
        reference_id: str,
        reference_type: ReferenceType,
        lines: list[AuditLine],
        performed_by: str,
        timestamp: datetime,
        authorized_by: str | None = None,
        notes: str = "",
        system_generated: bool = False,
        override_reason: str | None = None,
    ) -> AuditEntry:
        if not reference_id or not str(reference_id).strip():
            raise ValidationError("Reference id is required for traceability")
        if not performed_by:
            raise ValidationError("User performing adjustment is required")
        if not lines:
            raise ValidationError("An audit entry must describe at least one ingredient")
        if len(notes) > 1000:
            raise ValidationError("Notes cannot exceed 1000 characters")
        return AuditEntry(
            id=uuid.uuid4().hex,
            reference_id=str(reference_id),
            reference_type=reference_type,
            lines=list(lines),
            performed_by=performed_by,
            timestamp=timestamp,
            authorized_by=authorized_by,
            notes=notes,
            system_generated=system_generated,
            override_reason=override_reason,
        )

    # --- Computed totals ------------------------------------------------------

    @property
    def total_quantity_impact(self) -> Decimal:
        return sum((abs(line.delta) for line in self.lines), Decimal("0"))

    @property
    def total_value_impact(self) -> Decimal:
        return sum((line.value_impact for line in self.lines), Decimal("0"))

    @property
    def net_quantity_change(self) -> Decimal:
        return sum((line.delta for line in self.lines), Decimal("0"))

    @property
    def has_open_flags(self) -> bool:
        return any(not flag.resolved for flag in self.flags)

    def touches(self, ingredient_id: str) -> bool:
        return any(line.ingredient_id == ingredient_id for line in self.lines)

    # --- The one permitted mutation -------------------------------------------

    def resolve_flag(self, index: int, resolved_by: str, now: datetime) -> ComplianceFlag:
        if index < 0 or index >= len(self.flags):
            raise ValidationError(
                f"Audit entry {self.id} has no compliance flag #{index}"
            )
        flag = self.flags[index]
        if flag.resolved:
            raise StateConflictError(
                f"Compliance flag #{index} on {self.id} is already resolved"
            )
        flag.resolved = True
        flag.resolved_by = resolved_by
        flag.resolved_at = now
        return flag

"""JSON-document-backed implementation of AuditRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pos_inventory.domain.exceptions import EntityNotFoundError
from pos_inventory.domain.model.audit import (
    AuditEntry,
    AuditLine,
    ComplianceFlag,
    FlagType,
    ReferenceType,
)
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.repository.audit_repository import AuditRepository
from pos_inventory.infrastructure.persistence.json_document import JsonDocument


class JsonAuditRepository(AuditRepository):

    def __init__(self, document: JsonDocument) -> None:
        self._document = document

    # --- AuditRepository interface --------------------------------------------

    def get_by_id(self, entry_id: str) -> AuditEntry | None:
        for raw in self._records():
            if raw["id"] == entry_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[AuditEntry]:
        entries = [self._to_domain(raw) for raw in reversed(self._records())]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries

    def add(self, entry: AuditEntry) -> None:
        self._records().append(self._to_raw(entry))

    def save_flags(self, entry: AuditEntry) -> None:
        for raw in self._records():
            if raw["id"] == entry.id:
                raw["flags"] = [self._flag_to_raw(flag) for flag in entry.flags]
                return
        raise EntityNotFoundError(f"Audit entry '{entry.id}' not found")

    # --- Serialization --------------------------------------------------------

    @classmethod
    def _to_raw(cls, entry: AuditEntry) -> dict:
        return {
            "id": entry.id,
            "reference_id": entry.reference_id,
            "reference_type": entry.reference_type.value,
            "performed_by": entry.performed_by,
            "timestamp": entry.timestamp.isoformat(),
            "authorized_by": entry.authorized_by,
            "notes": entry.notes,
            "system_generated": entry.system_generated,
            "override_reason": entry.override_reason,
            "lines": [
                {
                    "ingredient_id": line.ingredient_id,
                    "quantity_before": str(line.quantity_before),
                    "quantity_after": str(line.quantity_after),
                    "delta": str(line.delta),
                    "unit": line.unit.value,
                    "reason": line.reason,
                    "unit_cost": str(line.unit_cost),
                    "value_impact": str(line.value_impact),
                }
                for line in entry.lines
            ],
            "flags": [cls._flag_to_raw(flag) for flag in entry.flags],
        }

    @staticmethod
    def _flag_to_raw(flag: ComplianceFlag) -> dict:
        return {
            "type": flag.type.value,
            "description": flag.description,
            "resolved": flag.resolved,
            "resolved_by": flag.resolved_by,
            "resolved_at": flag.resolved_at.isoformat() if flag.resolved_at else None,
        }

    @staticmethod
    def _to_domain(raw: dict) -> AuditEntry:
        return AuditEntry(
            id=raw["id"],
            reference_id=raw["reference_id"],
            reference_type=ReferenceType(raw["reference_type"]),
            performed_by=raw["performed_by"],
            timestamp=datetime.fromisoformat(raw["timestamp"]),
            authorized_by=raw.get("authorized_by"),
            notes=raw.get("notes", ""),
            system_generated=raw.get("system_generated", False),
            override_reason=raw.get("override_reason"),
            lines=[
                AuditLine(
                    ingredient_id=ln["ingredient_id"],
                    quantity_before=Decimal(ln["quantity_before"]),
                    quantity_after=Decimal(ln["quantity_after"]),
                    delta=Decimal(ln["delta"]),
                    unit=Unit(ln["unit"]),
                    reason=ln["reason"],
                    unit_cost=Decimal(ln["unit_cost"]),
                    value_impact=Decimal(ln["value_impact"]),
                )
                for ln in raw["lines"]
            ],
            flags=[
                ComplianceFlag(
                    type=FlagType(f["type"]),
                    description=f["description"],
                    resolved=f.get("resolved", False),
                    resolved_by=f.get("resolved_by"),
                    resolved_at=(
                        datetime.fromisoformat(f["resolved_at"]) if f.get("resolved_at") else None
                    ),
                )
                for f in raw.get("flags", [])
            ],
        )

    def _records(self) -> list[dict]:
        return self._document.section("audit_entries")

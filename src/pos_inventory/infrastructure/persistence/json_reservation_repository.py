"""JSON-document-backed implementation of ReservationRepository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pos_inventory.domain.exceptions import (
    ConcurrencyConflictError,
    DuplicateReservationError,
    EntityNotFoundError,
)
from pos_inventory.domain.model.reservation import (
    BatchAllocation,
    LineStatus,
    ManagerOverride,
    Reservation,
    ReservationLine,
    ReservationStatus,
    ReservationType,
)
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money
from pos_inventory.domain.repository.reservation_repository import ReservationRepository
from pos_inventory.infrastructure.persistence.json_document import JsonDocument


def _dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class JsonReservationRepository(ReservationRepository):

    def __init__(self, document: JsonDocument) -> None:
        self._document = document

    # --- ReservationRepository interface --------------------------------------

    def get_by_id(self, reservation_id: str) -> Reservation | None:
        for raw in self._records():
            if raw["id"] == reservation_id:
                return self._to_domain(raw)
        return None

    def get_by_order_id(self, order_id: str) -> Reservation | None:
        for raw in self._records():
            if raw["order_id"] == order_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Reservation]:
        reservations = [self._to_domain(raw) for raw in reversed(self._records())]
        reservations.sort(key=lambda r: r.created_at, reverse=True)
        return reservations

    def add(self, reservation: Reservation) -> None:
        records = self._records()
        if any(raw["order_id"] == reservation.order_id for raw in records):
            raise DuplicateReservationError(
                f"A reservation already exists for order {reservation.order_id}"
            )
        records.append(self._to_raw(reservation))

    def update(self, reservation: Reservation) -> None:
        records = self._records()
        for i, raw in enumerate(records):
            if raw["id"] != reservation.id:
                continue
            if raw["version"] != reservation.version:
                raise ConcurrencyConflictError(
                    f"Reservation {reservation.id} was modified concurrently "
                    f"(expected version {reservation.version}, found {raw['version']})"
                )
            reservation.version += 1
            records[i] = self._to_raw(reservation)
            return
        raise EntityNotFoundError(f"Reservation '{reservation.id}' not found")

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(reservation: Reservation) -> dict:
        override = reservation.override
        return {
            "id": reservation.id,
            "order_id": reservation.order_id,
            "status": reservation.status.value,
            "reservation_type": reservation.reservation_type.value,
            "version": reservation.version,
            "created_at": _iso(reservation.created_at),
            "created_by": reservation.created_by,
            "updated_at": _iso(reservation.updated_at),
            "modified_by": reservation.modified_by,
            "expires_at": _iso(reservation.expires_at),
            "original_expires_at": _iso(reservation.original_expires_at),
            "extended_by": reservation.extended_by,
            "extended_at": _iso(reservation.extended_at),
            "extension_reason": reservation.extension_reason,
            "notes": reservation.notes,
            "override": (
                {
                    "reason": override.reason,
                    "approved_by": override.approved_by,
                    "approved_at": _iso(override.approved_at),
                }
                if override
                else None
            ),
            "lines": [
                {
                    "ingredient_id": line.ingredient_id,
                    "quantity_reserved": str(line.quantity_reserved),
                    "unit": line.unit.value,
                    "status": line.status.value,
                    "unit_cost": str(line.unit_cost.amount),
                    "line_cost": str(line.line_cost.amount),
                    "currency": line.line_cost.currency,
                    "reserved_at": _iso(line.reserved_at),
                    "substituted_for": line.substituted_for,
                    "shortfall": str(line.shortfall),
                    "batch_allocations": [
                        {
                            "batch_id": b.batch_id,
                            "quantity": str(b.quantity),
                            "lot_number": b.lot_number,
                        }
                        for b in line.batch_allocations
                    ],
                }
                for line in reservation.lines
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Reservation:
        lines = [
            ReservationLine(
                ingredient_id=ln["ingredient_id"],
                quantity_reserved=Decimal(ln["quantity_reserved"]),
                unit=Unit(ln["unit"]),
                unit_cost=Money(Decimal(ln["unit_cost"]), ln.get("currency", "USD")),
                line_cost=Money(Decimal(ln["line_cost"]), ln.get("currency", "USD")),
                status=LineStatus(ln["status"]),
                reserved_at=_dt(ln.get("reserved_at")),
                substituted_for=ln.get("substituted_for"),
                shortfall=Decimal(ln.get("shortfall", "0")),
                batch_allocations=[
                    BatchAllocation(
                        batch_id=b["batch_id"],
                        quantity=Decimal(b["quantity"]),
                        lot_number=b.get("lot_number", "AGGREGATE"),
                    )
                    for b in ln.get("batch_allocations", [])
                ],
            )
            for ln in raw["lines"]
        ]
        override = raw.get("override")
        return Reservation(
            id=raw["id"],
            order_id=raw["order_id"],
            lines=lines,
            expires_at=datetime.fromisoformat(raw["expires_at"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
            created_by=raw["created_by"],
            status=ReservationStatus(raw["status"]),
            reservation_type=ReservationType(raw.get("reservation_type", "automatic")),
            modified_by=raw.get("modified_by"),
            updated_at=_dt(raw.get("updated_at")),
            version=raw.get("version", 0),
            override=(
                ManagerOverride(
                    reason=override["reason"],
                    approved_by=override["approved_by"],
                    approved_at=datetime.fromisoformat(override["approved_at"]),
                )
                if override
                else None
            ),
            notes=raw.get("notes", ""),
            original_expires_at=_dt(raw.get("original_expires_at")),
            extended_by=raw.get("extended_by"),
            extended_at=_dt(raw.get("extended_at")),
            extension_reason=raw.get("extension_reason"),
        )

    def _records(self) -> list[dict]:
        return self._document.section("reservations")

"""Data Transfer Objects: plain containers that cross layer boundaries.

DTOs carry data between the CLI and application layers without exposing
domain internals.  Quantities and money are pre-formatted strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from pos_inventory.domain.model.availability import AvailabilityReport, IngredientCheck
from pos_inventory.domain.model.recipe import OrderLine
from pos_inventory.domain.model.reservation import Reservation


@dataclass(frozen=True)
class OrderItemSpec:
    """Input: one order line as the caller gives it (menu item + how many)."""

    menu_item_id: str
    quantity: int

    def to_order_line(self) -> OrderLine:
        return OrderLine(menu_item_id=self.menu_item_id, quantity=self.quantity)


@dataclass(frozen=True)
class IngredientDTO:
    id: str
    name: str
    unit: str
    on_hand: str
    reserved: str
    available: str
    minimum_stock: str
    unit_cost: str
    low_stock: bool


@dataclass(frozen=True)
class IngredientCheckDTO:
    ingredient_id: str
    ingredient_name: str
    required: str
    available: str
    unit: str
    sufficient: bool
    shortage: str
    is_required: bool
    substitutes: list[str]


@dataclass(frozen=True)
class AvailabilityDTO:
    feasible: bool
    fully_available: bool
    tracked: bool
    checks: list[IngredientCheckDTO]


@dataclass(frozen=True)
class ReservationLineDTO:
    ingredient_id: str
    quantity: str
    unit: str
    status: str
    line_cost: str
    substituted_for: str | None
    shortfall: str


@dataclass(frozen=True)
class ReservationDTO:
    id: str
    order_id: str
    status: str
    reservation_type: str
    lines: list[ReservationLineDTO]
    total_value: str
    created_at: str
    expires_at: str
    remaining_minutes: int
    version: int
    override_by: str | None = None


@dataclass(frozen=True)
class OrderOutcomeDTO:
    """Output of completing or cancelling an order."""

    order_id: str
    has_inventory_integration: bool
    message: str
    reservation_id: str | None = None
    status: str | None = None


# --- Mapping helpers shared by several handlers --------------------------------


def fmt_quantity(value: Decimal) -> str:
    normalized = value.normalize()
    return f"{normalized:f}"


def fmt_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M UTC")


def check_to_dto(check: IngredientCheck) -> IngredientCheckDTO:
    return IngredientCheckDTO(
        ingredient_id=check.ingredient_id,
        ingredient_name=check.ingredient_name,
        required=fmt_quantity(check.required),
        available=fmt_quantity(check.available),
        unit=check.unit.value,
        sufficient=check.sufficient,
        shortage=fmt_quantity(check.shortage),
        is_required=check.is_required,
        substitutes=list(check.substitutes),
    )


def report_to_dto(report: AvailabilityReport) -> AvailabilityDTO:
    return AvailabilityDTO(
        feasible=report.is_feasible,
        fully_available=report.is_available,
        tracked=report.has_ingredient_tracking,
        checks=[check_to_dto(c) for c in report.checks],
    )


def reservation_to_dto(reservation: Reservation, now: datetime) -> ReservationDTO:
    return ReservationDTO(
        id=reservation.id,
        order_id=reservation.order_id,
        status=reservation.effective_status(now).value,
        reservation_type=reservation.reservation_type.value,
        lines=[
            ReservationLineDTO(
                ingredient_id=line.ingredient_id,
                quantity=fmt_quantity(line.quantity_reserved),
                unit=line.unit.value,
                status=line.status.value,
                line_cost=str(line.line_cost),
                substituted_for=line.substituted_for,
                shortfall=fmt_quantity(line.shortfall),
            )
            for line in reservation.lines
        ],
        total_value=str(reservation.total_reserved_value),
        created_at=fmt_time(reservation.created_at),
        expires_at=fmt_time(reservation.expires_at),
        remaining_minutes=reservation.remaining_minutes(now),
        version=reservation.version,
        override_by=reservation.override.approved_by if reservation.override else None,
    )

"""Requests to and results from the Reservation Engine.

Expected outcomes of ``create_reservation`` (bad input, not enough stock,
a rejected override) come back as a ``ReservationResult`` with
``success=False`` and an ``error`` code the caller can branch on.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.availability import (
    AvailabilityReport,
    IngredientCheck,
    SubstitutionOption,
)
from pos_inventory.domain.model.reservation import (
    Reservation,
    ReservationLine,
    ReservationStatus,
)
from pos_inventory.domain.model.value_objects import Money

VALIDATION_FAILED = "validation_failed"
INSUFFICIENT_INVENTORY = "insufficient_inventory"
NOTHING_RESERVABLE = "nothing_reservable"


@dataclass(frozen=True)
class OverrideRequest:
    """A manager vouching for an order the stock cannot cover.

    ``approver`` defaults to the actor placing the reservation.
    """

    reason: str
    approver: Actor | None = None


@dataclass(frozen=True)
class ReservationOptions:
    allow_partial: bool = False
    manager_override: OverrideRequest | None = None
    ttl_minutes: int | None = None
    notes: str = ""


@dataclass(frozen=True)
class ReservationResult:
    success: bool
    message: str
    reservation: Reservation | None = None
    error: str | None = None
    is_idempotent: bool = False
    has_ingredient_tracking: bool = True
    availability: AvailabilityReport | None = None

    @property
    def insufficient(self) -> tuple[IngredientCheck, ...]:
        if self.availability is None:
            return ()
        return self.availability.blocking

    @property
    def substitution_options(self) -> tuple[SubstitutionOption, ...]:
        if self.availability is None:
            return ()
        return self.availability.substitution_options

    @property
    def can_retry_with_override(self) -> bool:
        return self.error == INSUFFICIENT_INVENTORY

    @property
    def total_value(self) -> Money | None:
        return self.reservation.total_reserved_value if self.reservation else None

    @property
    def expires_at(self) -> datetime | None:
        return self.reservation.expires_at if self.reservation else None

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def created(reservation: Reservation, report: AvailabilityReport) -> ReservationResult:
        return ReservationResult(
            success=True,
            message=f"Reserved {len(reservation.lines)} ingredient(s)",
            reservation=reservation,
            availability=report,
        )

    @staticmethod
    def existing(reservation: Reservation) -> ReservationResult:
        return ReservationResult(
            success=True,
            message="Reservation already exists for this order",
            reservation=reservation,
            is_idempotent=True,
        )

    @staticmethod
    def untracked() -> ReservationResult:
        return ReservationResult(
            success=True,
            message="No ingredient tracking required",
            has_ingredient_tracking=False,
        )

    @staticmethod
    def failed(error: str, message: str, report: AvailabilityReport | None = None) -> ReservationResult:
        return ReservationResult(
            success=False, message=message, error=error, availability=report
        )


@dataclass(frozen=True)
class ConsumptionResult:
    reservation: Reservation
    consumed_lines: tuple[ReservationLine, ...]
    audit_entry_id: str | None

    @property
    def total_value(self) -> Money:
        total = Money.zero()
        for line in self.consumed_lines:
            total = total + line.line_cost
        return total


@dataclass(frozen=True)
class ReleaseResult:
    reservation: Reservation
    released_lines: tuple[ReservationLine, ...]
    already_released: bool = False
    was_expired: bool = False


@dataclass(frozen=True)
class ReservationStatusView:
    reservation: Reservation
    effective_status: ReservationStatus
    remaining_minutes: int

    @property
    def is_expired(self) -> bool:
        return self.effective_status is ReservationStatus.EXPIRED

    @property
    def items_reserved(self) -> int:
        return len(self.reservation.lines)

    @property
    def active_items(self) -> int:
        if self.is_expired:
            return 0
        return len(self.reservation.reserved_lines())

"""Reservation aggregate: the time-boxed hold on ingredients for one order.

Lifecycle::

    active ──► consumed
       │  └──► released
       └──► partial ──► consumed | released

``consumed`` and ``released`` are terminal.  A reservation that is still
open after ``expires_at`` is logically expired: it no longer holds stock and
can only be released.  ``version`` is bumped by the repository on every
successful compare-and-swap write.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from pos_inventory.domain.exceptions import (
    ReservationExpiredError,
    StateConflictError,
    ValidationError,
)
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money


class ReservationStatus(Enum):
    ACTIVE = "active"
    PARTIAL = "partial"
    CONSUMED = "consumed"
    EXPIRED = "expired"
    RELEASED = "released"


class LineStatus(Enum):
    RESERVED = "reserved"
    CONSUMED = "consumed"
    RELEASED = "released"
    EXPIRED = "expired"


class ReservationType(Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"
    OVERRIDE = "override"


OPEN_STATUSES = (ReservationStatus.ACTIVE, ReservationStatus.PARTIAL)
TERMINAL_STATUSES = (ReservationStatus.CONSUMED, ReservationStatus.RELEASED)


@dataclass(frozen=True)
class BatchAllocation:
    """Which lot a held quantity is expected to come from.

    Stock is tracked as one aggregate quantity per ingredient, so every
    line carries a single allocation against the aggregate lot.
    """

    batch_id: str
    quantity: Decimal
    lot_number: str = "AGGREGATE"


@dataclass
class ReservationLine:
    ingredient_id: str
    quantity_reserved: Decimal
    unit: Unit
    unit_cost: Money
    line_cost: Money
    status: LineStatus = LineStatus.RESERVED
    reserved_at: datetime | None = None
    batch_allocations: list[BatchAllocation] = field(default_factory=list)
    substituted_for: str | None = None
    shortfall: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        if self.quantity_reserved < 0:
            raise ValidationError("Quantity reserved cannot be negative")


@dataclass(frozen=True)
class ManagerOverride:
    reason: str
    approved_by: str
    approved_at: datetime


@dataclass
class Reservation:
    """Aggregate root for one order's ingredient holds.

    Use ``Reservation.create()`` for new reservations; ``__init__`` stays
    simple so repositories can reconstitute persisted records.
    """

    id: str
    order_id: str
    lines: list[ReservationLine]
    expires_at: datetime
    created_at: datetime
    created_by: str
    status: ReservationStatus = ReservationStatus.ACTIVE
    reservation_type: ReservationType = ReservationType.AUTOMATIC
    modified_by: str | None = None
    updated_at: datetime | None = None
    version: int = 0
    override: ManagerOverride | None = None
    notes: str = ""
    original_expires_at: datetime | None = None
    extended_by: str | None = None
    extended_at: datetime | None = None
    extension_reason: str | None = None

    # --- Factory (used for NEW reservations only) -----------------------------

    @staticmethod
    def create(
        order_id: str,
        lines: list[ReservationLine],
        actor: Actor,
        now: datetime,
        ttl_minutes: int,
        override: ManagerOverride | None = None,
        notes: str = "",
    ) -> Reservation:
        if not order_id or not str(order_id).strip():
            raise ValidationError("Order id is required")
        if not lines:
            raise ValidationError("A reservation must hold at least one ingredient")
        if ttl_minutes <= 0:
            raise ValidationError("Reservation TTL must be positive")

        for line in lines:
            line.reserved_at = now

        partial = any(line.shortfall > 0 for line in lines)
        return Reservation(
            id=uuid.uuid4().hex,
            order_id=str(order_id),
            lines=list(lines),
            expires_at=now + timedelta(minutes=ttl_minutes),
            created_at=now,
            created_by=actor.id,
            status=ReservationStatus.PARTIAL if partial else ReservationStatus.ACTIVE,
            reservation_type=(
                ReservationType.OVERRIDE if override else ReservationType.AUTOMATIC
            ),
            updated_at=now,
            override=override,
            notes=notes.strip(),
        )

    # --- Queries --------------------------------------------------------------

    @property
    def total_reserved_value(self) -> Money:
        total = Money.zero()
        for line in self.lines:
            total = total + line.line_cost
        return total

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now

    def holds_stock(self, now: datetime) -> bool:
        """True while this reservation still counts against availability."""
        return self.is_open and not self.is_expired(now)

    def effective_status(self, now: datetime) -> ReservationStatus:
        if self.is_open and self.is_expired(now):
            return ReservationStatus.EXPIRED
        return self.status

    def remaining_minutes(self, now: datetime) -> int:
        if not self.holds_stock(now):
            return 0
        return int((self.expires_at - now).total_seconds() // 60)

    def reserved_lines(self) -> list[ReservationLine]:
        return [line for line in self.lines if line.status is LineStatus.RESERVED]

    # --- State transitions ----------------------------------------------------

    def consume(self, actor: Actor, now: datetime) -> list[ReservationLine]:
        """Flip every held line to consumed and return those lines.

        Stock is deducted by the Reservation Engine in the same transaction.
        """
        if not self.is_open:
            raise StateConflictError(
                f"Cannot consume reservation {self.id} with status {self.status.value}"
            )
        if self.is_expired(now):
            raise ReservationExpiredError(
                f"Reservation {self.id} expired at {self.expires_at.isoformat()}"
            )
        held = self.reserved_lines()
        for line in held:
            line.status = LineStatus.CONSUMED
        self.status = ReservationStatus.CONSUMED
        self._touch(actor, now)
        return held

    def release(self, actor: Actor, reason: str, now: datetime) -> list[ReservationLine]:
        """Discard the hold without touching stock.

        Releasing an already released reservation is a no-op and returns no
        lines.  A consumed reservation cannot be released.
        """
        if self.status is ReservationStatus.RELEASED:
            return []
        if not self.is_open:
            raise StateConflictError(
                f"Cannot release reservation {self.id} with status {self.status.value}"
            )
        held = self.reserved_lines()
        for line in held:
            line.status = LineStatus.RELEASED
        self.status = ReservationStatus.RELEASED
        self.notes = f"{self.notes}\nReleased: {reason}".strip()
        self._touch(actor, now)
        return held

    def extend(self, minutes: int, actor: Actor, reason: str, now: datetime) -> None:
        if minutes <= 0:
            raise ValidationError("Extension must be a positive number of minutes")
        if self.status is not ReservationStatus.ACTIVE:
            raise StateConflictError(
                f"Cannot extend reservation {self.id} with status {self.status.value}"
            )
        if self.is_expired(now):
            raise ReservationExpiredError(
                f"Reservation {self.id} expired at {self.expires_at.isoformat()}"
            )
        if self.original_expires_at is None:
            self.original_expires_at = self.expires_at
        self.expires_at = self.expires_at + timedelta(minutes=minutes)
        self.extended_by = actor.id
        self.extended_at = now
        self.extension_reason = reason
        self._touch(actor, now)

    # --- Internal helpers -----------------------------------------------------

    def _touch(self, actor: Actor, now: datetime) -> None:
        self.modified_by = actor.id
        self.updated_at = now

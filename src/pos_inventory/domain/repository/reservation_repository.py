"""Abstract repository for the Reservation aggregate.

Implementations must enforce two storage-level guarantees:

* ``add`` rejects a second reservation for the same order id with
  ``DuplicateReservationError``.
* ``update`` is compare-and-swap: it only writes if the stored version
  equals ``reservation.version``, then bumps the version on both sides.
  A mismatch raises ``ConcurrencyConflictError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from pos_inventory.domain.model.reservation import Reservation


class ReservationRepository(ABC):

    @abstractmethod
    def get_by_id(self, reservation_id: str) -> Reservation | None:
        """Return a reservation by its id, or None."""

    @abstractmethod
    def get_by_order_id(self, order_id: str) -> Reservation | None:
        """Return the reservation for an order, or None."""

    @abstractmethod
    def list_all(self) -> list[Reservation]:
        """Return every reservation, newest first."""

    @abstractmethod
    def add(self, reservation: Reservation) -> None:
        """Persist a new reservation."""

    @abstractmethod
    def update(self, reservation: Reservation) -> None:
        """Persist changes to an existing reservation (compare-and-swap)."""

    def list_holding(self, ingredient_id: str, now: datetime) -> list[Reservation]:
        """Open, unexpired reservations with a held line for the ingredient."""
        return [
            r
            for r in self.list_all()
            if r.holds_stock(now)
            and any(line.ingredient_id == ingredient_id for line in r.reserved_lines())
        ]

    def list_expired(self, now: datetime) -> list[Reservation]:
        """Open reservations whose expiry has passed."""
        return [r for r in self.list_all() if r.is_open and r.is_expired(now)]

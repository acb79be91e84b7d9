"""Unit of Work: the all-or-nothing boundary around store writes.

Usage::

    with uow:
        ...read and write through uow.ingredients / uow.reservations ...
        uow.commit()

Entering takes an exclusive re-entrant lock on the stores, so the
read-compute-write sequence of a reservation cannot interleave with another
writer.  Nested ``with uow:`` blocks on the same thread join the outer
transaction: they see its staged writes and only the outermost block rolls
back.  Leaving the outermost block without ``commit()`` (including by
exception) discards every staged write.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

from pos_inventory.domain.repository.audit_repository import AuditRepository
from pos_inventory.domain.repository.ingredient_repository import IngredientRepository
from pos_inventory.domain.repository.recipe_repository import RecipeRepository
from pos_inventory.domain.repository.reservation_repository import ReservationRepository


class UnitOfWork(ABC):

    ingredients: IngredientRepository
    recipes: RecipeRepository
    reservations: ReservationRepository
    audit: AuditRepository

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._owner: int | None = None

    def __enter__(self) -> UnitOfWork:
        self._lock.acquire()
        try:
            if self._depth == 0:
                self._begin()
                self._owner = threading.get_ident()
        except BaseException:
            self._lock.release()
            raise
        self._depth += 1
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._depth == 1:
                self.rollback()
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._owner = None
            self._lock.release()

    @property
    def in_transaction(self) -> bool:
        """True when the calling thread is inside a ``with uow:`` block."""
        return self._depth > 0 and self._owner == threading.get_ident()

    @abstractmethod
    def commit(self) -> None:
        """Make every staged write durable at once."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard writes staged since the last commit."""

    @abstractmethod
    def _begin(self) -> None:
        """Open a fresh view of the stores for a new outermost transaction."""

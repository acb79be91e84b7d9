"""Read models produced by the Availability Engine.

All of these are snapshots computed at a point in time; nothing here is
persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from pos_inventory.domain.model.recipe import IngredientRequirement, MenuItemUsage
from pos_inventory.domain.model.units import Unit


@dataclass(frozen=True)
class IngredientAvailability:
    """Live stock picture for one ingredient, in its stock unit."""

    ingredient_id: str
    ingredient_name: str
    unit: Unit
    on_hand: Decimal
    reserved: Decimal
    available: Decimal
    minimum_stock: Decimal
    reservation_count: int
    reserved_value: Decimal

    @property
    def is_available(self) -> bool:
        return self.available > 0

    @property
    def is_low_stock(self) -> bool:
        return self.available <= self.minimum_stock


@dataclass(frozen=True)
class IngredientCheck:
    """One aggregated requirement compared against live availability.

    ``required`` and ``available`` are both expressed in ``unit`` (the
    recipe unit); ``stock_available`` keeps the figure in the stock unit.
    """

    ingredient_id: str
    ingredient_name: str
    required: Decimal
    available: Decimal
    unit: Unit
    is_required: bool
    stock_available: Decimal
    stock_unit: Unit
    substitutes: tuple[str, ...] = ()
    used_in: tuple[MenuItemUsage, ...] = ()

    @property
    def sufficient(self) -> bool:
        return self.available >= self.required

    @property
    def shortage(self) -> Decimal:
        return max(Decimal("0"), self.required - self.available)


@dataclass(frozen=True)
class SubstitutionCandidate:
    ingredient_id: str
    ingredient_name: str
    available: Decimal
    required: Decimal
    unit: Unit

    @property
    def sufficient(self) -> bool:
        return self.available >= self.required


@dataclass(frozen=True)
class SubstitutionOption:
    """Ranked substitutes for one short ingredient."""

    original: IngredientCheck
    candidates: tuple[SubstitutionCandidate, ...]

    @property
    def covered(self) -> bool:
        return any(c.sufficient for c in self.candidates)

    @property
    def best(self) -> SubstitutionCandidate | None:
        for candidate in self.candidates:
            if candidate.sufficient:
                return candidate
        return None


@dataclass(frozen=True)
class AvailabilityReport:
    """Feasibility of a menu item or a whole order.

    ``is_available`` means every ingredient is covered as written;
    ``is_feasible`` also accepts required shortfalls that a single
    substitute fully covers.  Optional shortfalls never block either.
    """

    checks: tuple[IngredientCheck, ...] = ()
    substitution_options: tuple[SubstitutionOption, ...] = ()
    has_ingredient_tracking: bool = True
    requirements: tuple[IngredientRequirement, ...] = field(default=(), repr=False)

    @property
    def insufficient(self) -> tuple[IngredientCheck, ...]:
        return tuple(c for c in self.checks if not c.sufficient)

    @property
    def blocking(self) -> tuple[IngredientCheck, ...]:
        """Required shortfalls with no covering substitute."""
        covered = {o.original.ingredient_id for o in self.substitution_options if o.covered}
        return tuple(
            c for c in self.insufficient
            if c.is_required and c.ingredient_id not in covered
        )

    @property
    def is_available(self) -> bool:
        return not any(c.is_required for c in self.insufficient)

    @property
    def is_feasible(self) -> bool:
        return not self.blocking

    @property
    def needs_substitution(self) -> bool:
        return self.is_feasible and not self.is_available

    def check_for(self, ingredient_id: str) -> IngredientCheck | None:
        for check in self.checks:
            if check.ingredient_id == ingredient_id:
                return check
        return None

    def option_for(self, ingredient_id: str) -> SubstitutionOption | None:
        for option in self.substitution_options:
            if option.original.ingredient_id == ingredient_id:
                return option
        return None

    @staticmethod
    def untracked() -> AvailabilityReport:
        return AvailabilityReport(has_ingredient_tracking=False)


@dataclass(frozen=True)
class ProjectedUsage:
    """What a simulated reservation would hold from one ingredient."""

    ingredient_id: str
    ingredient_name: str
    unit: Unit
    available_now: Decimal
    would_reserve: Decimal
    remaining_after: Decimal


@dataclass(frozen=True)
class ReservationSimulation:
    report: AvailabilityReport
    projections: tuple[ProjectedUsage, ...]

    @property
    def can_reserve(self) -> bool:
        return self.report.is_feasible


@dataclass(frozen=True)
class LowStockAlert:
    availability: IngredientAvailability
    threshold: Decimal
    affected_menu_items: tuple[str, ...]

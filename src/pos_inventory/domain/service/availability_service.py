"""Domain service: Availability Engine.

Answers "is there enough?" for one ingredient, one menu item or a whole
order.  Committed demand is never cached: every call sums the live
reservation lines that still hold stock at the current instant, so an
expired reservation stops counting the moment its deadline passes, even
before the sweeper releases it.

Requirements are aggregated per ingredient across the whole order before
they are compared with stock.  Two menu items that share an ingredient are
checked against the same pool rather than each seeing the full amount.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import structlog

from pos_inventory.domain.exceptions import EntityNotFoundError, ValidationError
from pos_inventory.domain.model.availability import (
    AvailabilityReport,
    IngredientAvailability,
    IngredientCheck,
    LowStockAlert,
    ProjectedUsage,
    ReservationSimulation,
    SubstitutionCandidate,
    SubstitutionOption,
)
from pos_inventory.domain.model.clock import Clock, utc_now
from pos_inventory.domain.model.ingredient import Ingredient
from pos_inventory.domain.model.recipe import (
    IngredientRequirement,
    MenuItemUsage,
    OrderLine,
)
from pos_inventory.domain.model.units import Unit, convert
from pos_inventory.domain.repository.unit_of_work import UnitOfWork

logger = structlog.get_logger(__name__)


class AvailabilityService:

    def __init__(self, uow: UnitOfWork, clock: Clock = utc_now) -> None:
        self._uow = uow
        self._clock = clock

    # --- Single ingredient ----------------------------------------------------

    def ingredient_availability(self, ingredient_id: str) -> IngredientAvailability:
        with self._uow:
            ingredient = self._require_ingredient(ingredient_id)
            return self._availability_of(ingredient, self._clock())

    # --- Order Source contract ------------------------------------------------

    def requirements_for_order(self, lines: list[OrderLine]) -> list[IngredientRequirement]:
        """Resolve order lines into one aggregated requirement per ingredient.

        Later contributions are converted into the unit of the first recipe
        that mentioned the ingredient.  Menu items without recipe mappings
        contribute nothing.
        """
        if not lines:
            raise ValidationError("An order must contain at least one line")

        aggregated: dict[str, IngredientRequirement] = {}
        with self._uow:
            for line in lines:
                for recipe in self._uow.recipes.list_for_menu_item(line.menu_item_id):
                    amount = recipe.quantity * line.quantity
                    usage = MenuItemUsage(
                        menu_item_id=line.menu_item_id,
                        menu_item_name=line.name or line.menu_item_id,
                        order_quantity=line.quantity,
                        required_amount=amount,
                    )
                    existing = aggregated.get(recipe.ingredient_id)
                    if existing is None:
                        aggregated[recipe.ingredient_id] = IngredientRequirement(
                            ingredient_id=recipe.ingredient_id,
                            total_required=amount,
                            unit=recipe.unit,
                            is_required=recipe.is_required,
                            substitutes=recipe.substitutes,
                            from_menu_items=[usage],
                        )
                    else:
                        existing.add(amount, recipe.unit, recipe.is_required, recipe.substitutes)
                        existing.from_menu_items.append(usage)
        return list(aggregated.values())

    # --- Menu item / order ----------------------------------------------------

    def menu_item_availability(self, menu_item_id: str, quantity: int = 1) -> AvailabilityReport:
        line = OrderLine(menu_item_id=menu_item_id, quantity=quantity)
        return self.evaluate(self.requirements_for_order([line]))

    def order_availability(self, lines: list[OrderLine]) -> AvailabilityReport:
        return self.evaluate(self.requirements_for_order(lines))

    def evaluate(self, requirements: list[IngredientRequirement]) -> AvailabilityReport:
        """Compare aggregated requirements with what is available right now."""
        if not requirements:
            return AvailabilityReport.untracked()

        checks: list[IngredientCheck] = []
        options: list[SubstitutionOption] = []
        with self._uow:
            now = self._clock()
            for requirement in requirements:
                ingredient = self._require_ingredient(requirement.ingredient_id)
                stock = self._availability_of(ingredient, now)
                check = IngredientCheck(
                    ingredient_id=ingredient.id,
                    ingredient_name=ingredient.name,
                    required=requirement.total_required,
                    available=convert(stock.available, ingredient.unit, requirement.unit),
                    unit=requirement.unit,
                    is_required=requirement.is_required,
                    stock_available=stock.available,
                    stock_unit=ingredient.unit,
                    substitutes=requirement.substitutes,
                    used_in=tuple(requirement.from_menu_items),
                )
                checks.append(check)
                if not check.sufficient and check.is_required and check.substitutes:
                    candidates = self._rank_substitutes(
                        check.substitutes, check.required, check.unit, now
                    )
                    options.append(SubstitutionOption(check, tuple(candidates)))

        report = AvailabilityReport(
            checks=tuple(checks),
            substitution_options=tuple(options),
            requirements=tuple(requirements),
        )
        logger.debug(
            "availability_evaluated",
            ingredients=len(checks),
            insufficient=len(report.insufficient),
            feasible=report.is_feasible,
        )
        return report

    def check_substitutions(
        self,
        substitute_ids: list[str] | tuple[str, ...],
        required: Decimal,
        unit: Unit,
    ) -> list[SubstitutionCandidate]:
        """Rank substitutes: sufficient ones first, then by most available."""
        with self._uow:
            return self._rank_substitutes(substitute_ids, required, unit, self._clock())

    # --- Planning helpers -----------------------------------------------------

    def simulate_reservation(self, lines: list[OrderLine]) -> ReservationSimulation:
        """Show what a reservation for *lines* would hold, without writing."""
        report = self.order_availability(lines)
        projections = []
        for check in report.checks:
            held = min(check.required, check.available)
            held_in_stock_unit = convert(held, check.unit, check.stock_unit)
            projections.append(
                ProjectedUsage(
                    ingredient_id=check.ingredient_id,
                    ingredient_name=check.ingredient_name,
                    unit=check.stock_unit,
                    available_now=check.stock_available,
                    would_reserve=held_in_stock_unit,
                    remaining_after=max(
                        Decimal("0"), check.stock_available - held_in_stock_unit
                    ),
                )
            )
        return ReservationSimulation(report=report, projections=tuple(projections))

    def low_stock_ingredients(self, threshold: Decimal | None = None) -> list[LowStockAlert]:
        """Recipe ingredients whose available stock is at or below the limit.

        The limit is each ingredient's own minimum unless *threshold* is
        given.  Lowest availability comes first.
        """
        alerts: list[LowStockAlert] = []
        with self._uow:
            now = self._clock()
            used_by: dict[str, set[str]] = {}
            for recipe in self._uow.recipes.list_all():
                used_by.setdefault(recipe.ingredient_id, set()).add(recipe.menu_item_id)

            for ingredient in self._uow.ingredients.list_all():
                if ingredient.id not in used_by:
                    continue
                stock = self._availability_of(ingredient, now)
                limit = threshold if threshold is not None else ingredient.minimum_stock
                if stock.available <= limit:
                    alerts.append(
                        LowStockAlert(
                            availability=stock,
                            threshold=limit,
                            affected_menu_items=tuple(sorted(used_by[ingredient.id])),
                        )
                    )
        alerts.sort(key=lambda a: a.availability.available)
        return alerts

    # --- Internal helpers -----------------------------------------------------

    def _require_ingredient(self, ingredient_id: str) -> Ingredient:
        if not ingredient_id or not str(ingredient_id).strip():
            raise ValidationError("Ingredient id is required")
        ingredient = self._uow.ingredients.get_by_id(ingredient_id)
        if ingredient is None:
            raise EntityNotFoundError(f"Ingredient '{ingredient_id}' not found")
        return ingredient

    def _availability_of(self, ingredient: Ingredient, now: datetime) -> IngredientAvailability:
        reserved = Decimal("0")
        reserved_value = Decimal("0")
        holding = self._uow.reservations.list_holding(ingredient.id, now)
        for reservation in holding:
            for line in reservation.reserved_lines():
                if line.ingredient_id != ingredient.id:
                    continue
                reserved += convert(line.quantity_reserved, line.unit, ingredient.unit)
                reserved_value += line.line_cost.amount

        return IngredientAvailability(
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            unit=ingredient.unit,
            on_hand=ingredient.on_hand,
            reserved=reserved,
            available=max(Decimal("0"), ingredient.on_hand - reserved),
            minimum_stock=ingredient.minimum_stock,
            reservation_count=len(holding),
            reserved_value=reserved_value,
        )

    def _rank_substitutes(
        self,
        substitute_ids,
        required: Decimal,
        unit: Unit,
        now: datetime,
    ) -> list[SubstitutionCandidate]:
        candidates = []
        for substitute_id in substitute_ids:
            ingredient = self._uow.ingredients.get_by_id(substitute_id)
            if ingredient is None:
                logger.warning("substitute_not_stocked", ingredient_id=substitute_id)
                continue
            stock = self._availability_of(ingredient, now)
            candidates.append(
                SubstitutionCandidate(
                    ingredient_id=ingredient.id,
                    ingredient_name=ingredient.name,
                    available=convert(stock.available, ingredient.unit, unit),
                    required=required,
                    unit=unit,
                )
            )
        candidates.sort(key=lambda c: (not c.sufficient, -c.available))
        return candidates

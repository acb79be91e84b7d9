"""Application service: Set Recipe Requirement use case.

Stands in for the menu-administration flow that owns recipe mappings.
Saving the same (menu item, ingredient) pair again replaces it.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from pos_inventory.domain.exceptions import EntityNotFoundError
from pos_inventory.domain.model.recipe import RecipeRequirement
from pos_inventory.domain.repository.unit_of_work import UnitOfWork

logger = structlog.get_logger(__name__)


class SetRecipeRequirementHandler:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def handle(
        self,
        menu_item_id: str,
        ingredient_id: str,
        quantity: str | Decimal,
        unit: str,
        is_required: bool = True,
        substitutes: list[str] | None = None,
        notes: str = "",
    ) -> RecipeRequirement:
        requirement = RecipeRequirement.of(
            menu_item_id=menu_item_id,
            ingredient_id=ingredient_id,
            quantity=quantity,
            unit=unit,
            is_required=is_required,
            substitutes=substitutes or [],
            notes=notes,
        )

        with self._uow:
            for iid in (requirement.ingredient_id, *requirement.substitutes):
                if self._uow.ingredients.get_by_id(iid) is None:
                    raise EntityNotFoundError(f"Ingredient '{iid}' not found")
            self._uow.recipes.save(requirement)
            self._uow.commit()

        logger.info(
            "recipe_requirement_saved",
            menu_item_id=requirement.menu_item_id,
            ingredient_id=requirement.ingredient_id,
            quantity=str(requirement.quantity),
            unit=requirement.unit.value,
        )
        return requirement

"""JSON-document-backed implementation of RecipeRepository."""

from __future__ import annotations

from decimal import Decimal

from pos_inventory.domain.model.recipe import RecipeRequirement
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.repository.recipe_repository import RecipeRepository
from pos_inventory.infrastructure.persistence.json_document import JsonDocument


class JsonRecipeRepository(RecipeRepository):

    def __init__(self, document: JsonDocument) -> None:
        self._document = document

    # --- RecipeRepository interface -------------------------------------------

    def list_for_menu_item(self, menu_item_id: str) -> list[RecipeRequirement]:
        return [
            self._to_domain(raw)
            for raw in self._records()
            if raw["menu_item_id"] == menu_item_id
        ]

    def list_for_ingredient(self, ingredient_id: str) -> list[RecipeRequirement]:
        return [
            self._to_domain(raw)
            for raw in self._records()
            if raw["ingredient_id"] == ingredient_id
            or ingredient_id in raw.get("substitutes", [])
        ]

    def list_all(self) -> list[RecipeRequirement]:
        return [self._to_domain(raw) for raw in self._records()]

    def save(self, requirement: RecipeRequirement) -> None:
        records = self._records()
        key = (requirement.menu_item_id, requirement.ingredient_id)
        for i, raw in enumerate(records):
            if (raw["menu_item_id"], raw["ingredient_id"]) == key:
                records[i] = self._to_raw(requirement)
                return
        records.append(self._to_raw(requirement))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(requirement: RecipeRequirement) -> dict:
        return {
            "menu_item_id": requirement.menu_item_id,
            "ingredient_id": requirement.ingredient_id,
            "quantity": str(requirement.quantity),
            "unit": requirement.unit.value,
            "is_required": requirement.is_required,
            "substitutes": list(requirement.substitutes),
            "notes": requirement.notes,
        }

    @staticmethod
    def _to_domain(raw: dict) -> RecipeRequirement:
        return RecipeRequirement(
            menu_item_id=raw["menu_item_id"],
            ingredient_id=raw["ingredient_id"],
            quantity=Decimal(raw["quantity"]),
            unit=Unit(raw["unit"]),
            is_required=raw.get("is_required", True),
            substitutes=tuple(raw.get("substitutes", [])),
            notes=raw.get("notes", ""),
        )

    def _records(self) -> list[dict]:
        return self._document.section("recipes")

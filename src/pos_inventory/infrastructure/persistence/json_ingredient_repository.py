"""JSON-document-backed implementation of IngredientRepository."""

from __future__ import annotations

from decimal import Decimal

from pos_inventory.domain.model.ingredient import Ingredient
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money
from pos_inventory.domain.repository.ingredient_repository import IngredientRepository
from pos_inventory.infrastructure.persistence.json_document import JsonDocument


class JsonIngredientRepository(IngredientRepository):

    def __init__(self, document: JsonDocument) -> None:
        self._document = document

    # --- IngredientRepository interface ---------------------------------------

    def get_by_id(self, ingredient_id: str) -> Ingredient | None:
        for raw in self._records():
            if raw["id"] == ingredient_id:
                return self._to_domain(raw)
        return None

    def list_all(self) -> list[Ingredient]:
        return [self._to_domain(raw) for raw in self._records()]

    def save(self, ingredient: Ingredient) -> None:
        records = self._records()
        for i, raw in enumerate(records):
            if raw["id"] == ingredient.id:
                records[i] = self._to_raw(ingredient)
                return
        records.append(self._to_raw(ingredient))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(ingredient: Ingredient) -> dict:
        return {
            "id": ingredient.id,
            "name": ingredient.name,
            "unit": ingredient.unit.value,
            "on_hand": str(ingredient.on_hand),
            "minimum_stock": str(ingredient.minimum_stock),
            "unit_cost": str(ingredient.unit_cost.amount),
            "currency": ingredient.unit_cost.currency,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Ingredient:
        return Ingredient(
            id=raw["id"],
            name=raw["name"],
            unit=Unit(raw["unit"]),
            on_hand=Decimal(raw["on_hand"]),
            minimum_stock=Decimal(raw.get("minimum_stock", "0")),
            unit_cost=Money(Decimal(raw.get("unit_cost", "0")), raw.get("currency", "USD")),
        )

    def _records(self) -> list[dict]:
        return self._document.section("ingredients")

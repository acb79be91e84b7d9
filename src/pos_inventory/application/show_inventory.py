"""Application service: Show Inventory use case (query)."""

from __future__ import annotations

from decimal import Decimal

from pos_inventory.application.dto import IngredientDTO, fmt_quantity
from pos_inventory.domain.model.availability import IngredientAvailability
from pos_inventory.domain.repository.unit_of_work import UnitOfWork
from pos_inventory.domain.service.availability_service import AvailabilityService


class ShowInventoryHandler:

    def __init__(self, uow: UnitOfWork, availability: AvailabilityService) -> None:
        self._uow = uow
        self._availability = availability

    def handle(self, ingredient_id: str | None = None) -> list[IngredientDTO]:
        with self._uow:
            if ingredient_id is not None:
                ids = [ingredient_id]
            else:
                ids = [i.id for i in self._uow.ingredients.list_all()]
            rows = []
            for iid in ids:
                ingredient = self._uow.ingredients.get_by_id(iid)
                stock = self._availability.ingredient_availability(iid)
                rows.append(self._to_dto(stock, str(ingredient.unit_cost)))
        return rows

    def low_stock(self, threshold: Decimal | None = None) -> list[IngredientDTO]:
        with self._uow:
            alerts = self._availability.low_stock_ingredients(threshold)
            rows = []
            for alert in alerts:
                ingredient = self._uow.ingredients.get_by_id(alert.availability.ingredient_id)
                rows.append(self._to_dto(alert.availability, str(ingredient.unit_cost)))
        return rows

    @staticmethod
    def _to_dto(stock: IngredientAvailability, unit_cost: str) -> IngredientDTO:
        return IngredientDTO(
            id=stock.ingredient_id,
            name=stock.ingredient_name,
            unit=stock.unit.value,
            on_hand=fmt_quantity(stock.on_hand),
            reserved=fmt_quantity(stock.reserved),
            available=fmt_quantity(stock.available),
            minimum_stock=fmt_quantity(stock.minimum_stock),
            unit_cost=unit_cost,
            low_stock=stock.is_low_stock,
        )

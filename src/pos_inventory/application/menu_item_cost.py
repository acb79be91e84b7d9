"""Application service: Menu Item Cost use case (query).

Food cost is the recipe quantity of every ingredient priced at its current
unit cost.  Price and name come from the menu catalog; availability plays
no part here.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pos_inventory.application.dto import fmt_quantity
from pos_inventory.domain.exceptions import EntityNotFoundError
from pos_inventory.domain.model.units import convert
from pos_inventory.domain.model.value_objects import CENT, Money
from pos_inventory.domain.repository.menu_catalog import MenuCatalog
from pos_inventory.domain.repository.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class IngredientCostDTO:
    ingredient_name: str
    quantity: str
    unit: str
    cost: str


@dataclass(frozen=True)
class MenuItemCostDTO:
    menu_item_id: str
    name: str
    price: str
    food_cost: str
    margin: str
    margin_percent: str
    ingredients: list[IngredientCostDTO]


class MenuItemCostHandler:

    def __init__(self, uow: UnitOfWork, catalog: MenuCatalog) -> None:
        self._uow = uow
        self._catalog = catalog

    def handle(self, menu_item_id: str) -> MenuItemCostDTO:
        item = self._catalog.get_by_id(menu_item_id)
        if item is None:
            raise EntityNotFoundError(f"Menu item '{menu_item_id}' not found")

        rows: list[IngredientCostDTO] = []
        food_cost = Money.zero()
        with self._uow:
            for requirement in self._uow.recipes.list_for_menu_item(menu_item_id):
                ingredient = self._uow.ingredients.get_by_id(requirement.ingredient_id)
                if ingredient is None:
                    raise EntityNotFoundError(
                        f"Ingredient '{requirement.ingredient_id}' not found"
                    )
                cost = ingredient.value_of(
                    convert(requirement.quantity, requirement.unit, ingredient.unit)
                )
                food_cost = food_cost + cost
                rows.append(
                    IngredientCostDTO(
                        ingredient_name=ingredient.name,
                        quantity=fmt_quantity(requirement.quantity),
                        unit=requirement.unit.value,
                        cost=str(cost),
                    )
                )

        margin = item.price.amount - food_cost.amount
        if item.price.amount > 0:
            percent = (margin / item.price.amount * 100).quantize(Decimal("0.1"))
        else:
            percent = Decimal("0.0")
        return MenuItemCostDTO(
            menu_item_id=item.id,
            name=item.name,
            price=str(item.price),
            food_cost=str(food_cost),
            margin=f"{margin.quantize(CENT):.2f}",
            margin_percent=f"{percent}%",
            ingredients=rows,
        )

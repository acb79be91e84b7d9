"""Recipe mapping: which ingredients one unit of a menu item needs."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.units import Unit, convert
from pos_inventory.domain.model.value_objects import to_decimal


@dataclass(frozen=True)
class OrderLine:
    """Input: one line of an order (menu item id + how many)."""

    menu_item_id: str
    quantity: int
    name: str = ""

    def __post_init__(self) -> None:
        if not self.menu_item_id or not str(self.menu_item_id).strip():
            raise ValidationError("Menu item id is required")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError(
                f"Order quantity must be an integer, got {type(self.quantity).__name__}"
            )
        if self.quantity <= 0:
            raise ValidationError(
                f"Order quantity for {self.menu_item_id} must be positive"
            )


@dataclass(frozen=True)
class RecipeRequirement:
    """One ingredient needed for one unit of a menu item.

    ``(menu_item_id, ingredient_id)`` is unique across the store.
    """

    menu_item_id: str
    ingredient_id: str
    quantity: Decimal
    unit: Unit
    is_required: bool = True
    substitutes: tuple[str, ...] = ()
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.menu_item_id or not self.menu_item_id.strip():
            raise ValidationError("Menu item id is required")
        if not self.ingredient_id or not self.ingredient_id.strip():
            raise ValidationError("Ingredient id is required")
        if self.quantity <= 0:
            raise ValidationError("Recipe quantity must be greater than 0")
        if self.ingredient_id in self.substitutes:
            raise ValidationError("Substitution cannot be the same as the main ingredient")
        if len(self.notes) > 500:
            raise ValidationError("Notes cannot exceed 500 characters")

    @staticmethod
    def of(
        menu_item_id: str,
        ingredient_id: str,
        quantity: str | float | int | Decimal,
        unit: str | Unit,
        is_required: bool = True,
        substitutes: list[str] | tuple[str, ...] = (),
        notes: str = "",
    ) -> RecipeRequirement:
        return RecipeRequirement(
            menu_item_id=menu_item_id,
            ingredient_id=ingredient_id,
            quantity=to_decimal(quantity),
            unit=Unit.parse(unit),
            is_required=is_required,
            substitutes=tuple(substitutes),
            notes=notes,
        )


@dataclass(frozen=True)
class MenuItemUsage:
    """How much of an aggregated requirement came from one order line."""

    menu_item_id: str
    menu_item_name: str
    order_quantity: int
    required_amount: Decimal


@dataclass
class IngredientRequirement:
    """Total need for one ingredient across a whole order."""

    ingredient_id: str
    total_required: Decimal
    unit: Unit
    is_required: bool
    substitutes: tuple[str, ...] = ()
    from_menu_items: list[MenuItemUsage] = field(default_factory=list)

    def add(self, amount: Decimal, unit: Unit, is_required: bool, substitutes) -> None:
        self.total_required += convert(amount, unit, self.unit)
        # Required in any item makes it required for the order.
        self.is_required = self.is_required or is_required
        merged = list(self.substitutes)
        merged.extend(s for s in substitutes if s not in merged)
        self.substitutes = tuple(merged)

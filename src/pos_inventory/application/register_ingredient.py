"""Application service: Register Ingredient use case.

Opening stock is recorded as a receiving entry so the ledger explains every
unit that was ever on hand.
"""

from __future__ import annotations

from decimal import Decimal

from pos_inventory.application.dto import IngredientDTO, fmt_quantity
from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.actor import Actor
from pos_inventory.domain.model.audit import ReferenceType, StockChange
from pos_inventory.domain.model.ingredient import Ingredient
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money, to_decimal
from pos_inventory.domain.repository.unit_of_work import UnitOfWork
from pos_inventory.domain.service.audit_service import AuditLedger


class RegisterIngredientHandler:

    def __init__(self, uow: UnitOfWork, ledger: AuditLedger) -> None:
        self._uow = uow
        self._ledger = ledger

    def handle(
        self,
        ingredient_id: str,
        name: str,
        unit: str,
        on_hand: str | Decimal,
        actor: Actor,
        minimum_stock: str | Decimal = "0",
        unit_cost: str | Decimal = "0",
    ) -> IngredientDTO:
        opening = to_decimal(on_hand, "On-hand quantity")
        ingredient = Ingredient(
            id=ingredient_id,
            name=name,
            unit=Unit.parse(unit),
            on_hand=Decimal("0"),
            minimum_stock=to_decimal(minimum_stock, "Minimum stock"),
            unit_cost=Money.of(unit_cost),
        )

        with self._uow:
            if self._uow.ingredients.get_by_id(ingredient.id) is not None:
                raise ValidationError(f"Ingredient '{ingredient.id}' already exists")
            ingredient.adjust(opening)
            self._uow.ingredients.save(ingredient)
            if opening > 0:
                self._ledger.record(
                    reference_id=f"opening-{ingredient.id}",
                    reference_type=ReferenceType.RECEIVING,
                    changes=[
                        StockChange(
                            ingredient_id=ingredient.id,
                            delta=opening,
                            quantity_before=Decimal("0"),
                            reason="Opening stock",
                        )
                    ],
                    actor=actor,
                )
            self._uow.commit()

        return IngredientDTO(
            id=ingredient.id,
            name=ingredient.name,
            unit=ingredient.unit.value,
            on_hand=fmt_quantity(ingredient.on_hand),
            reserved="0",
            available=fmt_quantity(ingredient.on_hand),
            minimum_stock=fmt_quantity(ingredient.minimum_stock),
            unit_cost=str(ingredient.unit_cost),
            low_stock=ingredient.on_hand <= ingredient.minimum_stock,
        )

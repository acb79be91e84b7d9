"""Unit tests for the Ingredient aggregate."""

from decimal import Decimal

import pytest

from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.ingredient import Ingredient
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money


def _flour(on_hand="1000") -> Ingredient:
    return Ingredient(
        id="flour",
        name="Flour",
        unit=Unit.GRAMS,
        on_hand=Decimal(on_hand),
        minimum_stock=Decimal("200"),
        unit_cost=Money.of("0.0035"),
    )


class TestIngredient:

    def test_negative_on_hand_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            _flour("-1")

    def test_blank_id_rejected(self):
        with pytest.raises(ValidationError, match="id is required"):
            Ingredient(id=" ", name="X", unit=Unit.GRAMS, on_hand=Decimal("0"))

    def test_consume_deducts(self):
        flour = _flour()
        assert flour.consume(Decimal("300")) == Decimal("300")
        assert flour.on_hand == Decimal("700")

    def test_consume_more_than_on_hand_rejected(self):
        flour = _flour("100")
        with pytest.raises(ValidationError, match="Cannot consume"):
            flour.consume(Decimal("150"))
        assert flour.on_hand == Decimal("100")

    def test_consume_with_shortfall_clamps_at_zero(self):
        flour = _flour("100")
        assert flour.consume(Decimal("150"), allow_shortfall=True) == Decimal("100")
        assert flour.on_hand == Decimal("0")

    def test_adjust_up_and_down(self):
        flour = _flour()
        flour.adjust(Decimal("500"))
        flour.adjust(Decimal("-250"))
        assert flour.on_hand == Decimal("1250")

    def test_adjust_below_zero_rejected(self):
        flour = _flour("10")
        with pytest.raises(ValidationError, match="negative"):
            flour.adjust(Decimal("-11"))

    def test_value_of(self):
        assert _flour().value_of(Decimal("300")) == Money.of("1.05")

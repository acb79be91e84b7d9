"""Unit tests for domain value objects."""

from decimal import Decimal

import pytest

from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.value_objects import Money, to_decimal


# ── Money ────────────────────────────────────────────────────────────────────


class TestMoney:

    def test_defaults_to_usd(self):
        price = Money(Decimal("12.00"))
        assert price.amount == Decimal("12.00")
        assert price.currency == "USD"

    def test_of_keeps_sub_cent_unit_costs(self):
        assert Money.of("0.004").amount == Decimal("0.004")

    def test_negative_cost_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(Decimal("-0.01"))

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError, match="must be a Decimal"):
            Money(0.25)

    def test_sum_of_line_costs(self):
        total = Money.zero()
        for cost in ("1.20", "1.00", "0.05"):
            total = total + Money.of(cost)
        assert total == Money.of("2.25")

    def test_subtracting_more_than_held_rejected(self):
        with pytest.raises(ValidationError, match="negative amount"):
            Money.of("2.20") - Money.of("12")

    def test_scaling_by_quantity_rounds_half_up_to_cents(self):
        assert (Money.of("0.0035") * Decimal("300")).amount == Decimal("1.05")
        assert (Money.of("0.005") * 1).amount == Decimal("0.01")
        assert (Money.of("0.004") * Decimal("0.5")).amount == Decimal("0.00")

    def test_scaling_by_float_rejected(self):
        with pytest.raises(TypeError):
            Money.of("1") * 0.5

    def test_currencies_do_not_mix(self):
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money(Decimal("10"), "USD") + Money(Decimal("5"), "EUR")
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money(Decimal("10"), "USD") < Money(Decimal("5"), "EUR")

    def test_displays_as_dollars_and_cents(self):
        assert str(Money.of("12")) == "$12.00"
        assert str(Money.of("0.004")) == "$0.00"

    def test_ordering(self):
        assert Money.of("2.20") < Money.of("12")
        assert Money.of("12") >= Money.of("12")
        assert Money.of("12") > Money.of("2.20")


# ── to_decimal ───────────────────────────────────────────────────────────────


class TestToDecimal:

    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError, match="Invalid quantity"):
            to_decimal("lots")

    def test_bool_rejected(self):
        with pytest.raises(ValidationError):
            to_decimal(True)

    def test_infinity_rejected(self):
        with pytest.raises(ValidationError, match="finite"):
            to_decimal("Infinity")

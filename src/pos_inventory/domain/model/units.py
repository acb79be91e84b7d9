"""Units of measure and conversion between them.

Units are partitioned into families.  Conversion is only defined inside a
family: ``quantity * factor(from) / factor(to)`` where each factor is the
size of the unit expressed in the family's base unit (grams for weight,
millilitres for volume).

Converting across families is a data problem (a recipe in ml against stock
counted in grams), not a reason to fail an order, so ``convert`` logs a
warning and hands the quantity back untouched.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

import structlog

from pos_inventory.domain.exceptions import ValidationError

logger = structlog.get_logger(__name__)


class UnitFamily(Enum):
    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"


class Unit(Enum):
    GRAMS = "grams"
    KILOGRAMS = "kg"
    OUNCES = "ounces"
    POUNDS = "pounds"
    MILLILITERS = "ml"
    LITERS = "liters"
    CUPS = "cups"
    TABLESPOONS = "tablespoons"
    TEASPOONS = "teaspoons"
    PIECES = "pieces"

    @property
    def family(self) -> UnitFamily:
        return _FACTORS[self][0]

    @property
    def factor(self) -> Decimal:
        return _FACTORS[self][1]

    @staticmethod
    def parse(raw: str | Unit) -> Unit:
        """Resolve a unit name or alias (case-insensitive)."""
        if isinstance(raw, Unit):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise ValidationError("Unit is required")
        key = raw.strip().lower()
        unit = _ALIASES.get(key)
        if unit is None:
            raise ValidationError(f"Unknown unit: {raw!r}")
        return unit


_FACTORS: dict[Unit, tuple[UnitFamily, Decimal]] = {
    Unit.GRAMS: (UnitFamily.WEIGHT, Decimal("1")),
    Unit.KILOGRAMS: (UnitFamily.WEIGHT, Decimal("1000")),
    Unit.OUNCES: (UnitFamily.WEIGHT, Decimal("28.35")),
    Unit.POUNDS: (UnitFamily.WEIGHT, Decimal("453.59")),
    Unit.MILLILITERS: (UnitFamily.VOLUME, Decimal("1")),
    Unit.LITERS: (UnitFamily.VOLUME, Decimal("1000")),
    Unit.CUPS: (UnitFamily.VOLUME, Decimal("237")),
    Unit.TABLESPOONS: (UnitFamily.VOLUME, Decimal("15")),
    Unit.TEASPOONS: (UnitFamily.VOLUME, Decimal("5")),
    Unit.PIECES: (UnitFamily.COUNT, Decimal("1")),
}

_ALIASES: dict[str, Unit] = {
    "g": Unit.GRAMS,
    "gram": Unit.GRAMS,
    "grams": Unit.GRAMS,
    "kg": Unit.KILOGRAMS,
    "kgs": Unit.KILOGRAMS,
    "kilogram": Unit.KILOGRAMS,
    "kilograms": Unit.KILOGRAMS,
    "oz": Unit.OUNCES,
    "ounce": Unit.OUNCES,
    "ounces": Unit.OUNCES,
    "lb": Unit.POUNDS,
    "lbs": Unit.POUNDS,
    "pound": Unit.POUNDS,
    "pounds": Unit.POUNDS,
    "ml": Unit.MILLILITERS,
    "milliliter": Unit.MILLILITERS,
    "milliliters": Unit.MILLILITERS,
    "l": Unit.LITERS,
    "liter": Unit.LITERS,
    "liters": Unit.LITERS,
    "litre": Unit.LITERS,
    "litres": Unit.LITERS,
    "cup": Unit.CUPS,
    "cups": Unit.CUPS,
    "tbsp": Unit.TABLESPOONS,
    "tablespoon": Unit.TABLESPOONS,
    "tablespoons": Unit.TABLESPOONS,
    "tsp": Unit.TEASPOONS,
    "teaspoon": Unit.TEASPOONS,
    "teaspoons": Unit.TEASPOONS,
    "pc": Unit.PIECES,
    "pcs": Unit.PIECES,
    "piece": Unit.PIECES,
    "pieces": Unit.PIECES,
}


def are_compatible(a: Unit, b: Unit) -> bool:
    return a.family is b.family


def convert(quantity: Decimal, from_unit: Unit | str, to_unit: Unit | str) -> Decimal:
    """Convert *quantity* from one unit to another within the same family.

    Identical units return the quantity as-is.  Incompatible families log a
    ``unit_conversion_incompatible`` warning and return it unchanged.
    """
    source = Unit.parse(from_unit)
    target = Unit.parse(to_unit)
    if source is target:
        return quantity
    if not are_compatible(source, target):
        logger.warning(
            "unit_conversion_incompatible",
            from_unit=source.value,
            to_unit=target.value,
            quantity=str(quantity),
        )
        return quantity
    return quantity * source.factor / target.factor

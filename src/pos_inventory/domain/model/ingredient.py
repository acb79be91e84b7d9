"""Ingredient aggregate: one Stock Ledger entry.

``on_hand`` is the single source of truth for what is physically in the
kitchen.  Reservations never touch it; it moves only when a reservation is
consumed or when someone records a manual adjustment.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from pos_inventory.domain.exceptions import ValidationError
from pos_inventory.domain.model.units import Unit
from pos_inventory.domain.model.value_objects import Money


@dataclass
class Ingredient:
    """Aggregate root for a stocked ingredient.

    Invariants:
    - ``on_hand`` is never negative
    - ``minimum_stock`` is never negative
    """

    id: str
    name: str
    unit: Unit
    on_hand: Decimal
    minimum_stock: Decimal = Decimal("0")
    unit_cost: Money = Money.zero()

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValidationError("Ingredient id is required")
        if self.on_hand < 0:
            raise ValidationError(
                f"On-hand quantity for {self.name} cannot be negative"
            )
        if self.minimum_stock < 0:
            raise ValidationError(
                f"Minimum stock for {self.name} cannot be negative"
            )

    def consume(self, quantity: Decimal, allow_shortfall: bool = False) -> Decimal:
        """Permanently deduct *quantity* (in the stock unit).

        Returns the amount actually deducted.  Normally the full amount must
        be on hand; a manager-override reservation may have promised more
        than exists, in which case ``allow_shortfall`` clamps at zero.
        """
        if quantity < 0:
            raise ValidationError("Consumption quantity cannot be negative")
        if quantity > self.on_hand:
            if not allow_shortfall:
                raise ValidationError(
                    f"Cannot consume {quantity} {self.unit.value} of {self.name} "
                    f"(only {self.on_hand} on hand)"
                )
            quantity = self.on_hand
        self.on_hand -= quantity
        return quantity

    def adjust(self, delta: Decimal) -> None:
        """Apply a signed manual adjustment (receiving, waste, count fix)."""
        if self.on_hand + delta < 0:
            raise ValidationError(
                f"Adjustment of {delta} would make {self.name} stock negative "
                f"(on hand {self.on_hand})"
            )
        self.on_hand += delta

    def value_of(self, quantity: Decimal) -> Money:
        """Cost of *quantity* stock units, rounded to cents."""
        return self.unit_cost * quantity

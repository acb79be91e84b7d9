"""Decimal parsing and the Money value used for ingredient costs."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from pos_inventory.domain.exceptions import ValidationError

CENT = Decimal("0.01")


def to_decimal(value: str | float | int | Decimal, label: str = "Quantity") -> Decimal:
    """Coerce user input to Decimal without binary float artefacts."""
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number, got bool")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid {label.lower()}: {value!r}") from exc
    if not result.is_finite():
        raise ValidationError(f"{label} must be finite, got {value!r}")
    return result


@functools.total_ordering
@dataclass(frozen=True)
class Money:
    """A non-negative cost in one currency.

    Unit costs keep whatever precision they were entered with (a gram of
    flour may cost $0.004); multiplying by a quantity is the point where a
    value becomes a real cost and gets rounded half-up to the cent.
    """

    amount: Decimal
    currency: str = "USD"

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise ValidationError(f"Money amount cannot be negative, got {self.amount}")

    @staticmethod
    def of(amount: str | float | int | Decimal) -> Money:
        return Money(to_decimal(amount, "Money amount"))

    @staticmethod
    def zero(currency: str = "USD") -> Money:
        return Money(Decimal("0.00"), currency)

    def __add__(self, other: Money) -> Money:
        return Money(self.amount + self._amount_of(other), self.currency)

    def __sub__(self, other: Money) -> Money:
        remaining = self.amount - self._amount_of(other)
        if remaining < 0:
            raise ValidationError("Money subtraction would result in a negative amount")
        return Money(remaining, self.currency)

    def __mul__(self, factor: int | Decimal) -> Money:
        """Cost of ``factor`` units, rounded to whole cents."""
        if isinstance(factor, bool) or not isinstance(factor, (int, Decimal)):
            raise TypeError(
                f"Can only multiply Money by int or Decimal, got {type(factor).__name__}"
            )
        return Money(self.amount * factor, self.currency).rounded()

    def __lt__(self, other: Money) -> bool:
        return self.amount < self._amount_of(other)

    def rounded(self) -> Money:
        return Money(self.amount.quantize(CENT, rounding=ROUND_HALF_UP), self.currency)

    def __str__(self) -> str:
        return f"${self.amount:.2f}"

    def _amount_of(self, other: Money) -> Decimal:
        if self.currency != other.currency:
            raise ValidationError(f"Cannot combine {self.currency} with {other.currency}")
        return other.amount

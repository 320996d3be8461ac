"""Money value type and rounding helpers.

Amounts are integer minor units (cents). Every decimal-to-minor-unit
boundary goes through round2 so conversions and constructors agree.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from src.core.exceptions import AmountOutOfRangeError, CurrencyMismatchError

CENTS = Decimal("0.01")
MINOR_UNITS = Decimal(100)


def round2(value: Decimal) -> Decimal:
    """Round to 2 places, halves away from zero.

    Raises AmountOutOfRangeError for NaN and infinity, and for magnitudes
    whose cents do not fit the decimal context (1e26 and up at the default
    28-digit precision).
    """
    if not value.is_finite():
        raise AmountOutOfRangeError(f"Amount {value} is not finite")
    try:
        return value.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise AmountOutOfRangeError(f"Amount {value} cannot be rounded to minor units") from e


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit decimal (12.345) to integer minor units (1235)."""
    return int(round2(amount) * MINOR_UNITS)


@dataclass(frozen=True)
class Money:
    amount: int
    currency: str

    def __post_init__(self) -> None:
        # bool is an int subclass but never a valid amount
        if not isinstance(self.amount, int) or isinstance(self.amount, bool):
            raise TypeError(f"Money amount must be int minor units, got {self.amount!r}")

    def add(self, other: Money) -> Money:
        if other.currency != self.currency:
            raise CurrencyMismatchError(
                f"Cannot add {other.currency} to {self.currency}"
            )
        return Money(self.amount + other.amount, self.currency)

    def to_decimal(self) -> Decimal:
        return (Decimal(self.amount) / MINOR_UNITS).quantize(CENTS)

    @classmethod
    def from_decimal(cls, amount: Decimal, currency: str) -> Money:
        return cls(to_minor_units(amount), currency)

    @classmethod
    def from_float(cls, amount: float, currency: str) -> Money:
        # str() keeps the shortest repr, so 100.101 stays 100.101
        return cls(to_minor_units(Decimal(str(amount))), currency)

    def __str__(self) -> str:
        return f"{self.to_decimal()} {self.currency}"

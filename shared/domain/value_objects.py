"""
Common Value Objects

- Money: integer minor units (cents) with currency
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Amounts are whole cents so that gateway amounts round-trip exactly.
    """
    cents: int
    currency: str = 'usd'

    def __post_init__(self):
        if not isinstance(self.cents, int):
            raise TypeError("Money is stored in whole cents")
        if self.cents < 0:
            raise ValueError("Amount cannot be negative")
        if not self.currency:
            raise ValueError("Currency is required")

    def __add__(self, other: 'Money') -> 'Money':
        """Add two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only add Money to Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot add different currencies: {self.currency} and {other.currency}")
        return Money(self.cents + other.cents, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        """Subtract two money objects"""
        if not isinstance(other, Money):
            raise TypeError("Can only subtract Money from Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot subtract different currencies: {self.currency} and {other.currency}")
        return Money(self.cents - other.cents, self.currency)

    def __mul__(self, factor: int) -> 'Money':
        if not isinstance(factor, int):
            raise TypeError("Can only multiply Money by a whole number")
        return Money(self.cents * factor, self.currency)

    def percent(self, percent) -> 'Money':
        """
        Return ``percent`` of this amount, rounded half-up to the cent.

        999 cents at 50% is 500, never 499.
        """
        exact = Decimal(self.cents) * Decimal(str(percent)) / Decimal(100)
        return Money(int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP)), self.currency)

    def split_ceil(self, parts: int) -> 'Money':
        """
        Per-part share using ceiling division

        The parts always sum to at least the original amount.
        """
        if parts <= 0:
            raise ValueError("Cannot split into zero parts")
        return Money(-(-self.cents // parts), self.currency)

    def __str__(self):
        return f"{self.cents / 100:,.2f} {self.currency.upper()}"

    def __repr__(self):
        return f"Money({self.cents}, '{self.currency}')"

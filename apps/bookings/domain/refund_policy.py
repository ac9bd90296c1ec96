"""
Refund Policy

Time-to-session decides how much of a paid order comes back on
cancellation:

    more than 24 hours before start   100%
    more than 12, up to 24 hours       50%
    12 hours or less (or started)       0%

Amounts round half-up to the cent.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Protocol

from shared.domain.value_objects import Money

FULL_REFUND_AFTER_HOURS = 24
HALF_REFUND_AFTER_HOURS = 12


class Refundable(Protocol):
    amount_cents: int


@dataclass(frozen=True)
class RefundQuote:
    refund_amount_cents: int
    refund_percent: int

    @property
    def is_full(self) -> bool:
        return self.refund_percent == 100


NO_REFUND = RefundQuote(refund_amount_cents=0, refund_percent=0)


def refund_percent_for(hours_until_start: float) -> int:
    if hours_until_start > FULL_REFUND_AFTER_HOURS:
        return 100
    if hours_until_start > HALF_REFUND_AFTER_HOURS:
        return 50
    return 0


def calculate_refund(order: Optional[Refundable], hours_until_start: float) -> RefundQuote:
    """
    Quote the refund for cancelling ``hours_until_start`` hours ahead.

    An order that was never paid (``None``) refunds nothing regardless of
    timing.
    """
    if order is None:
        return NO_REFUND

    percent = refund_percent_for(hours_until_start)
    if percent == 0:
        return NO_REFUND
    amount = Money(order.amount_cents).percent(percent)
    return RefundQuote(refund_amount_cents=amount.cents, refund_percent=percent)


def quote_from_refunded(order: Refundable, refunded_cents: int) -> RefundQuote:
    """
    Quote for a refund the gateway has already issued.

    Used when an earlier cancellation attempt refunded but never recorded the
    cancellation: the money already returned is the refund, whatever the
    clock says now.
    """
    if refunded_cents <= 0 or order.amount_cents <= 0:
        return NO_REFUND
    if refunded_cents >= order.amount_cents:
        return RefundQuote(refund_amount_cents=refunded_cents, refund_percent=100)
    exact = Decimal(refunded_cents) * 100 / Decimal(order.amount_cents)
    percent = int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return RefundQuote(refund_amount_cents=refunded_cents, refund_percent=min(percent, 99))

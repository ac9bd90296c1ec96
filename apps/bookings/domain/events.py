"""
Booking Domain Events

Published after the transaction that caused them commits.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: A booking was cancelled and its spots released

    refund_percent is 0 for cancellations that returned no money,
    including expired unpaid reservations.
    """
    booking_id: UUID
    session_id: UUID
    cancelled_by: Optional[UUID]
    refund_amount_cents: int
    refund_percent: int
    reason: str = 'requested'


@dataclass
class BookingConfirmed(DomainEvent):
    """Event: Payment captured, reserved -> confirmed"""
    booking_id: UUID
    order_id: UUID

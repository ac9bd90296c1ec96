"""
Finance Domain Events

Published after commit by the unit of work.
"""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from shared.domain.base import DomainEvent


@dataclass
class OrderPaid(DomainEvent):
    order_id: UUID
    booking_id: UUID
    amount_cents: int
    payment_intent_id: str


@dataclass
class OrderPaymentFailed(DomainEvent):
    """Booking stays reserved until it is paid or expires"""
    order_id: UUID
    booking_id: UUID
    payment_intent_id: str


@dataclass
class OrderRefunded(DomainEvent):
    order_id: UUID
    booking_id: UUID
    amount_cents: int


@dataclass
class SplitGroupCreated(DomainEvent):
    split_group_id: UUID
    session_id: UUID
    organizer_id: UUID
    per_person_cents: int
    ready: int
    failed: int


@dataclass
class MembershipActivated(DomainEvent):
    membership_id: UUID
    user_id: UUID
    tier: str
    external_subscription_id: str


@dataclass
class MembershipStatusChanged(DomainEvent):
    external_subscription_id: str
    status: str
    source_event: Optional[str] = None

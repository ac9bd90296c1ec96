"""
Finance Domain Entities

State machines:
    Order:       pending --[paid]--> paid --[full refund]--> refunded
                 pending --[failed]--> failed --[paid]--> paid
    Membership:  (none) --[created]--> active
                 active|past_due --[updated]--> active|past_due|cancelled
                 any --[deleted]--> cancelled (terminal)
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID


class OrderStatus(str, Enum):
    PENDING = 'pending'
    PAID = 'paid'
    REFUNDED = 'refunded'
    FAILED = 'failed'


class MembershipStatus(str, Enum):
    ACTIVE = 'active'
    PAST_DUE = 'past_due'
    CANCELLED = 'cancelled'


class MembershipTier(str, Enum):
    LOCAL_PLAYER = 'local_player'
    SAND_REGULAR = 'sand_regular'
    FOUNDERS = 'founders'


@dataclass(frozen=True)
class Order:
    id: UUID
    booking_id: UUID
    user_id: UUID
    amount_cents: int
    status: OrderStatus
    discount_cents: int = 0
    stripe_payment_intent_id: Optional[str] = None
    is_split: bool = False
    split_group_id: Optional[UUID] = None
    membership_id: Optional[UUID] = None
    currency: str = 'usd'


@dataclass(frozen=True)
class NewOrder:
    """Everything needed to persist a pending order"""
    booking_id: UUID
    user_id: UUID
    amount_cents: int
    stripe_payment_intent_id: str
    discount_cents: int = 0
    is_split: bool = False
    split_group_id: Optional[UUID] = None
    membership_id: Optional[UUID] = None
    currency: str = 'usd'


@dataclass(frozen=True)
class Membership:
    id: UUID
    user_id: UUID
    tier: MembershipTier
    external_subscription_id: str
    status: MembershipStatus
    discount_percent: int
    priority_booking_hours: int
    guest_passes_remaining: int
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status is MembershipStatus.ACTIVE


@dataclass(frozen=True)
class NewMembership:
    user_id: UUID
    tier: MembershipTier
    external_subscription_id: str
    discount_percent: int
    priority_booking_hours: int
    guest_passes_remaining: int
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    status: MembershipStatus = MembershipStatus.ACTIVE

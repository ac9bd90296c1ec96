"""Membership tier table and gateway status mapping."""

from dataclasses import dataclass
from typing import Optional

from .entities import MembershipStatus, MembershipTier


@dataclass(frozen=True)
class TierBenefits:
    discount_percent: int
    priority_booking_hours: int
    guest_passes: int


TIER_BENEFITS = {
    MembershipTier.LOCAL_PLAYER: TierBenefits(discount_percent=10, priority_booking_hours=12, guest_passes=0),
    MembershipTier.SAND_REGULAR: TierBenefits(discount_percent=20, priority_booking_hours=24, guest_passes=1),
    MembershipTier.FOUNDERS: TierBenefits(discount_percent=30, priority_booking_hours=48, guest_passes=999),
}

LOWEST_TIER = MembershipTier.LOCAL_PLAYER

# Gateway subscription status -> membership status. Anything unlisted is active.
SUBSCRIPTION_STATUS_MAP = {
    'active': MembershipStatus.ACTIVE,
    'past_due': MembershipStatus.PAST_DUE,
    'canceled': MembershipStatus.CANCELLED,
    'unpaid': MembershipStatus.PAST_DUE,
}


def resolve_tier(name: Optional[str]) -> MembershipTier:
    """Missing or unknown tier names fall back to the lowest tier."""
    try:
        return MembershipTier(name)
    except ValueError:
        return LOWEST_TIER


def benefits_for(tier: MembershipTier) -> TierBenefits:
    return TIER_BENEFITS[tier]


def map_subscription_status(gateway_status: Optional[str]) -> MembershipStatus:
    return SUBSCRIPTION_STATUS_MAP.get(gateway_status or '', MembershipStatus.ACTIVE)

"""
Membership subscription

Starts an incomplete gateway subscription for the chosen tier and hands the
client secret back for payment confirmation. The membership row itself is
created later by the subscription-created webhook.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
from uuid import UUID

import structlog
from django.conf import settings

from apps.finances.application.customers import ensure_customer
from apps.finances.domain.entities import MembershipTier
from apps.finances.gateway import PaymentGateway
from apps.users.repositories import UserDirectory
from shared.domain.errors import InvalidInputError, NotFoundError

logger = structlog.get_logger(__name__)


@dataclass
class SubscribeCommand:
    user_id: UUID
    tier: MembershipTier


@dataclass(frozen=True)
class SubscribeResult:
    subscription_id: str
    client_secret: Optional[str]

    def to_response(self) -> dict:
        return {'subscriptionId': self.subscription_id, 'clientSecret': self.client_secret}


class SubscribeHandler:
    def __init__(
        self,
        user_directory: UserDirectory,
        gateway: PaymentGateway,
        price_ids: Optional[Mapping[str, str]] = None,
    ):
        self.user_directory = user_directory
        self.gateway = gateway
        self.price_ids = price_ids if price_ids is not None else settings.STRIPE_PRICE_IDS

    def handle(self, command: SubscribeCommand) -> SubscribeResult:
        price_id = self.price_ids.get(command.tier.value)
        if not price_id:
            raise InvalidInputError(f"Tier {command.tier.value} is not available for purchase")

        account = self.user_directory.get(command.user_id)
        if account is None:
            raise NotFoundError("User not found")

        customer_id = ensure_customer(account, self.user_directory, self.gateway)
        subscription = self.gateway.create_subscription(
            customer_id,
            price_id,
            {'user_id': str(account.id), 'tier': command.tier.value},
        )
        logger.info(
            "subscription.started",
            user_id=str(account.id),
            tier=command.tier.value,
            subscription_id=subscription.id,
        )
        return SubscribeResult(subscription_id=subscription.id, client_secret=subscription.client_secret)

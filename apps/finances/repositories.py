"""Order, membership and webhook-ledger repositories.

Each status change is a single guarded UPDATE. The return value says
whether this call made the change, which is how callers tell an applied
transition from a duplicate or out-of-order one.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db import IntegrityError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from .domain.entities import Membership, MembershipStatus, NewMembership, NewOrder, Order
from .models import Membership as MembershipModel
from .models import Order as OrderModel
from .models import ProcessedWebhookEvent


class OrderRepository(ABC):
    @abstractmethod
    def latest_paid_for_booking(self, booking_id: UUID) -> Optional[Order]:
        ...

    @abstractmethod
    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def create_pending(self, new_order: NewOrder) -> Order:
        ...

    @abstractmethod
    def mark_paid(self, order_id: UUID) -> bool:
        """pending|failed -> paid"""

    @abstractmethod
    def mark_failed(self, order_id: UUID) -> bool:
        """pending -> failed"""

    @abstractmethod
    def mark_refunded(self, order_id: UUID) -> bool:
        """paid -> refunded"""


class MembershipRepository(ABC):
    @abstractmethod
    def get_by_subscription(self, external_subscription_id: str) -> Optional[Membership]:
        ...

    @abstractmethod
    def active_for_user(self, user_id: UUID) -> Optional[Membership]:
        ...

    @abstractmethod
    def create_if_absent(self, new_membership: NewMembership) -> Optional[Membership]:
        """
        Insert unless a row already exists for the subscription id.

        Returns the new membership, or None when one already existed.
        """

    @abstractmethod
    def update_status(
        self,
        external_subscription_id: str,
        status: MembershipStatus,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
    ) -> bool:
        """Update a live (active or past_due) membership. Cancelled rows stay cancelled."""

    @abstractmethod
    def cancel(self, external_subscription_id: str) -> bool:
        ...


class WebhookLedger(ABC):
    @abstractmethod
    def has_processed(self, event_id: str) -> bool:
        ...

    @abstractmethod
    def record(self, event_id: str, event_type: str, outcome: str) -> bool:
        """False if the event id was already recorded by another delivery."""


class DjangoOrderRepository(OrderRepository):
    def latest_paid_for_booking(self, booking_id: UUID) -> Optional[Order]:
        order = (
            OrderModel.objects
            .filter(booking_id=booking_id, status=OrderModel.Status.PAID)
            .order_by("-created_at")
            .first()
        )
        return order.to_entity() if order else None

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Order]:
        order = OrderModel.objects.filter(stripe_payment_intent_id=payment_intent_id).first()
        return order.to_entity() if order else None

    def create_pending(self, new_order: NewOrder) -> Order:
        order = OrderModel.objects.create(
            booking_id=new_order.booking_id,
            user_id=new_order.user_id,
            membership_id=new_order.membership_id,
            amount_cents=new_order.amount_cents,
            discount_cents=new_order.discount_cents,
            currency=new_order.currency,
            stripe_payment_intent_id=new_order.stripe_payment_intent_id,
            status=OrderModel.Status.PENDING,
            is_split=new_order.is_split,
            split_group_id=new_order.split_group_id,
        )
        return order.to_entity()

    def _transition(self, order_id: UUID, from_statuses: list[str], to_status: str) -> bool:
        updated = (
            OrderModel.objects
            .filter(pk=order_id, status__in=from_statuses)
            .update(status=to_status, updated_at=timezone.now())
        )
        return bool(updated)

    def mark_paid(self, order_id: UUID) -> bool:
        return self._transition(
            order_id,
            [OrderModel.Status.PENDING, OrderModel.Status.FAILED],
            OrderModel.Status.PAID,
        )

    def mark_failed(self, order_id: UUID) -> bool:
        return self._transition(order_id, [OrderModel.Status.PENDING], OrderModel.Status.FAILED)

    def mark_refunded(self, order_id: UUID) -> bool:
        return self._transition(order_id, [OrderModel.Status.PAID], OrderModel.Status.REFUNDED)


class DjangoMembershipRepository(MembershipRepository):
    def get_by_subscription(self, external_subscription_id: str) -> Optional[Membership]:
        membership = MembershipModel.objects.filter(external_subscription_id=external_subscription_id).first()
        return membership.to_entity() if membership else None

    def active_for_user(self, user_id: UUID) -> Optional[Membership]:
        membership = (
            MembershipModel.objects
            .filter(user_id=user_id, status=MembershipModel.Status.ACTIVE)
            .order_by("-discount_percent", "-created_at")
            .first()
        )
        return membership.to_entity() if membership else None

    def create_if_absent(self, new_membership: NewMembership) -> Optional[Membership]:
        membership, created = MembershipModel.objects.get_or_create(
            external_subscription_id=new_membership.external_subscription_id,
            defaults={
                "user_id": new_membership.user_id,
                "tier": new_membership.tier.value,
                "status": new_membership.status.value,
                "discount_percent": new_membership.discount_percent,
                "priority_booking_hours": new_membership.priority_booking_hours,
                "guest_passes_remaining": new_membership.guest_passes_remaining,
                "current_period_start": new_membership.current_period_start,
                "current_period_end": new_membership.current_period_end,
            },
        )
        return membership.to_entity() if created else None

    def update_status(
        self,
        external_subscription_id: str,
        status: MembershipStatus,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
    ) -> bool:
        changes: dict = {"status": status.value, "updated_at": timezone.now()}
        if period_start is not None:
            changes["current_period_start"] = period_start
        if period_end is not None:
            changes["current_period_end"] = period_end
        updated = (
            MembershipModel.objects
            .filter(external_subscription_id=external_subscription_id)
            .exclude(status=MembershipModel.Status.CANCELLED)
            .update(**changes)
        )
        return bool(updated)

    def cancel(self, external_subscription_id: str) -> bool:
        updated = (
            MembershipModel.objects
            .filter(external_subscription_id=external_subscription_id)
            .exclude(status=MembershipModel.Status.CANCELLED)
            .update(status=MembershipModel.Status.CANCELLED, updated_at=timezone.now())
        )
        return bool(updated)


class DjangoWebhookLedger(WebhookLedger):
    def has_processed(self, event_id: str) -> bool:
        return ProcessedWebhookEvent.objects.filter(event_id=event_id).exists()

    def record(self, event_id: str, event_type: str, outcome: str) -> bool:
        try:
            with transaction.atomic():
                ProcessedWebhookEvent.objects.create(event_id=event_id, event_type=event_type, outcome=outcome)
        except IntegrityError:
            return False
        return True

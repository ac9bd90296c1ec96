"""Finance models: orders, memberships and the webhook ledger."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.entities import Membership as MembershipEntity
from .domain.entities import MembershipStatus, MembershipTier, OrderStatus
from .domain.entities import Order as OrderEntity


class Order(models.Model):
    """The monetary record for one booking."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Awaiting payment")
        PAID = "paid", _("Paid")
        REFUNDED = "refunded", _("Refunded")
        FAILED = "failed", _("Failed")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.CASCADE,
        related_name="orders",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="orders",
    )
    membership = models.ForeignKey(
        "finances.Membership",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    amount_cents = models.PositiveIntegerField(help_text=_("Amount charged, after discount."))
    discount_cents = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, default="usd")
    stripe_payment_intent_id = models.CharField(max_length=255, null=True, blank=True, unique=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    is_split = models.BooleanField(default=False)
    split_group_id = models.UUIDField(null=True, blank=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=models.Q(status="pending"),
                name="order_one_pending_per_booking",
            ),
        ]

    def __str__(self) -> str:
        return f"Order {self.pk} ({self.status})"

    def to_entity(self) -> OrderEntity:
        return OrderEntity(
            id=self.pk,
            booking_id=self.booking_id,
            user_id=self.user_id,
            amount_cents=self.amount_cents,
            status=OrderStatus(self.status),
            discount_cents=self.discount_cents,
            stripe_payment_intent_id=self.stripe_payment_intent_id,
            is_split=self.is_split,
            split_group_id=self.split_group_id,
            membership_id=self.membership_id,
            currency=self.currency,
        )


class Membership(models.Model):
    """Subscription entitlement. Written only by the payment webhook."""

    class Tier(models.TextChoices):
        LOCAL_PLAYER = "local_player", _("Local player")
        SAND_REGULAR = "sand_regular", _("Sand regular")
        FOUNDERS = "founders", _("Founders")

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        PAST_DUE = "past_due", _("Past due")
        CANCELLED = "cancelled", _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    tier = models.CharField(max_length=20, choices=Tier.choices, default=Tier.LOCAL_PLAYER)
    external_subscription_id = models.CharField(max_length=255, unique=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    discount_percent = models.PositiveSmallIntegerField(default=0)
    priority_booking_hours = models.PositiveSmallIntegerField(default=0)
    guest_passes_remaining = models.PositiveIntegerField(default=0)
    current_period_start = models.DateTimeField(null=True, blank=True)
    current_period_end = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Membership")
        verbose_name_plural = _("Memberships")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="membership_user_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.tier} for {self.user_id} ({self.status})"

    def to_entity(self) -> MembershipEntity:
        return MembershipEntity(
            id=self.pk,
            user_id=self.user_id,
            tier=MembershipTier(self.tier),
            external_subscription_id=self.external_subscription_id,
            status=MembershipStatus(self.status),
            discount_percent=self.discount_percent,
            priority_booking_hours=self.priority_booking_hours,
            guest_passes_remaining=self.guest_passes_remaining,
            current_period_start=self.current_period_start,
            current_period_end=self.current_period_end,
        )


class ProcessedWebhookEvent(models.Model):
    """Ledger of gateway events already applied, keyed by the gateway's event id."""

    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    outcome = models.CharField(max_length=20)
    processed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Processed webhook event")
        verbose_name_plural = _("Processed webhook events")
        ordering = ["-processed_at"]

    def __str__(self) -> str:
        return f"{self.event_type} {self.event_id}"

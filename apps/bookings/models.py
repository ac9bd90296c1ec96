"""Booking models."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.entities import Booking as BookingEntity
from .domain.entities import BookingStatus


class BookingQuerySet(models.QuerySet):
    def active(self) -> "BookingQuerySet":
        return self.exclude(status=Booking.Status.CANCELLED)

    def visible_to(self, user) -> "BookingQuerySet":
        if getattr(user, "is_admin", None) and user.is_admin():
            return self
        return self.filter(user=user)


class Booking(models.Model):
    """One player's claim on a session."""

    class Status(models.TextChoices):
        RESERVED = "reserved", _("Reserved")
        CONFIRMED = "confirmed", _("Confirmed")
        CANCELLED = "cancelled", _("Cancelled")
        NO_SHOW = "no_show", _("No show")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    session = models.ForeignKey(
        "scheduling.Session",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.RESERVED)
    guests = models.PositiveSmallIntegerField(default=0)
    reserved_at = models.DateTimeField(default=timezone.now)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-reserved_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["session", "user"],
                condition=~models.Q(status="cancelled"),
                name="booking_one_active_per_user_session",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "reserved_at"], name="booking_status_reserved_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.pk} ({self.status})"

    @property
    def spots_held(self) -> int:
        return 1 + self.guests

    def to_entity(self) -> BookingEntity:
        return BookingEntity(
            id=self.pk,
            session_id=self.session_id,
            user_id=self.user_id,
            status=BookingStatus(self.status),
            reserved_at=self.reserved_at,
            guests=self.guests,
            confirmed_at=self.confirmed_at,
            cancelled_at=self.cancelled_at,
        )

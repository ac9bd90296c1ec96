"""Session models."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain import SessionSnapshot, SessionStatus


class Session(models.Model):
    """A scheduled, capacity-limited activity that players book."""

    class Status(models.TextChoices):
        OPEN = "open", _("Open")
        FULL = "full", _("Full")
        IN_PROGRESS = "in_progress", _("In progress")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    starts_at = models.DateTimeField()
    ends_at = models.DateTimeField(null=True, blank=True)
    price_cents = models.PositiveIntegerField(default=0)
    spots_total = models.PositiveIntegerField()
    spots_remaining = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.OPEN)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Session")
        verbose_name_plural = _("Sessions")
        ordering = ["starts_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(spots_remaining__lte=models.F("spots_total")),
                name="session_spots_within_total",
            ),
        ]
        indexes = [
            models.Index(fields=["status", "starts_at"], name="session_status_starts_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} @ {self.starts_at:%Y-%m-%d %H:%M}"

    def to_snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.pk,
            price_cents=self.price_cents,
            spots_remaining=self.spots_remaining,
            status=SessionStatus(self.status),
            starts_at=self.starts_at,
        )

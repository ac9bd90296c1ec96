"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.utils import timezone  # type: ignore

from apps.scheduling.reservations import DjangoReservationService
from shared.application.uow import DjangoUnitOfWork

from .domain.entities import BookingStatus
from .domain.events import BookingCancelled
from .repositories import DjangoBookingRepository

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (Celery Beat)
# ============================================================================

@shared_task(name="bookings.release_expired_reservations")
def release_expired_reservations() -> dict[str, int]:
    """
    Cancel reservations that were never paid.

    A booking still ``reserved`` after RESERVATION_HOLD_MINUTES gives its
    spots back. The cancel is the same compare-and-set the cancellation
    flow uses, so a booking confirmed in the meantime is left alone.

    Returns:
        dict: {"expired": number of bookings released}
    """
    now = timezone.now()
    cutoff = now - timedelta(minutes=settings.RESERVATION_HOLD_MINUTES)
    repo = DjangoBookingRepository(DjangoReservationService())
    expired = 0

    for booking_id in repo.stale_reservations(cutoff):
        with DjangoUnitOfWork() as uow:
            if not repo.mark_cancelled(booking_id, now, from_statuses=[BookingStatus.RESERVED]):
                continue
            booking = repo.get(booking_id)
            uow.add_event(BookingCancelled(
                booking_id=booking_id,
                session_id=booking.session_id,
                cancelled_by=None,
                refund_amount_cents=0,
                refund_percent=0,
                reason="reservation_expired",
                aggregate_id=booking_id,
            ))
            expired += 1

    if expired:
        logger.info(f"Released {expired} expired reservations")
    return {"expired": expired}

"""Capacity-safe reservation procedure.

``reserve_spot`` is the single way a booking comes into existence. It locks
the session row, so concurrent reservations for the same session queue up
behind each other and spots can never go negative.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

import structlog
from django.db import transaction  # type: ignore
from django.db.models import Case, F, Value, When  # type: ignore
from django.db.models.functions import Least  # type: ignore

from apps.bookings.domain.entities import Booking
from shared.domain.errors import CapacityError, DuplicateBookingError, NotFoundError

from .domain import SessionSnapshot
from .models import Session

logger = structlog.get_logger(__name__)


class ReservationService(ABC):
    @abstractmethod
    def get_session(self, session_id: UUID) -> Optional[SessionSnapshot]:
        ...

    @abstractmethod
    def reserve_spot(self, session_id: UUID, user_id: UUID, guests: int = 0) -> Booking:
        """
        Atomically take ``1 + guests`` spots and create a reserved booking.

        Raises NotFoundError, CapacityError or DuplicateBookingError.
        """

    @abstractmethod
    def release_spot(self, session_id: UUID, spots: int) -> None:
        """Give ``spots`` back to the session, reopening it if it was full."""


class DjangoReservationService(ReservationService):
    def get_session(self, session_id: UUID) -> Optional[SessionSnapshot]:
        session = Session.objects.filter(pk=session_id).first()
        return session.to_snapshot() if session else None

    def reserve_spot(self, session_id: UUID, user_id: UUID, guests: int = 0) -> Booking:
        from apps.bookings.models import Booking as BookingModel

        if guests < 0:
            raise CapacityError("Guests cannot be negative")
        needed = 1 + guests

        with transaction.atomic():
            session = Session.objects.select_for_update().filter(pk=session_id).first()
            if session is None:
                raise NotFoundError("Session not found")
            if session.status != Session.Status.OPEN:
                raise CapacityError("Session is not open for booking")
            if session.spots_remaining < needed:
                raise CapacityError(
                    f"Not enough spots. Need {needed}, available: {session.spots_remaining}"
                )
            if BookingModel.objects.active().filter(session=session, user_id=user_id).exists():
                raise DuplicateBookingError("User already has a booking for this session")

            session.spots_remaining -= needed
            if session.spots_remaining == 0:
                session.status = Session.Status.FULL
            session.save(update_fields=["spots_remaining", "status", "updated_at"])

            booking = BookingModel.objects.create(
                session=session,
                user_id=user_id,
                guests=guests,
                status=BookingModel.Status.RESERVED,
            )

        logger.info(
            "reservation.created",
            booking_id=str(booking.pk),
            session_id=str(session_id),
            spots=needed,
            spots_remaining=session.spots_remaining,
        )
        return booking.to_entity()

    def release_spot(self, session_id: UUID, spots: int) -> None:
        Session.objects.filter(pk=session_id).update(
            spots_remaining=Least(F("spots_remaining") + spots, F("spots_total")),
            status=Case(
                When(status=Session.Status.FULL, then=Value(Session.Status.OPEN)),
                default=F("status"),
            ),
        )
        logger.info("reservation.released", session_id=str(session_id), spots=spots)

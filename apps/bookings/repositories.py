"""Booking repository.

Status changes are compare-and-set updates: the ``WHERE status IN (...)``
guard and the write happen in one statement, so two racing requests can
never both move the same booking.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from django.db import transaction  # type: ignore

from apps.scheduling.domain import SessionSnapshot
from apps.scheduling.reservations import ReservationService

from .domain.entities import CANCELLABLE_STATUSES, Booking, BookingStatus
from .models import Booking as BookingModel


class BookingRepository(ABC):
    @abstractmethod
    def get(self, booking_id: UUID) -> Optional[Booking]:
        ...

    @abstractmethod
    def get_with_session(self, booking_id: UUID) -> Optional[tuple[Booking, SessionSnapshot]]:
        ...

    @abstractmethod
    def mark_cancelled(
        self,
        booking_id: UUID,
        at: datetime,
        from_statuses: Iterable[BookingStatus] = CANCELLABLE_STATUSES,
    ) -> bool:
        """
        Cancel the booking if it is still in one of ``from_statuses`` and
        hand its spots back to the session. False if another writer won.
        """

    @abstractmethod
    def mark_confirmed(self, booking_id: UUID, at: datetime) -> bool:
        """reserved -> confirmed. False if the booking is not reserved."""

    @abstractmethod
    def stale_reservations(self, reserved_before: datetime) -> list[UUID]:
        ...


class DjangoBookingRepository(BookingRepository):
    def __init__(self, reservations: ReservationService):
        self.reservations = reservations

    def get(self, booking_id: UUID) -> Optional[Booking]:
        booking = BookingModel.objects.filter(pk=booking_id).first()
        return booking.to_entity() if booking else None

    def get_with_session(self, booking_id: UUID) -> Optional[tuple[Booking, SessionSnapshot]]:
        booking = BookingModel.objects.select_related("session").filter(pk=booking_id).first()
        if booking is None:
            return None
        return booking.to_entity(), booking.session.to_snapshot()

    def mark_cancelled(
        self,
        booking_id: UUID,
        at: datetime,
        from_statuses: Iterable[BookingStatus] = CANCELLABLE_STATUSES,
    ) -> bool:
        with transaction.atomic():
            updated = (
                BookingModel.objects
                .filter(pk=booking_id, status__in=[s.value for s in from_statuses])
                .update(status=BookingModel.Status.CANCELLED, cancelled_at=at)
            )
            if not updated:
                return False
            session_id, guests = BookingModel.objects.values_list("session_id", "guests").get(pk=booking_id)
            self.reservations.release_spot(session_id, 1 + guests)
        return True

    def mark_confirmed(self, booking_id: UUID, at: datetime) -> bool:
        updated = (
            BookingModel.objects
            .filter(pk=booking_id, status=BookingModel.Status.RESERVED)
            .update(status=BookingModel.Status.CONFIRMED, confirmed_at=at)
        )
        return bool(updated)

    def stale_reservations(self, reserved_before: datetime) -> list[UUID]:
        return list(
            BookingModel.objects
            .filter(status=BookingModel.Status.RESERVED, reserved_at__lt=reserved_before)
            .order_by("reserved_at")
            .values_list("pk", flat=True)
        )

"""
Booking Cancellation

CancelBookingHandler authorizes the request, quotes the refund, refunds
through the payment gateway and only then writes the terminal status. If the
refund call fails nothing is written and the booking stays as it was.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID

import structlog
from django.utils import timezone

from apps.bookings.domain.entities import CANCELLABLE_STATUSES, BookingStatus
from apps.bookings.domain.events import BookingCancelled
from apps.bookings.domain.refund_policy import RefundQuote, calculate_refund, quote_from_refunded
from apps.bookings.repositories import BookingRepository
from apps.finances.domain.events import OrderRefunded
from apps.finances.gateway import PaymentGateway
from apps.finances.repositories import OrderRepository
from apps.users.repositories import UserDirectory
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.errors import (
    AlreadyCancelledError,
    ForbiddenError,
    GatewayError,
    InvalidInputError,
    NotFoundError,
    RefundFailedError,
)

logger = structlog.get_logger(__name__)

# Refunds in these states returned no money.
VOID_REFUND_STATUSES = frozenset({"failed", "canceled"})


@dataclass
class CancelBookingCommand:
    """Command to cancel a booking"""
    booking_id: UUID
    requested_by: UUID


@dataclass(frozen=True)
class CancellationResult:
    refund_amount_cents: int
    refund_percent: int
    booking_status: BookingStatus = BookingStatus.CANCELLED

    def to_response(self) -> dict:
        return {
            'refundAmount': self.refund_amount_cents,
            'refundPercent': self.refund_percent,
            'bookingStatus': self.booking_status.value,
        }


class CancelBookingHandler:
    """
    Handler for CancelBooking command

    Order of operations:
    1. Load booking and session (NotFound)
    2. Reject cancelled bookings (AlreadyCancelled), before any refund
    3. Owner or admin only (Forbidden)
    4. Quote refund from hours until start and the paid order
    5. Refund through the gateway unless an earlier attempt already did
       (RefundFailed aborts everything)
    6. Compare-and-set booking -> cancelled, releasing its spots
    7. Order -> refunded only for a 100% refund
    """

    def __init__(
        self,
        booking_repo: BookingRepository,
        order_repo: OrderRepository,
        user_directory: UserDirectory,
        gateway: PaymentGateway,
        uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.booking_repo = booking_repo
        self.order_repo = order_repo
        self.user_directory = user_directory
        self.gateway = gateway
        self.uow_factory = uow_factory
        self.clock = clock

    def handle(self, command: CancelBookingCommand) -> CancellationResult:
        found = self.booking_repo.get_with_session(command.booking_id)
        if found is None:
            raise NotFoundError("Booking not found")
        booking, session = found

        if booking.is_cancelled:
            raise AlreadyCancelledError("Booking is already cancelled")

        if not booking.is_owned_by(command.requested_by) and not self.user_directory.is_admin(command.requested_by):
            raise ForbiddenError("Only the booking owner or an admin can cancel this booking")

        if booking.status not in CANCELLABLE_STATUSES:
            raise InvalidInputError(f"Booking in status {booking.status.value} cannot be cancelled")

        now = self.clock()
        hours_until_start = (session.starts_at - now).total_seconds() / 3600
        order = self.order_repo.latest_paid_for_booking(booking.id)
        quote = calculate_refund(order, hours_until_start)
        log = logger.bind(booking_id=str(booking.id), order_id=str(order.id) if order else None)

        if order is not None and order.stripe_payment_intent_id:
            already_refunded = self._refunded_cents(order.id, order.stripe_payment_intent_id)
            if already_refunded:
                quote = quote_from_refunded(order, already_refunded)
                log.warning("cancellation.refund_already_issued", refund_amount_cents=already_refunded)
            elif quote.refund_amount_cents > 0:
                self._refund(order.id, order.stripe_payment_intent_id, quote)

        log.info(
            "cancellation.quoted",
            hours_until_start=round(hours_until_start, 1),
            refund_percent=quote.refund_percent,
            refund_amount_cents=quote.refund_amount_cents,
        )

        with self.uow_factory() as uow:
            if not self.booking_repo.mark_cancelled(booking.id, now):
                # Lost the race to a concurrent cancellation. The refund above shares
                # its idempotency key with the winner's, so no money moved twice.
                raise AlreadyCancelledError("Booking is already cancelled")

            if order is not None and quote.is_full and self.order_repo.mark_refunded(order.id):
                uow.add_event(OrderRefunded(
                    order_id=order.id,
                    booking_id=booking.id,
                    amount_cents=quote.refund_amount_cents,
                    aggregate_id=order.id,
                ))

            uow.add_event(BookingCancelled(
                booking_id=booking.id,
                session_id=booking.session_id,
                cancelled_by=command.requested_by,
                refund_amount_cents=quote.refund_amount_cents,
                refund_percent=quote.refund_percent,
                aggregate_id=booking.id,
            ))

        return CancellationResult(
            refund_amount_cents=quote.refund_amount_cents,
            refund_percent=quote.refund_percent,
        )

    def _refunded_cents(self, order_id: UUID, payment_intent_id: str) -> int:
        """Money an earlier, unfinished cancellation already sent back."""
        try:
            refunds = self.gateway.list_refunds(payment_intent_id)
        except GatewayError as e:
            logger.error("cancellation.refund_lookup_failed", order_id=str(order_id), error=e.message)
            raise RefundFailedError(f"Refund could not be issued: {e.message}") from e
        return sum(r.amount_cents for r in refunds if r.status not in VOID_REFUND_STATUSES)

    def _refund(self, order_id: UUID, payment_intent_id: str, quote: RefundQuote) -> None:
        try:
            self.gateway.create_refund(
                payment_intent_id,
                quote.refund_amount_cents,
                idempotency_key=f"refund-{order_id}",
            )
        except GatewayError as e:
            logger.error("cancellation.refund_failed", order_id=str(order_id), error=e.message)
            raise RefundFailedError(f"Refund could not be issued: {e.message}") from e

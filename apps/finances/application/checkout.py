"""
Single-player checkout

Reserves the player's spot (plus guests), applies the active membership
discount and opens a payment intent. The order stays pending until the
payment webhook marks it paid.
"""

from dataclasses import dataclass
from typing import Callable, Optional
from uuid import UUID

import structlog
from django.conf import settings

from apps.finances.application.customers import ensure_customer
from apps.finances.domain.entities import NewOrder
from apps.finances.gateway import PaymentGateway
from apps.finances.repositories import MembershipRepository, OrderRepository
from apps.scheduling.reservations import ReservationService
from apps.users.repositories import UserDirectory
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.errors import NotFoundError
from shared.domain.value_objects import Money

logger = structlog.get_logger(__name__)


@dataclass
class CheckoutCommand:
    session_id: UUID
    user_id: UUID
    guests: int = 0


@dataclass(frozen=True)
class CheckoutResult:
    client_secret: str
    booking_id: UUID
    order_id: UUID
    amount_cents: int
    discount_cents: int

    def to_response(self) -> dict:
        return {
            'clientSecret': self.client_secret,
            'bookingId': str(self.booking_id),
            'orderId': str(self.order_id),
            'amountCents': self.amount_cents,
            'discountCents': self.discount_cents,
        }


class CheckoutHandler:
    def __init__(
        self,
        reservations: ReservationService,
        order_repo: OrderRepository,
        membership_repo: MembershipRepository,
        user_directory: UserDirectory,
        gateway: PaymentGateway,
        uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
        currency: Optional[str] = None,
    ):
        self.reservations = reservations
        self.order_repo = order_repo
        self.membership_repo = membership_repo
        self.user_directory = user_directory
        self.gateway = gateway
        self.uow_factory = uow_factory
        self.currency = currency or settings.PAYMENTS_CURRENCY

    def handle(self, command: CheckoutCommand) -> CheckoutResult:
        account = self.user_directory.get(command.user_id)
        if account is None:
            raise NotFoundError("User not found")
        session = self.reservations.get_session(command.session_id)
        if session is None:
            raise NotFoundError("Session not found")

        booking = self.reservations.reserve_spot(session.id, account.id, guests=command.guests)

        gross = Money(session.price_cents, self.currency) * booking.spots_held
        membership = self.membership_repo.active_for_user(account.id)
        discount = gross.percent(membership.discount_percent) if membership else Money(0, self.currency)
        charge = gross - discount

        customer_id = ensure_customer(account, self.user_directory, self.gateway)
        intent = self.gateway.create_payment_intent(
            charge.cents,
            self.currency,
            customer_id,
            {
                'booking_id': str(booking.id),
                'session_id': str(session.id),
                'user_id': str(account.id),
            },
            idempotency_key=f"checkout-{booking.id}",
        )

        with self.uow_factory():
            order = self.order_repo.create_pending(NewOrder(
                booking_id=booking.id,
                user_id=account.id,
                amount_cents=charge.cents,
                discount_cents=discount.cents,
                stripe_payment_intent_id=intent.id,
                membership_id=membership.id if membership and discount.cents else None,
                currency=self.currency,
            ))

        logger.info(
            "checkout.created",
            booking_id=str(booking.id),
            order_id=str(order.id),
            amount_cents=charge.cents,
            discount_cents=discount.cents,
        )
        return CheckoutResult(
            client_secret=intent.client_secret,
            booking_id=booking.id,
            order_id=order.id,
            amount_cents=charge.cents,
            discount_cents=discount.cents,
        )

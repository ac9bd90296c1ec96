"""Wiring of the production ports into the payment use cases.

Views build their handlers through these functions; tests either pass fakes
to the handlers directly or patch ``get_payment_gateway``.
"""

from __future__ import annotations

from django.conf import settings  # type: ignore

from apps.bookings.application.cancellation import CancelBookingHandler
from apps.bookings.repositories import DjangoBookingRepository
from apps.scheduling.reservations import DjangoReservationService
from apps.users.repositories import DjangoUserDirectory

from .application.checkout import CheckoutHandler
from .application.split_payment import SplitPaymentHandler
from .application.subscriptions import SubscribeHandler
from .application.webhooks import WebhookRouter
from .gateway import PaymentGateway, StripeGateway
from .repositories import DjangoMembershipRepository, DjangoOrderRepository, DjangoWebhookLedger


def get_payment_gateway() -> PaymentGateway:
    return StripeGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        api_version=settings.STRIPE_API_VERSION,
        tolerance_seconds=settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS,
    )


def build_cancel_handler() -> CancelBookingHandler:
    return CancelBookingHandler(
        booking_repo=DjangoBookingRepository(DjangoReservationService()),
        order_repo=DjangoOrderRepository(),
        user_directory=DjangoUserDirectory(),
        gateway=get_payment_gateway(),
    )


def build_split_payment_handler() -> SplitPaymentHandler:
    return SplitPaymentHandler(
        reservations=DjangoReservationService(),
        order_repo=DjangoOrderRepository(),
        user_directory=DjangoUserDirectory(),
        gateway=get_payment_gateway(),
    )


def build_checkout_handler() -> CheckoutHandler:
    return CheckoutHandler(
        reservations=DjangoReservationService(),
        order_repo=DjangoOrderRepository(),
        membership_repo=DjangoMembershipRepository(),
        user_directory=DjangoUserDirectory(),
        gateway=get_payment_gateway(),
    )


def build_subscribe_handler() -> SubscribeHandler:
    return SubscribeHandler(user_directory=DjangoUserDirectory(), gateway=get_payment_gateway())


def build_webhook_router() -> WebhookRouter:
    return WebhookRouter(
        gateway=get_payment_gateway(),
        order_repo=DjangoOrderRepository(),
        booking_repo=DjangoBookingRepository(DjangoReservationService()),
        membership_repo=DjangoMembershipRepository(),
        user_directory=DjangoUserDirectory(),
        ledger=DjangoWebhookLedger() if settings.PAYMENTS_WEBHOOK_DEDUP else None,
    )

"""
Payment Webhook Router

The only writer of paid/failed order status and of every membership field.
Each verified event goes to one handler, which runs inside a unit of work
together with the event-ledger insert and reports a typed outcome. Gateway
lookups a handler needs are made before that transaction opens.

    applied    state changed                              200
    noop       nothing to change (no matching row, replay) 200
    duplicate  event id already in the ledger             200
    ignored    event type this service does not consume   200
    retry      store write or gateway lookup failed       500

Signature and parse failures raise before any handler runs (400).
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional
from uuid import UUID

import structlog
from django.db import DatabaseError
from django.utils import timezone

from apps.bookings.domain.events import BookingConfirmed
from apps.bookings.repositories import BookingRepository
from apps.finances.domain.entities import MembershipStatus, NewMembership, Order, OrderStatus
from apps.finances.domain.events import (
    MembershipActivated,
    MembershipStatusChanged,
    OrderPaid,
    OrderPaymentFailed,
)
from apps.finances.domain.memberships import (
    benefits_for,
    map_subscription_status,
    resolve_tier,
)
from apps.finances.gateway import PaymentGateway, SubscriptionInfo, field_of, subscription_period
from apps.finances.repositories import MembershipRepository, OrderRepository, WebhookLedger
from apps.users.repositories import UserDirectory
from shared.application.uow import AbstractUnitOfWork, DjangoUnitOfWork
from shared.domain.errors import GatewayError, InvalidInputError

logger = structlog.get_logger(__name__)


class WebhookOutcome(str, Enum):
    APPLIED = 'applied'
    NOOP = 'noop'
    DUPLICATE = 'duplicate'
    IGNORED = 'ignored'
    RETRY = 'retry'


@dataclass(frozen=True)
class WebhookResult:
    outcome: WebhookOutcome
    event_id: str
    event_type: str
    detail: str = ''

    @property
    def http_status(self) -> int:
        return 500 if self.outcome is WebhookOutcome.RETRY else 200

    def to_response(self) -> dict:
        if self.outcome is WebhookOutcome.RETRY:
            return {'received': False, 'error': self.detail or 'Temporary failure, retry later'}
        return {'received': True, 'outcome': self.outcome.value}


class _AlreadyRecorded(Exception):
    """A concurrent delivery of the same event committed first."""


def _as_uuid(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _invoice_subscription_id(invoice: Mapping[str, Any]) -> Optional[str]:
    subscription = field_of(invoice, 'subscription')
    if subscription is None:
        details = field_of(field_of(invoice, 'parent'), 'subscription_details')
        subscription = field_of(details, 'subscription')
    if isinstance(subscription, str):
        return subscription or None
    return field_of(subscription, 'id')


Handled = tuple[WebhookOutcome, str]


class WebhookRouter:
    def __init__(
        self,
        gateway: PaymentGateway,
        order_repo: OrderRepository,
        booking_repo: BookingRepository,
        membership_repo: MembershipRepository,
        user_directory: UserDirectory,
        ledger: Optional[WebhookLedger] = None,
        uow_factory: Callable[[], AbstractUnitOfWork] = DjangoUnitOfWork,
        clock: Callable[[], datetime] = timezone.now,
    ):
        self.gateway = gateway
        self.order_repo = order_repo
        self.booking_repo = booking_repo
        self.membership_repo = membership_repo
        self.user_directory = user_directory
        self.ledger = ledger
        self.uow_factory = uow_factory
        self.clock = clock
        self._handlers: dict[str, Callable[..., Handled]] = {
            'payment_intent.succeeded': self._payment_succeeded,
            'payment_intent.payment_failed': self._payment_failed,
            'customer.subscription.created': self._subscription_created,
            'customer.subscription.updated': self._subscription_updated,
            'customer.subscription.deleted': self._subscription_deleted,
            'invoice.paid': self._invoice_paid,
        }
        # Gateway reads for a handler, keyed by event type. Their results are
        # passed to the handler as keyword arguments.
        self._prefetchers: dict[str, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
            'invoice.paid': self._fetch_invoice_subscription,
        }

    @property
    def handled_event_types(self) -> frozenset:
        return frozenset(self._handlers)

    def handle(self, raw_body: bytes, signature: Optional[str]) -> WebhookResult:
        if not signature:
            raise InvalidInputError("Missing signature header")
        event = self.gateway.parse_event(raw_body, signature)
        log = logger.bind(event_id=event.id, event_type=event.type)

        handler = self._handlers.get(event.type)
        if handler is None:
            log.info("webhook.ignored")
            return WebhookResult(WebhookOutcome.IGNORED, event.id, event.type)

        if self.ledger is not None and self.ledger.has_processed(event.id):
            log.info("webhook.duplicate")
            return WebhookResult(WebhookOutcome.DUPLICATE, event.id, event.type)

        prefetch = self._prefetchers.get(event.type)
        try:
            fetched = prefetch(event.object) if prefetch else {}
        except GatewayError as exc:
            log.error("webhook.gateway_failed", error=exc.message)
            return WebhookResult(WebhookOutcome.RETRY, event.id, event.type, "Gateway lookup failed")

        try:
            with self.uow_factory() as uow:
                outcome, detail = handler(event.object, uow, **fetched)
                if self.ledger is not None and not self.ledger.record(event.id, event.type, outcome.value):
                    raise _AlreadyRecorded(event.id)
        except _AlreadyRecorded:
            log.info("webhook.duplicate", concurrent=True)
            return WebhookResult(WebhookOutcome.DUPLICATE, event.id, event.type)
        except DatabaseError as exc:
            log.error("webhook.store_failed", error=str(exc), exc_info=True)
            return WebhookResult(WebhookOutcome.RETRY, event.id, event.type, "Store write failed")

        log.info(f"webhook.{outcome.value}", detail=detail)
        return WebhookResult(outcome, event.id, event.type, detail)

    # ----- payment intents -------------------------------------------------

    def _payment_succeeded(self, intent: Mapping[str, Any], uow: AbstractUnitOfWork) -> Handled:
        intent_id = field_of(intent, 'id')
        order = self.order_repo.get_by_payment_intent(intent_id) if intent_id else None
        if order is None:
            return WebhookOutcome.NOOP, f"no order for payment intent {intent_id}"

        changed = False
        if self.order_repo.mark_paid(order.id):
            changed = True
            uow.add_event(OrderPaid(
                order_id=order.id,
                booking_id=order.booking_id,
                amount_cents=order.amount_cents,
                payment_intent_id=intent_id,
                aggregate_id=order.id,
            ))

        booking_id = _as_uuid(field_of(field_of(intent, 'metadata'), 'booking_id')) or order.booking_id
        if self.booking_repo.mark_confirmed(booking_id, self.clock()):
            changed = True
            uow.add_event(BookingConfirmed(booking_id=booking_id, order_id=order.id, aggregate_id=booking_id))
        else:
            self._warn_if_cancelled(booking_id, order)

        if changed:
            return WebhookOutcome.APPLIED, f"order {order.id} paid"
        return WebhookOutcome.NOOP, f"order {order.id} already {order.status.value}"

    def _warn_if_cancelled(self, booking_id: UUID, order: Order) -> None:
        if order.status is OrderStatus.REFUNDED:
            return
        booking = self.booking_repo.get(booking_id)
        if booking is not None and booking.is_cancelled:
            logger.error(
                "webhook.payment_for_cancelled_booking",
                booking_id=str(booking_id),
                order_id=str(order.id),
                amount_cents=order.amount_cents,
            )

    def _payment_failed(self, intent: Mapping[str, Any], uow: AbstractUnitOfWork) -> Handled:
        intent_id = field_of(intent, 'id')
        order = self.order_repo.get_by_payment_intent(intent_id) if intent_id else None
        if order is None:
            return WebhookOutcome.NOOP, f"no order for payment intent {intent_id}"
        if not self.order_repo.mark_failed(order.id):
            return WebhookOutcome.NOOP, f"order {order.id} is {order.status.value}, not pending"

        uow.add_event(OrderPaymentFailed(
            order_id=order.id,
            booking_id=order.booking_id,
            payment_intent_id=intent_id,
            aggregate_id=order.id,
        ))
        return WebhookOutcome.APPLIED, f"order {order.id} failed"

    # ----- subscriptions ----------------------------------------------------

    def _subscription_created(self, subscription: Mapping[str, Any], uow: AbstractUnitOfWork) -> Handled:
        subscription_id = field_of(subscription, 'id')
        metadata = field_of(subscription, 'metadata', {})
        user_id = _as_uuid(field_of(metadata, 'user_id'))
        if not subscription_id or user_id is None:
            return WebhookOutcome.NOOP, "subscription has no user_id metadata"
        if self.user_directory.get(user_id) is None:
            return WebhookOutcome.NOOP, f"user {user_id} does not exist"

        tier_name = field_of(metadata, 'tier')
        tier = resolve_tier(tier_name)
        if tier_name and tier.value != tier_name:
            logger.warning("webhook.unknown_tier", tier=tier_name, subscription_id=subscription_id)
        benefits = benefits_for(tier)
        period_start, period_end = subscription_period(subscription)

        membership = self.membership_repo.create_if_absent(NewMembership(
            user_id=user_id,
            tier=tier,
            external_subscription_id=subscription_id,
            discount_percent=benefits.discount_percent,
            priority_booking_hours=benefits.priority_booking_hours,
            guest_passes_remaining=benefits.guest_passes,
            current_period_start=period_start,
            current_period_end=period_end,
            status=MembershipStatus.ACTIVE,
        ))
        if membership is None:
            return WebhookOutcome.NOOP, f"membership for {subscription_id} already exists"

        uow.add_event(MembershipActivated(
            membership_id=membership.id,
            user_id=user_id,
            tier=tier.value,
            external_subscription_id=subscription_id,
            aggregate_id=membership.id,
        ))
        return WebhookOutcome.APPLIED, f"membership {membership.id} created"

    def _subscription_updated(self, subscription: Mapping[str, Any], uow: AbstractUnitOfWork) -> Handled:
        subscription_id = field_of(subscription, 'id')
        status = map_subscription_status(field_of(subscription, 'status'))
        period_start, period_end = subscription_period(subscription)
        return self._apply_status(subscription_id, status, period_start, period_end, 'subscription.updated', uow)

    def _subscription_deleted(self, subscription: Mapping[str, Any], uow: AbstractUnitOfWork) -> Handled:
        subscription_id = field_of(subscription, 'id')
        if not subscription_id or not self.membership_repo.cancel(subscription_id):
            return WebhookOutcome.NOOP, f"no live membership for {subscription_id}"
        uow.add_event(MembershipStatusChanged(
            external_subscription_id=subscription_id,
            status=MembershipStatus.CANCELLED.value,
            source_event='subscription.deleted',
        ))
        return WebhookOutcome.APPLIED, f"membership for {subscription_id} cancelled"

    def _fetch_invoice_subscription(self, invoice: Mapping[str, Any]) -> dict[str, Any]:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id:
            return {}
        return {'current': self.gateway.retrieve_subscription(subscription_id)}

    def _invoice_paid(
        self,
        invoice: Mapping[str, Any],
        uow: AbstractUnitOfWork,
        current: Optional[SubscriptionInfo] = None,
    ) -> Handled:
        subscription_id = _invoice_subscription_id(invoice)
        if not subscription_id or current is None:
            return WebhookOutcome.NOOP, "invoice is not for a subscription"
        return self._apply_status(
            subscription_id,
            MembershipStatus.ACTIVE,
            current.current_period_start,
            current.current_period_end,
            'invoice.paid',
            uow,
        )

    def _apply_status(
        self,
        subscription_id: Optional[str],
        status: MembershipStatus,
        period_start: Optional[datetime],
        period_end: Optional[datetime],
        source: str,
        uow: AbstractUnitOfWork,
    ) -> Handled:
        if not subscription_id or not self.membership_repo.update_status(
            subscription_id, status, period_start, period_end
        ):
            return WebhookOutcome.NOOP, f"no live membership for {subscription_id}"
        uow.add_event(MembershipStatusChanged(
            external_subscription_id=subscription_id,
            status=status.value,
            source_event=source,
        ))
        return WebhookOutcome.APPLIED, f"membership for {subscription_id} is {status.value}"

"""In-memory implementations of the payment core's ports."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID, uuid4

from django.db import DatabaseError

from apps.bookings.domain.entities import CANCELLABLE_STATUSES, Booking, BookingStatus
from apps.bookings.repositories import BookingRepository
from apps.finances.domain.entities import (
    Membership,
    MembershipStatus,
    NewMembership,
    NewOrder,
    Order,
    OrderStatus,
)
from apps.finances.gateway import (
    CreatedSubscription,
    GatewayEvent,
    PaymentGateway,
    PaymentIntent,
    RefundReceipt,
    SubscriptionInfo,
)
from apps.finances.repositories import MembershipRepository, OrderRepository, WebhookLedger
from apps.scheduling.domain import SessionSnapshot, SessionStatus
from apps.scheduling.reservations import ReservationService
from apps.users.repositories import Account, UserDirectory
from shared.application.uow import AbstractUnitOfWork
from shared.domain.errors import (
    CapacityError,
    DuplicateBookingError,
    GatewayError,
    InvalidInputError,
    NotFoundError,
    SignatureInvalidError,
)

VALID_SIGNATURE = "t=1,v1=valid"


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self):
        self.pending = []
        self.published = []
        self.committed = 0
        self.rolled_back = 0

    def __call__(self):
        return self

    def commit(self):
        self.committed += 1
        self.published.extend(self.pending)
        self.pending = []

    def rollback(self):
        self.rolled_back += 1
        self.pending = []

    def add_event(self, event):
        self.pending.append(event)

    def published_types(self) -> list[str]:
        return [type(event).__name__ for event in self.published]


class FakeGateway(PaymentGateway):
    def __init__(self):
        self.customers: list[tuple[str, dict]] = []
        self.intents: list[dict] = []
        self.refunds: list[dict] = []
        self.subscriptions_created: list[dict] = []
        self.subscriptions: dict[str, SubscriptionInfo] = {}
        self.fail_refund = False
        self.fail_refund_lookup = False
        self.refund_lookups = 0
        self._refund_keys: dict[str, RefundReceipt] = {}
        self.fail_intent_for_customers: set[str] = set()
        self.fail_retrieve = False

    def create_customer(self, email, metadata):
        customer_id = f"cus_{len(self.customers) + 1}"
        self.customers.append((email, dict(metadata)))
        return customer_id

    def create_payment_intent(self, amount_cents, currency, customer_id, metadata, idempotency_key=None):
        if customer_id in self.fail_intent_for_customers:
            raise GatewayError("Card network timeout")
        intent_id = f"pi_{len(self.intents) + 1}"
        self.intents.append({
            "id": intent_id,
            "amount_cents": amount_cents,
            "currency": currency,
            "customer_id": customer_id,
            "metadata": dict(metadata),
            "idempotency_key": idempotency_key,
        })
        return PaymentIntent(id=intent_id, client_secret=f"{intent_id}_secret")

    def create_refund(self, payment_intent_id, amount_cents, idempotency_key=None):
        if self.fail_refund:
            raise GatewayError("Refund declined")
        if idempotency_key is not None and idempotency_key in self._refund_keys:
            earlier = self._refund_keys[idempotency_key]
            if earlier.amount_cents != amount_cents:
                raise GatewayError("Keys for idempotent requests can only be used with the same parameters")
            return earlier
        self.refunds.append({
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
            "idempotency_key": idempotency_key,
        })
        receipt = RefundReceipt(id=f"re_{len(self.refunds)}", amount_cents=amount_cents, status="succeeded")
        if idempotency_key is not None:
            self._refund_keys[idempotency_key] = receipt
        return receipt

    def list_refunds(self, payment_intent_id):
        self.refund_lookups += 1
        if self.fail_refund_lookup:
            raise GatewayError("Gateway unavailable")
        return [
            RefundReceipt(id=f"re_{index}", amount_cents=refund["amount_cents"], status="succeeded")
            for index, refund in reversed(list(enumerate(self.refunds, start=1)))
            if refund["payment_intent_id"] == payment_intent_id
        ]

    def retrieve_subscription(self, subscription_id):
        if self.fail_retrieve:
            raise GatewayError("Gateway unavailable")
        try:
            return self.subscriptions[subscription_id]
        except KeyError:
            raise GatewayError(f"No such subscription: {subscription_id}")

    def create_subscription(self, customer_id, price_id, metadata):
        subscription_id = f"sub_{len(self.subscriptions_created) + 1}"
        self.subscriptions_created.append({
            "id": subscription_id,
            "customer_id": customer_id,
            "price_id": price_id,
            "metadata": dict(metadata),
        })
        return CreatedSubscription(id=subscription_id, client_secret=f"{subscription_id}_secret")

    def parse_event(self, raw_body, signature):
        if signature != VALID_SIGNATURE:
            raise SignatureInvalidError("Invalid signature")
        try:
            data = json.loads(raw_body)
        except ValueError as exc:
            raise InvalidInputError("Webhook body is not valid JSON") from exc
        return GatewayEvent(id=data["id"], type=data["type"], object=data["data"]["object"])


def make_event(event_type: str, obj: dict, event_id: Optional[str] = None) -> bytes:
    return json.dumps({
        "id": event_id or f"evt_{uuid4().hex[:12]}",
        "type": event_type,
        "data": {"object": obj},
    }).encode()


class InMemoryUserDirectory(UserDirectory):
    def __init__(self, accounts: Iterable[Account] = ()):
        self.accounts = {account.id: account for account in accounts}
        self.fail_resolve_for: set[str] = set()

    def add(self, email: str, role: str = "player", customer_id: str = "") -> Account:
        account = Account(id=uuid4(), email=email, role=role, stripe_customer_id=customer_id)
        self.accounts[account.id] = account
        return account

    def resolve(self, identifier):
        wanted = (identifier or "").strip().lower()
        if wanted in self.fail_resolve_for:
            raise DatabaseError("connection reset")
        return next((a for a in self.accounts.values() if a.email.lower() == wanted), None)

    def get(self, user_id):
        return self.accounts.get(user_id)

    def is_admin(self, user_id):
        account = self.accounts.get(user_id)
        return bool(account and account.is_admin)

    def attach_customer(self, user_id, customer_id):
        account = self.accounts[user_id]
        if account.stripe_customer_id:
            return account.stripe_customer_id
        self.accounts[user_id] = replace(account, stripe_customer_id=customer_id)
        return customer_id


class FakeReservationService(ReservationService):
    def __init__(self):
        self.sessions: dict[UUID, SessionSnapshot] = {}
        self.bookings: dict[UUID, Booking] = {}
        self.released: list[tuple[UUID, int]] = []

    def add_session(self, price_cents: int, spots: int, starts_at: datetime,
                    status: SessionStatus = SessionStatus.OPEN) -> SessionSnapshot:
        session = SessionSnapshot(
            id=uuid4(), price_cents=price_cents, spots_remaining=spots, status=status, starts_at=starts_at
        )
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id):
        return self.sessions.get(session_id)

    def reserve_spot(self, session_id, user_id, guests=0):
        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if session.status is not SessionStatus.OPEN:
            raise CapacityError("Session is not open for booking")
        needed = 1 + guests
        if session.spots_remaining < needed:
            raise CapacityError(f"Not enough spots. Need {needed}, available: {session.spots_remaining}")
        if any(b.session_id == session_id and b.user_id == user_id and not b.is_cancelled
               for b in self.bookings.values()):
            raise DuplicateBookingError("User already has a booking for this session")
        remaining = session.spots_remaining - needed
        self.sessions[session_id] = replace(
            session,
            spots_remaining=remaining,
            status=SessionStatus.FULL if remaining == 0 else session.status,
        )
        booking = Booking(
            id=uuid4(),
            session_id=session_id,
            user_id=user_id,
            status=BookingStatus.RESERVED,
            reserved_at=datetime.now(timezone.utc),
            guests=guests,
        )
        self.bookings[booking.id] = booking
        return booking

    def release_spot(self, session_id, spots):
        self.released.append((session_id, spots))


class InMemoryBookingRepository(BookingRepository):
    def __init__(self, reservations: FakeReservationService):
        self.reservations = reservations

    @property
    def bookings(self) -> dict[UUID, Booking]:
        return self.reservations.bookings

    def get(self, booking_id):
        return self.bookings.get(booking_id)

    def get_with_session(self, booking_id):
        booking = self.bookings.get(booking_id)
        if booking is None:
            return None
        return booking, self.reservations.sessions[booking.session_id]

    def mark_cancelled(self, booking_id, at, from_statuses=CANCELLABLE_STATUSES):
        booking = self.bookings.get(booking_id)
        if booking is None or booking.status not in set(from_statuses):
            return False
        self.bookings[booking_id] = replace(booking, status=BookingStatus.CANCELLED, cancelled_at=at)
        self.reservations.release_spot(booking.session_id, booking.spots_held)
        return True

    def mark_confirmed(self, booking_id, at):
        booking = self.bookings.get(booking_id)
        if booking is None or booking.status is not BookingStatus.RESERVED:
            return False
        self.bookings[booking_id] = replace(booking, status=BookingStatus.CONFIRMED, confirmed_at=at)
        return True

    def stale_reservations(self, reserved_before):
        return [
            b.id for b in self.bookings.values()
            if b.status is BookingStatus.RESERVED and b.reserved_at < reserved_before
        ]


class InMemoryOrderRepository(OrderRepository):
    def __init__(self):
        self.orders: dict[UUID, Order] = {}
        self.fail_on_create = False

    def add(self, booking_id: UUID, user_id: UUID, amount_cents: int,
            status: OrderStatus = OrderStatus.PAID, payment_intent_id: Optional[str] = "pi_paid") -> Order:
        order = Order(
            id=uuid4(),
            booking_id=booking_id,
            user_id=user_id,
            amount_cents=amount_cents,
            status=status,
            stripe_payment_intent_id=payment_intent_id,
        )
        self.orders[order.id] = order
        return order

    def latest_paid_for_booking(self, booking_id):
        paid = [o for o in self.orders.values() if o.booking_id == booking_id and o.status is OrderStatus.PAID]
        return paid[-1] if paid else None

    def get_by_payment_intent(self, payment_intent_id):
        return next(
            (o for o in self.orders.values() if o.stripe_payment_intent_id == payment_intent_id), None
        )

    def create_pending(self, new_order: NewOrder):
        if self.fail_on_create:
            raise DatabaseError("database is locked")
        order = Order(
            id=uuid4(),
            booking_id=new_order.booking_id,
            user_id=new_order.user_id,
            amount_cents=new_order.amount_cents,
            status=OrderStatus.PENDING,
            discount_cents=new_order.discount_cents,
            stripe_payment_intent_id=new_order.stripe_payment_intent_id,
            is_split=new_order.is_split,
            split_group_id=new_order.split_group_id,
            membership_id=new_order.membership_id,
            currency=new_order.currency,
        )
        self.orders[order.id] = order
        return order

    def _transition(self, order_id, from_statuses, to_status):
        order = self.orders.get(order_id)
        if order is None or order.status not in from_statuses:
            return False
        self.orders[order_id] = replace(order, status=to_status)
        return True

    def mark_paid(self, order_id):
        return self._transition(order_id, {OrderStatus.PENDING, OrderStatus.FAILED}, OrderStatus.PAID)

    def mark_failed(self, order_id):
        return self._transition(order_id, {OrderStatus.PENDING}, OrderStatus.FAILED)

    def mark_refunded(self, order_id):
        return self._transition(order_id, {OrderStatus.PAID}, OrderStatus.REFUNDED)


class InMemoryMembershipRepository(MembershipRepository):
    def __init__(self):
        self.memberships: dict[str, Membership] = {}

    def get_by_subscription(self, external_subscription_id):
        return self.memberships.get(external_subscription_id)

    def active_for_user(self, user_id):
        return next(
            (m for m in self.memberships.values() if m.user_id == user_id and m.is_active), None
        )

    def create_if_absent(self, new_membership: NewMembership):
        if new_membership.external_subscription_id in self.memberships:
            return None
        membership = Membership(id=uuid4(), **vars(new_membership))
        self.memberships[membership.external_subscription_id] = membership
        return membership

    def update_status(self, external_subscription_id, status, period_start=None, period_end=None):
        membership = self.memberships.get(external_subscription_id)
        if membership is None or membership.status is MembershipStatus.CANCELLED:
            return False
        self.memberships[external_subscription_id] = replace(
            membership,
            status=status,
            current_period_start=period_start or membership.current_period_start,
            current_period_end=period_end or membership.current_period_end,
        )
        return True

    def cancel(self, external_subscription_id):
        return self.update_status(external_subscription_id, MembershipStatus.CANCELLED)


class InMemoryWebhookLedger(WebhookLedger):
    def __init__(self):
        self.events: dict[str, str] = {}

    def has_processed(self, event_id):
        return event_id in self.events

    def record(self, event_id, event_type, outcome):
        if event_id in self.events:
            return False
        self.events[event_id] = outcome
        return True

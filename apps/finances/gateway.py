"""Payment gateway port and its Stripe adapter.

Orchestrators only ever see ``PaymentGateway``. ``StripeGateway`` carries its
own credentials and passes them on every call instead of relying on the
module-level ``stripe.api_key``.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Optional

import stripe
import structlog

from shared.domain.errors import GatewayError, InvalidInputError, SignatureInvalidError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str


@dataclass(frozen=True)
class RefundReceipt:
    id: str
    amount_cents: int
    status: str


@dataclass(frozen=True)
class SubscriptionInfo:
    id: str
    status: str
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CreatedSubscription:
    id: str
    client_secret: Optional[str]


@dataclass(frozen=True)
class GatewayEvent:
    """A verified webhook event. ``object`` is the event's ``data.object`` payload."""
    id: str
    type: str
    object: Mapping[str, Any]


class PaymentGateway(ABC):
    @abstractmethod
    def create_customer(self, email: str, metadata: Mapping[str, str]) -> str:
        ...

    @abstractmethod
    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        customer_id: str,
        metadata: Mapping[str, str],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        ...

    @abstractmethod
    def create_refund(
        self,
        payment_intent_id: str,
        amount_cents: int,
        idempotency_key: Optional[str] = None,
    ) -> RefundReceipt:
        ...

    @abstractmethod
    def list_refunds(self, payment_intent_id: str) -> list[RefundReceipt]:
        """Refunds already issued against a payment intent, newest first."""

    @abstractmethod
    def retrieve_subscription(self, subscription_id: str) -> SubscriptionInfo:
        ...

    @abstractmethod
    def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: Mapping[str, str],
    ) -> CreatedSubscription:
        ...

    @abstractmethod
    def parse_event(self, raw_body: bytes, signature: str) -> GatewayEvent:
        """
        Verify ``signature`` over the raw body and decode the event.

        Raises SignatureInvalidError or InvalidInputError.
        """


def field_of(obj: Any, key: str, default: Any = None) -> Any:
    """Item lookup that works for plain dicts and Stripe objects alike."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def from_unix(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def subscription_period(subscription: Any) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Period bounds of a subscription payload.

    Newer API versions moved them from the subscription onto its items.
    """
    start = field_of(subscription, "current_period_start")
    end = field_of(subscription, "current_period_end")
    if start is None or end is None:
        items = field_of(field_of(subscription, "items"), "data", [])
        if items:
            start = start or field_of(items[0], "current_period_start")
            end = end or field_of(items[0], "current_period_end")
    return from_unix(start), from_unix(end)


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        api_key: str,
        webhook_secret: str,
        api_version: Optional[str] = None,
        tolerance_seconds: int = 300,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.api_version = api_version
        self.tolerance_seconds = tolerance_seconds

    def _request_options(self, idempotency_key: Optional[str] = None) -> dict:
        options: dict = {"api_key": self.api_key}
        if self.api_version:
            options["stripe_version"] = self.api_version
        if idempotency_key:
            options["idempotency_key"] = idempotency_key
        return options

    @contextmanager
    def _translate_errors(self, operation: str, **context: Any) -> Iterator[None]:
        try:
            yield
        except stripe.StripeError as exc:
            logger.error(
                "stripe.call_failed",
                operation=operation,
                error=str(exc),
                http_status=getattr(exc, "http_status", None),
                request_id=getattr(exc, "request_id", None),
                **context,
            )
            message = getattr(exc, "user_message", None) or str(exc) or "Payment provider error"
            raise GatewayError(message) from exc

    def create_customer(self, email: str, metadata: Mapping[str, str]) -> str:
        with self._translate_errors("customer.create"):
            customer = stripe.Customer.create(
                email=email,
                metadata=dict(metadata),
                **self._request_options(),
            )
        logger.info("stripe.customer_created", customer_id=customer.id)
        return customer.id

    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        customer_id: str,
        metadata: Mapping[str, str],
        idempotency_key: Optional[str] = None,
    ) -> PaymentIntent:
        with self._translate_errors("payment_intent.create", amount_cents=amount_cents):
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency,
                customer=customer_id,
                metadata=dict(metadata),
                automatic_payment_methods={"enabled": True},
                **self._request_options(idempotency_key),
            )
        return PaymentIntent(id=intent.id, client_secret=intent.client_secret)

    def create_refund(
        self,
        payment_intent_id: str,
        amount_cents: int,
        idempotency_key: Optional[str] = None,
    ) -> RefundReceipt:
        with self._translate_errors("refund.create", payment_intent_id=payment_intent_id):
            refund = stripe.Refund.create(
                payment_intent=payment_intent_id,
                amount=amount_cents,
                **self._request_options(idempotency_key),
            )
        return RefundReceipt(id=refund.id, amount_cents=refund.amount, status=refund.status)

    def list_refunds(self, payment_intent_id: str) -> list[RefundReceipt]:
        with self._translate_errors("refund.list", payment_intent_id=payment_intent_id):
            refunds = stripe.Refund.list(
                payment_intent=payment_intent_id,
                limit=100,
                **self._request_options(),
            )
        return [
            RefundReceipt(id=refund.id, amount_cents=refund.amount, status=refund.status)
            for refund in refunds.data
        ]

    def retrieve_subscription(self, subscription_id: str) -> SubscriptionInfo:
        with self._translate_errors("subscription.retrieve", subscription_id=subscription_id):
            subscription = stripe.Subscription.retrieve(subscription_id, **self._request_options())
        start, end = subscription_period(subscription)
        metadata = field_of(subscription, "metadata", {})
        return SubscriptionInfo(
            id=subscription.id,
            status=field_of(subscription, "status", ""),
            current_period_start=start,
            current_period_end=end,
            metadata={key: metadata[key] for key in metadata.keys()} if metadata else {},
        )

    def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        metadata: Mapping[str, str],
    ) -> CreatedSubscription:
        with self._translate_errors("subscription.create", customer_id=customer_id):
            subscription = stripe.Subscription.create(
                customer=customer_id,
                items=[{"price": price_id}],
                payment_behavior="default_incomplete",
                payment_settings={"save_default_payment_method": "on_subscription"},
                expand=["latest_invoice.payment_intent"],
                metadata=dict(metadata),
                **self._request_options(),
            )
        invoice = field_of(subscription, "latest_invoice")
        client_secret = field_of(field_of(invoice, "payment_intent"), "client_secret")
        return CreatedSubscription(id=subscription.id, client_secret=client_secret)

    def parse_event(self, raw_body: bytes, signature: str) -> GatewayEvent:
        if not self.webhook_secret:
            logger.error("stripe.webhook_secret_missing")
            raise SignatureInvalidError("Webhook secret is not configured")
        try:
            payload = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidInputError("Webhook body is not valid UTF-8") from exc

        try:
            stripe.WebhookSignature.verify_header(
                payload, signature, self.webhook_secret, self.tolerance_seconds
            )
        except stripe.SignatureVerificationError as exc:
            raise SignatureInvalidError("Invalid signature") from exc

        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise InvalidInputError("Webhook body is not valid JSON") from exc

        event_id = field_of(data, "id")
        event_type = field_of(data, "type")
        if not event_id or not event_type:
            raise InvalidInputError("Webhook event is missing id or type")
        return GatewayEvent(
            id=event_id,
            type=event_type,
            object=field_of(field_of(data, "data"), "object", {}),
        )

from django.apps import AppConfig
from django.conf import settings


class FinancesConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.finances"
    label = "finances"

    def ready(self) -> None:
        import stripe

        from shared.application.audit import audit_log
        from shared.application.message_bus import message_bus

        from .domain import events

        # Gateway calls are synchronous and never retried inside the core.
        stripe.default_http_client = stripe.RequestsClient(timeout=settings.STRIPE_TIMEOUT_SECONDS)
        stripe.max_network_retries = 0

        for event_type in (
            events.OrderPaid,
            events.OrderPaymentFailed,
            events.OrderRefunded,
            events.SplitGroupCreated,
            events.MembershipActivated,
            events.MembershipStatusChanged,
        ):
            message_bus.register_event_handler(event_type, audit_log)

from django.apps import AppConfig


class BookingsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.bookings"
    label = "bookings"

    def ready(self) -> None:
        from shared.application.audit import audit_log
        from shared.application.message_bus import message_bus

        from .domain.events import BookingCancelled, BookingConfirmed

        for event_type in (BookingCancelled, BookingConfirmed):
            message_bus.register_event_handler(event_type, audit_log)

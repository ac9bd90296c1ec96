import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("session_booking")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Release unpaid reservations every 5 minutes
    "release-expired-reservations": {
        "task": "bookings.release_expired_reservations",
        "schedule": 300.0,
        "options": {"expires": 240},
    },
}

app.conf.timezone = "UTC"

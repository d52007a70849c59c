import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("carparkly")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

SWEEP_INTERVAL_SECONDS = float(os.environ.get("BOOKING_SWEEP_INTERVAL_SECONDS", 60))

app.conf.beat_schedule = {
    # Auto-cancel pending bookings that were never paid
    "auto-cancel-expired-bookings": {
        "task": "bookings.auto_cancel_expired_bookings",
        "schedule": SWEEP_INTERVAL_SECONDS,
        # A run not picked up before the next one is due is dropped
        "options": {"expires": SWEEP_INTERVAL_SECONDS},
    },
}

app.conf.timezone = "UTC"

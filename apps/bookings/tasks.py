"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .models import Booking
from .services import auto_cancel_expired_bookings

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.auto_cancel_expired_bookings")
def auto_cancel_expired_bookings_task() -> dict[str, int]:
    """
    Cancel pending bookings whose payment window has lapsed.

    Scheduled every BOOKING_SWEEP_INTERVAL_SECONDS through Celery Beat.

    Returns:
        dict: {"cancelled": number of bookings cancelled}
    """
    return {"cancelled": auto_cancel_expired_bookings()}


# ============================================================================
# NOTIFICATION TASKS
# ============================================================================

@shared_task(name="bookings.notify_booking_cancelled")
def notify_booking_cancelled(booking_id: int) -> bool:
    """Tell the partner that a client cancelled a booking."""
    try:
        booking = Booking.objects.select_related("partner__user", "parking_spot").get(id=booking_id)

        from apps.notifications.services import notify_partner_booking_cancelled

        notify_partner_booking_cancelled(booking)

        logger.info(
            f"[NOTIFICATION] Booking cancelled notification sent: {booking.booking_code} "
            f"to partner {booking.partner_id}"
        )
        return True
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for cancellation notification")
        return False


@shared_task(name="bookings.notify_booking_expired")
def notify_booking_expired(booking_id: int) -> bool:
    """Tell the client that an unpaid booking was cancelled."""
    try:
        booking = Booking.objects.select_related("client", "parking_spot").get(id=booking_id)

        from apps.notifications.services import notify_client_booking_expired

        notify_client_booking_expired(booking)

        logger.info(
            f"[NOTIFICATION] Booking expired notification sent: {booking.booking_code} "
            f"to client {booking.client.email}"
        )
        return True
    except Booking.DoesNotExist:
        logger.error(f"Booking {booking_id} not found for expiry notification")
        return False

"""Notification services for sending emails and in-app messages."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore

if TYPE_CHECKING:  # pragma: no cover
    from apps.users.models import CustomUser
    from apps.bookings.models import Booking

logger = logging.getLogger(__name__)


def send_email_notification(recipient_email: str, subject: str, message: str) -> bool:
    """
    Send a plain-text email.

    Returns:
        bool: True if the message was handed to the mail backend
    """
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            fail_silently=False,
        )

        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


def create_in_app_notification(user: "CustomUser", title: str, message: str) -> bool:
    """
    Store an in-app notification for ``user``.

    Returns:
        bool: True if the notification was created
    """
    try:
        from .models import Notification

        Notification.objects.create(
            user=user,
            title=title,
            message=message,
        )

        logger.info(f"In-app notification created for {user.email}: {title}")
        return True

    except Exception as e:
        logger.error(f"Failed to create in-app notification for {user.email}: {e}", exc_info=True)
        return False


def notify_user_all_channels(user: "CustomUser", title: str, message: str) -> dict[str, bool]:
    """Deliver a notification by email (when the user has one) and in-app."""

    results = {"email": False, "in_app": False}

    if user.email:
        results["email"] = send_email_notification(user.email, title, message)

    results["in_app"] = create_in_app_notification(user, title, message)

    return results


def notify_partner_booking_cancelled(booking: "Booking") -> dict[str, bool]:
    partner = booking.partner
    spot_name = booking.parking_spot.name if booking.parking_spot else "your parking spot"
    title = f"Booking #{booking.booking_code} cancelled"
    message = (
        f"The client cancelled booking #{booking.booking_code} at {spot_name} "
        f"for {booking.start_time:%Y-%m-%d %H:%M} - {booking.end_time:%Y-%m-%d %H:%M}."
    )
    if booking.is_refunded:
        message += f" A refund of {booking.refund_amount} was issued."
    return notify_user_all_channels(partner.user, title, message)


def notify_client_booking_expired(booking: "Booking") -> dict[str, bool]:
    spot_name = booking.parking_spot.name if booking.parking_spot else "the parking spot"
    title = f"Booking #{booking.booking_code} cancelled"
    message = (
        f"Payment for your booking at {spot_name} was not received in time, "
        f"so the booking has been cancelled."
    )
    return notify_user_all_channels(booking.client, title, message)

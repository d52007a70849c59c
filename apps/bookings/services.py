"""Domain services for booking workflows.

The functions below coordinate the booking, payment and partner stores:
creation with availability and overlap checks, status changes validated
against the transition table, client cancellation with refund, and the
expiration sweep for pending bookings that were never paid.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from django.db.models import QuerySet  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.partners.models import Partner
from apps.partners.services import log_partner_action
from apps.payments.services import process_refund

from .domain import transitions
from .models import Booking, BookingActionLog

logger = logging.getLogger(__name__)

AUTO_CANCEL_ACTION = "Booking auto-cancelled due to expiration"
PARTNER_CANCEL_ACTION = "Booking Cancelled"


class BookingError(Exception):
    """Base class for booking workflow failures."""


class BookingNotFoundError(BookingError):
    """Raised when a booking id does not resolve."""


class UnauthorizedBookingActionError(BookingError):
    """Raised when the acting client does not own the booking."""


class PartnerUnavailableError(BookingError):
    """Raised when the spot owner does not exist or is not active."""


class BookingConflictError(BookingError):
    """Raised when the requested window overlaps a confirmed booking."""


class InvalidBookingWindowError(BookingError):
    """Raised when the booking window is empty or reversed."""


class InvalidBookingTransitionError(BookingError):
    """Raised when a status change is not allowed."""


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _resolve_id(value: Any) -> Any:
    return getattr(value, "pk", value)


def _get_booking(booking_id, *, lock: bool = False) -> Booking:
    try:
        queryset = Booking.objects.filter(pk=booking_id)
    except (ValueError, TypeError):
        raise BookingNotFoundError(f"Booking {booking_id} not found.") from None
    if lock:
        queryset = _lock_queryset_if_possible(queryset)
    booking = queryset.first()
    if booking is None:
        raise BookingNotFoundError(f"Booking {booking_id} not found.")
    return booking


def log_booking_action(booking_id, action: str) -> BookingActionLog:
    """Append an entry to the booking audit log."""

    return BookingActionLog.objects.create(booking_id=booking_id, action=action)


def find_conflicting_bookings(partner_id, start_time, end_time, *, exclude_booking_id=None) -> QuerySet:
    """Confirmed bookings of the partner whose ``[start, end)`` window overlaps the given one."""

    queryset = Booking.objects.filter(
        partner_id=partner_id,
        status=Booking.Status.CONFIRMED,
        start_time__lt=end_time,
        end_time__gt=start_time,
    )
    if exclude_booking_id is not None:
        queryset = queryset.exclude(pk=exclude_booking_id)
    return queryset


def ensure_partner_is_available(partner_id) -> Partner:
    """Return the partner, locked for the current transaction, if it can take bookings."""

    partner = _lock_queryset_if_possible(Partner.objects.filter(pk=partner_id)).first()
    if partner is None or not partner.is_available:
        raise PartnerUnavailableError("Partner is not available for booking.")
    return partner


def _ensure_window_is_free(booking: Booking) -> None:
    """Reject confirming ``booking`` while another confirmed booking overlaps it.

    Locks the partner row first, the same lock ``create_booking`` takes.
    """

    _lock_queryset_if_possible(Partner.objects.filter(pk=booking.partner_id)).first()
    conflicts = find_conflicting_bookings(
        booking.partner_id,
        booking.start_time,
        booking.end_time,
        exclude_booking_id=booking.pk,
    )
    if conflicts.exists():
        raise BookingConflictError("Booking conflict detected.")


def create_booking(booking_data: Mapping[str, Any]) -> Booking:
    """
    Create a booking after checking partner availability and conflicts.

    The partner row is locked for the duration of the check-and-insert so
    that concurrent requests for the same partner are serialised.

    Args:
        booking_data: Booking fields. Must contain ``partner`` (or
            ``partner_id``), ``client`` (or ``client_id``), ``start_time``,
            ``end_time`` and ``amount_paid``. ``status`` defaults to pending.

    Returns:
        Booking: The persisted booking

    Raises:
        PartnerUnavailableError: The partner is missing or not active
        BookingConflictError: A confirmed booking overlaps the window
        InvalidBookingWindowError: ``start_time`` is not before ``end_time``
    """
    data = dict(booking_data)
    partner_id = _resolve_id(data.pop("partner", None) or data.pop("partner_id", None))
    start_time = data.get("start_time")
    end_time = data.get("end_time")

    if start_time is None or end_time is None or start_time >= end_time:
        raise InvalidBookingWindowError("Booking end time must be after its start time.")

    status = data.setdefault("status", Booking.Status.PENDING)
    if status not in Booking.Status.values:
        raise InvalidBookingTransitionError(f"Unknown booking status {status!r}.")

    with transaction.atomic():
        partner = ensure_partner_is_available(partner_id)

        if find_conflicting_bookings(partner.pk, start_time, end_time).exists():
            raise BookingConflictError("Booking conflict detected.")

        booking = Booking(partner=partner, **data)
        booking.clean()
        booking.save()

    logger.info(
        f"Booking {booking.booking_code} created for partner {partner.pk} "
        f"({booking.start_time.isoformat()} - {booking.end_time.isoformat()}, status {booking.status})"
    )
    return booking


def get_booking_by_id(booking_id) -> Booking | None:
    try:
        return Booking.objects.filter(pk=booking_id).first()
    except (ValueError, TypeError):
        return None


def get_all_bookings(
    filters: Mapping[str, Any] | None = None,
    *,
    page: int = 1,
    limit: int | None = None,
    ordering: str = "-created_at",
) -> list[Booking]:
    """Search bookings with ORM filters, paginated like the listing API."""

    limit = limit or settings.BOOKINGS_PAGE_SIZE
    offset = (max(page, 1) - 1) * limit
    queryset = Booking.objects.filter(**(filters or {})).order_by(ordering)
    return list(queryset[offset:offset + limit])


def update_booking(booking_id, update_data: Mapping[str, Any]) -> Booking:
    """Update booking fields. A ``status`` change goes through the transition table."""

    data = dict(update_data)
    new_status = data.pop("status", None)

    with transaction.atomic():
        booking = _get_booking(booking_id, lock=True)
        for field, value in data.items():
            setattr(booking, field, value)
        if new_status is not None and new_status != booking.status:
            try:
                booking.transition_to(new_status)
            except transitions.InvalidTransition as exc:
                raise InvalidBookingTransitionError(str(exc)) from exc
        if booking.start_time >= booking.end_time:
            raise InvalidBookingWindowError("Booking end time must be after its start time.")
        if booking.status == Booking.Status.CONFIRMED:
            _ensure_window_is_free(booking)
        booking.clean()
        booking.save()
    return booking


def update_booking_status(booking_id, status: str) -> Booking:
    """Apply a status transition and record it in the booking audit log.

    Confirming a booking fails with BookingConflictError while another
    confirmed booking of the same partner overlaps its window.
    """

    with transaction.atomic():
        booking = _get_booking(booking_id, lock=True)
        try:
            booking.transition_to(status)
        except transitions.InvalidTransition as exc:
            raise InvalidBookingTransitionError(str(exc)) from exc
        if booking.status == Booking.Status.CONFIRMED:
            _ensure_window_is_free(booking)
        booking.save(update_fields=["status", "cancelled_at", "updated_at"])
        log_booking_action(booking.pk, f"Status updated to {status}")

    logger.info(f"Booking {booking.booking_code} moved to {status}")
    return booking


def cancel_booking(booking_id, client_id) -> Booking:
    """
    Cancel a booking on behalf of its client.

    Refund, partner audit entry and status change commit together. Each
    step is keyed on the booking, so a retried cancellation neither
    refunds twice nor duplicates the partner log entry.

    Raises:
        BookingNotFoundError: The booking does not exist
        UnauthorizedBookingActionError: ``client_id`` does not own the booking
        InvalidBookingTransitionError: The booking already reached another terminal state
    """
    with transaction.atomic():
        booking = _get_booking(booking_id, lock=True)
        if booking.client_id != _resolve_id(client_id):
            raise UnauthorizedBookingActionError("Unauthorized cancellation.")

        if booking.status == Booking.Status.CANCELLED:
            logger.info(f"Booking {booking.booking_code} is already cancelled")
            return booking
        if booking.is_terminal:
            raise InvalidBookingTransitionError(
                f"Cannot cancel a booking in status {booking.status!r}."
            )

        update_fields = ["status", "cancelled_at", "cancellation_source", "updated_at"]

        if booking.payment_id:
            payment = process_refund(
                booking.payment_id,
                booking.amount_paid,
                idempotency_key=f"booking-{booking.pk}-refund",
                reason="Booking cancelled by client",
            )
            if payment is not None and payment.is_refunded:
                booking.is_refunded = True
                booking.refund_amount = payment.refund_amount
                update_fields += ["is_refunded", "refund_amount"]

        log_partner_action(
            booking.partner_id,
            PARTNER_CANCEL_ACTION,
            idempotency_key=f"booking-{booking.pk}-partner-log",
        )

        booking.transition_to(Booking.Status.CANCELLED)
        booking.cancellation_source = Booking.CancellationSource.CLIENT
        booking.save(update_fields=update_fields)
        log_booking_action(booking.pk, "Booking cancelled by client")

        from .tasks import notify_booking_cancelled  # local import to avoid circular

        transaction.on_commit(lambda: notify_booking_cancelled.delay(booking.pk))

    logger.info(f"Booking {booking.booking_code} cancelled by client {booking.client_id}")
    return booking


def auto_cancel_expired_bookings(now=None) -> int:
    """
    Cancel pending bookings older than the payment window.

    Every booking is handled in its own transaction; a failure on one
    booking is logged and the sweep moves on to the next.

    Returns:
        int: Number of bookings cancelled by this sweep
    """
    now = now or timezone.now()
    threshold = now - timedelta(minutes=settings.BOOKING_PENDING_TTL_MINUTES)

    expired_ids = list(
        Booking.objects.filter(
            status=Booking.Status.PENDING,
            created_at__lt=threshold,
        )
        .order_by("created_at", "pk")
        .values_list("pk", flat=True)
    )

    from .tasks import notify_booking_expired  # local import to avoid circular

    cancelled_count = 0
    for booking_id in expired_ids:
        try:
            with transaction.atomic():
                booking = _lock_queryset_if_possible(
                    Booking.objects.filter(pk=booking_id, status=Booking.Status.PENDING)
                ).first()
                if booking is None:
                    # Paid or cancelled since the snapshot was taken
                    continue

                booking.transition_to(Booking.Status.CANCELLED)
                booking.cancellation_source = Booking.CancellationSource.SYSTEM
                booking.save(update_fields=["status", "cancelled_at", "cancellation_source", "updated_at"])
                log_booking_action(booking.pk, AUTO_CANCEL_ACTION)

                transaction.on_commit(lambda pk=booking.pk: notify_booking_expired.delay(pk))

            cancelled_count += 1
            logger.info(f"Booking {booking.booking_code} auto-cancelled after payment window expired")
        except Exception as e:
            logger.error(f"Error auto-cancelling booking {booking_id}: {e}", exc_info=True)

    if cancelled_count > 0:
        logger.info(f"Auto-cancelled {cancelled_count} expired pending bookings")

    return cancelled_count

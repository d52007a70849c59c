"""Payment record store operations."""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction  # type: ignore

from .models import Payment, PaymentActionLog

logger = logging.getLogger(__name__)


def log_payment_action(payment_id, action: str) -> PaymentActionLog:
    return PaymentActionLog.objects.create(payment_id=payment_id, action=action)


@transaction.atomic
def process_refund(
    payment_id,
    refund_amount,
    *,
    idempotency_key: str | None = None,
    reason: str = "",
) -> Payment | None:
    """
    Refund a payment.

    A payment is refunded at most once: a repeated call (with the same
    idempotency key or after any earlier refund) returns the payment
    unchanged.

    Args:
        payment_id: The payment to refund
        refund_amount: Amount to return to the client, must be positive
        idempotency_key: Reference of the request issuing the refund
        reason: Free-form refund reason

    Returns:
        Payment: The refunded payment, or None for a non-positive amount
    """
    amount = Decimal(str(refund_amount))
    if amount <= 0:
        logger.warning(f"Refund of {amount} for payment {payment_id} ignored: amount must be positive")
        return None

    payment = Payment.objects.select_for_update().get(pk=payment_id)

    if payment.is_refunded:
        if idempotency_key and payment.refund_reference != idempotency_key:
            logger.warning(
                f"Payment {payment.pk} was already refunded under {payment.refund_reference!r}, "
                f"ignoring request {idempotency_key!r}"
            )
        return payment

    payment.mark_refunded(amount, reason=reason, reference=idempotency_key or "")
    log_payment_action(payment.pk, f"Refund processed: {amount}")
    logger.info(f"Refund of {amount} processed for payment {payment.pk}")
    return payment


@transaction.atomic
def mark_payment_successful(payment_id, transaction_id: str | None = None) -> Payment:
    """Record a successful charge and confirm the pending booking it pays for."""

    payment = Payment.objects.select_for_update().get(pk=payment_id)
    payment.mark_success(transaction_id)
    log_payment_action(payment.pk, "Payment successful")

    booking = getattr(payment, "booking", None)
    if booking is not None and booking.status == booking.Status.PENDING:
        from apps.bookings.services import update_booking_status  # local import to avoid circular

        update_booking_status(booking.pk, booking.Status.CONFIRMED)

    return payment


def mark_payment_failed(payment_id, reason: str | None = None) -> Payment:
    payment = Payment.objects.get(pk=payment_id)
    payment.mark_failed(reason)
    log_payment_action(payment.pk, f"Payment failed: {reason or 'unknown reason'}")
    return payment

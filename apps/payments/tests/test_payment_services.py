"""Tests for payment store operations."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from apps.bookings.models import Booking
from apps.partners.models import Partner
from apps.payments.models import Payment, PaymentActionLog
from apps.payments.services import mark_payment_failed, mark_payment_successful, process_refund
from apps.users.models import CustomUser


@pytest.fixture
def client_user():
    return CustomUser.objects.create_user(email="payer@example.com", password="PayerPass123")


@pytest.fixture
def payment(client_user):
    return Payment.objects.create(
        client=client_user,
        amount=Decimal("30.00"),
        status=Payment.Status.SUCCESSFUL,
    )


@pytest.mark.django_db
def test_refund_marks_payment_and_logs(payment):
    refunded = process_refund(payment.pk, Decimal("30.00"), idempotency_key="booking-1-refund")

    assert refunded.status == Payment.Status.REFUNDED
    assert refunded.is_refunded
    assert refunded.refund_amount == Decimal("30.00")
    assert refunded.refund_reference == "booking-1-refund"
    assert refunded.refunded_at is not None
    assert list(PaymentActionLog.objects.values_list("action", flat=True)) == ["Refund processed: 30.00"]


@pytest.mark.django_db
def test_refund_is_applied_once(payment):
    process_refund(payment.pk, Decimal("30.00"), idempotency_key="booking-1-refund")
    again = process_refund(payment.pk, Decimal("30.00"), idempotency_key="booking-1-refund")

    assert again.refund_amount == Decimal("30.00")
    assert PaymentActionLog.objects.filter(payment=payment).count() == 1


@pytest.mark.django_db
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
def test_non_positive_refund_is_ignored(payment, amount):
    assert process_refund(payment.pk, amount) is None

    payment.refresh_from_db()
    assert not payment.is_refunded
    assert not PaymentActionLog.objects.exists()


@pytest.mark.django_db
def test_refund_unknown_payment():
    with pytest.raises(Payment.DoesNotExist):
        process_refund(999999, Decimal("10.00"))


@pytest.mark.django_db
def test_successful_payment_confirms_pending_booking(client_user):
    owner = CustomUser.objects.create_user(email="owner@example.com", password="OwnerPass123")
    partner = Partner.objects.create(
        user=owner,
        display_name="Station Parking",
        contact_email="station@example.com",
        contact_phone="+15550000030",
        status=Partner.Status.ACTIVE,
    )
    payment = Payment.objects.create(client=client_user, amount=Decimal("12.00"))
    start = timezone.now() + timedelta(days=1)
    booking = Booking.objects.create(
        client=client_user,
        partner=partner,
        payment=payment,
        start_time=start,
        end_time=start + timedelta(hours=3),
        amount_paid=Decimal("12.00"),
    )

    mark_payment_successful(payment.pk, transaction_id="txn-001")

    payment.refresh_from_db()
    booking.refresh_from_db()
    assert payment.status == Payment.Status.SUCCESSFUL
    assert payment.paid_at is not None
    assert booking.status == Booking.Status.CONFIRMED
    assert booking.action_logs.filter(action="Status updated to confirmed").exists()


@pytest.mark.django_db
def test_successful_payment_without_booking(client_user):
    payment = Payment.objects.create(client=client_user, amount=Decimal("12.00"))

    mark_payment_successful(payment.pk)

    payment.refresh_from_db()
    assert payment.status == Payment.Status.SUCCESSFUL
    assert PaymentActionLog.objects.filter(payment=payment, action="Payment successful").exists()


@pytest.mark.django_db
def test_failed_payment_is_logged(client_user):
    payment = Payment.objects.create(client=client_user, amount=Decimal("12.00"))

    mark_payment_failed(payment.pk, "card declined")

    payment.refresh_from_db()
    assert payment.status == Payment.Status.FAILED
    assert PaymentActionLog.objects.filter(payment=payment, action="Payment failed: card declined").exists()


@pytest.mark.django_db
def test_paying_overlapping_bookings_confirms_only_one(client_user):
    from apps.bookings.services import BookingConflictError, create_booking

    owner = CustomUser.objects.create_user(email="owner@example.com", password="OwnerPass123")
    partner = Partner.objects.create(
        user=owner,
        display_name="Station Parking",
        contact_email="station@example.com",
        contact_phone="+15550000030",
        status=Partner.Status.ACTIVE,
    )
    day = (timezone.now() + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    bookings = []
    for start_hour, end_hour in [(10, 12), (11, 13)]:
        payment = Payment.objects.create(client=client_user, amount=Decimal("12.00"))
        bookings.append(
            create_booking(
                {
                    "partner": partner,
                    "client": client_user,
                    "payment": payment,
                    "start_time": day.replace(hour=start_hour),
                    "end_time": day.replace(hour=end_hour),
                    "amount_paid": Decimal("12.00"),
                }
            )
        )

    mark_payment_successful(bookings[0].payment_id, transaction_id="txn-a")
    with pytest.raises(BookingConflictError):
        mark_payment_successful(bookings[1].payment_id, transaction_id="txn-b")

    statuses = list(Booking.objects.order_by("start_time").values_list("status", flat=True))
    assert statuses == [Booking.Status.CONFIRMED, Booking.Status.PENDING]
    assert Payment.objects.get(pk=bookings[1].payment_id).status == Payment.Status.PENDING

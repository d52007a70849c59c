"""Tests for the booking lifecycle services."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.core import mail
from django.utils import timezone

from apps.bookings import services
from apps.bookings.models import Booking, BookingActionLog
from apps.notifications.models import Notification
from apps.partners.models import Partner, PartnerActionLog
from apps.payments.models import Payment, PaymentActionLog
from apps.users.models import CustomUser


@pytest.fixture
def client_user():
    return CustomUser.objects.create_user(email="driver@example.com", password="DriverPass123")


@pytest.fixture
def other_client():
    return CustomUser.objects.create_user(email="other@example.com", password="OtherPass123")


@pytest.fixture
def partner():
    owner = CustomUser.objects.create_user(
        email="owner@example.com",
        password="OwnerPass123",
        role=CustomUser.RoleChoices.PARTNER,
    )
    return Partner.objects.create(
        user=owner,
        display_name="Downtown Garages",
        contact_email="garages@example.com",
        contact_phone="+15550000001",
        status=Partner.Status.ACTIVE,
    )


@pytest.fixture
def day():
    tomorrow = timezone.now() + timedelta(days=1)
    return tomorrow.replace(hour=0, minute=0, second=0, microsecond=0)


def _at(day, hour: int):
    return day.replace(hour=hour)


def _book(partner, client_user, start, end, **extra):
    data = {
        "partner": partner,
        "client": client_user,
        "start_time": start,
        "end_time": end,
        "amount_paid": Decimal("12.00"),
    }
    data.update(extra)
    return services.create_booking(data)


def _age(booking, minutes: int) -> None:
    Booking.objects.filter(pk=booking.pk).update(created_at=timezone.now() - timedelta(minutes=minutes))


# ============================================================================
# create_booking
# ============================================================================

@pytest.mark.django_db
def test_create_booking_defaults_to_pending(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    booking.refresh_from_db()
    assert booking.status == Booking.Status.PENDING
    assert booking.partner == partner
    assert booking.client == client_user
    assert booking.booking_code


@pytest.mark.django_db
def test_create_booking_keeps_caller_status(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12), status=Booking.Status.CONFIRMED)

    assert Booking.objects.get(pk=booking.pk).status == Booking.Status.CONFIRMED


@pytest.mark.django_db
@pytest.mark.parametrize("status", [Partner.Status.PENDING, Partner.Status.SUSPENDED])
def test_create_booking_rejects_inactive_partner(partner, client_user, day, status):
    partner.status = status
    partner.save()

    with pytest.raises(services.PartnerUnavailableError):
        _book(partner, client_user, _at(day, 10), _at(day, 12))

    assert Booking.objects.count() == 0


@pytest.mark.django_db
def test_create_booking_rejects_unknown_partner(client_user, day):
    with pytest.raises(services.PartnerUnavailableError):
        services.create_booking(
            {
                "partner_id": 999999,
                "client": client_user,
                "start_time": _at(day, 10),
                "end_time": _at(day, 12),
                "amount_paid": Decimal("5.00"),
            }
        )

    assert Booking.objects.count() == 0


@pytest.mark.django_db
def test_overlapping_confirmed_booking_conflicts(partner, client_user, day):
    _book(partner, client_user, _at(day, 10), _at(day, 12), status=Booking.Status.CONFIRMED)

    with pytest.raises(services.BookingConflictError):
        _book(partner, client_user, _at(day, 11), _at(day, 13))

    assert Booking.objects.count() == 1


@pytest.mark.django_db
def test_adjacent_window_does_not_conflict(partner, client_user, day):
    _book(partner, client_user, _at(day, 10), _at(day, 12), status=Booking.Status.CONFIRMED)

    booking = _book(partner, client_user, _at(day, 12), _at(day, 13))

    assert booking.pk is not None
    assert Booking.objects.count() == 2


@pytest.mark.django_db
def test_only_confirmed_bookings_block_the_window(partner, client_user, day):
    _book(partner, client_user, _at(day, 10), _at(day, 12))
    _book(partner, client_user, _at(day, 9), _at(day, 11), status=Booking.Status.CANCELLED)

    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    assert booking.status == Booking.Status.PENDING
    assert Booking.objects.count() == 3


@pytest.mark.django_db
def test_conflicts_are_scoped_to_partner(partner, client_user, day):
    other_owner = CustomUser.objects.create_user(email="owner2@example.com", password="OwnerPass123")
    other_partner = Partner.objects.create(
        user=other_owner,
        display_name="Airport Lots",
        contact_email="lots@example.com",
        contact_phone="+15550000002",
        status=Partner.Status.ACTIVE,
    )
    _book(partner, client_user, _at(day, 10), _at(day, 12), status=Booking.Status.CONFIRMED)

    booking = _book(other_partner, client_user, _at(day, 10), _at(day, 12))

    assert booking.partner == other_partner


@pytest.mark.django_db
def test_create_booking_rejects_empty_window(partner, client_user, day):
    with pytest.raises(services.InvalidBookingWindowError):
        _book(partner, client_user, _at(day, 12), _at(day, 12))

    with pytest.raises(services.InvalidBookingWindowError):
        _book(partner, client_user, _at(day, 13), _at(day, 12))

    assert Booking.objects.count() == 0


# ============================================================================
# cancel_booking
# ============================================================================

@pytest.mark.django_db
def test_cancel_unknown_booking(client_user):
    with pytest.raises(services.BookingNotFoundError):
        services.cancel_booking(999999, client_user.id)


@pytest.mark.django_db
def test_cancel_by_other_client_is_rejected(partner, client_user, other_client, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    with pytest.raises(services.UnauthorizedBookingActionError):
        services.cancel_booking(booking.pk, other_client.id)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.PENDING
    assert PartnerActionLog.objects.count() == 0


@pytest.mark.django_db
def test_cancel_refunds_full_amount_once(partner, client_user, day):
    payment = Payment.objects.create(
        client=client_user,
        amount=Decimal("24.00"),
        status=Payment.Status.SUCCESSFUL,
    )
    booking = _book(
        partner,
        client_user,
        _at(day, 10),
        _at(day, 12),
        status=Booking.Status.CONFIRMED,
        payment=payment,
        amount_paid=Decimal("24.00"),
    )

    cancelled = services.cancel_booking(booking.pk, client_user.id)

    assert cancelled.status == Booking.Status.CANCELLED
    assert cancelled.cancellation_source == Booking.CancellationSource.CLIENT
    assert cancelled.cancelled_at is not None
    assert cancelled.is_refunded
    payment.refresh_from_db()
    assert payment.is_refunded
    assert payment.status == Payment.Status.REFUNDED
    assert payment.refund_amount == Decimal("24.00")
    assert PaymentActionLog.objects.filter(payment=payment, action="Refund processed: 24.00").count() == 1
    assert list(PartnerActionLog.objects.filter(partner=partner).values_list("action", flat=True)) == [
        "Booking Cancelled"
    ]


@pytest.mark.django_db
def test_cancel_retry_does_not_refund_twice(partner, client_user, day):
    payment = Payment.objects.create(client=client_user, amount=Decimal("24.00"))
    booking = _book(
        partner,
        client_user,
        _at(day, 10),
        _at(day, 12),
        payment=payment,
        amount_paid=Decimal("24.00"),
    )

    services.cancel_booking(booking.pk, client_user.id)
    again = services.cancel_booking(booking.pk, client_user.id)

    assert again.status == Booking.Status.CANCELLED
    assert PaymentActionLog.objects.filter(payment=payment).count() == 1
    assert PartnerActionLog.objects.filter(partner=partner).count() == 1


@pytest.mark.django_db
def test_cancel_without_payment_skips_refund(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    cancelled = services.cancel_booking(booking.pk, client_user.id)

    assert cancelled.status == Booking.Status.CANCELLED
    assert not cancelled.is_refunded
    assert PaymentActionLog.objects.count() == 0
    assert PartnerActionLog.objects.filter(partner=partner, action="Booking Cancelled").exists()


@pytest.mark.django_db
def test_cancel_completed_booking_is_rejected(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12), status=Booking.Status.COMPLETED)

    with pytest.raises(services.InvalidBookingTransitionError):
        services.cancel_booking(booking.pk, client_user.id)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.COMPLETED


@pytest.mark.django_db
def test_cancel_notifies_partner_after_commit(partner, client_user, day, django_capture_on_commit_callbacks):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    with django_capture_on_commit_callbacks(execute=True):
        services.cancel_booking(booking.pk, client_user.id)

    notification = Notification.objects.get(user=partner.user)
    assert booking.booking_code in notification.title
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == [partner.user.email]


# ============================================================================
# update_booking_status
# ============================================================================

@pytest.mark.django_db
def test_update_status_logs_action(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    updated = services.update_booking_status(booking.pk, Booking.Status.CONFIRMED)

    assert updated.status == Booking.Status.CONFIRMED
    assert list(booking.action_logs.values_list("action", flat=True)) == ["Status updated to confirmed"]


@pytest.mark.django_db
def test_update_status_rejects_illegal_transition(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12), status=Booking.Status.COMPLETED)

    with pytest.raises(services.InvalidBookingTransitionError):
        services.update_booking_status(booking.pk, Booking.Status.PENDING)

    booking.refresh_from_db()
    assert booking.status == Booking.Status.COMPLETED
    assert not booking.action_logs.exists()


@pytest.mark.django_db
def test_update_status_rejects_unknown_status(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    with pytest.raises(services.InvalidBookingTransitionError):
        services.update_booking_status(booking.pk, "archived")


@pytest.mark.django_db
def test_update_status_unknown_booking():
    with pytest.raises(services.BookingNotFoundError):
        services.update_booking_status(999999, Booking.Status.CONFIRMED)


@pytest.mark.django_db
def test_update_booking_routes_status_through_transitions(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    updated = services.update_booking(booking.pk, {"payment_method": "card", "status": Booking.Status.CONFIRMED})

    assert updated.payment_method == "card"
    assert updated.status == Booking.Status.CONFIRMED
    with pytest.raises(services.InvalidBookingTransitionError):
        services.update_booking(booking.pk, {"status": Booking.Status.PENDING})


# ============================================================================
# auto_cancel_expired_bookings
# ============================================================================

@pytest.mark.django_db
def test_sweep_cancels_only_stale_pending_bookings(partner, client_user, day):
    stale = _book(partner, client_user, _at(day, 8), _at(day, 9))
    fresh = _book(partner, client_user, _at(day, 10), _at(day, 11))
    confirmed = _book(partner, client_user, _at(day, 12), _at(day, 13), status=Booking.Status.CONFIRMED)
    _age(stale, 31)
    _age(fresh, 5)
    _age(confirmed, 120)

    cancelled = services.auto_cancel_expired_bookings()

    assert cancelled == 1
    stale.refresh_from_db()
    fresh.refresh_from_db()
    confirmed.refresh_from_db()
    assert stale.status == Booking.Status.CANCELLED
    assert stale.cancellation_source == Booking.CancellationSource.SYSTEM
    assert fresh.status == Booking.Status.PENDING
    assert confirmed.status == Booking.Status.CONFIRMED
    assert list(stale.action_logs.values_list("action", flat=True)) == [services.AUTO_CANCEL_ACTION]
    assert not fresh.action_logs.exists()


@pytest.mark.django_db
def test_sweep_is_idempotent(partner, client_user, day):
    stale = _book(partner, client_user, _at(day, 8), _at(day, 9))
    _age(stale, 45)

    assert services.auto_cancel_expired_bookings() == 1
    assert services.auto_cancel_expired_bookings() == 0
    assert BookingActionLog.objects.filter(booking=stale).count() == 1


@pytest.mark.django_db
def test_sweep_continues_after_a_failure(partner, client_user, day, monkeypatch):
    broken = _book(partner, client_user, _at(day, 8), _at(day, 9))
    healthy = _book(partner, client_user, _at(day, 10), _at(day, 11))
    _age(broken, 60)
    _age(healthy, 40)

    original = services.log_booking_action

    def flaky_log(booking_id, action):
        if booking_id == broken.pk:
            raise RuntimeError("audit store unavailable")
        return original(booking_id, action)

    monkeypatch.setattr(services, "log_booking_action", flaky_log)

    assert services.auto_cancel_expired_bookings() == 1

    broken.refresh_from_db()
    healthy.refresh_from_db()
    assert broken.status == Booking.Status.PENDING
    assert healthy.status == Booking.Status.CANCELLED


@pytest.mark.django_db
def test_sweep_notifies_client(partner, client_user, day, django_capture_on_commit_callbacks):
    stale = _book(partner, client_user, _at(day, 8), _at(day, 9))
    _age(stale, 31)

    with django_capture_on_commit_callbacks(execute=True):
        services.auto_cancel_expired_bookings()

    assert Notification.objects.filter(user=client_user).count() == 1


# ============================================================================
# Lookups
# ============================================================================

@pytest.mark.django_db
def test_get_all_bookings_paginates_newest_first(partner, client_user, day):
    bookings = [_book(partner, client_user, _at(day, hour), _at(day, hour + 1)) for hour in range(12)]
    for offset, booking in enumerate(bookings):
        _age(booking, 100 - offset)

    first_page = services.get_all_bookings({"partner": partner}, page=1)
    second_page = services.get_all_bookings({"partner": partner}, page=2)

    assert len(first_page) == 10
    assert len(second_page) == 2
    assert first_page[0].pk == bookings[-1].pk
    assert second_page[-1].pk == bookings[0].pk


@pytest.mark.django_db
def test_get_booking_by_id(partner, client_user, day):
    booking = _book(partner, client_user, _at(day, 10), _at(day, 12))

    assert services.get_booking_by_id(booking.pk) == booking
    assert services.get_booking_by_id(999999) is None


# ============================================================================
# Confirming overlapping bookings
# ============================================================================

@pytest.mark.django_db
def test_confirming_overlapping_pending_booking_conflicts(partner, client_user, day):
    first = _book(partner, client_user, _at(day, 10), _at(day, 12))
    second = _book(partner, client_user, _at(day, 11), _at(day, 13))

    services.update_booking_status(first.pk, Booking.Status.CONFIRMED)
    with pytest.raises(services.BookingConflictError):
        services.update_booking_status(second.pk, Booking.Status.CONFIRMED)

    second.refresh_from_db()
    assert second.status == Booking.Status.PENDING
    assert not second.action_logs.exists()


@pytest.mark.django_db
def test_confirming_adjacent_pending_booking_succeeds(partner, client_user, day):
    first = _book(partner, client_user, _at(day, 10), _at(day, 12))
    second = _book(partner, client_user, _at(day, 12), _at(day, 13))

    services.update_booking_status(first.pk, Booking.Status.CONFIRMED)
    confirmed = services.update_booking_status(second.pk, Booking.Status.CONFIRMED)

    assert confirmed.status == Booking.Status.CONFIRMED


@pytest.mark.django_db
def test_update_booking_confirm_checks_overlap(partner, client_user, day):
    _book(partner, client_user, _at(day, 10), _at(day, 12), status=Booking.Status.CONFIRMED)
    pending = _book(partner, client_user, _at(day, 11), _at(day, 13))

    with pytest.raises(services.BookingConflictError):
        services.update_booking(pending.pk, {"status": Booking.Status.CONFIRMED})

    pending.refresh_from_db()
    assert pending.status == Booking.Status.PENDING


@pytest.mark.django_db
def test_malformed_booking_id_is_not_found(client_user):
    assert services.get_booking_by_id("abc") is None
    with pytest.raises(services.BookingNotFoundError):
        services.cancel_booking("abc", client_user.id)
    with pytest.raises(services.BookingNotFoundError):
        services.update_booking_status("abc", Booking.Status.CONFIRMED)

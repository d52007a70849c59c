"""Booking domain models for Carparkly."""

from __future__ import annotations

import secrets
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain import transitions


class Booking(models.Model):
    """Reservation of a parking spot for a half-open time window."""

    class Status(models.TextChoices):
        PENDING = transitions.PENDING, _("Pending payment")
        CONFIRMED = transitions.CONFIRMED, _("Confirmed")
        COMPLETED = transitions.COMPLETED, _("Completed")
        CANCELLED = transitions.CANCELLED, _("Cancelled")
        EXPIRED = transitions.EXPIRED, _("Expired")
        NO_SHOW = transitions.NO_SHOW, _("No-show")

    class CancellationSource(models.TextChoices):
        CLIENT = "client", _("Client")
        SYSTEM = "system", _("System")

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    parking_spot = models.ForeignKey(
        "parking.ParkingSpot",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    partner = models.ForeignKey(
        "partners.Partner",
        on_delete=models.CASCADE,
        related_name="bookings",
    )
    payment = models.OneToOneField(
        "payments.Payment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="booking",
    )
    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payment_method = models.CharField(max_length=20, blank=True)
    is_refunded = models.BooleanField(default=False)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_source = models.CharField(
        max_length=20,
        choices=CancellationSource.choices,
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="booking_valid_window",
            ),
        ]
        indexes = [
            models.Index(fields=["partner", "status", "start_time", "end_time"], name="booking_partner_window_idx"),
            models.Index(fields=["status", "created_at"], name="booking_status_created_idx"),
            models.Index(fields=["client", "status"], name="booking_client_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for partner {self.partner_id}"

    def clean(self) -> None:
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError(_("Booking end time must be after its start time."))
        if self.amount_paid is not None and self.amount_paid < 0:
            raise ValidationError(_("Amount paid cannot be negative."))

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @property
    def is_terminal(self) -> bool:
        return transitions.is_terminal(self.status)

    def transition_to(self, new_status: str) -> None:
        """Move to ``new_status`` in memory, raising on an illegal transition."""

        transitions.ensure_transition(self.status, new_status)
        self.status = new_status
        if new_status == self.Status.CANCELLED and self.cancelled_at is None:
            self.cancelled_at = timezone.now()


class BookingActionLog(models.Model):
    """Audit trail entry for a booking."""

    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name="action_logs",
    )
    action = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Booking action")
        verbose_name_plural = _("Booking actions")
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.action} for booking {self.booking_id}"

"""Payment domain models for Carparkly."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Payment(models.Model):
    """Payment made by a client for a booking."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        SUCCESSFUL = "successful", _("Successful")
        FAILED = "failed", _("Failed")
        REFUNDED = "refunded", _("Refunded")

    class Method(models.TextChoices):
        CARD = "card", _("Card")
        PAYPAL = "paypal", _("PayPal")
        STRIPE = "stripe", _("Stripe")
        CRYPTO = "crypto", _("Crypto")
        BANK_TRANSFER = "bank_transfer", _("Bank transfer")
        GOOGLE_PAY = "google_pay", _("Google Pay")
        APPLE_PAY = "apple_pay", _("Apple Pay")

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    method = models.CharField(max_length=20, choices=Method.choices, default=Method.CARD)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")
    transaction_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    is_refunded = models.BooleanField(default=False)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refund_reason = models.CharField(max_length=255, blank=True)
    refund_reference = models.CharField(
        max_length=100,
        blank=True,
        help_text=_("Idempotency key of the request that issued the refund."),
    )
    metadata = models.JSONField(default=dict, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Payment")
        verbose_name_plural = _("Payments")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payment {self.pk} ({self.status})"

    def mark_success(self, transaction_id: str | None = None) -> None:
        self.status = self.Status.SUCCESSFUL
        if transaction_id:
            self.transaction_id = transaction_id
        self.paid_at = timezone.now()
        self.save(update_fields=["status", "transaction_id", "paid_at", "updated_at"])

    def mark_failed(self, reason: str | None = None) -> None:
        self.status = self.Status.FAILED
        if reason:
            self.metadata["failure_reason"] = reason
        self.save(update_fields=["status", "metadata", "updated_at"])

    def mark_refunded(self, amount: Decimal, *, reason: str = "", reference: str = "") -> None:
        self.status = self.Status.REFUNDED
        self.is_refunded = True
        self.refund_amount = amount
        self.refund_reason = reason
        self.refund_reference = reference
        self.refunded_at = timezone.now()
        self.save(
            update_fields=[
                "status",
                "is_refunded",
                "refund_amount",
                "refund_reason",
                "refund_reference",
                "refunded_at",
                "updated_at",
            ]
        )


class PaymentActionLog(models.Model):
    """Audit trail entry for a payment."""

    payment = models.ForeignKey(
        Payment,
        on_delete=models.CASCADE,
        related_name="action_logs",
    )
    action = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Payment action")
        verbose_name_plural = _("Payment actions")
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.action} for payment {self.payment_id}"

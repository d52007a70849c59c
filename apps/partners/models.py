"""Partner domain models for Carparkly."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Partner(models.Model):
    """Individual or organisation that leases parking spots."""

    class Status(models.TextChoices):
        ACTIVE = "active", _("Active")
        PENDING = "pending", _("Pending review")
        SUSPENDED = "suspended", _("Suspended")

    class PayoutMethod(models.TextChoices):
        BANK_TRANSFER = "bank_transfer", _("Bank transfer")
        PAYPAL = "paypal", _("PayPal")
        CRYPTO = "crypto", _("Crypto")

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="partner_profile",
    )
    is_individual = models.BooleanField(default=True)
    display_name = models.CharField(max_length=255)
    contact_email = models.EmailField(unique=True)
    contact_phone = models.CharField(max_length=20)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    account_verified = models.BooleanField(default=False)
    total_earnings = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    pending_payouts = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    payout_method = models.CharField(
        max_length=20,
        choices=PayoutMethod.choices,
        default=PayoutMethod.BANK_TRANSFER,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Partner")
        verbose_name_plural = _("Partners")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "account_verified"], name="partner_status_verified_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.display_name} ({self.status})"

    @property
    def is_available(self) -> bool:
        return self.status == self.Status.ACTIVE


class PartnerActionLog(models.Model):
    """Audit trail entry for a partner."""

    partner = models.ForeignKey(
        Partner,
        on_delete=models.CASCADE,
        related_name="action_logs",
    )
    action = models.CharField(max_length=255)
    idempotency_key = models.CharField(max_length=100, null=True, blank=True, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Partner action")
        verbose_name_plural = _("Partner actions")
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.action} for partner {self.partner_id}"

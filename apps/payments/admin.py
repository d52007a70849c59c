"""Admin registration for payments."""

from __future__ import annotations

from django.contrib import admin

from .models import Payment, PaymentActionLog


class PaymentActionLogInline(admin.TabularInline):
    model = PaymentActionLog
    extra = 0
    readonly_fields = ("action", "created_at")
    can_delete = False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "client",
        "amount",
        "currency",
        "method",
        "status",
        "is_refunded",
        "refund_amount",
        "created_at",
    )
    list_filter = ("status", "method", "is_refunded")
    search_fields = ("transaction_id", "client__email")
    readonly_fields = ("paid_at", "refunded_at", "refund_reference", "created_at", "updated_at")
    inlines = [PaymentActionLogInline]

"""Admin registration for partners."""

from __future__ import annotations

from django.contrib import admin

from .models import Partner, PartnerActionLog


class PartnerActionLogInline(admin.TabularInline):
    model = PartnerActionLog
    extra = 0
    readonly_fields = ("action", "idempotency_key", "created_at")
    can_delete = False


@admin.register(Partner)
class PartnerAdmin(admin.ModelAdmin):
    list_display = (
        "display_name",
        "contact_email",
        "status",
        "account_verified",
        "total_earnings",
        "created_at",
    )
    list_filter = ("status", "account_verified", "is_individual")
    search_fields = ("display_name", "contact_email", "user__email")
    readonly_fields = ("created_at", "updated_at")
    inlines = [PartnerActionLogInline]

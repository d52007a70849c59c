"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking, BookingActionLog


class BookingActionLogInline(admin.TabularInline):
    model = BookingActionLog
    extra = 0
    readonly_fields = ("action", "created_at")
    can_delete = False


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "partner",
        "parking_spot",
        "client",
        "status",
        "start_time",
        "end_time",
        "amount_paid",
        "is_refunded",
        "created_at",
    )
    list_filter = ("status", "cancellation_source", "is_refunded")
    search_fields = ("booking_code", "client__email", "partner__display_name")
    readonly_fields = (
        "booking_code",
        "created_at",
        "updated_at",
        "cancelled_at",
        "refund_amount",
    )
    inlines = [BookingActionLogInline]

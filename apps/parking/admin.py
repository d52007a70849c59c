"""Admin registrations for parking spots."""

from __future__ import annotations

from django.contrib import admin

from .models import ParkingSpot


@admin.register(ParkingSpot)
class ParkingSpotAdmin(admin.ModelAdmin):
    list_display = ("name", "partner", "address", "capacity", "hourly_rate", "is_active")
    list_filter = ("is_active", "security_level")
    search_fields = ("name", "address", "partner__display_name")
    readonly_fields = ("created_at", "updated_at")

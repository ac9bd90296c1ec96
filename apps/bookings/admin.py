"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("id", "session", "user", "status", "guests", "reserved_at", "confirmed_at", "cancelled_at")
    list_filter = ("status", "reserved_at")
    search_fields = ("id", "session__title", "user__email")
    readonly_fields = ("reserved_at", "confirmed_at", "cancelled_at")

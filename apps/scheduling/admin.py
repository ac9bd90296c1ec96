"""Admin registration for sessions."""

from __future__ import annotations

from django.contrib import admin

from .models import Session


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    list_display = ("title", "starts_at", "price_cents", "spots_remaining", "spots_total", "status")
    list_filter = ("status", "starts_at")
    search_fields = ("title",)
    readonly_fields = ("created_at", "updated_at")

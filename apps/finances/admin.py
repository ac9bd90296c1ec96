"""Admin registrations for the finance domain."""

from __future__ import annotations

from django.contrib import admin

from .models import Membership, Order, ProcessedWebhookEvent


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "user", "amount_cents", "discount_cents", "status", "is_split", "created_at")
    list_filter = ("status", "is_split", "currency")
    search_fields = ("id", "stripe_payment_intent_id", "user__email", "split_group_id")
    readonly_fields = ("created_at", "updated_at")


@admin.register(Membership)
class MembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "tier", "status", "current_period_end", "external_subscription_id")
    list_filter = ("tier", "status")
    search_fields = ("external_subscription_id", "user__email")
    readonly_fields = ("created_at", "updated_at")


@admin.register(ProcessedWebhookEvent)
class ProcessedWebhookEventAdmin(admin.ModelAdmin):
    list_display = ("event_id", "event_type", "outcome", "processed_at")
    list_filter = ("event_type", "outcome")
    search_fields = ("event_id",)

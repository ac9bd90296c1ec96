"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class BookingSerializer(serializers.ModelSerializer):
    """Read-only booking view with the latest order status."""

    session_title = serializers.CharField(source="session.title", read_only=True)
    starts_at = serializers.DateTimeField(source="session.starts_at", read_only=True)
    order_status = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "session",
            "session_title",
            "starts_at",
            "user",
            "status",
            "guests",
            "reserved_at",
            "confirmed_at",
            "cancelled_at",
            "order_status",
        ]
        read_only_fields = fields

    def get_order_status(self, obj: Booking) -> str | None:
        orders = sorted(obj.orders.all(), key=lambda order: order.created_at, reverse=True)
        return orders[0].status if orders else None


class CancelBookingSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()


class CheckoutSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    guests = serializers.IntegerField(min_value=0, max_value=10, default=0)

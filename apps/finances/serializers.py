"""Serializers for the finance domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .domain.entities import MembershipTier
from .models import Membership, Order


class OrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            "id",
            "booking",
            "amount_cents",
            "discount_cents",
            "currency",
            "status",
            "is_split",
            "split_group_id",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class MembershipSerializer(serializers.ModelSerializer):
    class Meta:
        model = Membership
        fields = [
            "id",
            "tier",
            "status",
            "discount_percent",
            "priority_booking_hours",
            "guest_passes_remaining",
            "current_period_start",
            "current_period_end",
            "created_at",
        ]
        read_only_fields = fields


class SplitPaymentSerializer(serializers.Serializer):
    session_id = serializers.UUIDField()
    player_identifiers = serializers.ListField(
        child=serializers.CharField(max_length=254, trim_whitespace=True),
        allow_empty=False,
        max_length=50,
    )
    host_user_id = serializers.UUIDField(required=False, allow_null=True)


class SubscribeSerializer(serializers.Serializer):
    tier = serializers.ChoiceField(choices=[tier.value for tier in MembershipTier])

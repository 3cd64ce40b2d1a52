"""Checkout / reservation DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.reservations.models import Reservation, ReservationItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CheckoutLineSerializer(serializers.Serializer):
    """Validates a single cart line."""

    wine_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class ValidateCartSerializer(serializers.Serializer):
    lines = CheckoutLineSerializer(many=True, allow_empty=True)


class ConfirmCheckoutSerializer(serializers.Serializer):
    """Validates the checkout confirmation payload.

    ``delivery_zone_id`` / ``pallet_id`` are optional manual overrides.
    """

    lines = CheckoutLineSerializer(many=True, allow_empty=False)
    postcode = serializers.CharField(max_length=20, required=False, default="", allow_blank=True)
    city = serializers.CharField(max_length=120, required=False, default="", allow_blank=True)
    country_code = serializers.CharField(
        max_length=2, required=False, default="", allow_blank=True
    )
    delivery_zone_id = serializers.UUIDField(required=False, allow_null=True)
    pallet_id = serializers.UUIDField(required=False, allow_null=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class ReservationItemSerializer(serializers.ModelSerializer):
    wine_name = serializers.CharField(source="wine.name", read_only=True, default=None)

    class Meta:
        model = ReservationItem
        fields = [
            "id",
            "wine_id",
            "wine_name",
            "quantity",
            "producer_approved_quantity",
            "effective_quantity",
        ]
        read_only_fields = fields


class ReservationSerializer(serializers.ModelSerializer):
    """Read serializer for reservations with nested items."""

    items = ReservationItemSerializer(many=True, read_only=True)
    total_bottles = serializers.IntegerField(read_only=True)

    class Meta:
        model = Reservation
        fields = [
            "id",
            "user_id",
            "status",
            "pallet_id",
            "delivery_zone_id",
            "postcode",
            "city",
            "country_code",
            "payment_deadline",
            "total_bottles",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields

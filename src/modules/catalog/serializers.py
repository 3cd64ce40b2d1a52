"""Catalog DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.catalog.models import Wine


class WineSerializer(serializers.ModelSerializer):
    producer_name = serializers.CharField(source="producer.name", read_only=True)

    class Meta:
        model = Wine
        fields = [
            "id",
            "name",
            "vintage",
            "producer",
            "producer_name",
            "cost_amount",
            "cost_currency",
            "exchange_rate_source",
            "exchange_rate",
            "alcohol_tax_cents",
            "price_includes_vat",
            "margin_percentage",
            "base_price_cents",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PriceQuoteSerializer(serializers.Serializer):
    wine_id = serializers.UUIDField(required=False, allow_null=True)
    cost_amount = serializers.DecimalField(
        max_digits=12, decimal_places=4, required=False, allow_null=True
    )
    exchange_rate = serializers.DecimalField(
        max_digits=12, decimal_places=6, required=False, default="1.0"
    )
    alcohol_tax = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    margin_percentage = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, default="0"
    )
    price_includes_vat = serializers.BooleanField(required=False, default=True)
    member_discount_percent = serializers.DecimalField(
        max_digits=5, decimal_places=2, required=False, default="0"
    )

    def validate(self, attrs):
        if not attrs.get("wine_id") and attrs.get("cost_amount") is None:
            raise serializers.ValidationError(
                "Provide either 'wine_id' or 'cost_amount'."
            )
        return attrs


class BulkMarginSerializer(serializers.Serializer):
    margin_percentage = serializers.DecimalField(max_digits=5, decimal_places=2)
    wine_ids = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list
    )

"""Pallet DRF serializers for API input/output.

Fill figures are not model fields: views compute them with
``PalletService.get_fills`` and pass them in the serializer context
under ``"fills"`` (a dict keyed by pallet id).
"""

from __future__ import annotations

from rest_framework import serializers

from modules.pallets.constants import PalletStatus
from modules.pallets.exceptions import InvalidCompletionRules
from modules.pallets.models import Pallet
from modules.pallets.rules import describe, parse_rules

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreatePalletSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    pickup_zone_id = serializers.UUIDField()
    delivery_zone_id = serializers.UUIDField()
    bottle_capacity = serializers.IntegerField(min_value=1, required=False)
    completion_rules = serializers.JSONField(required=False, allow_null=True)


class CompletionRulesSerializer(serializers.Serializer):
    completion_rules = serializers.JSONField(allow_null=True)


class AdvanceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PalletStatus.choices)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class ProducerFillSerializer(serializers.Serializer):
    producer_id = serializers.CharField()
    producer_name = serializers.CharField(allow_null=True)
    bottles = serializers.IntegerField()
    moq_bottles = serializers.IntegerField()
    is_eligible = serializers.BooleanField()


class PalletFillSerializer(serializers.Serializer):
    current_bottles = serializers.IntegerField()
    capacity = serializers.IntegerField()
    remaining_bottles = serializers.IntegerField()
    fill_percentage = serializers.FloatField()
    profit_cents_ex_vat = serializers.IntegerField()
    is_complete = serializers.BooleanField()
    skipped_lines = serializers.IntegerField()
    producers = ProducerFillSerializer(many=True)


class PalletSerializer(serializers.ModelSerializer):
    pickup_zone_name = serializers.CharField(source="pickup_zone.name", read_only=True)
    delivery_zone_name = serializers.CharField(source="delivery_zone.name", read_only=True)
    completion_summary = serializers.SerializerMethodField()
    fill = serializers.SerializerMethodField()

    class Meta:
        model = Pallet
        fields = [
            "id",
            "name",
            "pickup_zone_id",
            "pickup_zone_name",
            "delivery_zone_id",
            "delivery_zone_name",
            "bottle_capacity",
            "completion_rules",
            "completion_summary",
            "status",
            "completed_at",
            "completion_notified_at",
            "payment_deadline",
            "fill",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_completion_summary(self, obj: Pallet) -> str:
        try:
            return describe(parse_rules(obj.completion_rules), obj.bottle_capacity)
        except InvalidCompletionRules:
            return describe(None, obj.bottle_capacity)

    def get_fill(self, obj: Pallet):
        fill = self.context.get("fills", {}).get(str(obj.id))
        if fill is None:
            return None
        return PalletFillSerializer(fill).data

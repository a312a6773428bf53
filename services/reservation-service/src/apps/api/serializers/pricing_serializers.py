# services/reservation-service/src/apps/api/serializers/pricing_serializers.py
"""
Pricing Serializers

Serializers for pricing rules and price previews.
"""

from rest_framework import serializers

from apps.core.models import PricingRule


class PricingRuleSerializer(serializers.ModelSerializer):
    """Pricing rule read serializer."""

    service_id = serializers.UUIDField(read_only=True)
    priority_display = serializers.CharField(
        source='get_priority_display',
        read_only=True
    )

    class Meta:
        model = PricingRule
        fields = [
            'id', 'service_id', 'name',
            'day_of_week', 'start_time', 'end_time', 'start_date', 'end_date',
            'price_modifier', 'modifier_type',
            'priority', 'priority_display',
            'is_active', 'metadata',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class PricingRuleWriteSerializer(serializers.Serializer):
    """
    Input for creating and updating pricing rules.

    Cross-field checks (time window, date range) are done by PricingService
    so the same rules apply to every caller.
    """

    service_id = serializers.UUIDField(required=False)
    name = serializers.CharField(max_length=255)
    day_of_week = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=6),
        required=False,
        allow_empty=True
    )
    start_time = serializers.TimeField(required=False, allow_null=True)
    end_time = serializers.TimeField(required=False, allow_null=True)
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    price_modifier = serializers.IntegerField()
    modifier_type = serializers.ChoiceField(choices=PricingRule.ModifierType.choices)
    priority = serializers.ChoiceField(
        choices=PricingRule.Priority.choices,
        required=False
    )
    is_active = serializers.BooleanField(required=False)
    metadata = serializers.DictField(required=False)


class PricePreviewQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    time = serializers.TimeField()

# services/reservation-service/src/apps/api/serializers/booking_serializers.py
"""
Booking Serializers

Serializers for booking lifecycle endpoints.
"""

from rest_framework import serializers

from apps.core.models import Booking, BookingHistory


class BookingSerializer(serializers.ModelSerializer):
    """Booking read serializer."""

    business_id = serializers.UUIDField(read_only=True)
    service_id = serializers.UUIDField(read_only=True, allow_null=True)
    resource_id = serializers.UUIDField(read_only=True, allow_null=True)
    customer_id = serializers.UUIDField(read_only=True, allow_null=True)
    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    duration_minutes = serializers.IntegerField(read_only=True)
    is_holding = serializers.BooleanField(read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'business_id', 'service_id', 'resource_id', 'customer_id',
            'start_at', 'end_at', 'duration_minutes',
            'status', 'status_display', 'is_holding', 'source',
            'price_snapshot', 'policy_snapshot', 'metadata',
            'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class BookingHistorySerializer(serializers.ModelSerializer):

    class Meta:
        model = BookingHistory
        fields = [
            'id', 'field', 'old_value', 'new_value',
            'changed_by', 'reason', 'created_at',
        ]
        read_only_fields = fields


class BookingCreateSerializer(serializers.Serializer):
    """Serializer for creating bookings."""

    business_id = serializers.UUIDField()
    service_id = serializers.UUIDField(required=False, allow_null=True)
    resource_id = serializers.UUIDField(required=False, allow_null=True)
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField()
    source = serializers.ChoiceField(
        choices=Booking.Source.choices,
        default=Booking.Source.WEB
    )
    metadata = serializers.DictField(required=False, default=dict)


class BookingRescheduleSerializer(serializers.Serializer):
    """New time and/or resource for a booking; omitted fields are kept."""

    start_at = serializers.DateTimeField(required=False)
    end_at = serializers.DateTimeField(required=False)
    resource_id = serializers.UUIDField(required=False, allow_null=True)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)

    def validate(self, attrs):
        if not {'start_at', 'end_at', 'resource_id'} & set(attrs):
            raise serializers.ValidationError(
                'Provide start_at, end_at or resource_id'
            )
        return attrs


class BookingTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Booking.Status.choices)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class BookingMetadataSerializer(serializers.Serializer):
    metadata = serializers.DictField()


class PaymentResultSerializer(serializers.Serializer):
    """Payment outcome delivered by the payment collector."""

    succeeded = serializers.BooleanField()
    reference = serializers.CharField(required=False, allow_blank=True, max_length=255)

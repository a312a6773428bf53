# services/reservation-service/src/apps/api/serializers/waitlist_serializers.py
"""
Waitlist Serializers

Serializers for waitlist management.
"""

from rest_framework import serializers
from django.utils import timezone

from apps.core.models import WaitlistEntry


class WaitlistEntrySerializer(serializers.ModelSerializer):
    """Base waitlist entry serializer."""

    business_id = serializers.UUIDField(read_only=True)
    service_id = serializers.UUIDField(read_only=True, allow_null=True)
    customer_id = serializers.UUIDField(read_only=True)
    converted_booking_id = serializers.UUIDField(read_only=True, allow_null=True)
    status_display = serializers.CharField(
        source='get_status_display',
        read_only=True
    )
    is_open = serializers.BooleanField(read_only=True)
    time_remaining = serializers.SerializerMethodField()

    class Meta:
        model = WaitlistEntry
        fields = [
            'id', 'business_id', 'service_id', 'customer_id',
            'preferred_date', 'preferred_time_start', 'preferred_time_end',
            'status', 'status_display', 'is_open', 'priority',
            'notification_count', 'notified_at', 'last_notified_at',
            'response_deadline', 'time_remaining',
            'converted_booking_id', 'notes', 'metadata',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_time_remaining(self, obj) -> str | None:
        """Time left to answer a notification."""
        if obj.status == WaitlistEntry.Status.NOTIFIED and obj.response_deadline:
            remaining = obj.response_deadline - timezone.now()
            if remaining.total_seconds() > 0:
                hours = int(remaining.total_seconds() // 3600)
                minutes = int((remaining.total_seconds() % 3600) // 60)
                return f"{hours}h {minutes}m"
            return "Expired"
        return None


class WaitlistEntryCreateSerializer(serializers.Serializer):
    """Serializer for joining the waitlist."""

    business_id = serializers.UUIDField()
    customer_id = serializers.UUIDField()
    service_id = serializers.UUIDField(required=False, allow_null=True)
    preferred_date = serializers.DateField(required=False, allow_null=True)
    preferred_time_start = serializers.TimeField(required=False, allow_null=True)
    preferred_time_end = serializers.TimeField(required=False, allow_null=True)
    priority = serializers.ChoiceField(
        choices=WaitlistEntry.Priority.choices,
        default=WaitlistEntry.Priority.NORMAL
    )
    response_deadline_hours = serializers.IntegerField(
        required=False,
        allow_null=True,
        min_value=1
    )
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    metadata = serializers.DictField(required=False, default=dict)

    def validate_preferred_date(self, value):
        if value and value < timezone.now().date():
            raise serializers.ValidationError('Preferred date cannot be in the past')
        return value


class WaitlistNotifyNextSerializer(serializers.Serializer):
    """A freed slot to offer to the next entry in line."""

    business_id = serializers.UUIDField()
    start_at = serializers.DateTimeField()
    end_at = serializers.DateTimeField()
    service_id = serializers.UUIDField(required=False, allow_null=True)
    resource_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['start_at'] >= attrs['end_at']:
            raise serializers.ValidationError({
                'end_at': 'End time must be after start time'
            })
        return attrs


class WaitlistConvertSerializer(serializers.Serializer):
    """
    Convert a notified entry.

    Either link an existing booking (``booking_id``) or book the offered
    slot (``start_at``/``end_at``) in the same step.
    """

    booking_id = serializers.UUIDField(required=False)
    start_at = serializers.DateTimeField(required=False)
    end_at = serializers.DateTimeField(required=False)
    resource_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        has_slot = 'start_at' in attrs or 'end_at' in attrs
        if 'booking_id' in attrs and has_slot:
            raise serializers.ValidationError('Provide booking_id or a slot, not both')
        if has_slot and not ('start_at' in attrs and 'end_at' in attrs):
            raise serializers.ValidationError('start_at and end_at must be given together')
        return attrs

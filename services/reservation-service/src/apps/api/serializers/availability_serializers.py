# services/reservation-service/src/apps/api/serializers/availability_serializers.py
"""
Availability Serializers

Query serializers for availability endpoints.
"""

from rest_framework import serializers

from apps.core.models import Resource


class AvailabilityQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    service_id = serializers.UUIDField(required=False)
    resource_id = serializers.UUIDField(required=False)
    duration_minutes = serializers.IntegerField(required=False, min_value=1)


class AvailableResourcesQuerySerializer(serializers.Serializer):
    service_id = serializers.UUIDField()
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs['start'] >= attrs['end']:
            raise serializers.ValidationError({
                'end': 'End time must be after start time'
            })
        return attrs


class ResourceSerializer(serializers.ModelSerializer):

    class Meta:
        model = Resource
        fields = ['id', 'type', 'name', 'capacity', 'attributes', 'is_active']
        read_only_fields = fields

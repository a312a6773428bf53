# services/reservation-service/src/apps/api/views/availability_views.py
"""
Availability API Views

Views for day availability and free resources of a business.
"""

import logging

from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.services import AvailabilityService
from apps.api.serializers import (
    AvailabilityQuerySerializer,
    AvailableResourcesQuerySerializer,
    ResourceSerializer,
)

logger = logging.getLogger(__name__)


class AvailabilityView(APIView):
    """
    Candidate slots of one day.

    Query params: date (required), service_id, resource_id, duration_minutes
    """

    def get(self, request, business_id):
        serializer = AvailabilityQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = AvailabilityService().check_availability(
            business_id,
            data['date'],
            service_id=data.get('service_id'),
            resource_id=data.get('resource_id'),
            duration_minutes=data.get('duration_minutes'),
        )
        return Response(result)


class AvailableResourcesView(APIView):
    """
    Resources linked to a service that are free for an interval.

    Query params: service_id, start, end
    """

    def get(self, request, business_id):
        serializer = AvailableResourcesQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        resources = AvailabilityService().get_available_resources(
            business_id,
            data['service_id'],
            data['start'],
            data['end'],
        )
        return Response({
            'service_id': str(data['service_id']),
            'start': data['start'].isoformat(),
            'end': data['end'].isoformat(),
            'resources': ResourceSerializer(resources, many=True).data,
        })

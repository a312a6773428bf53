# services/reservation-service/src/apps/api/views/waitlist_views.py
"""
Waitlist API Views

Views for waitlist management.
"""

import logging

from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import WaitlistEntry
from apps.core.services import BadRequestError, WaitlistService
from apps.api.serializers import (
    WaitlistEntrySerializer,
    WaitlistEntryCreateSerializer,
    WaitlistNotifyNextSerializer,
    WaitlistConvertSerializer,
)
from .filters import WaitlistFilter
from .headers import actor_id
from .pagination import StandardResultsSetPagination

logger = logging.getLogger(__name__)


class WaitlistEntryViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for waitlist entries.

    Listing requires a ``business_id`` query parameter and returns entries
    in notification order (priority, then arrival).
    """

    serializer_class = WaitlistEntrySerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = WaitlistFilter
    ordering_fields = ['created_at', 'preferred_date', 'response_deadline']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.waitlist_service = WaitlistService()

    def get_queryset(self):
        if self.action == 'list':
            business_id = self.request.query_params.get('business_id')
            if not business_id:
                raise BadRequestError("business_id query parameter is required")
            return self.waitlist_service.list_entries(
                business_id,
                service_id=self.request.query_params.get('service_id'),
            )
        return WaitlistEntry.objects.all()

    def create(self, request, *args, **kwargs):
        """Add a customer to the waitlist."""
        serializer = WaitlistEntryCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        entry = self.waitlist_service.create_entry(**serializer.validated_data)
        return Response(
            WaitlistEntrySerializer(entry).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['post'])
    def notify(self, request, pk=None):
        """Notify an active entry that a slot is available."""
        entry = self.waitlist_service.notify_entry(pk, slot=request.data.get('slot'))
        return Response(WaitlistEntrySerializer(entry).data)

    @action(detail=False, methods=['post'], url_path='notify-next')
    def notify_next(self, request):
        """Offer a freed slot to the next entry in line, if the slot is free."""
        serializer = WaitlistNotifyNextSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        entry = self.waitlist_service.notify_next(
            data['business_id'],
            data['start_at'],
            data['end_at'],
            service_id=data.get('service_id'),
            resource_id=data.get('resource_id'),
        )
        return Response({
            'notified': entry is not None,
            'entry': WaitlistEntrySerializer(entry).data if entry else None,
        })

    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        """Convert a notified entry into a booking."""
        serializer = WaitlistConvertSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if 'start_at' in data:
            entry = self.waitlist_service.book_entry(
                pk,
                data['start_at'],
                data['end_at'],
                resource_id=data.get('resource_id'),
                created_by=actor_id(request),
            )
        else:
            entry = self.waitlist_service.convert_entry(pk, data.get('booking_id'))
        return Response(WaitlistEntrySerializer(entry).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """Leave the waitlist."""
        entry = self.waitlist_service.cancel_entry(pk)
        return Response(WaitlistEntrySerializer(entry).data)

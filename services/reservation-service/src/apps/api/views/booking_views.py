# services/reservation-service/src/apps/api/views/booking_views.py
"""
Booking API Views

Views for the booking lifecycle. Domain errors raised by the services are
rendered by the shared exception handler.
"""

import logging

from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.models import Booking
from apps.core.services import BadRequestError, BookingService
from apps.core.services.booking_service import UNSET
from apps.api.serializers import (
    BookingSerializer,
    BookingHistorySerializer,
    BookingCreateSerializer,
    BookingRescheduleSerializer,
    BookingTransitionSerializer,
    BookingMetadataSerializer,
    PaymentResultSerializer,
)
from .filters import BookingFilter
from .headers import actor_id
from .pagination import StandardResultsSetPagination

logger = logging.getLogger(__name__)


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet
):
    """
    ViewSet for bookings.

    Listing requires a ``business_id`` query parameter.
    """

    serializer_class = BookingSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = BookingFilter
    ordering_fields = ['start_at', 'created_at', 'status']
    ordering = ['start_at']

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.booking_service = BookingService()

    def get_queryset(self):
        if self.action == 'list':
            business_id = self.request.query_params.get('business_id')
            if not business_id:
                raise BadRequestError("business_id query parameter is required")
            return self.booking_service.list_bookings(business_id)
        return Booking.objects.select_related('business', 'service', 'resource', 'customer')

    def create(self, request, *args, **kwargs):
        """Create a new booking."""
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.create_booking(
            created_by=actor_id(request),
            **serializer.validated_data
        )
        return Response(
            BookingSerializer(booking).data,
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        """Change history of a booking, oldest first."""
        history = self.booking_service.get_history(pk)
        return Response(BookingHistorySerializer(history, many=True).data)

    @action(detail=True, methods=['post'])
    def reschedule(self, request, pk=None):
        """Move a booking in time and/or to another resource."""
        serializer = BookingRescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        booking = self.booking_service.reschedule_booking(
            pk,
            start_at=data.get('start_at'),
            end_at=data.get('end_at'),
            resource_id=data.get('resource_id', UNSET),
            changed_by=actor_id(request),
            reason=data.get('reason') or None,
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        """Move a booking to another status."""
        serializer = BookingTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.transition(
            pk,
            serializer.validated_data['status'],
            changed_by=actor_id(request),
            reason=serializer.validated_data.get('reason') or None,
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=['patch'])
    def metadata(self, request, pk=None):
        """Merge keys into booking metadata."""
        serializer = BookingMetadataSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.update_metadata(
            pk,
            serializer.validated_data['metadata'],
            changed_by=actor_id(request),
        )
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=['post'], url_path='payment-result')
    def payment_result(self, request, pk=None):
        """Apply the outcome of a payment attempt."""
        serializer = PaymentResultSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = self.booking_service.apply_payment_result(
            pk,
            succeeded=serializer.validated_data['succeeded'],
            reference=serializer.validated_data.get('reference') or None,
        )
        return Response(BookingSerializer(booking).data)

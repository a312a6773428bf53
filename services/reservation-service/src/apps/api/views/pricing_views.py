# services/reservation-service/src/apps/api/views/pricing_views.py
"""
Pricing API Views

Pricing rule management and price previews.
"""

import logging

from rest_framework import status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView
from django_filters.rest_framework import DjangoFilterBackend

from apps.core.services import BadRequestError, PricingService
from apps.api.serializers import (
    PricingRuleSerializer,
    PricingRuleWriteSerializer,
    PricePreviewQuerySerializer,
)
from .filters import PricingRuleFilter
from .pagination import StandardResultsSetPagination

logger = logging.getLogger(__name__)


class PricingRuleViewSet(viewsets.GenericViewSet):
    """
    ViewSet for pricing rules.

    Listing requires a ``service_id`` query parameter. Deleting a rule
    deactivates it.
    """

    serializer_class = PricingRuleSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = PricingRuleFilter

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.pricing_service = PricingService()

    def get_queryset(self):
        service_id = self.request.query_params.get('service_id')
        if not service_id:
            raise BadRequestError("service_id query parameter is required")
        return self.pricing_service.list_rules(service_id)

    def list(self, request):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(PricingRuleSerializer(page, many=True).data)
        return Response(PricingRuleSerializer(queryset, many=True).data)

    def create(self, request):
        serializer = PricingRuleWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        service_id = data.pop('service_id', None)
        if service_id is None:
            raise BadRequestError("service_id is required")

        rule = self.pricing_service.create_rule(service_id, **data)
        return Response(PricingRuleSerializer(rule).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        rule = self.pricing_service.get_rule(pk)
        return Response(PricingRuleSerializer(rule).data)

    def update(self, request, pk=None):
        return self._update(request, pk, partial=False)

    def partial_update(self, request, pk=None):
        return self._update(request, pk, partial=True)

    def destroy(self, request, pk=None):
        self.pricing_service.deactivate_rule(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def _update(self, request, pk, partial):
        serializer = PricingRuleWriteSerializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        data.pop('service_id', None)

        rule = self.pricing_service.update_rule(pk, **data)
        return Response(PricingRuleSerializer(rule).data)


class PricePreviewView(APIView):
    """
    Price of a service at a local date and time.

    Query params: date, time
    """

    def get(self, request, service_id):
        serializer = PricePreviewQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        quote = PricingService().price_preview(
            service_id,
            serializer.validated_data['date'],
            serializer.validated_data['time'],
        )
        return Response(quote.to_dict())

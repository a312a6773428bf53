# services/reservation-service/src/apps/core/services/availability_service.py
"""
Availability Service

Business logic for open hours, candidate slots and free resources.
"""

import uuid
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from apps.core.models import Business, Customer, Resource, Service

from . import BadRequestError, BusinessNotOpenError, NotFoundError
from .allocation_service import ResourceAllocator
from .calendar_service import CalendarService
from .conflict_service import ConflictDetector, ConflictScope
from .slot_generator import SlotGenerator

logger = logging.getLogger(__name__)

AVAILABILITY_VERSION_KEY = 'availability:version:{business_id}'


def bump_availability_version(business_id: uuid.UUID):
    """Invalidate cached availability of a business."""
    key = AVAILABILITY_VERSION_KEY.format(business_id=business_id)
    if not cache.add(key, 1, timeout=None):
        try:
            cache.incr(key)
        except ValueError:
            cache.set(key, 1, timeout=None)


class AvailabilityService:
    """
    Service for availability queries.

    Handles:
    - Reference lookups scoped to a business
    - Day availability with candidate slots
    - Free resources of a service for an interval
    """

    def __init__(
        self,
        calendar: CalendarService = None,
        detector: ConflictDetector = None,
        allocator: ResourceAllocator = None
    ):
        self.calendar = calendar or CalendarService()
        self.detector = detector or ConflictDetector()
        self.allocator = allocator or ResourceAllocator(self.detector)

    # ==========================================================================
    # Reference lookups
    # ==========================================================================

    def get_open_business(self, business_id: uuid.UUID) -> Business:
        business = self.calendar.get_business(business_id)
        if not business.is_operational:
            raise BusinessNotOpenError(f"Business {business_id} is not accepting bookings")
        return business

    def get_service(self, business: Business, service_id: uuid.UUID) -> Service:
        service = Service.objects.alive().select_related('policy', 'business').filter(
            id=service_id,
            business=business
        ).first()
        if service is None:
            raise NotFoundError(f"Service {service_id} not found")
        if not service.is_active:
            raise BadRequestError(f"Service {service_id} is not active")
        return service

    def get_resource(self, business: Business, resource_id: uuid.UUID) -> Resource:
        resource = Resource.objects.alive().select_related('business').filter(
            id=resource_id,
            business=business
        ).first()
        if resource is None:
            raise NotFoundError(f"Resource {resource_id} not found")
        if not resource.is_active:
            raise BadRequestError(f"Resource {resource_id} is not active")
        return resource

    def get_customer(self, business: Business, customer_id: uuid.UUID) -> Customer:
        customer = Customer.objects.alive().filter(id=customer_id, business=business).first()
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    # ==========================================================================
    # Availability
    # ==========================================================================

    def check_availability(
        self,
        business_id: uuid.UUID,
        target_date: date,
        service_id: uuid.UUID = None,
        resource_id: uuid.UUID = None,
        duration_minutes: int = None
    ) -> Dict[str, Any]:
        """Slots of one day with their availability."""
        business = self.get_open_business(business_id)
        service = self.get_service(business, service_id) if service_id else None
        resource = self.get_resource(business, resource_id) if resource_id else None

        hours = self.calendar.resolve_hours(business, target_date, resource)
        if hours.closed:
            return {
                'date': target_date.isoformat(),
                'slots': [],
                'business_hours': {'open': None, 'close': None, 'is_closed': True},
            }

        duration = duration_minutes or (
            service.duration_minutes if service else settings.DEFAULT_SLOT_DURATION_MINUTES
        )
        if duration <= 0:
            raise BadRequestError("Duration must be positive")

        cache_key = self._cache_key(business, target_date, service, resource, duration)
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        window_start, window_end = self.calendar.local_window(business, target_date, hours)
        slots = SlotGenerator(window_start, window_end, timedelta(minutes=duration))
        now = timezone.now()

        if resource is not None:
            bookings = self.detector.candidates(
                ConflictScope.for_resource(resource), window_start, window_end, service
            )
            slot_rows = [
                self._slot_row(
                    slot,
                    slot.start >= now and self.detector.slot_is_free(slot.start, slot.end, bookings, service),
                    resource.id,
                )
                for slot in slots
            ]
        elif service is not None and service.linked_resources().exists():
            slot_rows = self._slots_for_linked_resources(service, slots, window_start, window_end, now)
        else:
            scope = ConflictScope.for_service(service) if service else ConflictScope.for_business(business)
            bookings = self.detector.candidates(scope, window_start, window_end, service)
            slot_rows = [
                self._slot_row(
                    slot,
                    slot.start >= now and self.detector.slot_is_free(slot.start, slot.end, bookings, service),
                )
                for slot in slots
            ]

        result = {
            'date': target_date.isoformat(),
            'slots': slot_rows,
            'business_hours': {
                'open': hours.open.strftime('%H:%M'),
                'close': hours.close.strftime('%H:%M'),
                'is_closed': False,
            },
        }
        cache.set(cache_key, result, settings.AVAILABILITY_CACHE_TTL)
        return result

    def _slots_for_linked_resources(self, service, slots, window_start, window_end, now) -> List[Dict[str, Any]]:
        resources = list(service.linked_resources())
        bookings = self.detector.candidates(
            ConflictScope.for_service(service), window_start, window_end, service
        )
        by_resource = defaultdict(list)
        for booking in bookings:
            by_resource[booking.resource_id].append(booking)

        rows = []
        for slot in slots:
            free = None
            if slot.start >= now:
                free = next(
                    (
                        resource for resource in resources
                        if self.detector.slot_is_free(slot.start, slot.end, by_resource[resource.id], service)
                    ),
                    None,
                )
            rows.append(self._slot_row(slot, free is not None, free.id if free else None))
        return rows

    def get_available_resources(
        self,
        business_id: uuid.UUID,
        service_id: uuid.UUID,
        start: datetime,
        end: datetime
    ) -> List[Resource]:
        business = self.get_open_business(business_id)
        service = self.get_service(business, service_id)
        if start >= end:
            raise BadRequestError("Start time must be before end time")
        return self.allocator.available_resources(service, start, end)

    def is_time_slot_available(
        self,
        business_id: uuid.UUID,
        start: datetime,
        end: datetime,
        service_id: uuid.UUID = None,
        resource_id: uuid.UUID = None,
        exclude_booking_id: uuid.UUID = None
    ) -> bool:
        business = self.calendar.get_business(business_id)
        service = self.get_service(business, service_id) if service_id else None
        if resource_id:
            scope = ConflictScope.for_resource(self.get_resource(business, resource_id))
        elif service is not None:
            scope = ConflictScope.for_service(service)
        else:
            scope = ConflictScope.for_business(business)
        return self.detector.is_available(scope, start, end, service, exclude_booking_id)

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _slot_row(slot, available: bool, resource_id: uuid.UUID = None) -> Dict[str, Any]:
        return {
            'start': slot.start.isoformat(),
            'end': slot.end.isoformat(),
            'available': available,
            'resource_id': str(resource_id) if resource_id else None,
        }

    @staticmethod
    def _cache_key(business, target_date, service, resource, duration) -> str:
        version = cache.get(AVAILABILITY_VERSION_KEY.format(business_id=business.id), 0)
        return ':'.join([
            'availability',
            str(business.id),
            str(version),
            target_date.isoformat(),
            str(service.id) if service else '-',
            str(resource.id) if resource else '-',
            str(duration),
        ])

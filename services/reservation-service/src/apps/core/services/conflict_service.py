# services/reservation-service/src/apps/core/services/conflict_service.py
"""
Conflict Detection

Decides whether an interval overlaps a holding booking in a scope.
"""

import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from django.db.models import Q

from apps.core.models import Booking, Business, Resource, Service

logger = logging.getLogger(__name__)


def intervals_overlap(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open overlap: ``[start, end)`` and ``[other_start, other_end)``."""
    return start < other_end and other_start < end


@dataclass(frozen=True)
class ConflictScope:
    """
    Which bookings compete for an interval.

    Exactly one of ``resource_id``, ``service_id`` or ``business_id`` is
    the key. A service scope covers bookings of the service and bookings
    on any resource linked to it.
    """

    resource_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    business_id: Optional[uuid.UUID] = None

    @classmethod
    def for_resource(cls, resource: Resource) -> 'ConflictScope':
        return cls(resource_id=resource.id)

    @classmethod
    def for_service(cls, service: Service) -> 'ConflictScope':
        return cls(service_id=service.id)

    @classmethod
    def for_business(cls, business: Business) -> 'ConflictScope':
        return cls(business_id=business.id)

    def filter(self, queryset):
        if self.resource_id:
            return queryset.filter(resource_id=self.resource_id)
        if self.service_id:
            linked = Resource.objects.filter(service_links__service_id=self.service_id).values('id')
            return queryset.filter(Q(service_id=self.service_id) | Q(resource_id__in=linked))
        if self.business_id:
            return queryset.filter(business_id=self.business_id)
        raise ValueError("Conflict scope needs a resource, service or business")


class ConflictDetector:
    """
    Buffer-aware overlap detection against holding bookings.

    Existing bookings are widened by ``buffer_before``/``buffer_after`` of
    the service being booked, then tested with the half-open rule. Every
    call queries the store; results are never cached.
    """

    def find_conflicts(
        self,
        scope: ConflictScope,
        start: datetime,
        end: datetime,
        service: Optional[Service] = None,
        exclude_booking_id: uuid.UUID = None
    ) -> List[Booking]:
        before, after = self._buffers(service)
        candidates = self.candidates(scope, start, end, service, exclude_booking_id)
        return [
            booking for booking in candidates
            if intervals_overlap(
                start, end,
                booking.start_at - before,
                booking.end_at + after,
            )
        ]

    def is_available(
        self,
        scope: ConflictScope,
        start: datetime,
        end: datetime,
        service: Optional[Service] = None,
        exclude_booking_id: uuid.UUID = None
    ) -> bool:
        conflicts = self.find_conflicts(scope, start, end, service, exclude_booking_id)
        if conflicts:
            logger.debug(
                f"Interval {start.isoformat()} - {end.isoformat()} conflicts with "
                f"{len(conflicts)} booking(s)"
            )
        return not conflicts

    def candidates(
        self,
        scope: ConflictScope,
        window_start: datetime,
        window_end: datetime,
        service: Optional[Service] = None,
        exclude_booking_id: uuid.UUID = None
    ) -> List[Booking]:
        """Holding bookings in scope that may overlap anything inside the window."""
        before, after = self._buffers(service)
        queryset = Booking.overlapping(
            window_start,
            window_end,
            buffer_before=int(before.total_seconds() // 60),
            buffer_after=int(after.total_seconds() // 60),
            exclude_booking_id=exclude_booking_id,
        )
        return list(scope.filter(queryset).order_by('start_at'))

    def slot_is_free(
        self,
        start: datetime,
        end: datetime,
        bookings: List[Booking],
        service: Optional[Service] = None
    ) -> bool:
        """In-memory check against bookings already fetched with ``candidates``."""
        before, after = self._buffers(service)
        return not any(
            intervals_overlap(start, end, booking.start_at - before, booking.end_at + after)
            for booking in bookings
        )

    @staticmethod
    def _buffers(service: Optional[Service]):
        if service is None:
            return timedelta(0), timedelta(0)
        return timedelta(minutes=service.buffer_before), timedelta(minutes=service.buffer_after)

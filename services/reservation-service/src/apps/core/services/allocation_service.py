# services/reservation-service/src/apps/core/services/allocation_service.py
"""
Resource Allocation

Picks a free resource for a service when the caller did not name one.
"""

import uuid
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from apps.core.models import Resource, Service

from . import NoAvailableResourceError
from .conflict_service import ConflictDetector, ConflictScope

logger = logging.getLogger(__name__)


class ResourceAllocator:
    """First free linked resource, in resource creation order."""

    def __init__(self, detector: ConflictDetector = None):
        self.detector = detector or ConflictDetector()

    def available_resources(
        self,
        service: Service,
        start: datetime,
        end: datetime,
        candidates: Optional[Iterable[Resource]] = None,
        exclude_booking_id: uuid.UUID = None
    ) -> List[Resource]:
        candidates = service.linked_resources() if candidates is None else candidates
        return [
            resource for resource in candidates
            if self.detector.is_available(
                ConflictScope.for_resource(resource),
                start,
                end,
                service=service,
                exclude_booking_id=exclude_booking_id,
            )
        ]

    def allocate(
        self,
        service: Service,
        start: datetime,
        end: datetime,
        candidates: Optional[Iterable[Resource]] = None,
        exclude_booking_id: uuid.UUID = None
    ) -> Resource:
        candidates = service.linked_resources() if candidates is None else candidates
        for resource in candidates:
            if self.detector.is_available(
                ConflictScope.for_resource(resource),
                start,
                end,
                service=service,
                exclude_booking_id=exclude_booking_id,
            ):
                logger.info(f"Allocated resource {resource.id} for service {service.id}")
                return resource

        raise NoAvailableResourceError(details={
            'service_id': str(service.id),
            'start': start.isoformat(),
            'end': end.isoformat(),
        })

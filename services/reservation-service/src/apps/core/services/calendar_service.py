# services/reservation-service/src/apps/core/services/calendar_service.py
"""
Calendar Service

Resolves when a business or resource is open on a given date.
"""

import uuid
import logging
from datetime import date, datetime
from typing import Optional, Tuple

from apps.core.models import Business, DayHours, Resource

from . import NotFoundError

logger = logging.getLogger(__name__)


class CalendarService:
    """
    Hours resolution.

    Precedence, highest first: a closing holiday or day-off exception,
    a working exception with its own hours, then the weekly hours. A
    missing or closed weekly row means closed.
    """

    def resolve_business_hours(self, business_id: uuid.UUID, target_date: date) -> DayHours:
        business = self.get_business(business_id)
        return business.resolve_hours(target_date)

    def resolve_resource_hours(self, resource_id: uuid.UUID, target_date: date) -> DayHours:
        resource = Resource.objects.alive().select_related('business').filter(id=resource_id).first()
        if resource is None:
            raise NotFoundError(f"Resource {resource_id} not found")
        return resource.resolve_hours(target_date)

    def resolve_hours(
        self,
        business: Business,
        target_date: date,
        resource: Optional[Resource] = None
    ) -> DayHours:
        if resource is not None:
            return resource.resolve_hours(target_date)
        return business.resolve_hours(target_date)

    def get_business(self, business_id: uuid.UUID) -> Business:
        business = Business.objects.alive().filter(id=business_id).first()
        if business is None:
            raise NotFoundError(f"Business {business_id} not found")
        return business

    @staticmethod
    def local_window(business: Business, target_date: date, hours: DayHours) -> Tuple[datetime, datetime]:
        """Aware datetimes for an open day in the business timezone."""
        tz = business.tzinfo
        return (
            datetime.combine(target_date, hours.open, tzinfo=tz),
            datetime.combine(target_date, hours.close, tzinfo=tz),
        )

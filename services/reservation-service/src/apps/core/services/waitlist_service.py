# services/reservation-service/src/apps/core/services/waitlist_service.py
"""
Waitlist Service

Business logic for the waitlist queue and its notification workflow.
"""

import uuid
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from apps.core.models import Booking, WaitlistEntry

from . import BadRequestError, DuplicateWaitlistEntryError, NotFoundError
from .availability_service import AvailabilityService
from .booking_service import BookingService
from .conflict_service import ConflictDetector, ConflictScope
from .dispatch_service import DispatchService

logger = logging.getLogger(__name__)


class WaitlistService:
    """
    Service for managing waitlists.

    Handles:
    - Queue entry creation
    - Priority-based selection (vip > high > normal > low, then FIFO)
    - Notification, conversion and cancellation
    - Deadline expiry sweep
    """

    def __init__(
        self,
        availability: AvailabilityService = None,
        bookings: BookingService = None,
        dispatch: DispatchService = None
    ):
        self.availability = availability or AvailabilityService()
        self.detector: ConflictDetector = self.availability.detector
        self.dispatch = dispatch or DispatchService()
        self.bookings = bookings or BookingService(availability=self.availability, dispatch=self.dispatch)

    # ==========================================================================
    # Entry Management
    # ==========================================================================

    def create_entry(
        self,
        business_id: uuid.UUID,
        customer_id: uuid.UUID,
        service_id: uuid.UUID = None,
        preferred_date: date = None,
        preferred_time_start: time = None,
        preferred_time_end: time = None,
        priority: str = WaitlistEntry.Priority.NORMAL,
        response_deadline_hours: int = None,
        notes: str = None,
        metadata: Dict[str, Any] = None
    ) -> WaitlistEntry:
        """Add a customer to the waitlist."""
        business = self.availability.calendar.get_business(business_id)
        customer = self.availability.get_customer(business, customer_id)
        service = self.availability.get_service(business, service_id) if service_id else None

        if priority not in WaitlistEntry.Priority.values:
            raise BadRequestError(f"Unknown priority: {priority}")
        if (preferred_time_start is None) != (preferred_time_end is None):
            raise BadRequestError("preferred_time_start and preferred_time_end must be given together")
        if preferred_time_start is not None and preferred_time_start >= preferred_time_end:
            raise BadRequestError("preferred_time_start must be before preferred_time_end")

        deadline_hours = response_deadline_hours or settings.WAITLIST_RESPONSE_DEADLINE_HOURS

        try:
            with transaction.atomic():
                duplicate = WaitlistEntry.objects.filter(
                    business=business,
                    service=service,
                    customer=customer,
                    status__in=WaitlistEntry.OPEN_STATUSES,
                ).exists()
                if duplicate:
                    raise DuplicateWaitlistEntryError()

                entry = WaitlistEntry.objects.create(
                    business=business,
                    service=service,
                    customer=customer,
                    preferred_date=preferred_date,
                    preferred_time_start=preferred_time_start,
                    preferred_time_end=preferred_time_end,
                    priority=priority,
                    response_deadline=timezone.now() + timedelta(hours=deadline_hours),
                    notes=notes,
                    metadata=metadata or {},
                )
        except IntegrityError:
            # Lost a race against a concurrent request for the same customer
            raise DuplicateWaitlistEntryError()

        logger.info(
            f"Added customer {customer.id} to waitlist of business {business.id} "
            f"(entry {entry.id}, priority {priority})"
        )
        return entry

    def get_entry(self, entry_id: uuid.UUID) -> WaitlistEntry:
        entry = WaitlistEntry.objects.select_related('customer').filter(id=entry_id).first()
        if entry is None:
            raise NotFoundError(f"Waitlist entry {entry_id} not found")
        return entry

    def list_entries(
        self,
        business_id: uuid.UUID,
        status: str = None,
        service_id: uuid.UUID = None
    ):
        queryset = WaitlistEntry.objects.filter(business_id=business_id)
        if status:
            queryset = queryset.filter(status=status)
        if service_id:
            queryset = queryset.filter(service_id=service_id)
        return WaitlistEntry.by_priority(queryset)

    def next_entry(
        self,
        business_id: uuid.UUID,
        service_id: uuid.UUID = None,
        preferred_date: date = None
    ) -> Optional[WaitlistEntry]:
        """
        Next active entry to offer a freed slot to.

        Entries without a preferred date match any date.
        """
        queryset = WaitlistEntry.objects.filter(
            business_id=business_id,
            status=WaitlistEntry.Status.ACTIVE,
        )
        if service_id:
            queryset = queryset.filter(service_id=service_id)
        if preferred_date:
            queryset = queryset.filter(
                Q(preferred_date=preferred_date) | Q(preferred_date__isnull=True)
            )
        return WaitlistEntry.by_priority(queryset).first()

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    @transaction.atomic
    def notify_entry(
        self,
        entry_id: uuid.UUID,
        slot: Dict[str, Any] = None
    ) -> WaitlistEntry:
        entry = self._lock_entry(entry_id)
        if entry.status != WaitlistEntry.Status.ACTIVE:
            raise BadRequestError(f"Cannot notify waitlist entry in {entry.status} status")

        entry.mark_notified(settings.WAITLIST_RESPONSE_DEADLINE_HOURS)
        self.dispatch.queue_waitlist_notification(entry, slot)

        logger.info(
            f"Notified waitlist entry {entry.id} "
            f"(notification #{entry.notification_count}, deadline {entry.response_deadline.isoformat()})"
        )
        return entry

    def notify_next(
        self,
        business_id: uuid.UUID,
        start_at: datetime,
        end_at: datetime,
        service_id: uuid.UUID = None,
        resource_id: uuid.UUID = None
    ) -> Optional[WaitlistEntry]:
        """Offer a slot to the next entry if the slot is actually free."""
        business = self.availability.calendar.get_business(business_id)
        service = self.availability.get_service(business, service_id) if service_id else None

        if resource_id:
            scope = ConflictScope.for_resource(self.availability.get_resource(business, resource_id))
        elif service is not None:
            scope = ConflictScope.for_service(service)
        else:
            scope = ConflictScope.for_business(business)

        if not self.detector.is_available(scope, start_at, end_at, service=service):
            logger.debug(f"Slot {start_at.isoformat()} is not free; waitlist not notified")
            return None

        local_date = start_at.astimezone(business.tzinfo).date()
        entry = self.next_entry(business.id, service_id, local_date)
        if entry is None:
            return None

        slot = {
            'start': start_at.isoformat(),
            'end': end_at.isoformat(),
            'service_id': str(service_id) if service_id else None,
            'resource_id': str(resource_id) if resource_id else None,
        }
        return self.notify_entry(entry.id, slot)

    def notify_for_released_booking(
        self,
        booking_id: uuid.UUID,
        start_at: datetime,
        end_at: datetime,
        resource_id: uuid.UUID = None
    ) -> Optional[WaitlistEntry]:
        """
        Offer the interval a booking just released.

        ``resource_id`` is the resource the interval was held on, which
        differs from the booking's current resource after a move.
        """
        booking = Booking.objects.filter(id=booking_id).first()
        if booking is None:
            return None
        return self.notify_next(
            booking.business_id,
            start_at,
            end_at,
            service_id=booking.service_id,
            resource_id=resource_id,
        )

    @transaction.atomic
    def convert_entry(
        self,
        entry_id: uuid.UUID,
        booking_id: uuid.UUID = None
    ) -> WaitlistEntry:
        entry = self._lock_entry(entry_id)
        if entry.status != WaitlistEntry.Status.NOTIFIED:
            raise BadRequestError(f"Cannot convert waitlist entry in {entry.status} status")

        booking = None
        if booking_id:
            booking = Booking.objects.filter(id=booking_id, business_id=entry.business_id).first()
            if booking is None:
                raise NotFoundError(f"Booking {booking_id} not found")

        entry.mark_converted(booking)

        logger.info(f"Converted waitlist entry {entry.id} to booking {booking_id or '-'}")
        return entry

    @transaction.atomic
    def book_entry(
        self,
        entry_id: uuid.UUID,
        start_at: datetime,
        end_at: datetime,
        resource_id: uuid.UUID = None,
        created_by: uuid.UUID = None
    ) -> WaitlistEntry:
        """Create the booking for a notified entry and convert it in one transaction."""
        entry = self._lock_entry(entry_id)
        if entry.status != WaitlistEntry.Status.NOTIFIED:
            raise BadRequestError(f"Cannot convert waitlist entry in {entry.status} status")

        booking = self.bookings.create_booking(
            business_id=entry.business_id,
            start_at=start_at,
            end_at=end_at,
            service_id=entry.service_id,
            resource_id=resource_id,
            customer_id=entry.customer_id,
            metadata={'waitlist_entry_id': str(entry.id)},
            created_by=created_by,
        )
        entry.mark_converted(booking)

        logger.info(f"Converted waitlist entry {entry.id} to booking {booking.id}")
        return entry

    @transaction.atomic
    def cancel_entry(self, entry_id: uuid.UUID) -> WaitlistEntry:
        entry = self._lock_entry(entry_id)
        if not entry.is_open:
            raise BadRequestError(f"Cannot cancel waitlist entry in {entry.status} status")

        entry.mark_cancelled()

        logger.info(f"Cancelled waitlist entry {entry.id}")
        return entry

    def expire_entries(self, now: datetime = None) -> int:
        """Move notified entries past their response deadline to expired."""
        now = now or timezone.now()
        count = WaitlistEntry.past_deadline(now).update(
            status=WaitlistEntry.Status.EXPIRED,
            updated_at=now,
        )
        if count:
            logger.info(f"Expired {count} waitlist entries")
        return count

    def _lock_entry(self, entry_id: uuid.UUID) -> WaitlistEntry:
        entry = WaitlistEntry.objects.select_for_update().filter(id=entry_id).first()
        if entry is None:
            raise NotFoundError(f"Waitlist entry {entry_id} not found")
        return entry

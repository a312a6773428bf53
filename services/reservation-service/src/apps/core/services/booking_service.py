# services/reservation-service/src/apps/core/services/booking_service.py
"""
Booking Service

Core business logic for the reservation lifecycle.

Every write locks the business row before re-running conflict detection
and writes in the same transaction, so writers of one business are
serialized whichever resource, service or business scope they check.
"""

import uuid
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.models import (
    Booking,
    BookingHistory,
    Business,
    Resource,
    Service,
)

from . import (
    BadRequestError,
    InvalidTransitionError,
    NotFoundError,
    SlotUnavailableError,
)
from .availability_service import AvailabilityService
from .conflict_service import ConflictDetector, ConflictScope
from .dispatch_service import DispatchService
from .pricing_service import PricingService

logger = logging.getLogger(__name__)

# Sentinel for "argument not given" where None is a meaningful value
UNSET = object()


class BookingService:
    """
    Service for managing bookings.

    Handles:
    - Booking creation with conflict checks and allocation
    - Rescheduling and resource changes
    - Status transitions and payment results
    - Expiry of unpaid bookings
    """

    def __init__(
        self,
        availability: AvailabilityService = None,
        pricing: PricingService = None,
        dispatch: DispatchService = None
    ):
        self.availability = availability or AvailabilityService()
        self.detector: ConflictDetector = self.availability.detector
        self.allocator = self.availability.allocator
        self.pricing = pricing or PricingService()
        self.dispatch = dispatch or DispatchService()

    # ==========================================================================
    # Queries
    # ==========================================================================

    def get_booking(self, booking_id: uuid.UUID) -> Booking:
        booking = Booking.objects.select_related(
            'business', 'service', 'resource', 'customer'
        ).filter(id=booking_id).first()
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def list_bookings(
        self,
        business_id: uuid.UUID,
        status: str = None,
        resource_id: uuid.UUID = None,
        service_id: uuid.UUID = None,
        customer_id: uuid.UUID = None,
        start_from: datetime = None,
        start_to: datetime = None
    ):
        queryset = Booking.objects.filter(business_id=business_id)
        if status:
            queryset = queryset.filter(status=status)
        if resource_id:
            queryset = queryset.filter(resource_id=resource_id)
        if service_id:
            queryset = queryset.filter(service_id=service_id)
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)
        if start_from:
            queryset = queryset.filter(start_at__gte=start_from)
        if start_to:
            queryset = queryset.filter(start_at__lt=start_to)
        return queryset.order_by('start_at')

    def get_history(self, booking_id: uuid.UUID) -> List[BookingHistory]:
        booking = self.get_booking(booking_id)
        return list(booking.history.order_by('created_at'))

    # ==========================================================================
    # Creation
    # ==========================================================================

    @transaction.atomic
    def create_booking(
        self,
        business_id: uuid.UUID,
        start_at: datetime,
        end_at: datetime,
        service_id: uuid.UUID = None,
        resource_id: uuid.UUID = None,
        customer_id: uuid.UUID = None,
        source: str = Booking.Source.WEB,
        metadata: Dict[str, Any] = None,
        created_by: uuid.UUID = None
    ) -> Booking:
        """Create a booking after validating references and availability."""
        business = self.availability.get_open_business(business_id)
        self._validate_times(start_at, end_at)

        service = self.availability.get_service(business, service_id) if service_id else None
        resource = self.availability.get_resource(business, resource_id) if resource_id else None
        customer = self.availability.get_customer(business, customer_id) if customer_id else None

        if service is not None and resource is not None:
            self._validate_resource_for_service(service, resource)

        resource = self._reserve(business, service, resource, start_at, end_at)

        price_snapshot = None
        price = 0
        if service is not None:
            quote = self.pricing.quote_for_service(service, start_at)
            if quote is not None:
                price = quote.final_price
                price_snapshot = {
                    'service_id': str(service.id),
                    'service_name': service.name,
                    'base_price_cents': quote.base_price,
                    'price_cents': quote.final_price,
                    'duration_minutes': service.duration_minutes,
                    'applied_rules': quote.applied_rules,
                    'total_modifier': quote.total_modifier,
                }

        policy_snapshot = None
        if service is not None and service.policy is not None and not service.policy.is_deleted:
            policy_snapshot = service.policy.snapshot()

        status = Booking.Status.PENDING_PAYMENT if price > 0 else Booking.Status.CONFIRMED

        booking = Booking.objects.create(
            business=business,
            service=service,
            resource=resource,
            customer=customer,
            start_at=start_at,
            end_at=end_at,
            status=status,
            source=source,
            price_snapshot=price_snapshot,
            policy_snapshot=policy_snapshot,
            metadata=metadata or {},
            created_by=created_by,
        )

        BookingHistory.record(
            booking, 'status', None, status,
            changed_by=created_by, reason='Booking created',
        )

        if status == Booking.Status.CONFIRMED:
            self._on_confirmed(booking)

        logger.info(
            f"Created booking {booking.id} for {start_at.isoformat()} "
            f"on resource {resource.id if resource else '-'} ({status})"
        )

        return booking

    # ==========================================================================
    # Updates
    # ==========================================================================

    @transaction.atomic
    def reschedule_booking(
        self,
        booking_id: uuid.UUID,
        start_at: datetime = None,
        end_at: datetime = None,
        resource_id=UNSET,
        changed_by: uuid.UUID = None,
        reason: str = None
    ) -> Booking:
        """Move a holding booking in time and/or to another resource."""
        booking = self._lock_booking(booking_id)

        if not booking.is_holding:
            raise BadRequestError(f"Cannot reschedule booking in {booking.status} status")

        new_start = start_at or booking.start_at
        new_end = end_at or booking.end_at
        self._validate_times(new_start, new_end)

        business = booking.business
        service = booking.service
        resource = booking.resource
        if resource_id is not UNSET:
            resource = self.availability.get_resource(business, resource_id) if resource_id else None
            if service is not None and resource is not None:
                self._validate_resource_for_service(service, resource)

        if (
            new_start == booking.start_at
            and new_end == booking.end_at
            and resource == booking.resource
        ):
            return booking

        old_values = {
            'start_at': booking.start_at,
            'end_at': booking.end_at,
            'resource': booking.resource_id,
        }

        resource = self._reserve(
            business, service, resource, new_start, new_end,
            exclude_booking_id=booking.id,
        )

        booking.start_at = new_start
        booking.end_at = new_end
        booking.resource = resource
        booking.save(update_fields=['start_at', 'end_at', 'resource', 'updated_at'])

        new_values = {
            'start_at': booking.start_at,
            'end_at': booking.end_at,
            'resource': booking.resource_id,
        }
        for field, old_value in old_values.items():
            if old_value != new_values[field]:
                BookingHistory.record(
                    booking, field, old_value, new_values[field],
                    changed_by=changed_by, reason=reason or 'Booking rescheduled',
                )

        if booking.status == Booking.Status.CONFIRMED and new_start != old_values['start_at']:
            self.dispatch.reschedule_reminders(booking)

        self._release_after_commit(
            booking.id, old_values['start_at'], old_values['end_at'], old_values['resource']
        )

        logger.info(f"Rescheduled booking {booking.id} to {new_start.isoformat()}")

        return booking

    @transaction.atomic
    def update_metadata(
        self,
        booking_id: uuid.UUID,
        metadata: Dict[str, Any],
        changed_by: uuid.UUID = None
    ) -> Booking:
        booking = self._lock_booking(booking_id)
        merged = {**booking.metadata, **metadata}
        if merged == booking.metadata:
            return booking

        old = booking.metadata
        booking.metadata = merged
        booking.save(update_fields=['metadata', 'updated_at'])
        BookingHistory.record(
            booking, 'metadata', old, merged,
            changed_by=changed_by, reason='Metadata updated',
        )
        return booking

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    @transaction.atomic
    def transition(
        self,
        booking_id: uuid.UUID,
        new_status: str,
        changed_by: uuid.UUID = None,
        reason: str = None
    ) -> Booking:
        booking = self._lock_booking(booking_id)
        return self._apply_transition(booking, new_status, changed_by, reason)

    def confirm_booking(self, booking_id: uuid.UUID, changed_by: uuid.UUID = None, reason: str = None) -> Booking:
        return self.transition(booking_id, Booking.Status.CONFIRMED, changed_by, reason)

    def cancel_booking(self, booking_id: uuid.UUID, changed_by: uuid.UUID = None, reason: str = None) -> Booking:
        return self.transition(booking_id, Booking.Status.CANCELLED, changed_by, reason)

    def complete_booking(self, booking_id: uuid.UUID, changed_by: uuid.UUID = None, reason: str = None) -> Booking:
        return self.transition(booking_id, Booking.Status.COMPLETED, changed_by, reason)

    def mark_no_show(self, booking_id: uuid.UUID, changed_by: uuid.UUID = None, reason: str = None) -> Booking:
        return self.transition(booking_id, Booking.Status.NO_SHOW, changed_by, reason)

    @transaction.atomic
    def apply_payment_result(
        self,
        booking_id: uuid.UUID,
        succeeded: bool,
        reference: str = None
    ) -> Booking:
        """Payment signal: confirm on success, cancel on failure."""
        booking = self._lock_booking(booking_id)
        target = Booking.Status.CONFIRMED if succeeded else Booking.Status.CANCELLED

        # Payment providers deliver at least once
        if booking.status == target:
            return booking

        if booking.status != Booking.Status.PENDING_PAYMENT:
            raise InvalidTransitionError(
                f"Cannot apply payment result to booking in {booking.status} status"
            )

        reason = 'Payment succeeded' if succeeded else 'Payment failed'
        if reference:
            reason = f"{reason} ({reference})"
        return self._apply_transition(booking, target, None, reason)

    def _apply_transition(
        self,
        booking: Booking,
        new_status: str,
        changed_by: Optional[uuid.UUID],
        reason: Optional[str]
    ) -> Booking:
        if new_status not in Booking.Status.values:
            raise BadRequestError(f"Unknown status: {new_status}")
        if not booking.can_transition_to(new_status):
            raise InvalidTransitionError(
                f"Invalid transition from {booking.status} to {new_status}"
            )

        if new_status in Booking.HOLDING_STATUSES:
            self._reserve(
                booking.business, booking.service, booking.resource,
                booking.start_at, booking.end_at,
                exclude_booking_id=booking.id,
            )

        old_status = booking.status
        booking.status = new_status
        booking.save(update_fields=['status', 'updated_at'])

        BookingHistory.record(
            booking, 'status', old_status, new_status,
            changed_by=changed_by, reason=reason,
        )

        if new_status == Booking.Status.CONFIRMED:
            self._on_confirmed(booking)
        elif new_status not in Booking.HOLDING_STATUSES:
            self._release_after_commit(booking.id, booking.start_at, booking.end_at, booking.resource_id)

        logger.info(f"Booking {booking.id} transitioned {old_status} -> {new_status}")

        return booking

    # ==========================================================================
    # Expiry
    # ==========================================================================

    def expire_stale_bookings(self, now: datetime = None, batch_size: int = None) -> int:
        """
        Expire pending and pending-payment bookings whose payment window has
        elapsed. Safe to run repeatedly; each booking is re-checked under lock.
        """
        now = now or timezone.now()
        batch_size = batch_size or settings.BOOKING_EXPIRY_BATCH_SIZE
        cutoff = now - timedelta(minutes=settings.BOOKING_EXPIRY_MINUTES)

        expired = 0
        while True:
            batch = list(
                Booking.stale_unpaid(cutoff).order_by('created_at').values_list('id', flat=True)[:batch_size]
            )
            if not batch:
                break
            for booking_id in batch:
                if self._expire_one(booking_id, cutoff):
                    expired += 1
            if len(batch) < batch_size:
                break

        if expired:
            logger.info(f"Expired {expired} unpaid booking(s)")
        return expired

    @transaction.atomic
    def _expire_one(self, booking_id: uuid.UUID, cutoff: datetime) -> bool:
        booking = Booking.stale_unpaid(cutoff).select_for_update().filter(id=booking_id).first()
        if booking is None:
            return False

        old_status = booking.status
        booking.status = Booking.Status.EXPIRED
        booking.save(update_fields=['status', 'updated_at'])
        BookingHistory.record(
            booking, 'status', old_status, Booking.Status.EXPIRED,
            reason='Payment window elapsed',
        )
        self._release_after_commit(booking.id, booking.start_at, booking.end_at, booking.resource_id)
        return True

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _reserve(
        self,
        business: Business,
        service: Optional[Service],
        resource: Optional[Resource],
        start_at: datetime,
        end_at: datetime,
        exclude_booking_id: uuid.UUID = None
    ) -> Optional[Resource]:
        """
        Lock the booking scope and check it is free; returns the resource the
        booking holds. Must run inside the writing transaction.
        """
        self._lock_scope(business)

        if resource is not None:
            if not self.detector.is_available(
                ConflictScope.for_resource(resource), start_at, end_at,
                service=service, exclude_booking_id=exclude_booking_id,
            ):
                raise SlotUnavailableError()
            return resource

        if service is not None:
            candidates = list(service.linked_resources())
            if candidates:
                return self.allocator.allocate(
                    service, start_at, end_at,
                    candidates=candidates, exclude_booking_id=exclude_booking_id,
                )

            scope = ConflictScope.for_service(service)
        else:
            scope = ConflictScope.for_business(business)

        if not self.detector.is_available(
            scope, start_at, end_at,
            service=service, exclude_booking_id=exclude_booking_id,
        ):
            raise SlotUnavailableError()
        return None

    @staticmethod
    def _lock_scope(business: Business):
        # Resource, service and business scopes all lie inside one business
        Business.objects.select_for_update().filter(id=business.id).first()

    def _lock_booking(self, booking_id: uuid.UUID) -> Booking:
        booking = Booking.objects.select_for_update().filter(id=booking_id).first()
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    def _on_confirmed(self, booking: Booking):
        self.dispatch.queue_reminders(booking)
        self.dispatch.queue_booking_confirmation(booking)

    def _release_after_commit(
        self,
        booking_id: uuid.UUID,
        start_at: datetime,
        end_at: datetime,
        resource_id: Optional[uuid.UUID]
    ):
        """Offer a freed interval on the resource it was held on once the change is committed."""
        from apps.core import tasks

        booking_id = str(booking_id)
        start, end = start_at.isoformat(), end_at.isoformat()
        resource_id = str(resource_id) if resource_id else None
        transaction.on_commit(
            lambda: tasks.notify_waitlist_for_freed_slot.delay(booking_id, start, end, resource_id),
            robust=True,
        )

    @staticmethod
    def _validate_times(start_at: datetime, end_at: datetime):
        if start_at >= end_at:
            raise BadRequestError("Start time must be before end time")
        if start_at < timezone.now():
            raise BadRequestError("Cannot book in the past")

    @staticmethod
    def _validate_resource_for_service(service: Service, resource: Resource):
        linked = service.resource_links.all()
        if linked.exists() and not linked.filter(resource=resource).exists():
            raise BadRequestError(f"Resource {resource.id} cannot deliver service {service.id}")

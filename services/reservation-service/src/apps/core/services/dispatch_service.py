# services/reservation-service/src/apps/core/services/dispatch_service.py
"""
Dispatch Service

Queues reminder, confirmation and waitlist-notification requests inside the
caller's transaction and hands them to the event publisher after commit.
Delivery failures are recorded on the request and never touch booking or
waitlist state.
"""

import uuid
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from apps.core.events import EventPublishError, EventType, event_publisher
from apps.core.models import Booking, DispatchRequest, WaitlistEntry

logger = logging.getLogger(__name__)


EVENT_TYPES = {
    DispatchRequest.Kind.BOOKING_REMINDER: EventType.BOOKING_REMINDER,
    DispatchRequest.Kind.BOOKING_CONFIRMATION: EventType.BOOKING_CONFIRMED,
    DispatchRequest.Kind.WAITLIST_NOTIFICATION: EventType.WAITLIST_NOTIFIED,
}


class DispatchService:
    """Outbox for side effects consumed by the external dispatcher."""

    def __init__(self, publisher=None):
        self.publisher = publisher or event_publisher

    # ==========================================================================
    # Queueing
    # ==========================================================================

    def queue_reminders(self, booking: Booking, now: datetime = None) -> List[DispatchRequest]:
        """One reminder per configured offset that still lies in the future."""
        now = now or timezone.now()
        reminders = []
        for label, minutes in settings.BOOKING_REMINDER_OFFSETS:
            scheduled_at = booking.start_at - timedelta(minutes=minutes)
            if scheduled_at <= now:
                continue
            reminders.append(DispatchRequest.objects.create(
                kind=DispatchRequest.Kind.BOOKING_REMINDER,
                label=label,
                business_id=booking.business_id,
                booking=booking,
                payload={**self.booking_payload(booking), 'reminder': label},
                scheduled_at=scheduled_at,
            ))

        if reminders:
            logger.info(
                f"Scheduled {len(reminders)} reminder(s) for booking {booking.id}: "
                f"{', '.join(r.label for r in reminders)}"
            )
        return reminders

    def reschedule_reminders(self, booking: Booking, now: datetime = None) -> int:
        """Move the reminders of a booking to its new start; returns rows queued."""
        now = now or timezone.now()
        existing = {
            request.label: request
            for request in booking.dispatch_requests.filter(kind=DispatchRequest.Kind.BOOKING_REMINDER)
        }

        queued = 0
        for label, minutes in settings.BOOKING_REMINDER_OFFSETS:
            scheduled_at = booking.start_at - timedelta(minutes=minutes)
            request = existing.get(label)

            if scheduled_at <= now:
                if request is not None and request.status in (
                    DispatchRequest.Status.QUEUED, DispatchRequest.Status.FAILED
                ):
                    request.mark_skipped('Reminder time passed after reschedule')
                continue

            payload = {**self.booking_payload(booking), 'reminder': label}
            if request is None:
                DispatchRequest.objects.create(
                    kind=DispatchRequest.Kind.BOOKING_REMINDER,
                    label=label,
                    business_id=booking.business_id,
                    booking=booking,
                    payload=payload,
                    scheduled_at=scheduled_at,
                )
            else:
                request.payload = payload
                request.scheduled_at = scheduled_at
                request.status = DispatchRequest.Status.QUEUED
                request.attempts = 0
                request.sent_at = None
                request.last_error = None
                request.save(update_fields=[
                    'payload', 'scheduled_at', 'status', 'attempts',
                    'sent_at', 'last_error', 'updated_at',
                ])
            queued += 1

        logger.info(f"Rescheduled {queued} reminder(s) for booking {booking.id}")
        return queued

    def queue_booking_confirmation(self, booking: Booking) -> DispatchRequest:
        request = DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_CONFIRMATION,
            business_id=booking.business_id,
            booking=booking,
            payload=self.booking_payload(booking),
        )
        self.send_after_commit(request)
        return request

    def queue_waitlist_notification(
        self,
        entry: WaitlistEntry,
        slot: Optional[Dict[str, Any]] = None
    ) -> DispatchRequest:
        request = DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.WAITLIST_NOTIFICATION,
            business_id=entry.business_id,
            waitlist_entry=entry,
            payload=self.waitlist_payload(entry, slot),
        )
        self.send_after_commit(request)
        return request

    def send_after_commit(self, request: DispatchRequest):
        from apps.core import tasks

        request_id = str(request.id)
        transaction.on_commit(
            lambda: tasks.send_dispatch_request.delay(request_id),
            robust=True,
        )

    # ==========================================================================
    # Delivery
    # ==========================================================================

    def send(self, request_id: uuid.UUID) -> Optional[str]:
        """Deliver one request; returns its resulting status."""
        request = DispatchRequest.objects.select_related(
            'booking', 'waitlist_entry'
        ).filter(id=request_id).first()

        if request is None:
            logger.warning(f"Dispatch request {request_id} not found")
            return None

        if request.status in (DispatchRequest.Status.SENT, DispatchRequest.Status.SKIPPED):
            return request.status

        skip_reason = self._skip_reason(request)
        if skip_reason:
            request.mark_skipped(skip_reason)
            logger.info(f"Skipped dispatch request {request.id}: {skip_reason}")
            return request.status

        try:
            self.publisher.deliver(
                EVENT_TYPES[request.kind],
                request.payload,
                business_id=request.business_id,
                correlation_id=str(request.id),
            )
        except EventPublishError as e:
            request.mark_failed(str(e))
            logger.error(
                f"Dispatch request {request.id} failed: {e}",
                extra={'dispatch_request_id': str(request.id), 'kind': request.kind},
            )
            return request.status

        request.mark_sent()
        return request.status

    def dispatch_due(self, now: datetime = None, batch_size: int = 100) -> Dict[str, int]:
        """Send every queued or failed request whose time has come."""
        now = now or timezone.now()
        results = {'sent': 0, 'failed': 0, 'skipped': 0}

        due = DispatchRequest.due(now, max_attempts=settings.DISPATCH_MAX_ATTEMPTS)
        due_ids = list(due.order_by('scheduled_at').values_list('id', flat=True)[:batch_size])
        for request_id in due_ids:
            status = self.send(request_id)
            if status in results:
                results[status] += 1

        return results

    def _skip_reason(self, request: DispatchRequest) -> Optional[str]:
        if request.kind == DispatchRequest.Kind.BOOKING_REMINDER:
            if request.booking.status != Booking.Status.CONFIRMED:
                return f"Booking is {request.booking.status}"
        if request.kind == DispatchRequest.Kind.WAITLIST_NOTIFICATION:
            if request.waitlist_entry.status != WaitlistEntry.Status.NOTIFIED:
                return f"Waitlist entry is {request.waitlist_entry.status}"
        return None

    # ==========================================================================
    # Payloads
    # ==========================================================================

    @staticmethod
    def booking_payload(booking: Booking) -> Dict[str, Any]:
        customer = booking.customer
        return {
            'booking_id': str(booking.id),
            'business_id': str(booking.business_id),
            'service_id': str(booking.service_id) if booking.service_id else None,
            'resource_id': str(booking.resource_id) if booking.resource_id else None,
            'customer_id': str(booking.customer_id) if booking.customer_id else None,
            'customer_email': customer.email if customer else None,
            'customer_phone': customer.phone if customer else None,
            'locale': customer.locale if customer else None,
            'start_at': booking.start_at.isoformat(),
            'end_at': booking.end_at.isoformat(),
            'status': booking.status,
            'price_snapshot': booking.price_snapshot,
        }

    @staticmethod
    def waitlist_payload(entry: WaitlistEntry, slot: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        customer = entry.customer
        return {
            'waitlist_entry_id': str(entry.id),
            'business_id': str(entry.business_id),
            'service_id': str(entry.service_id) if entry.service_id else None,
            'customer_id': str(entry.customer_id),
            'customer_email': customer.email,
            'customer_phone': customer.phone,
            'locale': customer.locale,
            'priority': entry.priority,
            'notification_count': entry.notification_count,
            'response_deadline': entry.response_deadline.isoformat() if entry.response_deadline else None,
            'slot': slot,
        }

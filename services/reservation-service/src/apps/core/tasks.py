# services/reservation-service/src/apps/core/tasks.py
"""
Reservation Celery Tasks

Periodic sweeps and post-commit side effects. All tasks tolerate
at-least-once execution: state changes re-check their preconditions and
re-running a sweep with nothing left to do is a no-op.
"""

import logging
from datetime import datetime

from celery import shared_task

from .services import (
    BadRequestError,
    BookingService,
    DispatchService,
    NotFoundError,
    WaitlistService,
)


logger = logging.getLogger(__name__)


@shared_task(name='reservation.expire_waitlist_entries')
def expire_waitlist_entries():
    """Expire notified waitlist entries whose response deadline passed."""
    expired = WaitlistService().expire_entries()

    results = {'expired': expired}
    logger.info(f"Waitlist expiry sweep completed: {results}")
    return results


@shared_task(name='reservation.expire_stale_bookings')
def expire_stale_bookings():
    """Expire bookings still waiting for payment after the payment window."""
    expired = BookingService().expire_stale_bookings()

    results = {'expired': expired}
    logger.info(f"Booking expiry sweep completed: {results}")
    return results


@shared_task(name='reservation.dispatch_due_requests')
def dispatch_due_requests():
    """Hand due reminders and undelivered notifications to the dispatcher."""
    results = DispatchService().dispatch_due()
    logger.info(f"Dispatch sweep completed: {results}")
    return results


@shared_task(name='reservation.send_dispatch_request')
def send_dispatch_request(request_id: str):
    """Deliver one dispatch request right after the transaction that queued it."""
    status = DispatchService().send(request_id)
    return {'request_id': request_id, 'status': status}


@shared_task(name='reservation.notify_waitlist_for_freed_slot')
def notify_waitlist_for_freed_slot(booking_id: str, start_at: str, end_at: str, resource_id: str = None):
    """Offer an interval released by a booking to the next waitlist entry."""
    try:
        entry = WaitlistService().notify_for_released_booking(
            booking_id,
            datetime.fromisoformat(start_at),
            datetime.fromisoformat(end_at),
            resource_id=resource_id,
        )
    except (BadRequestError, NotFoundError) as e:
        logger.warning(f"Waitlist not notified for booking {booking_id}: {e}")
        return {'booking_id': booking_id, 'notified': None}

    return {
        'booking_id': booking_id,
        'notified': str(entry.id) if entry else None,
    }

# services/reservation-service/src/apps/core/events.py
"""
Reservation Service Events

Event definitions and publishing for the reservation service. Downstream
notification and messaging services consume these events.
"""

import json
import logging
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict
from uuid import UUID

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)


class EventType:
    """Event type constants for reservation service."""

    BOOKING_CONFIRMED = 'booking.confirmed'
    BOOKING_REMINDER = 'booking.reminder'
    WAITLIST_NOTIFIED = 'waitlist.notified'


class EventPublishError(Exception):
    """Event could not be handed to the message backend."""
    pass


class JSONEncoder(json.JSONEncoder):
    """Custom JSON encoder for event payloads."""

    def default(self, obj):
        if isinstance(obj, UUID):
            return str(obj)
        if isinstance(obj, (datetime, date, time)):
            return obj.isoformat()
        if isinstance(obj, Decimal):
            return float(obj)
        return super().default(obj)


class EventPublisher:
    """
    Event publisher for reservation service.

    ``deliver`` raises ``EventPublishError`` so callers can record the
    failure against the dispatch request.
    """

    def __init__(self):
        self.service_name = getattr(settings, 'SERVICE_NAME', 'reservation-service')

    @property
    def enabled(self) -> bool:
        return getattr(settings, 'EVENT_PUBLISHING_ENABLED', True)

    def build_event(
        self,
        event_type: str,
        payload: Dict[str, Any],
        business_id: UUID = None,
        correlation_id: str = None
    ) -> Dict[str, Any]:
        return {
            'event_type': event_type,
            'service': self.service_name,
            'timestamp': timezone.now().isoformat(),
            'business_id': str(business_id) if business_id else None,
            'correlation_id': correlation_id,
            'payload': payload,
        }

    def deliver(
        self,
        event_type: str,
        payload: Dict[str, Any],
        business_id: UUID = None,
        correlation_id: str = None
    ):
        if not self.enabled:
            logger.debug(f"Event publishing disabled, skipping: {event_type}")
            return

        event = self.build_event(event_type, payload, business_id, correlation_id)
        try:
            event_json = json.dumps(event, cls=JSONEncoder)
            self._publish_to_backend(event_type, event_json)
        except Exception as e:
            raise EventPublishError(f"Failed to publish event {event_type}: {e}") from e

        logger.info(f"Published event: {event_type}", extra={
            'event_type': event_type,
            'business_id': str(business_id) if business_id else None,
            'correlation_id': correlation_id,
        })

    def _publish_to_backend(self, event_type: str, event_json: str):
        """Publish to the configured message backend."""
        backend = getattr(settings, 'EVENT_BACKEND', 'log')

        if backend == 'redis':
            self._publish_redis(event_type, event_json)
        elif backend == 'webhook':
            self._publish_webhook(event_type, event_json)
        else:
            logger.debug(f"Event payload: {event_json[:500]}")

    def _publish_redis(self, event_type: str, event_json: str):
        """Publish to Redis pub/sub."""
        import redis

        client = redis.Redis.from_url(getattr(settings, 'EVENT_REDIS_URL', settings.REDIS_URL))
        client.publish(f"events:{event_type}", event_json)

    def _publish_webhook(self, event_type: str, event_json: str):
        """Publish via webhook."""
        import requests

        webhook_url = getattr(settings, 'EVENT_WEBHOOK_URL', None)
        if not webhook_url:
            raise EventPublishError("EVENT_WEBHOOK_URL is not configured")

        response = requests.post(
            webhook_url,
            data=event_json,
            headers={'Content-Type': 'application/json', 'X-Event-Type': event_type},
            timeout=5
        )
        response.raise_for_status()


# Global event publisher instance
event_publisher = EventPublisher()

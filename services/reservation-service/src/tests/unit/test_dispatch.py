# services/reservation-service/src/tests/unit/test_dispatch.py
"""
Unit Tests for Dispatch Service, Events and Tasks
"""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from django.utils import timezone

from apps.core import tasks
from apps.core.events import EventPublisher, EventPublishError, EventType
from apps.core.models import Booking, DispatchRequest, WaitlistEntry
from apps.core.services import DispatchService


@pytest.mark.django_db
class TestQueueReminders:
    """Tests for reminder scheduling."""

    def test_only_future_offsets(self, create_booking):
        start = timezone.now() + timedelta(hours=5)
        booking = create_booking(start_at=start, end_at=start + timedelta(hours=1))

        reminders = DispatchService().queue_reminders(booking)

        assert [r.label for r in reminders] == ['1h']
        assert reminders[0].scheduled_at == start - timedelta(hours=1)

    def test_custom_offsets(self, create_booking, settings):
        settings.BOOKING_REMINDER_OFFSETS = [('2d', 2880), ('30m', 30)]
        booking = create_booking()

        reminders = DispatchService().queue_reminders(booking)

        assert [r.label for r in reminders] == ['2d', '30m']

    def test_reschedule_moves_reminders(self, create_booking):
        booking = create_booking()
        service = DispatchService()
        service.queue_reminders(booking)

        booking.start_at += timedelta(days=1)
        booking.end_at += timedelta(days=1)
        queued = service.reschedule_reminders(booking)

        reminders = DispatchRequest.objects.filter(booking=booking).order_by('scheduled_at')
        assert queued == 2
        assert reminders.count() == 2
        assert [r.scheduled_at for r in reminders] == [
            booking.start_at - timedelta(hours=24),
            booking.start_at - timedelta(hours=1),
        ]

    def test_reschedule_skips_passed_offsets(self, create_booking):
        booking = create_booking()
        service = DispatchService()
        service.queue_reminders(booking)

        booking.start_at = timezone.now() + timedelta(hours=5)
        booking.end_at = booking.start_at + timedelta(hours=1)
        service.reschedule_reminders(booking)

        day_before = DispatchRequest.objects.get(booking=booking, label='24h')
        hour_before = DispatchRequest.objects.get(booking=booking, label='1h')
        assert day_before.status == DispatchRequest.Status.SKIPPED
        assert hour_before.status == DispatchRequest.Status.QUEUED
        assert hour_before.scheduled_at == booking.start_at - timedelta(hours=1)


@pytest.mark.django_db
class TestSend:
    """Tests for delivering dispatch requests."""

    @pytest.fixture
    def request_row(self, business, create_booking):
        booking = create_booking()
        return DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_CONFIRMATION,
            business=business,
            booking=booking,
            payload=DispatchService.booking_payload(booking),
        )

    def test_send_marks_sent(self, request_row):
        publisher = MagicMock()

        status = DispatchService(publisher=publisher).send(request_row.id)

        assert status == DispatchRequest.Status.SENT
        publisher.deliver.assert_called_once()
        assert publisher.deliver.call_args.args[0] == EventType.BOOKING_CONFIRMED

    def test_send_is_idempotent(self, request_row):
        publisher = MagicMock()
        service = DispatchService(publisher=publisher)

        service.send(request_row.id)
        service.send(request_row.id)

        assert publisher.deliver.call_count == 1

    def test_failure_recorded_without_touching_booking(self, request_row):
        publisher = MagicMock()
        publisher.deliver.side_effect = EventPublishError('broker down')

        status = DispatchService(publisher=publisher).send(request_row.id)

        request_row.refresh_from_db()
        request_row.booking.refresh_from_db()
        assert status == DispatchRequest.Status.FAILED
        assert request_row.attempts == 1
        assert 'broker down' in request_row.last_error
        assert request_row.booking.status == Booking.Status.CONFIRMED

    def test_unknown_request(self):
        import uuid
        assert DispatchService(publisher=MagicMock()).send(uuid.uuid4()) is None

    def test_stale_waitlist_notification_skipped(self, business, create_waitlist_entry):
        entry = create_waitlist_entry(status=WaitlistEntry.Status.CANCELLED)
        request = DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.WAITLIST_NOTIFICATION,
            business=business,
            waitlist_entry=entry,
        )
        publisher = MagicMock()

        assert DispatchService(publisher=publisher).send(request.id) == DispatchRequest.Status.SKIPPED
        publisher.deliver.assert_not_called()


@pytest.mark.django_db
class TestDispatchDue:
    """Tests for the periodic dispatch sweep."""

    def test_dispatch_due(self, business, create_booking):
        now = timezone.now()
        confirmed = create_booking()
        cancelled = create_booking(status=Booking.Status.CANCELLED)
        for booking in (confirmed, cancelled):
            DispatchRequest.objects.create(
                kind=DispatchRequest.Kind.BOOKING_REMINDER, label='24h',
                business=business, booking=booking, scheduled_at=now - timedelta(minutes=1),
            )
        DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_REMINDER, label='1h',
            business=business, booking=confirmed, scheduled_at=now + timedelta(hours=1),
        )

        results = DispatchService(publisher=MagicMock()).dispatch_due(now)

        assert results == {'sent': 1, 'failed': 0, 'skipped': 1}
        assert DispatchService(publisher=MagicMock()).dispatch_due(now) == {
            'sent': 0, 'failed': 0, 'skipped': 0,
        }

    def test_failed_requests_retried(self, business, create_booking):
        now = timezone.now()
        request = DispatchRequest.objects.create(
            kind=DispatchRequest.Kind.BOOKING_REMINDER, label='24h',
            business=business, booking=create_booking(), scheduled_at=now - timedelta(minutes=1),
        )
        failing = MagicMock()
        failing.deliver.side_effect = EventPublishError('timeout')

        assert DispatchService(publisher=failing).dispatch_due(now)['failed'] == 1
        assert DispatchService(publisher=MagicMock()).dispatch_due(now)['sent'] == 1

        request.refresh_from_db()
        assert request.attempts == 2
        assert request.sent_at is not None


class TestEventPublisher:
    """Tests for the event publisher backends."""

    def test_build_event(self):
        event = EventPublisher().build_event(EventType.BOOKING_CONFIRMED, {'a': 1}, correlation_id='c-1')

        assert event['event_type'] == 'booking.confirmed'
        assert event['service'] == 'reservation-service'
        assert event['correlation_id'] == 'c-1'
        assert event['payload'] == {'a': 1}

    def test_webhook_without_url(self, settings):
        settings.EVENT_BACKEND = 'webhook'
        settings.EVENT_WEBHOOK_URL = None

        with pytest.raises(EventPublishError):
            EventPublisher().deliver(EventType.BOOKING_CONFIRMED, {})

    def test_webhook_posts_event(self, settings):
        settings.EVENT_BACKEND = 'webhook'
        settings.EVENT_WEBHOOK_URL = 'http://dispatcher.local/events'

        with patch('requests.post') as post:
            EventPublisher().deliver(EventType.WAITLIST_NOTIFIED, {'entry': 'x'})

        post.assert_called_once()
        assert post.call_args.kwargs['headers']['X-Event-Type'] == 'waitlist.notified'

    def test_disabled_publishing(self, settings):
        settings.EVENT_PUBLISHING_ENABLED = False

        with patch.object(EventPublisher, '_publish_to_backend') as backend:
            EventPublisher().deliver(EventType.BOOKING_REMINDER, {})

        backend.assert_not_called()


@pytest.mark.django_db
class TestTasks:
    """Tests for Celery task wrappers."""

    def test_expire_waitlist_entries_task(self, create_waitlist_entry):
        create_waitlist_entry(
            status=WaitlistEntry.Status.NOTIFIED,
            response_deadline=timezone.now() - timedelta(hours=1),
        )

        assert tasks.expire_waitlist_entries() == {'expired': 1}
        assert tasks.expire_waitlist_entries() == {'expired': 0}

    def test_expire_stale_bookings_task(self, create_booking):
        booking = create_booking(status=Booking.Status.PENDING_PAYMENT)
        Booking.objects.filter(id=booking.id).update(created_at=timezone.now() - timedelta(hours=1))

        assert tasks.expire_stale_bookings() == {'expired': 1}

    def test_dispatch_due_requests_task(self):
        assert tasks.dispatch_due_requests() == {'sent': 0, 'failed': 0, 'skipped': 0}

    def test_notify_waitlist_for_unknown_booking(self):
        import uuid
        now = timezone.now()

        result = tasks.notify_waitlist_for_freed_slot(
            str(uuid.uuid4()), now.isoformat(), (now + timedelta(hours=1)).isoformat()
        )

        assert result['notified'] is None

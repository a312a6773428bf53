# services/reservation-service/src/apps/core/models/dispatch.py
"""
Dispatch Request Model

Outbound requests (reminders, waitlist notifications, confirmation events)
written in the same transaction as the state change that caused them and
handed to the event publisher afterwards.
"""

from datetime import datetime

from django.db import models
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class DispatchRequest(UUIDPrimaryKeyMixin, TimestampMixin):
    """A best-effort request for an external dispatcher."""

    class Kind(models.TextChoices):
        BOOKING_REMINDER = 'booking_reminder', 'Booking Reminder'
        BOOKING_CONFIRMATION = 'booking_confirmation', 'Booking Confirmation'
        WAITLIST_NOTIFICATION = 'waitlist_notification', 'Waitlist Notification'

    class Status(models.TextChoices):
        QUEUED = 'queued', 'Queued'
        SENT = 'sent', 'Sent'
        FAILED = 'failed', 'Failed'
        SKIPPED = 'skipped', 'Skipped'

    kind = models.CharField(max_length=30, choices=Kind.choices)
    label = models.CharField(max_length=20, blank=True, default='')

    business = models.ForeignKey(
        'core.Business',
        on_delete=models.CASCADE,
        related_name='dispatch_requests'
    )
    booking = models.ForeignKey(
        'core.Booking',
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='dispatch_requests'
    )
    waitlist_entry = models.ForeignKey(
        'core.WaitlistEntry',
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='dispatch_requests'
    )

    payload = models.JSONField(default=dict, blank=True)
    scheduled_at = models.DateTimeField(default=timezone.now, db_index=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.QUEUED
    )
    attempts = models.PositiveIntegerField(default=0)
    sent_at = models.DateTimeField(blank=True, null=True)
    last_error = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'dispatch_requests'
        ordering = ['scheduled_at']
        indexes = [
            models.Index(fields=['kind', 'status', 'scheduled_at']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['booking', 'label'],
                condition=models.Q(kind='booking_reminder'),
                name='uniq_booking_reminder_offset'
            ),
        ]

    def __str__(self):
        suffix = f" {self.label}" if self.label else ''
        return f"{self.kind}{suffix} ({self.status})"

    def mark_sent(self, now: datetime = None):
        self.status = self.Status.SENT
        self.sent_at = now or timezone.now()
        self.attempts += 1
        self.last_error = None
        self.save(update_fields=['status', 'sent_at', 'attempts', 'last_error', 'updated_at'])

    def mark_failed(self, error: str):
        self.status = self.Status.FAILED
        self.attempts += 1
        self.last_error = error
        self.save(update_fields=['status', 'attempts', 'last_error', 'updated_at'])

    def mark_skipped(self, reason: str):
        self.status = self.Status.SKIPPED
        self.last_error = reason
        self.save(update_fields=['status', 'last_error', 'updated_at'])

    @classmethod
    def due(cls, now: datetime = None, max_attempts: int = 5):
        """Queued or previously failed requests whose time has come."""
        now = now or timezone.now()
        return cls.objects.filter(
            status__in=[cls.Status.QUEUED, cls.Status.FAILED],
            scheduled_at__lte=now,
            attempts__lt=max_attempts,
        )

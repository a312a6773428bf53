# services/reservation-service/src/apps/core/models/waitlist.py
"""
Waitlist Model

Queues demand for full slots.
"""

from datetime import datetime, timedelta

from django.db import models
from django.db.models import Case, IntegerField, Value, When
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class WaitlistEntry(UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Waitlist entry of a customer for a business (and optionally a service).

    A customer holds at most one open (active or notified) entry per
    business and service.
    """

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        NOTIFIED = 'notified', 'Notified'
        CONVERTED = 'converted', 'Converted'
        CANCELLED = 'cancelled', 'Cancelled'
        EXPIRED = 'expired', 'Expired'

    class Priority(models.TextChoices):
        LOW = 'low', 'Low'
        NORMAL = 'normal', 'Normal'
        HIGH = 'high', 'High'
        VIP = 'vip', 'VIP'

    OPEN_STATUSES = (Status.ACTIVE, Status.NOTIFIED)

    PRIORITY_RANK = {
        Priority.VIP: 4,
        Priority.HIGH: 3,
        Priority.NORMAL: 2,
        Priority.LOW: 1,
    }

    business = models.ForeignKey(
        'core.Business',
        on_delete=models.CASCADE,
        related_name='waitlist_entries'
    )
    service = models.ForeignKey(
        'core.Service',
        on_delete=models.CASCADE,
        blank=True,
        null=True,
        related_name='waitlist_entries'
    )
    customer = models.ForeignKey(
        'core.Customer',
        on_delete=models.CASCADE,
        related_name='waitlist_entries'
    )

    # Preferences
    preferred_date = models.DateField(blank=True, null=True)
    preferred_time_start = models.TimeField(blank=True, null=True)
    preferred_time_end = models.TimeField(blank=True, null=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE
    )
    priority = models.CharField(
        max_length=20,
        choices=Priority.choices,
        default=Priority.NORMAL
    )

    # Notification tracking
    notification_count = models.PositiveIntegerField(default=0)
    notified_at = models.DateTimeField(blank=True, null=True)
    last_notified_at = models.DateTimeField(blank=True, null=True)
    response_deadline = models.DateTimeField(blank=True, null=True)

    converted_booking = models.ForeignKey(
        'core.Booking',
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name='waitlist_entries'
    )

    notes = models.TextField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        db_table = 'waitlist_entries'
        ordering = ['created_at']
        verbose_name_plural = 'waitlist entries'
        indexes = [
            models.Index(fields=['business', 'status']),
            models.Index(fields=['status', 'response_deadline']),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['business', 'service', 'customer'],
                condition=models.Q(status__in=['active', 'notified']),
                nulls_distinct=False,
                name='uniq_open_waitlist_entry',
            ),
        ]

    def __str__(self):
        return f"Waitlist {self.id} ({self.priority}, {self.status})"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES

    # ==========================================================================
    # Status Transitions
    # ==========================================================================

    def mark_notified(self, deadline_hours: int, now: datetime = None):
        """Move an active entry to notified and restart its response window."""
        if self.status != self.Status.ACTIVE:
            raise ValueError(f"Cannot notify waitlist entry in {self.status} status")

        now = now or timezone.now()
        self.status = self.Status.NOTIFIED
        self.notified_at = now
        self.last_notified_at = now
        self.notification_count += 1
        self.response_deadline = now + timedelta(hours=deadline_hours)
        self.save(update_fields=[
            'status', 'notified_at', 'last_notified_at',
            'notification_count', 'response_deadline', 'updated_at',
        ])

    def mark_converted(self, booking=None):
        if self.status != self.Status.NOTIFIED:
            raise ValueError(f"Cannot convert waitlist entry in {self.status} status")

        self.status = self.Status.CONVERTED
        self.converted_booking = booking
        self.save(update_fields=['status', 'converted_booking', 'updated_at'])

    def mark_cancelled(self):
        if not self.is_open:
            raise ValueError(f"Cannot cancel waitlist entry in {self.status} status")

        self.status = self.Status.CANCELLED
        self.save(update_fields=['status', 'updated_at'])

    # ==========================================================================
    # Class Methods
    # ==========================================================================

    @classmethod
    def by_priority(cls, queryset=None):
        """Order entries vip > high > normal > low, then first come first served."""
        queryset = cls.objects.all() if queryset is None else queryset
        rank = Case(
            *[When(priority=priority, then=Value(value)) for priority, value in cls.PRIORITY_RANK.items()],
            default=Value(0),
            output_field=IntegerField(),
        )
        return queryset.annotate(priority_rank=rank).order_by('-priority_rank', 'created_at', 'id')

    @classmethod
    def past_deadline(cls, now: datetime = None):
        now = now or timezone.now()
        return cls.objects.filter(
            status=cls.Status.NOTIFIED,
            response_deadline__lt=now,
        )

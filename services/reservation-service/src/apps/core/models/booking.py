# services/reservation-service/src/apps/core/models/booking.py
"""
Booking Models

Reservations and their append-only change history.
"""

import uuid
from datetime import datetime, timedelta

from django.db import models
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class Booking(UUIDPrimaryKeyMixin, TimestampMixin):
    """
    A reservation of a time interval.

    Bookings are never removed; cancellation is a status change. The price
    and policy snapshots are written once at creation.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PENDING_PAYMENT = 'pending_payment', 'Pending Payment'
        CONFIRMED = 'confirmed', 'Confirmed'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'
        NO_SHOW = 'no_show', 'No Show'
        EXPIRED = 'expired', 'Expired'

    class Source(models.TextChoices):
        WEB = 'web', 'Web'
        OWNER_PORTAL = 'owner_portal', 'Owner Portal'
        PHONE = 'phone', 'Phone'
        IMPORT = 'import', 'Import'

    # Statuses that occupy a resource
    HOLDING_STATUSES = (
        Status.PENDING,
        Status.PENDING_PAYMENT,
        Status.CONFIRMED,
    )

    TRANSITIONS = {
        Status.PENDING: (Status.PENDING_PAYMENT, Status.CONFIRMED, Status.CANCELLED),
        Status.PENDING_PAYMENT: (Status.CONFIRMED, Status.CANCELLED),
        Status.CONFIRMED: (Status.COMPLETED, Status.CANCELLED, Status.NO_SHOW),
    }

    business = models.ForeignKey(
        'core.Business',
        on_delete=models.PROTECT,
        related_name='bookings'
    )
    service = models.ForeignKey(
        'core.Service',
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name='bookings'
    )
    resource = models.ForeignKey(
        'core.Resource',
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name='bookings'
    )
    customer = models.ForeignKey(
        'core.Customer',
        on_delete=models.PROTECT,
        blank=True,
        null=True,
        related_name='bookings'
    )

    start_at = models.DateTimeField()
    end_at = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING
    )
    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.WEB
    )

    price_snapshot = models.JSONField(blank=True, null=True)
    policy_snapshot = models.JSONField(blank=True, null=True)
    metadata = models.JSONField(default=dict, blank=True)

    created_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['start_at']
        indexes = [
            models.Index(fields=['business', 'start_at']),
            models.Index(fields=['resource', 'start_at', 'end_at']),
            models.Index(fields=['service', 'start_at', 'end_at']),
            models.Index(fields=['status', 'created_at']),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_at__gt=models.F('start_at')),
                name='booking_start_before_end'
            ),
        ]

    def __str__(self):
        return f"Booking {self.id} {self.start_at:%Y-%m-%d %H:%M} ({self.status})"

    @property
    def duration_minutes(self) -> int:
        return int((self.end_at - self.start_at).total_seconds() // 60)

    @property
    def is_holding(self) -> bool:
        return self.status in self.HOLDING_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status not in self.TRANSITIONS

    def can_transition_to(self, status: str) -> bool:
        return status in self.TRANSITIONS.get(self.status, ())

    # ==========================================================================
    # Class Methods
    # ==========================================================================

    @classmethod
    def holding(cls):
        return cls.objects.filter(status__in=cls.HOLDING_STATUSES)

    @classmethod
    def overlapping(
        cls,
        start: datetime,
        end: datetime,
        buffer_before: int = 0,
        buffer_after: int = 0,
        exclude_booking_id: uuid.UUID = None
    ):
        """
        Holding bookings whose buffered interval overlaps ``[start, end)``.

        A booking ``[s2, e2)`` buffered to ``[s2 - before, e2 + after)``
        overlaps iff ``start < e2 + after`` and ``s2 - before < end``.
        """
        queryset = cls.holding().filter(
            start_at__lt=end + timedelta(minutes=buffer_before),
            end_at__gt=start - timedelta(minutes=buffer_after),
        )
        if exclude_booking_id:
            queryset = queryset.exclude(id=exclude_booking_id)
        return queryset

    @classmethod
    def stale_unpaid(cls, older_than: datetime):
        return cls.objects.filter(
            status__in=[cls.Status.PENDING, cls.Status.PENDING_PAYMENT],
            created_at__lt=older_than,
        )


class BookingHistory(models.Model):
    """
    Append-only change log of a booking.

    Rows are written once per changed field and never updated or deleted.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking = models.ForeignKey(
        Booking,
        on_delete=models.CASCADE,
        related_name='history'
    )
    field = models.CharField(max_length=50)
    old_value = models.TextField(blank=True, null=True)
    new_value = models.TextField(blank=True, null=True)
    changed_by = models.UUIDField(blank=True, null=True)
    reason = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'booking_history'
        ordering = ['created_at']
        verbose_name_plural = 'booking history'

    def __str__(self):
        return f"{self.booking_id} {self.field}: {self.old_value} -> {self.new_value}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Booking history rows cannot be modified")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Booking history rows cannot be deleted")

    @classmethod
    def record(
        cls,
        booking: Booking,
        field: str,
        old_value,
        new_value,
        changed_by: uuid.UUID = None,
        reason: str = None
    ) -> 'BookingHistory':
        return cls.objects.create(
            booking=booking,
            field=field,
            old_value=_as_text(old_value),
            new_value=_as_text(new_value),
            changed_by=changed_by,
            reason=reason,
        )


def _as_text(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)

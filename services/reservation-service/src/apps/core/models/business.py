# services/reservation-service/src/apps/core/models/business.py
"""
Business Models

Tenants that publish bookable resources, their weekly hours, holidays,
customers and cancellation policies.
"""

from datetime import date
from zoneinfo import ZoneInfo

from django.db import models

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin

from .hours import DayHours, DayOfWeek, day_of_week


class Business(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """
    A business accepting reservations.

    Only businesses that are both approved and live can be booked.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        SUSPENDED = 'suspended', 'Suspended'
        REJECTED = 'rejected', 'Rejected'

    class OnboardingStatus(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        IN_REVIEW = 'in_review', 'In Review'
        LIVE = 'live', 'Live'
        PAUSED = 'paused', 'Paused'

    name = models.CharField(max_length=255)
    timezone = models.CharField(max_length=64, default='UTC')
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING
    )
    onboarding_status = models.CharField(
        max_length=20,
        choices=OnboardingStatus.choices,
        default=OnboardingStatus.DRAFT
    )

    class Meta:
        db_table = 'businesses'
        ordering = ['name']

    def __str__(self):
        return self.name

    @property
    def is_operational(self) -> bool:
        return (
            self.status == self.Status.APPROVED
            and self.onboarding_status == self.OnboardingStatus.LIVE
        )

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def resolve_hours(self, target_date: date) -> DayHours:
        """Opening window for a date: holidays first, then weekly hours."""
        if self.holidays.filter(date=target_date).exists():
            return DayHours.closed_day()

        hours = self.hours.filter(day_of_week=day_of_week(target_date)).first()
        if hours is None or hours.is_closed:
            return DayHours.closed_day()
        return DayHours.window(hours.open_time, hours.close_time)


class BusinessHour(models.Model):
    """Recurring weekly opening hours of a business."""

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name='hours'
    )
    day_of_week = models.IntegerField(choices=DayOfWeek.choices)
    open_time = models.TimeField(blank=True, null=True)
    close_time = models.TimeField(blank=True, null=True)
    is_closed = models.BooleanField(default=False)

    class Meta:
        db_table = 'business_hours'
        ordering = ['day_of_week']
        constraints = [
            models.UniqueConstraint(
                fields=['business', 'day_of_week'],
                name='uniq_business_hours_day'
            ),
        ]

    def __str__(self):
        if self.is_closed:
            return f"{self.get_day_of_week_display()}: closed"
        return f"{self.get_day_of_week_display()}: {self.open_time} - {self.close_time}"


class BusinessHoliday(models.Model):
    """A date on which the business is closed."""

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name='holidays'
    )
    date = models.DateField()
    reason = models.CharField(max_length=255, blank=True, null=True)

    class Meta:
        db_table = 'business_holidays'
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(
                fields=['business', 'date'],
                name='uniq_business_holiday_date'
            ),
        ]

    def __str__(self):
        return f"{self.business_id} closed on {self.date}"


class Customer(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """A customer of a business."""

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name='customers'
    )
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    locale = models.CharField(max_length=10, default='en')

    class Meta:
        db_table = 'customers'
        ordering = ['name']

    def __str__(self):
        return self.name


class CancellationPolicy(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """Terms applied when a booking is cancelled late."""

    business = models.ForeignKey(
        Business,
        on_delete=models.CASCADE,
        related_name='cancellation_policies'
    )
    name = models.CharField(max_length=255)
    hours_before = models.PositiveIntegerField()
    penalty_percent = models.PositiveIntegerField()
    is_default = models.BooleanField(default=False)

    class Meta:
        db_table = 'cancellation_policies'
        verbose_name_plural = 'cancellation policies'
        constraints = [
            models.CheckConstraint(
                condition=models.Q(penalty_percent__lte=100),
                name='policy_penalty_at_most_100'
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.hours_before}h / {self.penalty_percent}%)"

    def snapshot(self) -> dict:
        return {
            'policy_id': str(self.id),
            'name': self.name,
            'hours_before': self.hours_before,
            'penalty_percent': self.penalty_percent,
        }

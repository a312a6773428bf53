# services/reservation-service/src/apps/core/models/resource.py
"""
Resource Models

Bookable units (rooms, staff members, equipment) and the working hours
of staff-type resources.
"""

from datetime import date

from django.db import models

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin

from .hours import DayHours, DayOfWeek, day_of_week


class Resource(UUIDPrimaryKeyMixin, TimestampMixin, SoftDeleteMixin):
    """
    A bookable unit owned by a business.

    Every resource type answers ``resolve_hours(date)``. Staff resources
    follow their own working hours and exceptions; rooms and equipment
    follow the business calendar.
    """

    class Type(models.TextChoices):
        ROOM = 'room', 'Room'
        STAFF = 'staff', 'Staff'
        EQUIPMENT = 'equipment', 'Equipment'

    business = models.ForeignKey(
        'core.Business',
        on_delete=models.CASCADE,
        related_name='resources'
    )
    type = models.CharField(max_length=20, choices=Type.choices)
    name = models.CharField(max_length=255)
    capacity = models.PositiveIntegerField(default=1)
    attributes = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = 'resources'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['business', 'is_active']),
        ]

    def __str__(self):
        return f"{self.name} ({self.type})"

    def resolve_hours(self, target_date: date) -> DayHours:
        resolver = getattr(self, f'_resolve_{self.type}_hours', self._resolve_business_hours)
        return resolver(target_date)

    def _resolve_business_hours(self, target_date: date) -> DayHours:
        return self.business.resolve_hours(target_date)

    def _resolve_staff_hours(self, target_date: date) -> DayHours:
        # A business holiday closes every staff calendar
        if self.business.holidays.filter(date=target_date).exists():
            return DayHours.closed_day()

        exception = self.exceptions.filter(date=target_date).first()
        if exception is not None:
            if not exception.is_working:
                return DayHours.closed_day()
            if exception.start_time and exception.end_time:
                return DayHours.window(exception.start_time, exception.end_time)

        hours = self.working_hours.filter(day_of_week=day_of_week(target_date)).first()
        if hours is None:
            return DayHours.closed_day()
        return DayHours.window(hours.start_time, hours.end_time)


class StaffWorkingHour(models.Model):
    """Recurring weekly working hours of a staff resource."""

    resource = models.ForeignKey(
        Resource,
        on_delete=models.CASCADE,
        related_name='working_hours'
    )
    day_of_week = models.IntegerField(choices=DayOfWeek.choices)
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        db_table = 'staff_working_hours'
        ordering = ['day_of_week']
        constraints = [
            models.UniqueConstraint(
                fields=['resource', 'day_of_week'],
                name='uniq_staff_working_day'
            ),
        ]

    def __str__(self):
        return f"{self.get_day_of_week_display()}: {self.start_time} - {self.end_time}"


class StaffException(models.Model):
    """
    Date-scoped override of a staff member's calendar.

    ``is_working=False`` marks a day off. A working exception with its own
    hours replaces the weekly hours for that date; without hours the
    weekly hours still apply.
    """

    resource = models.ForeignKey(
        Resource,
        on_delete=models.CASCADE,
        related_name='exceptions'
    )
    date = models.DateField()
    is_working = models.BooleanField(default=False)
    start_time = models.TimeField(blank=True, null=True)
    end_time = models.TimeField(blank=True, null=True)
    note = models.TextField(blank=True, null=True)

    class Meta:
        db_table = 'staff_exceptions'
        ordering = ['date']
        constraints = [
            models.UniqueConstraint(
                fields=['resource', 'date'],
                name='uniq_staff_exception_date'
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(start_time__isnull=True, end_time__isnull=True)
                    | models.Q(start_time__lt=models.F('end_time'))
                ),
                name='staff_exception_valid_window'
            ),
        ]

    def __str__(self):
        state = 'working' if self.is_working else 'off'
        return f"{self.resource_id} {state} on {self.date}"

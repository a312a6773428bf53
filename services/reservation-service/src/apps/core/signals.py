# services/reservation-service/src/apps/core/signals.py
"""
Reservation Service Signals

Invalidate cached availability whenever bookings or opening hours change.
"""

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import (
    Booking,
    BusinessHoliday,
    BusinessHour,
    Resource,
    StaffException,
    StaffWorkingHour,
)
from .services.availability_service import bump_availability_version


@receiver(post_save, sender=Booking)
def booking_saved(sender, instance, created, **kwargs):
    bump_availability_version(instance.business_id)


@receiver([post_save, post_delete], sender=BusinessHour)
@receiver([post_save, post_delete], sender=BusinessHoliday)
def business_calendar_changed(sender, instance, **kwargs):
    bump_availability_version(instance.business_id)


@receiver([post_save, post_delete], sender=StaffWorkingHour)
@receiver([post_save, post_delete], sender=StaffException)
def staff_calendar_changed(sender, instance, **kwargs):
    business_id = Resource.objects.filter(
        id=instance.resource_id
    ).values_list('business_id', flat=True).first()
    if business_id:
        bump_availability_version(business_id)

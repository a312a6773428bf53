# services/reservation-service/src/apps/core/models/__init__.py
"""
Reservation Service Models
"""

from .hours import DayHours, DayOfWeek, day_of_week
from .business import Business, BusinessHour, BusinessHoliday, Customer, CancellationPolicy
from .resource import Resource, StaffWorkingHour, StaffException
from .service import Service, ServiceResource
from .booking import Booking, BookingHistory
from .pricing_rule import PricingRule
from .waitlist import WaitlistEntry
from .dispatch import DispatchRequest

__all__ = [
    'DayHours',
    'DayOfWeek',
    'day_of_week',
    'Business',
    'BusinessHour',
    'BusinessHoliday',
    'Customer',
    'CancellationPolicy',
    'Resource',
    'StaffWorkingHour',
    'StaffException',
    'Service',
    'ServiceResource',
    'Booking',
    'BookingHistory',
    'PricingRule',
    'WaitlistEntry',
    'DispatchRequest',
]

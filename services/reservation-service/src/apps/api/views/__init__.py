# services/reservation-service/src/apps/api/views/__init__.py
"""
Reservation API Views
"""

from .availability_views import (
    AvailabilityView,
    AvailableResourcesView,
)

from .booking_views import (
    BookingViewSet,
)

from .pricing_views import (
    PricingRuleViewSet,
    PricePreviewView,
)

from .waitlist_views import (
    WaitlistEntryViewSet,
)


__all__ = [
    # Availability
    'AvailabilityView',
    'AvailableResourcesView',

    # Booking
    'BookingViewSet',

    # Pricing
    'PricingRuleViewSet',
    'PricePreviewView',

    # Waitlist
    'WaitlistEntryViewSet',
]

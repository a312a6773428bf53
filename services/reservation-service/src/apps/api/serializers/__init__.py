# services/reservation-service/src/apps/api/serializers/__init__.py
"""
Reservation API Serializers
"""

from .availability_serializers import (
    AvailabilityQuerySerializer,
    AvailableResourcesQuerySerializer,
    ResourceSerializer,
)

from .booking_serializers import (
    BookingSerializer,
    BookingHistorySerializer,
    BookingCreateSerializer,
    BookingRescheduleSerializer,
    BookingTransitionSerializer,
    BookingMetadataSerializer,
    PaymentResultSerializer,
)

from .pricing_serializers import (
    PricingRuleSerializer,
    PricingRuleWriteSerializer,
    PricePreviewQuerySerializer,
)

from .waitlist_serializers import (
    WaitlistEntrySerializer,
    WaitlistEntryCreateSerializer,
    WaitlistNotifyNextSerializer,
    WaitlistConvertSerializer,
)


__all__ = [
    # Availability
    'AvailabilityQuerySerializer',
    'AvailableResourcesQuerySerializer',
    'ResourceSerializer',

    # Booking
    'BookingSerializer',
    'BookingHistorySerializer',
    'BookingCreateSerializer',
    'BookingRescheduleSerializer',
    'BookingTransitionSerializer',
    'BookingMetadataSerializer',
    'PaymentResultSerializer',

    # Pricing
    'PricingRuleSerializer',
    'PricingRuleWriteSerializer',
    'PricePreviewQuerySerializer',

    # Waitlist
    'WaitlistEntrySerializer',
    'WaitlistEntryCreateSerializer',
    'WaitlistNotifyNextSerializer',
    'WaitlistConvertSerializer',
]

# services/reservation-service/src/apps/core/services/__init__.py
"""
Reservation Service Business Logic

Exceptions are declared before the service modules are imported so the
modules can import them from this package.
"""

from shared.common.exceptions import (
    BadRequestException,
    ConflictException,
    ForbiddenException,
    NotFoundException,
)


# Custom Exceptions
class NotFoundError(NotFoundException):
    """Referenced record does not exist or is deleted."""
    pass


class BadRequestError(BadRequestException):
    """Request is invalid for the current state."""
    pass


class InvalidTransitionError(BadRequestError):
    """Status change not allowed by the lifecycle."""
    default_detail = 'Invalid transition.'
    error_code = 'INVALID_TRANSITION'


class BusinessNotOpenError(BadRequestError):
    """Business is not approved and live."""
    default_detail = 'Business is not accepting bookings.'
    error_code = 'BUSINESS_NOT_OPEN'


class DuplicateWaitlistEntryError(BadRequestError):
    """Customer already holds an open waitlist entry."""
    default_detail = 'Customer is already on the waitlist.'
    error_code = 'DUPLICATE_WAITLIST_ENTRY'


class ConflictError(ConflictException):
    """Request conflicts with existing reservations."""
    pass


class SlotUnavailableError(ConflictError):
    """Requested interval overlaps a holding booking."""
    default_detail = 'Time slot is not available.'
    error_code = 'SLOT_UNAVAILABLE'


class NoAvailableResourceError(ConflictError):
    """No linked resource is free for the requested interval."""
    default_detail = 'No available resources.'
    error_code = 'NO_AVAILABLE_RESOURCE'


class ForbiddenError(ForbiddenException):
    """Cross-tenant access."""
    pass


from .calendar_service import CalendarService  # noqa: E402
from .slot_generator import Slot, SlotGenerator  # noqa: E402
from .conflict_service import ConflictDetector, ConflictScope  # noqa: E402
from .allocation_service import ResourceAllocator  # noqa: E402
from .pricing_service import PricingService, PriceQuote  # noqa: E402
from .dispatch_service import DispatchService  # noqa: E402
from .availability_service import AvailabilityService  # noqa: E402
from .booking_service import BookingService  # noqa: E402
from .waitlist_service import WaitlistService  # noqa: E402


__all__ = [
    # Services
    'CalendarService',
    'Slot',
    'SlotGenerator',
    'ConflictDetector',
    'ConflictScope',
    'ResourceAllocator',
    'PricingService',
    'PriceQuote',
    'DispatchService',
    'AvailabilityService',
    'BookingService',
    'WaitlistService',

    # Exceptions
    'NotFoundError',
    'BadRequestError',
    'InvalidTransitionError',
    'BusinessNotOpenError',
    'DuplicateWaitlistEntryError',
    'ConflictError',
    'SlotUnavailableError',
    'NoAvailableResourceError',
    'ForbiddenError',
]
